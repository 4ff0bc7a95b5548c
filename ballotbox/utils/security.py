from werkzeug.security import generate_password_hash, check_password_hash

# Compared against when the username doesn't exist, so a miss costs as much as a hit
_DUMMY_HASH = generate_password_hash("ballotbox-dummy-password")

def hash_password(raw_password: str) -> str:
    return generate_password_hash(raw_password)

def verify_password(raw_password: str, password_hash: str | None) -> bool:
    if not password_hash:
        check_password_hash(_DUMMY_HASH, raw_password)
        return False
    return check_password_hash(password_hash, raw_password)
