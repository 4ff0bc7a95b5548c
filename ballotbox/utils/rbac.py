from functools import wraps
from flask import abort
from flask_jwt_extended import get_jwt, verify_jwt_in_request

ADMIN = "ADMIN"
VOTER = "VOTER"

def roles_required(*allowed_roles: str):
    """
    Require JWT and restrict endpoint access to specific roles.
    Use with @jwt_required() above it.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            claims = get_jwt()
            role = claims.get("role")
            if role not in allowed_roles:
                abort(403, description={
                    "code": "PERMISSION_DENIED",
                    "message": "Insufficient permissions",
                })
            return fn(*args, **kwargs)
        return wrapper
    return decorator

def admin_required(fn):
    """Shorthand for @jwt_required() + @roles_required("ADMIN")."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        verify_jwt_in_request()
        return roles_required(ADMIN)(fn)(*args, **kwargs)
    return wrapper
