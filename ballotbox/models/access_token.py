from datetime import datetime
from ..extensions import db

# No I, 1, O, 0: voters type these in by hand
TOKEN_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
TOKEN_LENGTH = 6


class AccessToken(db.Model):
    __tablename__ = "tokens"

    # The code itself is the key
    token = db.Column(db.String(TOKEN_LENGTH), primary_key=True)

    is_used = db.Column(db.Boolean, nullable=False, default=False)
    generated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    used_at = db.Column(db.DateTime, nullable=True)

    __table_args__ = (
        db.CheckConstraint(
            "(is_used AND used_at IS NOT NULL) OR (NOT is_used AND used_at IS NULL)",
            name="ck_tokens_used_at_matches_is_used",
        ),
    )

    def __repr__(self) -> str:
        return f"<AccessToken {self.token} used={self.is_used}>"
