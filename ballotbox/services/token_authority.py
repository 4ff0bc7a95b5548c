"""
Token Authority: issues single-use voting codes and answers whether a code
can still be used.

Validation here is advisory. It reserves nothing, so a code that validates
can still lose a race to another voter; the vote transaction in
``ballotbox.services.voting`` has the final word.
"""
import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from flask import current_app
from sqlalchemy import case, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..errors import (
    BallotError,
    TokenAlreadyUsed,
    TokenBatchError,
    TokenNotFound,
    classify_db_error,
)
from ..extensions import db, feed
from ..models.access_token import TOKEN_ALPHABET, TOKEN_LENGTH, AccessToken
from .feed import TOKENS


@dataclass(frozen=True)
class TokenCheck:
    valid: bool
    reason: Optional[str]
    message: str
    status: int = 200

    def to_dict(self) -> dict:
        return {"valid": self.valid, "reason": self.reason, "message": self.message}


def generate_token() -> str:
    """Six characters, each drawn uniformly from the 32-symbol alphabet."""
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(TOKEN_LENGTH))


def normalize_token(raw: str) -> str:
    return (raw or "").strip().upper()


def is_well_formed(token: str) -> bool:
    return len(token) == TOKEN_LENGTH and all(c in TOKEN_ALPHABET for c in token)


def create_tokens(amount: int) -> List[AccessToken]:
    """
    Issue ``amount`` fresh tokens in one transaction.

    There is no existence check against the store: 32**6 codes make a
    collision unlikely, and if one happens the primary key rejects the whole
    batch with TokenBatchError. Nothing from a rejected batch is kept.
    """
    if amount < 1:
        raise ValueError("amount must be at least 1")

    picked = set()
    while len(picked) < amount:
        picked.add(generate_token())
    return _persist_batch(list(picked))


def import_tokens(codes: List[str]) -> List[AccessToken]:
    """
    Register codes that were generated elsewhere, e.g. pre-printed ballot
    slips. Same all-or-nothing batch rules as ``create_tokens``.
    """
    codes = [normalize_token(c) for c in codes]
    if not codes:
        raise ValueError("at least one token is required")
    if len(set(codes)) != len(codes):
        raise ValueError("tokens in one batch must be distinct")
    bad = [c for c in codes if not is_well_formed(c)]
    if bad:
        raise ValueError("malformed tokens: %s" % ", ".join(bad))
    return _persist_batch(codes)


def _persist_batch(codes: List[str]) -> List[AccessToken]:
    amount = len(codes)
    now = datetime.utcnow()
    tokens = [AccessToken(token=c, is_used=False, generated_at=now) for c in codes]
    try:
        db.session.add_all(tokens)
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        current_app.logger.warning("Token batch of %d rejected: code collision", amount)
        raise TokenBatchError() from e
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("DB error issuing %d tokens", amount)
        raise (classify_db_error(e) or TokenBatchError()) from e

    current_app.logger.info("Issued %d tokens", amount)
    feed.publish(TOKENS)
    return tokens


def check_token(token: str) -> AccessToken:
    """Raise TokenNotFound / TokenAlreadyUsed unless the token can vote right now."""
    code = normalize_token(token)
    if not is_well_formed(code):
        raise TokenNotFound()
    row = db.session.get(AccessToken, code)
    if row is None:
        raise TokenNotFound()
    if row.is_used:
        raise TokenAlreadyUsed()
    return row


def validate_token(token: str) -> TokenCheck:
    try:
        check_token(token)
    except BallotError as err:
        return TokenCheck(False, err.code, err.message)
    except SQLAlchemyError as e:
        db.session.rollback()
        err = classify_db_error(e)
        if err is None:
            raise
        current_app.logger.exception("DB error validating token")
        return TokenCheck(False, err.code, err.message, err.status)
    return TokenCheck(True, None, "Token is valid.")


def list_tokens() -> List[AccessToken]:
    return list(
        db.session.scalars(
            select(AccessToken).order_by(AccessToken.generated_at.desc(), AccessToken.token.asc())
        )
    )


def tokens_fingerprint() -> tuple:
    """Changes whenever a token is issued or redeemed, by any process."""
    return tuple(
        db.session.execute(
            select(
                func.count(AccessToken.token),
                func.sum(case((AccessToken.is_used.is_(True), 1), else_=0)),
                func.max(AccessToken.generated_at),
                func.max(AccessToken.used_at),
            )
        ).one()
    )


def token_stats() -> dict:
    issued, used = db.session.execute(
        select(
            func.count(AccessToken.token),
            func.sum(case((AccessToken.is_used.is_(True), 1), else_=0)),
        )
    ).one()
    issued, used = int(issued or 0), int(used or 0)
    return {
        "issued": issued,
        "used": used,
        "unused": issued - used,
        "participation_rate": round(used / issued * 100) if issued else 0,
    }
