"""
Voting transaction coordinator.

A vote is one database transaction: the token is claimed and the candidate's
counter incremented together, or neither happens. Two guards make this hold
under concurrency without a global lock:

- the token row is read ``FOR UPDATE`` (where the database supports it) and
  then claimed with ``UPDATE ... WHERE is_used = false``. If another
  transaction got there first the claim touches no row and the vote fails
  with TOKEN_ALREADY_USED;
- the counter is bumped by the database (``votes = votes + 1``), so votes
  cast with different tokens for the same candidate never overwrite each
  other.

Lock contention and dropped connections are retried here; callers only see
the final outcome.
"""
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from ..errors import (
    BallotError,
    CandidateNotFound,
    TokenAlreadyUsed,
    TokenNotFound,
    classify_db_error,
)
from ..extensions import db, feed
from ..models.access_token import AccessToken
from ..models.candidate import Candidate
from .ballot_store import increment_votes, parse_candidate_id
from .feed import CANDIDATES, TOKENS
from .token_authority import is_well_formed, normalize_token


@dataclass(frozen=True)
class VoteResult:
    success: bool
    reason: Optional[str]
    message: str
    status: int = 201

    def to_dict(self) -> dict:
        return {"success": self.success, "reason": self.reason, "message": self.message}


def claim_token(code: str, now: datetime) -> bool:
    """Mark the token used if, and only if, it is still unused."""
    result = db.session.execute(
        update(AccessToken)
        .where(AccessToken.token == code, AccessToken.is_used.is_(False))
        .values(is_used=True, used_at=now)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _cast_once(code: str, candidate_id) -> None:
    token = db.session.get(AccessToken, code, with_for_update=True, populate_existing=True)
    if token is None:
        raise TokenNotFound()
    if token.is_used:
        raise TokenAlreadyUsed()

    cid = parse_candidate_id(candidate_id)
    candidate = db.session.get(Candidate, cid, populate_existing=True) if cid else None
    if candidate is None:
        raise CandidateNotFound()

    if not claim_token(code, datetime.utcnow()):
        # Someone redeemed it between our read and our write
        raise TokenAlreadyUsed()
    if not increment_votes(candidate.id):
        # Deleted by an admin mid-transaction; the claim rolls back with us
        raise CandidateNotFound()


def cast_vote(token: str, candidate_id) -> None:
    """
    Redeem ``token`` for ``candidate_id``. Raises a BallotError on any
    rejection; on return the vote is committed.
    """
    code = normalize_token(token)
    if not is_well_formed(code):
        raise TokenNotFound()

    attempts = max(1, int(current_app.config.get("VOTE_MAX_ATTEMPTS", 3)))
    backoff = float(current_app.config.get("VOTE_RETRY_BACKOFF_SECONDS", 0.05))

    for attempt in range(1, attempts + 1):
        try:
            _cast_once(code, candidate_id)
            db.session.commit()
            break
        except BallotError:
            db.session.rollback()
            raise
        except SQLAlchemyError as e:
            db.session.rollback()
            err = classify_db_error(e)
            if err is None:
                raise
            if err.transient and attempt < attempts:
                current_app.logger.warning(
                    "Vote transaction attempt %d/%d failed (%s), retrying", attempt, attempts, err.code
                )
                time.sleep(backoff * attempt)
                continue
            current_app.logger.error("Vote transaction failed after %d attempt(s): %s", attempt, err.code)
            raise err from e

    feed.publish(CANDIDATES, TOKENS)


def submit_vote(token: str, candidate_id) -> VoteResult:
    """Transaction boundary: every rejection comes back as a VoteResult."""
    try:
        cast_vote(token, candidate_id)
    except BallotError as err:
        current_app.logger.warning("Vote rejected: %s", err.code)
        return VoteResult(False, err.code, err.message, err.status)

    current_app.logger.info("Vote committed")
    return VoteResult(True, None, "Your vote has been recorded.")
