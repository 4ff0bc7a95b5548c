"""
Ballot Store: candidates and their vote counters.

Admin writes (add/delete) are single-row and commit on their own.
``increment_votes`` never commits; it runs inside the caller's transaction.
"""
import uuid
from typing import List, Optional

from flask import current_app
from sqlalchemy import func, select, update

from ..errors import CandidateNotFound
from ..extensions import db, feed
from ..models.candidate import Candidate
from .feed import CANDIDATES
from .token_authority import token_stats


def parse_candidate_id(candidate_id) -> Optional[uuid.UUID]:
    if isinstance(candidate_id, uuid.UUID):
        return candidate_id
    try:
        return uuid.UUID(str(candidate_id))
    except (TypeError, ValueError):
        return None


def get_candidate(candidate_id) -> Optional[Candidate]:
    cid = parse_candidate_id(candidate_id)
    if cid is None:
        return None
    return db.session.get(Candidate, cid)


def list_candidates() -> List[Candidate]:
    return list(
        db.session.scalars(
            select(Candidate).order_by(Candidate.no_urut.asc(), Candidate.created_at.asc())
        )
    )


def add_candidate(fields: dict) -> Candidate:
    candidate = Candidate(
        name=fields["name"],
        no_urut=fields["no_urut"],
        vision=fields.get("vision") or "",
        mission=fields.get("mission") or "",
        photo_url=fields.get("photo_url") or current_app.config.get("DEFAULT_PHOTO_URL"),
        votes=0,
    )
    db.session.add(candidate)
    db.session.commit()
    current_app.logger.info("Candidate %s (#%s) created", candidate.id, candidate.no_urut)
    feed.publish(CANDIDATES)
    return candidate


def delete_candidate(candidate_id) -> None:
    """
    Remove a candidate. Votes already counted for them disappear with the row;
    the tokens that cast those votes stay consumed.
    """
    candidate = get_candidate(candidate_id)
    if candidate is None:
        raise CandidateNotFound()
    votes = candidate.votes
    db.session.delete(candidate)
    db.session.commit()
    current_app.logger.info("Candidate %s deleted with %d votes", candidate_id, votes)
    feed.publish(CANDIDATES)


def increment_votes(candidate_id: uuid.UUID) -> bool:
    """
    Add one vote in the database (votes = votes + 1), never from a cached
    value. Returns False when the row no longer exists.
    """
    result = db.session.execute(
        update(Candidate)
        .where(Candidate.id == candidate_id)
        .values(votes=Candidate.votes + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def candidates_fingerprint() -> tuple:
    """Changes whenever a candidate is added, removed or voted for, by any process."""
    return tuple(
        db.session.execute(
            select(
                func.count(Candidate.id),
                func.sum(Candidate.votes),
                func.max(Candidate.created_at),
            )
        ).one()
    )


def results_summary() -> dict:
    candidates = list_candidates()
    total_votes = sum(c.votes for c in candidates)

    results = []
    for c in candidates:
        pct = (c.votes / total_votes * 100.0) if total_votes > 0 else 0.0
        results.append({
            "candidate_id": str(c.id),
            "name": c.name,
            "no_urut": c.no_urut,
            "votes": c.votes,
            "percentage": round(pct, 2),
        })

    return {
        "total_votes": total_votes,
        "candidates": results,
        "tokens": token_stats(),
    }
