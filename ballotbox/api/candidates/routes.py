from flask import Blueprint, request, current_app
from flasgger import swag_from
from sqlalchemy.exc import SQLAlchemyError

from ...errors import CandidateNotFound, classify_db_error, error_response
from ...extensions import db
from ...schemas.candidate import CandidateCreateSchema, CandidateReadSchema
from ...services import ballot_store
from ...services.feed import CANDIDATES
from ...utils.audit import safe_audit
from ...utils.rbac import admin_required
from ...utils.sse import sse_response
from ...utils.validation import validate_or_abort

candidates_bp = Blueprint("candidates", __name__)

candidate_create_schema = CandidateCreateSchema()
candidate_read_schema = CandidateReadSchema()
candidate_read_many_schema = CandidateReadSchema(many=True)


def candidates_snapshot() -> list:
    return candidate_read_many_schema.dump(ballot_store.list_candidates())


@candidates_bp.get("/")
@swag_from({
    "tags": ["Candidates"],
    "summary": "List candidates in ballot order (noUrut ascending)",
    "responses": {200: {"description": "OK"}, 500: {"description": "Server error"}},
})
def list_candidates():
    try:
        return {"candidates": candidates_snapshot()}, 200
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("DB error listing candidates")
        return {"message": "Failed to list candidates"}, 500


@candidates_bp.get("/<uuid:candidate_id>")
@swag_from({
    "tags": ["Candidates"],
    "summary": "Get a single candidate",
    "responses": {200: {"description": "OK"}, 404: {"description": "Candidate not found"}},
})
def get_candidate(candidate_id):
    candidate = ballot_store.get_candidate(candidate_id)
    if not candidate:
        return error_response(CandidateNotFound())
    return {"candidate": candidate_read_schema.dump(candidate)}, 200


@candidates_bp.post("/")
@admin_required
@swag_from({
    "tags": ["Candidates"],
    "security": [{"BearerAuth": []}],
    "summary": "Add a candidate (admin). Votes start at 0.",
    "parameters": [{
        "in": "body",
        "name": "body",
        "required": True,
        "schema": {
            "type": "object",
            "properties": {
                "name": {"type": "string", "example": "Budi Santoso"},
                "noUrut": {"type": "integer", "example": 1},
                "vision": {"type": "string"},
                "mission": {"type": "string"},
                "photoUrl": {"type": "string", "example": "https://picsum.photos/200"},
            },
            "required": ["name", "noUrut"],
        },
    }],
    "responses": {201: {"description": "Created"}, 400: {"description": "Validation error"}, 403: {"description": "Forbidden"}},
})
def create_candidate():
    payload = request.get_json(silent=True) or {}
    data = validate_or_abort(candidate_create_schema, payload)

    try:
        candidate = ballot_store.add_candidate(data)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("DB error creating candidate")
        err = classify_db_error(e)
        if err:
            return error_response(err)
        return {"message": "Failed to create candidate"}, 500

    safe_audit(
        action="CANDIDATE_CREATED",
        entity_type="CANDIDATE",
        entity_id=str(candidate.id),
        details={"name": candidate.name, "no_urut": candidate.no_urut},
    )
    return {"candidate": candidate_read_schema.dump(candidate)}, 201


@candidates_bp.delete("/<uuid:candidate_id>")
@admin_required
@swag_from({
    "tags": ["Candidates"],
    "security": [{"BearerAuth": []}],
    "summary": "Delete a candidate (admin)",
    "description": "Votes already counted for the candidate are discarded with it; their tokens stay used.",
    "responses": {200: {"description": "Deleted"}, 404: {"description": "Candidate not found"}},
})
def delete_candidate(candidate_id):
    try:
        ballot_store.delete_candidate(candidate_id)
    except CandidateNotFound as err:
        return error_response(err)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("DB error deleting candidate")
        err = classify_db_error(e)
        if err:
            return error_response(err)
        return {"message": "Failed to delete candidate"}, 500

    safe_audit(action="CANDIDATE_DELETED", entity_type="CANDIDATE", entity_id=str(candidate_id))

    return {"message": "Candidate deleted", "id": str(candidate_id)}, 200


@candidates_bp.get("/stream")
@swag_from({
    "tags": ["Candidates"],
    "summary": "Live candidate list (Server-Sent Events)",
    "description": "Sends the full list ordered by noUrut on connect and after every change.",
    "parameters": [{"in": "query", "name": "limit", "type": "integer", "required": False}],
    "produces": ["text/event-stream"],
    "responses": {200: {"description": "Event stream"}},
})
def stream_candidates():
    limit = request.args.get("limit", type=int)
    return sse_response(CANDIDATES, candidates_snapshot, limit=limit)
