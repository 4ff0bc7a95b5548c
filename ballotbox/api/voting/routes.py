from flask import Blueprint, request
from flasgger import swag_from
from flask_jwt_extended import jwt_required

from ...schemas.vote import VoteSubmitSchema
from ...services.voting import submit_vote
from ...utils.validation import validate_or_abort

voting_bp = Blueprint("voting", __name__)
vote_submit_schema = VoteSubmitSchema()


@voting_bp.post("/")
@jwt_required()
@swag_from({
    "tags": ["Voting"],
    "security": [{"BearerAuth": []}],
    "summary": "Redeem a token for one vote",
    "description": (
        "Claims the token and adds one vote to the candidate in a single transaction.\n"
        "Requires a session token from POST /api/auth/session (or an admin token).\n"
        "A token can be redeemed once; a second attempt fails with TOKEN_ALREADY_USED."
    ),
    "parameters": [{
        "in": "body",
        "name": "body",
        "required": True,
        "schema": {
            "type": "object",
            "properties": {
                "token": {"type": "string", "example": "AB3X9K"},
                "candidateId": {"type": "string", "example": "uuid"},
            },
            "required": ["token", "candidateId"],
        },
    }],
    "responses": {
        201: {"description": "Vote recorded"},
        400: {"description": "Validation error"},
        401: {"description": "No voting session"},
        403: {"description": "Storage access denied"},
        404: {"description": "Token or candidate not found"},
        409: {"description": "Token already used"},
        503: {"description": "Database unreachable"},
    },
})
def cast_vote():
    payload = request.get_json(silent=True) or {}
    data = validate_or_abort(vote_submit_schema, payload)

    result = submit_vote(data["token"], data["candidate_id"])
    return result.to_dict(), result.status
