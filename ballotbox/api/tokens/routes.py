from flask import Blueprint, request, current_app
from flasgger import swag_from
from sqlalchemy.exc import SQLAlchemyError

from ...errors import BallotError, error_response
from ...extensions import db
from ...schemas.token import (
    TokenBatchSchema,
    TokenReadSchema,
    TokenStatsSchema,
    TokenValidateSchema,
)
from ...services import token_authority
from ...services.feed import TOKENS
from ...utils.audit import safe_audit
from ...utils.rbac import admin_required
from ...utils.sse import sse_response
from ...utils.validation import validate_or_abort

tokens_bp = Blueprint("tokens", __name__)

token_batch_schema = TokenBatchSchema()
token_validate_schema = TokenValidateSchema()
token_read_many_schema = TokenReadSchema(many=True)
token_stats_schema = TokenStatsSchema()


def tokens_snapshot() -> list:
    return token_read_many_schema.dump(token_authority.list_tokens())


@tokens_bp.post("/validate")
@swag_from({
    "tags": ["Tokens"],
    "summary": "Check whether a token can still vote (advisory, reserves nothing)",
    "parameters": [{
        "in": "body",
        "name": "body",
        "required": True,
        "schema": {
            "type": "object",
            "properties": {"token": {"type": "string", "example": "AB3X9K"}},
            "required": ["token"],
        },
    }],
    "responses": {
        200: {"description": "{valid, reason, message}"},
        400: {"description": "Validation error"},
        403: {"description": "Storage access denied"},
        503: {"description": "Database unreachable"},
    },
})
def validate_token():
    payload = request.get_json(silent=True) or {}
    data = validate_or_abort(token_validate_schema, payload)

    check = token_authority.validate_token(data["token"])
    return check.to_dict(), check.status


@tokens_bp.post("/batch")
@admin_required
@swag_from({
    "tags": ["Tokens"],
    "security": [{"BearerAuth": []}],
    "summary": "Issue a batch of voting tokens (admin)",
    "parameters": [{
        "in": "body",
        "name": "body",
        "required": True,
        "schema": {
            "type": "object",
            "properties": {"amount": {"type": "integer", "example": 10}},
            "required": ["amount"],
        },
    }],
    "responses": {
        201: {"description": "Tokens issued"},
        400: {"description": "Validation error"},
        409: {"description": "Batch rejected, retry"},
    },
})
def create_batch():
    payload = request.get_json(silent=True) or {}
    data = validate_or_abort(token_batch_schema, payload)

    amount = data["amount"]
    max_amount = current_app.config["TOKEN_BATCH_MAX"]
    if amount > max_amount:
        return {
            "success": False,
            "reason": "VALIDATION_ERROR",
            "message": f"At most {max_amount} tokens per batch",
        }, 400

    try:
        tokens = token_authority.create_tokens(amount)
    except BallotError as err:
        safe_audit(action="TOKEN_BATCH_REJECTED", entity_type="TOKEN", details={"amount": amount, "reason": err.code})
        return error_response(err)

    safe_audit(action="TOKEN_BATCH_ISSUED", entity_type="TOKEN", details={"amount": amount})
    return {"count": len(tokens), "tokens": token_read_many_schema.dump(tokens)}, 201


@tokens_bp.get("/")
@admin_required
@swag_from({
    "tags": ["Tokens"],
    "security": [{"BearerAuth": []}],
    "summary": "List all tokens, newest first, with usage stats (admin)",
    "responses": {200: {"description": "OK"}, 403: {"description": "Forbidden"}},
})
def list_tokens():
    try:
        return {
            "tokens": tokens_snapshot(),
            "stats": token_stats_schema.dump(token_authority.token_stats()),
        }, 200
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("DB error listing tokens")
        return {"message": "Failed to list tokens"}, 500


@tokens_bp.get("/stream")
@admin_required
@swag_from({
    "tags": ["Tokens"],
    "security": [{"BearerAuth": []}],
    "summary": "Live token list (Server-Sent Events, admin)",
    "description": "Sends all tokens ordered by generatedAt descending on connect and after every change. "
                   "Pass the JWT as ?jwt= when the client can't set headers.",
    "parameters": [{"in": "query", "name": "limit", "type": "integer", "required": False}],
    "produces": ["text/event-stream"],
    "responses": {200: {"description": "Event stream"}, 401: {"description": "Unauthorized"}},
})
def stream_tokens():
    limit = request.args.get("limit", type=int)
    return sse_response(TOKENS, tokens_snapshot, limit=limit)
