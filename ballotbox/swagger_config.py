def swagger_template(app=None):
    title = "Ballotbox API"
    version = "1.0.0"

    if app:
        title = app.config.get("SWAGGER_TITLE", title)
        version = app.config.get("SWAGGER_VERSION", version)

    return {
        "swagger": "2.0",
        "info": {
            "title": title,
            "version": version,
            "description": "Token-gated voting for a neighbourhood chair election.",
        },
        "securityDefinitions": {
            "BearerAuth": {
                "type": "apiKey",
                "name": "Authorization",
                "in": "header",
                "description": "JWT Authorization header: Bearer <token>"
            }
        },
        "definitions": {
            "ErrorResponse": {
                "type": "object",
                "properties": {
                    "success": {"type": "boolean", "example": False},
                    "reason": {"type": "string", "example": "TOKEN_ALREADY_USED"},
                    "message": {"type": "string", "example": "This token has already been used."},
                    "details": {"type": "object"},
                    "request_id": {"type": "string"}
                }
            },
            "Candidate": {
                "type": "object",
                "properties": {
                    "id": {"type": "string"},
                    "name": {"type": "string"},
                    "noUrut": {"type": "integer"},
                    "vision": {"type": "string"},
                    "mission": {"type": "string"},
                    "photoUrl": {"type": "string"},
                    "votes": {"type": "integer"}
                }
            },
            "Token": {
                "type": "object",
                "properties": {
                    "token": {"type": "string", "example": "AB3X9K"},
                    "isUsed": {"type": "boolean"},
                    "generatedAt": {"type": "string", "format": "date-time"},
                    "usedAt": {"type": "string", "format": "date-time"}
                }
            }
        }
    }
