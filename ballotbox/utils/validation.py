from flask import abort
from marshmallow import ValidationError

def validate_or_abort(schema, payload):
    """Deserialize payload with schema, or abort 400 with the field errors."""
    try:
        return schema.load(payload)
    except ValidationError as err:
        abort(
            400,
            description={
                "code": "VALIDATION_ERROR",
                "message": "Validation error",
                "errors": err.messages,
            },
        )
