from marshmallow import Schema, fields, validate

from ..extensions import ma

class TokenBatchSchema(Schema):
    # Upper bound is TOKEN_BATCH_MAX, checked against app config in the route
    amount = fields.Int(required=True, validate=validate.Range(min=1))

class TokenValidateSchema(Schema):
    token = fields.Str(required=True, validate=validate.Length(min=1, max=32))

class TokenReadSchema(ma.Schema):
    token = fields.Str()
    isUsed = fields.Bool(attribute="is_used")
    generatedAt = fields.DateTime(attribute="generated_at")
    usedAt = fields.DateTime(attribute="used_at", allow_none=True)

class TokenStatsSchema(Schema):
    issued = fields.Int(required=True)
    used = fields.Int(required=True)
    unused = fields.Int(required=True)
    participation_rate = fields.Int(required=True, data_key="participationRate")
