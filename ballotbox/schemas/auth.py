from marshmallow import Schema, fields, validate

class LoginSchema(Schema):
    """Schema for admin login request"""
    username = fields.Str(required=True, validate=validate.Length(min=1, max=80))
    password = fields.Str(
        required=True,
        validate=validate.Length(min=8, max=128),
    )

class AdminSchema(Schema):
    id = fields.UUID()
    username = fields.Str()
    is_active = fields.Bool()
    created_at = fields.DateTime()
