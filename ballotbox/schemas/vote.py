from marshmallow import Schema, fields, validate

class VoteSubmitSchema(Schema):
    token = fields.Str(required=True, validate=validate.Length(min=1, max=32))
    # Not a UUID field: an unknown or malformed id is CANDIDATE_NOT_FOUND, not a 400
    candidate_id = fields.Str(required=True, data_key="candidateId", validate=validate.Length(min=1, max=64))
