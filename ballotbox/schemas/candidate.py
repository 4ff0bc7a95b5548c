from marshmallow import Schema, fields, validate, pre_load

from ..extensions import ma

class CandidateCreateSchema(Schema):
    name = fields.Str(required=True, validate=validate.Length(min=1, max=200))
    no_urut = fields.Int(required=True, data_key="noUrut", validate=validate.Range(min=0))
    vision = fields.Str(load_default="")
    mission = fields.Str(load_default="")
    photo_url = fields.Str(data_key="photoUrl", allow_none=True, validate=validate.Length(max=500))

    @pre_load
    def strip_name(self, data, **kwargs):
        if isinstance(data, dict) and isinstance(data.get("name"), str):
            data = dict(data, name=data["name"].strip())
        return data

class CandidateReadSchema(ma.Schema):
    id = fields.UUID()
    name = fields.Str()
    noUrut = fields.Int(attribute="no_urut")
    vision = fields.Str()
    mission = fields.Str()
    photoUrl = fields.Str(attribute="photo_url", allow_none=True)
    votes = fields.Int()
