from marshmallow import Schema, fields

from ..extensions import ma

from .token import TokenStatsSchema

class CandidateResultSchema(Schema):
    candidate_id = fields.Str(required=True, data_key="candidateId")
    name = fields.Str(required=True)
    no_urut = fields.Int(required=True, data_key="noUrut")
    votes = fields.Int(required=True)
    percentage = fields.Float(required=True)

class ResultsSummarySchema(ma.Schema):
    total_votes = fields.Int(required=True, data_key="totalVotes")
    candidates = fields.List(fields.Nested(CandidateResultSchema), required=True)
    tokens = fields.Nested(TokenStatsSchema, required=True)
