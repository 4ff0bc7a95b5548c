import uuid
from datetime import datetime
from ..extensions import db

class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)

    # Who performed the action (admin id, or null for anonymous/system)
    actor_id = db.Column(db.String(64), nullable=True, index=True)
    actor_role = db.Column(db.String(30), nullable=True)

    # What happened
    action = db.Column(db.String(80), nullable=False, index=True)  # e.g. CANDIDATE_CREATED
    entity_type = db.Column(db.String(50), nullable=True, index=True)  # e.g. CANDIDATE, TOKEN, AUTH
    entity_id = db.Column(db.String(64), nullable=True, index=True)

    # Request context
    ip_address = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)

    # Never carries a token together with a candidate: ballots stay anonymous
    details = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
