import uuid
from datetime import datetime
from ..extensions import db

class Candidate(db.Model):
    __tablename__ = "candidates"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)

    name = db.Column(db.String(200), nullable=False)
    # Ballot order shown to voters; admin-assigned, not unique
    no_urut = db.Column(db.Integer, nullable=False, index=True)
    vision = db.Column(db.Text, nullable=False, default="")
    mission = db.Column(db.Text, nullable=False, default="")
    photo_url = db.Column(db.String(500), nullable=True)

    # Only ever changed by the vote transaction, as votes = votes + 1
    votes = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint("votes >= 0", name="ck_candidates_votes_non_negative"),
    )
