from datetime import datetime
from models.db import db

class RateLimit(db.Model):
    __tablename__ = "rate_limits"

    id = db.Column(db.Integer, primary_key=True)

    # identifier is "<ip>:<email>", endpoint e.g. auth_signin
    identifier = db.Column(db.String(320), nullable=False, index=True)
    endpoint = db.Column(db.String(64), nullable=False)

    attempts = db.Column(db.Integer, default=0, nullable=False)
    max_attempts = db.Column(db.Integer, nullable=False)
    window_start = db.Column(db.DateTime, nullable=False)
    blocked_until = db.Column(db.DateTime, nullable=True)

    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("identifier", "endpoint", name="uq_rate_limit_identifier_endpoint"),
    )
