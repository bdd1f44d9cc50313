from datetime import datetime
from models.db import db

EVENT_TYPES = (
    "rate_limit_exceeded",
    "user_signup",
    "suspicious_signup_attempt",
    "failed_signup",
    "failed_signin",
    "account_locked",
    "signin_success",
)

SEVERITIES = ("low", "medium", "high")

class SecurityEvent(db.Model):
    __tablename__ = "security_events"

    id = db.Column(db.Integer, primary_key=True)
    event_type = db.Column(db.String(64), nullable=False, index=True)
    identifier = db.Column(db.String(320), nullable=True, index=True)
    user_id = db.Column(db.Integer, nullable=True)  # nullable for unauth events
    details = db.Column(db.JSON, nullable=True)
    severity = db.Column(db.String(10), nullable=False, default="low")

    ip = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
