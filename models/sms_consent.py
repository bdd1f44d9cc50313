from datetime import datetime
from models.db import db


class SmsConsent(db.Model):
    __tablename__ = "sms_consents"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    phone_number = db.Column(db.String(20), nullable=False)
    consent_text = db.Column(db.Text, nullable=False)

    ip = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
