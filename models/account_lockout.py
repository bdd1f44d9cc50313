from datetime import datetime
from models.db import db

class AccountLockout(db.Model):
    __tablename__ = "account_lockouts"

    id = db.Column(db.Integer, primary_key=True)

    # Keyed by email only: a lock follows the account, not the network
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)

    failed_attempts = db.Column(db.Integer, default=0, nullable=False)
    last_failed_at = db.Column(db.DateTime, nullable=True)
    locked_until = db.Column(db.DateTime, nullable=True)

    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
