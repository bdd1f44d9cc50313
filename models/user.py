from datetime import datetime
from models.db import db

class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)

    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    # profile metadata attached at signup
    phone_number = db.Column(db.String(20), unique=True, nullable=True)
    timezone = db.Column(db.String(64), nullable=False, default="UTC")

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    entries = db.relationship(
        "JournalEntry",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "phone_number": self.phone_number,
            "timezone": self.timezone,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
