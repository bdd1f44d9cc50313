from datetime import datetime
from models.db import db

class JournalEntry(db.Model):
    __tablename__ = "journal_entries"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # both stored encrypted (see security/cipher.py)
    title = db.Column(db.Text, nullable=False, default="")
    content = db.Column(db.Text, nullable=False)

    source = db.Column(db.String(10), nullable=False, default="web")  # web, sms
    entry_date = db.Column(db.Date, nullable=False, index=True)
    tags = db.Column(db.JSON, nullable=False, default=list)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = db.relationship("User", back_populates="entries")
    photos = db.relationship(
        "JournalPhoto",
        back_populates="entry",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="JournalPhoto.id",
    )


class JournalPhoto(db.Model):
    __tablename__ = "journal_photos"

    id = db.Column(db.Integer, primary_key=True)
    entry_id = db.Column(
        db.Integer,
        db.ForeignKey("journal_entries.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    file_path = db.Column(db.String(255), nullable=False)
    file_name = db.Column(db.String(128), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    entry = db.relationship("JournalEntry", back_populates="photos")
