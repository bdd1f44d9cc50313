import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional
from urllib.parse import urlparse

from flask import current_app
from werkzeug.utils import secure_filename

from models import db
from models.journal_entry import JournalEntry, JournalPhoto
from models.user import User
from security.cipher import ContentCipher
from security.errors import EntryNotFound, JournalValidationError
from services.photo_storage import PhotoStorage
from utils.timezones import local_date

MAX_CONTENT_LEN = 10000
MAX_TITLE_LEN = 200
MAX_TAGS = 10
MAX_TAG_LEN = 50
SOURCES = ("web", "sms")

ALLOWED_PHOTO_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}


@dataclass
class PhotoUpload:
    filename: str
    content_type: str
    data: bytes


def validate_entry_content(content) -> str:
    if not isinstance(content, str) or not content.strip():
        raise JournalValidationError("Entry content is required")
    content = content.strip()
    if len(content) > MAX_CONTENT_LEN:
        raise JournalValidationError(f"Entry content must be at most {MAX_CONTENT_LEN} characters")
    return content


def validate_title(title) -> str:
    if title is None:
        return ""
    if not isinstance(title, str):
        raise JournalValidationError("Title must be a string")
    title = title.strip()
    if len(title) > MAX_TITLE_LEN:
        raise JournalValidationError(f"Title must be at most {MAX_TITLE_LEN} characters")
    return title


def validate_tags(tags) -> List[str]:
    if tags is None:
        return []
    if not isinstance(tags, (list, tuple)):
        raise JournalValidationError("Tags must be a list")

    out: List[str] = []
    for tag in tags:
        if not isinstance(tag, str):
            raise JournalValidationError("Tags must be strings")
        tag = tag.strip().lower()
        if not tag:
            continue
        if len(tag) > MAX_TAG_LEN:
            raise JournalValidationError(f"Tags must be at most {MAX_TAG_LEN} characters")
        if tag not in out:
            out.append(tag)

    if len(out) > MAX_TAGS:
        raise JournalValidationError(f"At most {MAX_TAGS} tags are allowed")
    return out


def validate_photos(photos: Iterable[PhotoUpload], max_photos: int, max_bytes: int) -> List[PhotoUpload]:
    photos = list(photos or [])
    if len(photos) > max_photos:
        raise JournalValidationError(f"At most {max_photos} photos per entry")
    for photo in photos:
        if photo.content_type not in ALLOWED_PHOTO_TYPES:
            raise JournalValidationError(f"Unsupported photo type: {photo.content_type}")
        if not photo.data:
            raise JournalValidationError("Photo is empty")
        if len(photo.data) > max_bytes:
            raise JournalValidationError(f"Photo {photo.filename} is too large")
    return photos


def _file_name_from_reference(ref: str) -> str:
    """Accepts a public URL, a storage path or a bare file name."""
    path = urlparse(ref).path if "://" in ref else ref
    return path.rstrip("/").split("/")[-1]


class JournalService:
    def __init__(self, cipher: ContentCipher, storage: PhotoStorage,
                 max_photos: int = 5, max_photo_bytes: int = 5 * 1024 * 1024):
        self.cipher = cipher
        self.storage = storage
        self.max_photos = max_photos
        self.max_photo_bytes = max_photo_bytes

    # ---------- reads ----------

    def _serialize(self, entry: JournalEntry) -> dict:
        title = self.cipher.decrypt_or_raw(entry.title, entry.user_id)
        content = self.cipher.decrypt_or_raw(entry.content, entry.user_id)
        if title.fell_back or content.fell_back:
            current_app.logger.warning(
                "Entry %s served with raw fallback (title=%s, content=%s)",
                entry.id, title.fell_back, content.fell_back,
            )

        return {
            "id": entry.id,
            "user_id": entry.user_id,
            "title": title.value,
            "content": content.value,
            "source": entry.source,
            "entry_date": entry.entry_date.isoformat(),
            "timestamp": entry.created_at.isoformat(),
            "tags": list(entry.tags or []),
            "photos": self._photo_urls(entry),
            "decryption_fallback": title.fell_back or content.fell_back,
        }

    def _photo_urls(self, entry: JournalEntry) -> List[str]:
        urls = []
        for photo in entry.photos:
            try:
                urls.append(self.storage.public_url(photo.file_path))
            except ValueError:
                current_app.logger.warning("Skipping photo %s on entry %s: bad storage path", photo.id, entry.id)
        return urls

    def fetch_entries(self, user_id: int) -> List[dict]:
        if not user_id:
            return []
        rows = (
            JournalEntry.query
            .filter_by(user_id=user_id)
            .order_by(JournalEntry.created_at.desc(), JournalEntry.id.desc())
            .all()
        )
        return [self._serialize(row) for row in rows]

    def _owned_entry(self, user_id: int, entry_id: int) -> JournalEntry:
        entry = JournalEntry.query.filter_by(id=entry_id, user_id=user_id).first()
        if entry is None:
            raise EntryNotFound(entry_id)
        return entry

    def get_entry(self, user_id: int, entry_id: int) -> dict:
        return self._serialize(self._owned_entry(user_id, entry_id))

    # ---------- writes ----------

    def _store_photos(self, entry: JournalEntry, photos: List[PhotoUpload]) -> int:
        stored = 0
        for photo in photos:
            ext = ALLOWED_PHOTO_TYPES[photo.content_type]
            base = secure_filename(photo.filename.rsplit(".", 1)[0])[:40] or "photo"
            file_name = f"{base}-{uuid.uuid4().hex[:12]}.{ext}"
            path = f"{entry.user_id}/{entry.id}/{file_name}"
            try:
                self.storage.upload(path, photo.data, photo.content_type)
            except Exception:
                current_app.logger.exception("Photo upload failed for entry %s", entry.id)
                continue
            db.session.add(JournalPhoto(entry_id=entry.id, file_path=path, file_name=file_name))
            stored += 1
        return stored

    def create_entry(self, user_id: int, title: Optional[str], content: str,
                     tags=None, photos=None, source: str = "web",
                     now: Optional[datetime] = None) -> dict:
        if not user_id:
            raise PermissionError("User not authenticated")
        if source not in SOURCES:
            raise JournalValidationError("Invalid source")

        content = validate_entry_content(content)
        title = validate_title(title)
        tags = validate_tags(tags)
        photos = validate_photos(photos, self.max_photos, self.max_photo_bytes)

        user = db.session.get(User, user_id)
        tz_name = user.timezone if user else "UTC"
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        entry = JournalEntry(
            user_id=user_id,
            title=self.cipher.encrypt(title, user_id),
            content=self.cipher.encrypt(content, user_id),
            source=source,
            entry_date=local_date(now, tz_name),
            tags=tags,
            created_at=now.astimezone(timezone.utc).replace(tzinfo=None),
        )
        db.session.add(entry)
        db.session.flush()

        if photos:
            self._store_photos(entry, photos)

        db.session.commit()
        return self._serialize(entry)

    def _remove_photo(self, entry: JournalEntry, ref: str) -> bool:
        try:
            file_name = _file_name_from_reference(ref)
            row = next((p for p in entry.photos if p.file_name == file_name), None)
            if row is None:
                current_app.logger.warning("Photo %s not found on entry %s", file_name, entry.id)
                return False

            try:
                self.storage.remove([row.file_path])
            except Exception:
                current_app.logger.exception("Error deleting photo %s from storage", row.file_path)

            entry.photos.remove(row)
            return True
        except Exception:
            current_app.logger.exception("Error processing photo removal %r", ref)
            return False

    def update_entry(self, user_id: int, entry_id: int, content: str,
                     tags=None, photos=None, removed_photos=None, title=None) -> dict:
        entry = self._owned_entry(user_id, entry_id)

        content = validate_entry_content(content)
        if title is not None:
            title = validate_title(title)
        if tags is not None:
            tags = validate_tags(tags)
        photos = validate_photos(photos, self.max_photos, self.max_photo_bytes)
        removed_photos = [r for r in (removed_photos or []) if isinstance(r, str) and r]

        if photos:
            removing = {_file_name_from_reference(r) for r in removed_photos}
            remaining = sum(1 for p in entry.photos if p.file_name not in removing)
            if remaining + len(photos) > self.max_photos:
                raise JournalValidationError(f"At most {self.max_photos} photos per entry")

        entry.content = self.cipher.encrypt(content, user_id)
        if title is not None:
            entry.title = self.cipher.encrypt(title, user_id)
        if tags is not None:
            entry.tags = tags

        for ref in removed_photos:
            self._remove_photo(entry, ref)

        if photos:
            self._store_photos(entry, photos)

        db.session.commit()
        return self._serialize(entry)

    def delete_entry(self, user_id: int, entry_id: int) -> None:
        entry = self._owned_entry(user_id, entry_id)

        paths = [p.file_path for p in entry.photos]
        if paths:
            try:
                self.storage.remove(paths)
            except Exception:
                current_app.logger.exception("Error deleting photos for entry %s", entry.id)

        # photo rows go with the entry (cascade)
        db.session.delete(entry)
        db.session.commit()
