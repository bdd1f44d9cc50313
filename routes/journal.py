import json
import os

from flask import Blueprint, request, jsonify, g, abort, current_app, send_from_directory

from security.errors import EntryNotFound, JournalValidationError
from services import get_journal_service
from services.journal import PhotoUpload
from utils.auth_context import login_required

journal_bp = Blueprint("journal", __name__)


def _read_payload():
    """
    JSON body, or multipart form with "photos" files.
    Returns (fields, photos).
    """
    if request.mimetype == "multipart/form-data":
        form = request.form
        fields = {
            "title": form.get("title"),
            "content": form.get("content"),
            "removed_photos": form.getlist("removed_photos"),
        }
        raw_tags = form.get("tags")
        if raw_tags is not None:
            try:
                fields["tags"] = json.loads(raw_tags)
            except ValueError:
                fields["tags"] = [t for t in raw_tags.split(",")]
        photos = [
            PhotoUpload(filename=f.filename or "photo", content_type=f.mimetype, data=f.read())
            for f in request.files.getlist("photos")
            if f and f.filename
        ]
        return fields, photos

    return request.get_json(silent=True) or {}, []


@journal_bp.get("/entries")
@login_required
def list_entries():
    return jsonify(get_journal_service().fetch_entries(g.user.id)), 200


@journal_bp.post("/entries")
@login_required
def create_entry():
    fields, photos = _read_payload()
    try:
        entry = get_journal_service().create_entry(
            g.user.id,
            title=fields.get("title"),
            content=fields.get("content"),
            tags=fields.get("tags"),
            photos=photos,
        )
    except JournalValidationError as err:
        return jsonify(error=str(err)), 400
    return jsonify(entry), 201


@journal_bp.get("/entries/<int:entry_id>")
@login_required
def get_entry(entry_id: int):
    try:
        return jsonify(get_journal_service().get_entry(g.user.id, entry_id)), 200
    except EntryNotFound:
        return jsonify(error="Entry not found"), 404


@journal_bp.patch("/entries/<int:entry_id>")
@login_required
def update_entry(entry_id: int):
    fields, photos = _read_payload()
    try:
        entry = get_journal_service().update_entry(
            g.user.id,
            entry_id,
            content=fields.get("content"),
            title=fields.get("title"),
            tags=fields.get("tags"),
            photos=photos,
            removed_photos=fields.get("removed_photos"),
        )
    except EntryNotFound:
        return jsonify(error="Entry not found"), 404
    except JournalValidationError as err:
        return jsonify(error=str(err)), 400
    return jsonify(entry), 200


@journal_bp.delete("/entries/<int:entry_id>")
@login_required
def delete_entry(entry_id: int):
    try:
        get_journal_service().delete_entry(g.user.id, entry_id)
    except EntryNotFound:
        return jsonify(error="Entry not found"), 404
    return jsonify(message="Entry deleted"), 200


@journal_bp.get("/photos/<path:path>")
@login_required
def serve_photo(path: str):
    # owners only: paths start with the user id
    if path.split("/", 1)[0] != str(g.user.id):
        abort(404)
    root = current_app.config.get("PHOTO_STORAGE_DIR")
    if not root or not os.path.isdir(root):
        abort(404)
    return send_from_directory(root, path)
