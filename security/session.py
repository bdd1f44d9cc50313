import hashlib
import secrets
from typing import Optional
from datetime import datetime, timedelta
from flask import request, current_app

from models import db
from models.session import Session
from utils.request_info import client_ip, user_agent

def _hash_token(token: str) -> str:
    # SHA-256 is fine for hashing random session tokens
    return hashlib.sha256(token.encode("utf-8")).hexdigest()

def create_session(user_id: int) -> tuple[str, datetime]:
    """
    Creates a server-side session and returns (RAW token, expires_at).
    Only the hash is stored in DB.
    """
    raw_token = secrets.token_urlsafe(32)
    token_hash = _hash_token(raw_token)

    lifetime = current_app.config.get("SESSION_LIFETIME_SECONDS", 604800)
    expires_at = datetime.utcnow() + timedelta(seconds=lifetime)

    row = Session(
        user_id=user_id,
        token_hash=token_hash,
        expires_at=expires_at,
        ip=client_ip(),
        user_agent=user_agent(),
    )
    db.session.add(row)
    db.session.commit()
    return raw_token, expires_at

def raw_token_from_request() -> tuple[Optional[str], bool]:
    """
    Returns (raw_token, via_cookie). Bearer header wins over the cookie.
    """
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        token = auth_header[7:].strip()
        if token:
            return token, False

    cookie_name = current_app.config.get("AUTH_COOKIE_NAME", "journal_session")
    token = request.cookies.get(cookie_name)
    return (token, True) if token else (None, False)

def get_session_from_request():
    raw_token, via_cookie = raw_token_from_request()
    if not raw_token:
        return None, False

    token_hash = _hash_token(raw_token)
    now = datetime.utcnow()

    sess = Session.query.filter_by(token_hash=token_hash).first()
    idle_seconds = current_app.config.get("IDLE_TIMEOUT_SECONDS", 86400)
    if not sess or not sess.is_usable(now, idle_seconds):
        return None, False

    # sliding idle window
    sess.last_seen_at = now
    db.session.commit()

    return sess, via_cookie


def revoke_session(raw_token: str) -> bool:
    if not raw_token:
        return False
    token_hash = _hash_token(raw_token)
    sess = Session.query.filter_by(token_hash=token_hash).first()
    if not sess:
        return False
    sess.revoked = True
    db.session.commit()
    return True
