from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError

from models import db
from models.rate_limit import RateLimit


@dataclass
class RateLimitResult:
    allowed: bool
    attempts: int
    max_attempts: int
    blocked_until: Optional[datetime] = None

    def counters(self) -> dict:
        return {"attempts": self.attempts, "max_attempts": self.max_attempts}


def _locked_row(identifier: str, endpoint: str):
    return (
        RateLimit.query
        .filter_by(identifier=identifier, endpoint=endpoint)
        .with_for_update()
        .first()
    )


def _load_or_create(identifier: str, endpoint: str, max_attempts: int, now: datetime) -> RateLimit:
    row = _locked_row(identifier, endpoint)
    if row is not None:
        return row

    row = RateLimit(
        identifier=identifier,
        endpoint=endpoint,
        attempts=0,
        max_attempts=max_attempts,
        window_start=now,
    )
    db.session.add(row)
    try:
        db.session.flush()
    except IntegrityError:
        # another request created the row first; use theirs
        db.session.rollback()
        row = _locked_row(identifier, endpoint)
    return row


def check_rate_limit(identifier: str, endpoint: str, max_attempts: int,
                     window_minutes: int, now: Optional[datetime] = None) -> RateLimitResult:
    """
    Fixed window counter per (identifier, endpoint).
    Every call counts, including rejected ones.
    """
    now = now or datetime.utcnow()
    window = timedelta(minutes=window_minutes)

    row = _load_or_create(identifier, endpoint, max_attempts, now)
    row.max_attempts = max_attempts

    # Reset window if expired
    if now >= row.window_start + window:
        row.window_start = now
        row.attempts = 0
        row.blocked_until = None

    row.attempts += 1
    window_end = row.window_start + window

    allowed = True
    if row.attempts > max_attempts or (row.blocked_until and row.blocked_until > now):
        row.blocked_until = window_end
        allowed = False

    db.session.commit()

    return RateLimitResult(
        allowed=allowed,
        attempts=row.attempts,
        max_attempts=max_attempts,
        blocked_until=None if allowed else row.blocked_until,
    )


def purge_expired(window_minutes: int, now: Optional[datetime] = None) -> int:
    now = now or datetime.utcnow()
    cutoff = now - timedelta(minutes=window_minutes)
    count = (
        RateLimit.query
        .filter(RateLimit.window_start < cutoff)
        .filter((RateLimit.blocked_until.is_(None)) | (RateLimit.blocked_until <= now))
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return count
