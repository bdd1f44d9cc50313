from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from flask import current_app

from models import db
from models.account_lockout import AccountLockout
from security.validation import normalize_email


@dataclass
class LockoutStatus:
    locked: bool
    locked_until: Optional[datetime] = None


def is_locked(email: str, now: Optional[datetime] = None) -> LockoutStatus:
    """
    Read-only check. A future locked_until blocks sign-in no matter what
    the rate limiter says.
    """
    row = AccountLockout.query.filter_by(email=normalize_email(email)).first()
    if not row or not row.locked_until:
        return LockoutStatus(False)

    now = now or datetime.utcnow()
    if row.locked_until <= now:
        return LockoutStatus(False)

    return LockoutStatus(True, row.locked_until)

def register_failure(email: str, now: Optional[datetime] = None) -> tuple[int, bool]:
    """
    Increments failure counter. Returns (failed_attempts, locked_now)
    """
    email = normalize_email(email)
    now = now or datetime.utcnow()

    row = AccountLockout.query.filter_by(email=email).with_for_update().first()
    if not row:
        row = AccountLockout(email=email, failed_attempts=0)
        db.session.add(row)

    # a lock that has run out starts a fresh count
    if row.locked_until and row.locked_until <= now:
        row.failed_attempts = 0
        row.locked_until = None

    row.failed_attempts += 1
    row.last_failed_at = now

    max_attempts = current_app.config.get("MAX_LOGIN_ATTEMPTS", 5)
    lock_minutes = current_app.config.get("LOCKOUT_MINUTES", 15)

    locked_now = False
    if row.failed_attempts >= max_attempts and not row.locked_until:
        row.locked_until = now + timedelta(minutes=lock_minutes)
        locked_now = True

    db.session.commit()
    return row.failed_attempts, locked_now

def reset_attempts(email: str):
    """
    Clears failure counter after successful sign-in.
    """
    row = AccountLockout.query.filter_by(email=normalize_email(email)).first()
    if not row:
        return
    db.session.delete(row)
    db.session.commit()

def clear_expired_lockouts(now: Optional[datetime] = None) -> int:
    now = now or datetime.utcnow()
    count = (
        AccountLockout.query
        .filter(AccountLockout.locked_until.isnot(None), AccountLockout.locked_until <= now)
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return count
