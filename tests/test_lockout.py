from datetime import datetime, timedelta

from models.account_lockout import AccountLockout
from security.lockout import clear_expired_lockouts, is_locked, register_failure, reset_attempts

T0 = datetime(2024, 1, 1, 12, 0, 0)


def test_unknown_email_is_not_locked(app):
    status = is_locked("nobody@example.com")
    assert not status.locked
    assert status.locked_until is None


def test_fifth_failure_locks_account(app):
    for n in range(1, 5):
        count, locked_now = register_failure("jane@example.com", now=T0)
        assert count == n
        assert not locked_now

    count, locked_now = register_failure("jane@example.com", now=T0)
    assert count == 5
    assert locked_now

    status = is_locked("jane@example.com", now=T0 + timedelta(minutes=1))
    assert status.locked
    assert status.locked_until == T0 + timedelta(minutes=15)


def test_lockout_is_keyed_by_normalized_email(app):
    for _ in range(5):
        register_failure("Jane@Example.com ", now=T0)
    assert is_locked("jane@example.com", now=T0).locked


def test_lock_expires(app):
    for _ in range(5):
        register_failure("jane@example.com", now=T0)
    assert not is_locked("jane@example.com", now=T0 + timedelta(minutes=15)).locked


def test_failure_after_expiry_restarts_count(app):
    for _ in range(5):
        register_failure("jane@example.com", now=T0)

    count, locked_now = register_failure("jane@example.com", now=T0 + timedelta(minutes=30))
    assert count == 1
    assert not locked_now
    assert not is_locked("jane@example.com", now=T0 + timedelta(minutes=30)).locked


def test_reset_clears_lock(app):
    for _ in range(5):
        register_failure("jane@example.com", now=T0)
    reset_attempts("jane@example.com")
    assert AccountLockout.query.count() == 0
    assert not is_locked("jane@example.com", now=T0).locked


def test_clear_expired_lockouts(app):
    for _ in range(5):
        register_failure("old@example.com", now=T0)
    for _ in range(5):
        register_failure("new@example.com", now=T0 + timedelta(hours=1))

    removed = clear_expired_lockouts(now=T0 + timedelta(minutes=30))
    assert removed == 1
    assert [r.email for r in AccountLockout.query.all()] == ["new@example.com"]
