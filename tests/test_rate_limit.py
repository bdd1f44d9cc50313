from datetime import datetime, timedelta

from models.rate_limit import RateLimit
from security.rate_limit import check_rate_limit, purge_expired

T0 = datetime(2024, 1, 1, 12, 0, 0)
IDENT = "203.0.113.9:jane@example.com"


def _first_blocked_call(max_attempts, calls=10, endpoint="auth_signin"):
    for n in range(1, calls + 1):
        result = check_rate_limit(IDENT, endpoint, max_attempts, 15, now=T0 + timedelta(seconds=n))
        if not result.allowed:
            return n
    return None


class TestFixedWindow:
    def test_allows_up_to_max_then_blocks(self, app):
        for n in range(1, 6):
            result = check_rate_limit(IDENT, "auth_signin", 5, 15, now=T0)
            assert result.allowed
            assert result.attempts == n
            assert result.blocked_until is None

        blocked = check_rate_limit(IDENT, "auth_signin", 5, 15, now=T0 + timedelta(minutes=1))
        assert not blocked.allowed
        assert blocked.attempts == 6
        assert blocked.max_attempts == 5
        assert blocked.blocked_until == T0 + timedelta(minutes=15)
        assert blocked.blocked_until > T0 + timedelta(minutes=1)

    def test_rejected_attempts_still_count(self, app):
        for _ in range(5):
            check_rate_limit(IDENT, "auth_signin", 5, 15, now=T0)
        check_rate_limit(IDENT, "auth_signin", 5, 15, now=T0)
        result = check_rate_limit(IDENT, "auth_signin", 5, 15, now=T0)
        assert result.attempts == 7

        row = RateLimit.query.filter_by(identifier=IDENT, endpoint="auth_signin").one()
        assert row.attempts == 7
        assert row.blocked_until is not None

    def test_window_elapsed_resets_to_one(self, app):
        for _ in range(6):
            check_rate_limit(IDENT, "auth_signin", 5, 15, now=T0)

        later = T0 + timedelta(minutes=15)
        result = check_rate_limit(IDENT, "auth_signin", 5, 15, now=later)
        assert result.allowed
        assert result.attempts == 1

        row = RateLimit.query.filter_by(identifier=IDENT, endpoint="auth_signin").one()
        assert row.window_start == later
        assert row.blocked_until is None

    def test_signup_blocks_sooner_than_signin(self, app):
        signup_blocked_at = _first_blocked_call(3, endpoint="auth_signup")
        signin_blocked_at = _first_blocked_call(5, endpoint="auth_signin")
        assert signup_blocked_at == 4
        assert signin_blocked_at == 6
        assert signup_blocked_at < signin_blocked_at

    def test_endpoints_and_identifiers_are_independent(self, app):
        for _ in range(4):
            check_rate_limit(IDENT, "auth_signup", 3, 15, now=T0)

        assert check_rate_limit(IDENT, "auth_signin", 5, 15, now=T0).allowed
        assert check_rate_limit("198.51.100.1:jane@example.com", "auth_signup", 3, 15, now=T0).allowed

    def test_purge_expired_keeps_live_windows(self, app):
        check_rate_limit(IDENT, "auth_signin", 5, 15, now=T0)
        check_rate_limit("other:bob@example.com", "auth_signin", 5, 15, now=T0 + timedelta(minutes=20))

        removed = purge_expired(15, now=T0 + timedelta(minutes=21))
        assert removed == 1
        assert RateLimit.query.count() == 1
