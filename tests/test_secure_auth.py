from unittest.mock import MagicMock, patch

import pytest

from models.rate_limit import RateLimit
from models.security_event import SecurityEvent
from models.user import User
from security.errors import AuthProviderError
from security.lockout import register_failure

URL = "/functions/secure-auth"


def _signin(client, email="jane@example.com", password="whatever", headers=None):
    return client.post(URL, json={"action": "signin", "email": email, "password": password}, headers=headers)


def _signup(client, email="jane@example.com", password="Abcdefg1", **extra):
    body = {"action": "signup", "email": email, "password": password}
    body.update(extra)
    return client.post(URL, json=body)


def _events(event_type):
    return SecurityEvent.query.filter_by(event_type=event_type).all()


class TestRequestValidation:
    def test_malformed_json(self, client):
        resp = client.post(URL, data="{not json", content_type="application/json")
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "Invalid JSON in request body"}

    def test_non_object_body(self, client):
        resp = client.post(URL, json=["signin"])
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Invalid JSON in request body"

    def test_invalid_action(self, client):
        resp = client.post(URL, json={"action": "reset", "email": "jane@example.com", "password": "x"})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Invalid action. Must be signin or signup."

    def test_invalid_email(self, client):
        resp = client.post(URL, json={"action": "signin", "email": "jane", "password": "x"})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Valid email address is required"

    def test_missing_password(self, client):
        resp = client.post(URL, json={"action": "signin", "email": "jane@example.com"})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Password is required"

    def test_weak_signup_password(self, client):
        resp = _signup(client, password="abcdefg1")
        assert resp.status_code == 400
        assert "uppercase" in resp.get_json()["error"]
        assert User.query.count() == 0

    def test_weak_password_allowed_for_signin_validation(self, client):
        resp = _signin(client, password="abc")
        assert resp.status_code == 200

    def test_invalid_phone(self, client):
        resp = _signup(client, phoneNumber="123")
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Invalid phone number format"

    def test_rejections_do_not_count_against_rate_limit(self, client):
        client.post(URL, json={"action": "signin", "email": "jane", "password": "x"})
        assert RateLimit.query.count() == 0


class TestSignup:
    def test_success_creates_account_and_logs(self, client):
        resp = _signup(client, phoneNumber="555-123-4567", timezone="America/Chicago")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["data"]["user"]["email"] == "jane@example.com"
        assert body["data"]["session"] is None
        assert body["rate_limit"] == {"attempts": 1, "max_attempts": 3}

        user = User.query.filter_by(email="jane@example.com").one()
        assert user.phone_number == "+15551234567"
        assert user.timezone == "America/Chicago"
        assert user.password_hash != "Abcdefg1"

        [event] = _events("user_signup")
        assert event.severity == "low"
        assert event.user_id == user.id
        assert event.details["has_phone"] is True

    def test_email_is_normalized(self, client):
        resp = _signup(client, email="Jane@Example.COM")
        assert resp.status_code == 200
        assert User.query.one().email == "jane@example.com"

    def test_duplicate_email(self, client, make_user):
        make_user()
        resp = _signup(client)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "User already registered"

        [event] = _events("failed_signup")
        assert event.severity == "medium"
        assert event.details["reason"] == "User already registered"

    def test_duplicate_phone(self, client, make_user):
        make_user(email="other@example.com", phone_number="+15551234567")
        resp = _signup(client, phoneNumber="(555) 123-4567")
        assert resp.status_code == 400
        assert "phone number is already registered" in resp.get_json()["error"]

    def test_suspicious_input_rejected_before_account_creation(self, client):
        resp = _signup(client, email="<script>alert(1)</script>@x.com")
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Invalid input detected. Please check your information."
        assert User.query.count() == 0

        [event] = _events("suspicious_signup_attempt")
        assert event.severity == "high"

    def test_fourth_signup_is_rate_limited(self, client):
        assert _signup(client).status_code == 200
        # duplicates still consume attempts
        assert _signup(client).status_code == 400
        assert _signup(client).status_code == 400

        resp = _signup(client)
        assert resp.status_code == 429
        assert resp.get_json()["blocked_until"].endswith("Z")
        assert _events("rate_limit_exceeded")[0].details["endpoint"] == "auth_signup"

    def test_logging_failure_does_not_fail_signup(self, app, client):
        with patch("security.events.SecurityEvent", side_effect=RuntimeError("db down")):
            resp = _signup(client)
        assert resp.status_code == 200
        assert User.query.filter_by(email="jane@example.com").count() == 1


class TestSignin:
    def test_validation_passes_without_authenticating(self, app, client):
        identity = MagicMock()
        app.extensions["identity_provider"] = identity

        resp = _signin(client)
        assert resp.status_code == 200
        assert resp.get_json() == {
            "validation_passed": True,
            "message": "Security validation passed",
            "rate_limit": {"attempts": 1, "max_attempts": 5},
        }
        identity.sign_in_with_password.assert_not_called()
        identity.sign_up.assert_not_called()

    def test_sixth_signin_is_rate_limited(self, client):
        for _ in range(5):
            assert _signin(client).status_code == 200

        resp = _signin(client)
        assert resp.status_code == 429
        body = resp.get_json()
        assert body["error"] == "Too many attempts. Please try again later."
        assert body["blocked_until"]

        [event] = _events("rate_limit_exceeded")
        assert event.severity == "medium"
        assert event.identifier == "unknown:jane@example.com"
        assert event.details["endpoint"] == "auth_signin"

    def test_signin_and_signup_counters_are_separate(self, client):
        for _ in range(5):
            _signin(client)
        assert _signup(client).status_code == 200

    def test_locked_account_rejected(self, client, make_user):
        make_user()
        for _ in range(5):
            register_failure("jane@example.com")

        resp = _signin(client)
        assert resp.status_code == 423
        body = resp.get_json()
        assert body["error"] == "Account temporarily locked due to multiple failed login attempts"
        assert body["locked_until"].endswith("Z")


class TestClientIdentifier:
    def test_first_forwarded_address_is_used(self, client):
        _signin(client, headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})
        row = RateLimit.query.one()
        assert row.identifier == "203.0.113.7:jane@example.com"

    def test_cf_header_used_when_no_forwarded_for(self, client):
        _signin(client, headers={"CF-Connecting-IP": "198.51.100.2"})
        assert RateLimit.query.one().identifier == "198.51.100.2:jane@example.com"

    def test_unknown_when_no_headers(self, client):
        _signin(client)
        assert RateLimit.query.one().identifier == "unknown:jane@example.com"

    def test_ip_counters_are_separate(self, client):
        for _ in range(6):
            _signin(client, headers={"X-Forwarded-For": "203.0.113.7"})
        assert _signin(client, headers={"X-Forwarded-For": "203.0.113.8"}).status_code == 200


class TestUnexpectedErrors:
    def test_internal_error_is_generic(self, client):
        with patch("routes.secure_auth.run_preflight", side_effect=RuntimeError("boom: secret detail")):
            resp = _signin(client)
        assert resp.status_code == 500
        assert resp.get_json() == {"error": "Internal server error"}

    @pytest.mark.parametrize("message", ["User already registered", "Signups disabled"])
    def test_provider_message_passed_through(self, app, client, message):
        identity = MagicMock()
        identity.sign_up.side_effect = AuthProviderError(message)
        app.extensions["identity_provider"] = identity

        resp = _signup(client)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == message
