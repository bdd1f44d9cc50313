from datetime import datetime, timedelta
from unittest.mock import MagicMock, patch

import pytest

from models import db
from models.sms_consent import SmsConsent
from models.user import User

CONSENT = "I agree to receive journaling reminders by text."


@pytest.fixture
def phone_user(make_user):
    return make_user(phone_number="+15551234567")


def _consent(client, user_id, phone="555-123-4567", text=CONSENT):
    return client.post(
        "/onboarding/sms-consent",
        json={"user_id": user_id, "phone_number": phone, "consent_text": text},
        headers={"User-Agent": "pytest"},
    )


class TestSmsConsent:
    def test_recorded_once(self, client, phone_user):
        resp = _consent(client, phone_user["id"])
        assert resp.status_code == 201

        row = SmsConsent.query.one()
        assert row.phone_number == "+15551234567"
        assert row.consent_text == CONSENT
        assert row.user_agent == "pytest"

        assert _consent(client, phone_user["id"]).status_code == 409

    def test_phone_must_match_account(self, client, phone_user):
        assert _consent(client, phone_user["id"], phone="555-999-0000").status_code == 404
        assert SmsConsent.query.count() == 0

    def test_unknown_user(self, client):
        assert _consent(client, 999).status_code == 404

    def test_missing_fields(self, client, phone_user):
        assert _consent(client, phone_user["id"], text="  ").status_code == 400
        assert _consent(client, str(phone_user["id"])).status_code == 400

    @pytest.mark.parametrize("phone, text", [(5551234567, CONSENT), ("555-123-4567", ["yes"]), ("555-123-4567", 1)])
    def test_non_string_fields(self, client, phone_user, phone, text):
        assert _consent(client, phone_user["id"], phone=phone, text=text).status_code == 400

    def test_window_closes(self, client, phone_user):
        user = db.session.get(User, phone_user["id"])
        user.created_at = datetime.utcnow() - timedelta(hours=2)
        db.session.commit()
        assert _consent(client, phone_user["id"]).status_code == 403


class TestSignupConfirmation:
    def _send(self, client, phone="555-123-4567"):
        return client.post("/onboarding/signup-confirmation", json={"phoneNumber": phone})

    def test_unconfigured_sms_is_reported(self, client, phone_user):
        resp = self._send(client)
        assert resp.status_code == 502

    def test_sends_through_twilio(self, app, client, phone_user):
        app.config.update(
            TWILIO_ACCOUNT_SID="AC123",
            TWILIO_AUTH_TOKEN="token",
            TWILIO_PHONE_NUMBER="+15550000000",
            APP_BASE_URL="https://journal.example",
        )
        with patch("utils.sms.requests.post", return_value=MagicMock(ok=True, status_code=201)) as post:
            resp = self._send(client)

        assert resp.status_code == 200
        assert resp.get_json()["success"] is True
        kwargs = post.call_args.kwargs
        assert kwargs["data"]["To"] == "+15551234567"
        assert "https://journal.example" in kwargs["data"]["Body"]
        assert kwargs["auth"] == ("AC123", "token")

    def test_unknown_phone(self, client):
        assert self._send(client, phone="555-000-1111").status_code == 404

    def test_invalid_phone(self, client):
        assert self._send(client, phone="12").status_code == 400
        assert self._send(client, phone=5551234567).status_code == 400

    def test_rate_limited(self, client, phone_user):
        for _ in range(3):
            self._send(client)
        assert self._send(client).status_code == 429
