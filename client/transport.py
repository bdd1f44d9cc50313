"""
HTTP collaborators for AuthClient, built on requests.

HttpGateway talks to /functions/secure-auth. HttpIdentityClient holds the
bearer token issued by /auth/token and tells subscribers when the session
changes. HttpOnboardingClient covers the best-effort sign-up side calls.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional

import requests

from security.errors import (
    AuthError,
    AuthProviderError,
    LockoutError,
    RateLimitError,
    ValidationError,
)

log = logging.getLogger(__name__)

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
TOKEN_REFRESHED = "TOKEN_REFRESHED"


def _parse_ts(value) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def _json(resp) -> dict:
    try:
        body = resp.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def error_from_response(status: int, body: dict) -> AuthError:
    message = body.get("error") or f"Request failed with status {status}"
    if status == 429:
        return RateLimitError(message, _parse_ts(body.get("blocked_until")))
    if status == 423:
        return LockoutError(message, _parse_ts(body.get("locked_until")))
    if status == 400:
        return ValidationError(message)
    err = AuthError(message)
    err.status_code = status
    return err


class _HttpBase:
    def __init__(self, base_url: str, http: Optional[requests.Session] = None, timeout: int = 10):
        self.base_url = base_url.rstrip("/")
        self.http = http or requests.Session()
        self.timeout = timeout

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"


class HttpGateway(_HttpBase):
    def invoke(self, body: dict) -> dict:
        resp = self.http.post(self._url("/functions/secure-auth"), json=body, timeout=self.timeout)
        payload = _json(resp)
        if resp.status_code != 200:
            raise error_from_response(resp.status_code, payload)
        return payload


class Subscription:
    def __init__(self, listeners: List[Callable], callback: Callable):
        self._listeners = listeners
        self._callback = callback

    def unsubscribe(self):
        if self._callback in self._listeners:
            self._listeners.remove(self._callback)


class HttpIdentityClient(_HttpBase):
    def __init__(self, base_url: str, http: Optional[requests.Session] = None, timeout: int = 10,
                 access_token: Optional[str] = None):
        """
        access_token restores a session persisted by an earlier process;
        get_session() confirms it with the server before anyone trusts it.
        """
        super().__init__(base_url, http, timeout)
        self._session: Optional[dict] = None
        if access_token:
            self._session = {"access_token": access_token, "token_type": "bearer"}
        self._listeners: List[Callable] = []
        # email whose last failed sign-in the server already counted
        self._failure_recorded_for: Optional[str] = None

    def on_auth_state_change(self, callback: Callable) -> Subscription:
        self._listeners.append(callback)
        return Subscription(self._listeners, callback)

    def _emit(self, event: str, session: Optional[dict]):
        for callback in list(self._listeners):
            try:
                callback(event, session)
            except Exception:
                log.exception("Auth state listener failed on %s", event)

    def _headers(self) -> dict:
        if not self._session:
            return {}
        return {"Authorization": f"Bearer {self._session['access_token']}"}

    def get_session(self) -> Optional[dict]:
        if not self._session:
            return None
        resp = self.http.get(self._url("/auth/session"), headers=self._headers(), timeout=self.timeout)
        resp.raise_for_status()
        body = _json(resp)
        if not body.get("session"):
            self._session = None
            self._emit(SIGNED_OUT, None)
            return None
        self._session = {**self._session, **body["session"], "user": body.get("user")}
        return self._session

    def sign_in_with_password(self, email: str, password: str) -> dict:
        resp = self.http.post(
            self._url("/auth/token"),
            json={"email": email, "password": password},
            timeout=self.timeout,
        )
        body = _json(resp)
        if resp.status_code == 423:
            raise error_from_response(423, body)
        if resp.status_code != 200:
            if body.get("failure_recorded"):
                self._failure_recorded_for = email.strip().lower()
            if resp.status_code == 429:
                raise error_from_response(429, body)
            raise AuthProviderError(body.get("error") or "Invalid login credentials")

        self._failure_recorded_for = None
        self._session = {**body["session"], "user": body.get("user")}
        self._emit(SIGNED_IN, self._session)
        return self._session

    def sign_out(self):
        headers = self._headers()
        self._session = None
        self._emit(SIGNED_OUT, None)
        if not headers:
            return
        resp = self.http.post(self._url("/auth/logout"), headers=headers, timeout=self.timeout)
        if resp.status_code not in (200, 401):
            raise AuthProviderError(_json(resp).get("error") or "Sign out failed")

    def track_login_failure(self, email: str, error: str):
        if self._failure_recorded_for and self._failure_recorded_for == email.strip().lower():
            self._failure_recorded_for = None
            return
        resp = self.http.post(
            self._url("/auth/track-login-failure"),
            json={"email": email, "error": error},
            timeout=self.timeout,
        )
        resp.raise_for_status()


class HttpOnboardingClient(_HttpBase):
    def record_sms_consent(self, user_id: int, phone_number: str, consent_text: str):
        resp = self.http.post(
            self._url("/onboarding/sms-consent"),
            json={"user_id": user_id, "phone_number": phone_number, "consent_text": consent_text},
            timeout=self.timeout,
        )
        resp.raise_for_status()

    def send_signup_confirmation(self, phone_number: str):
        resp = self.http.post(
            self._url("/onboarding/signup-confirmation"),
            json={"phoneNumber": phone_number},
            timeout=self.timeout,
        )
        resp.raise_for_status()
