"""
Client-side auth state and the two-phase sign-in.

Sign-in is always: gateway pre-flight first, then the credential check
against the identity provider directly. The two calls are never merged, so
the session token only ever travels between the identity provider and us.

All state changes go through _adopt()/_clear(), which do nothing once the
client has been closed; session events can arrive after close() and must not
resurrect state.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from client.transport import SIGNED_IN, SIGNED_OUT, TOKEN_REFRESHED
from security.errors import AuthError
from utils.best_effort import best_effort

log = logging.getLogger(__name__)


@dataclass
class AuthResult:
    data: Any = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class AuthClient:
    def __init__(self, gateway, identity, onboarding=None):
        self.gateway = gateway
        self.identity = identity
        self.onboarding = onboarding

        self.user: Optional[dict] = None
        self.session: Optional[dict] = None
        self.loading = True

        self._alive = False
        self._subscription = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user) and bool(self.session)

    # ---------- lifecycle ----------

    def start(self):
        self._alive = True
        self._subscription = self.identity.on_auth_state_change(self._on_auth_event)
        self._load_initial_session()
        return self

    def close(self):
        self._alive = False
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # ---------- state ----------

    def _adopt(self, session: Optional[dict]) -> bool:
        if not self._alive:
            return False
        if session and session.get("user"):
            self.session = session
            self.user = session["user"]
        else:
            self.session = None
            self.user = None
        self.loading = False
        return True

    def _clear(self, force: bool = False):
        if not self._alive and not force:
            return
        log.debug("Clearing auth state")
        self.session = None
        self.user = None
        self.loading = False

    def _load_initial_session(self):
        try:
            session = self.identity.get_session()
        except Exception:
            log.exception("Session check failed")
            self._clear()
            return

        if session:
            log.debug("Initial session found for user %s", (session.get("user") or {}).get("id"))
        self._adopt(session)

    def _on_auth_event(self, event: str, session: Optional[dict]):
        if not self._alive:
            return
        if event == SIGNED_OUT or not session:
            self._clear()
            return
        if event in (SIGNED_IN, TOKEN_REFRESHED):
            self._adopt(session)

    # ---------- operations ----------

    def sign_up(self, email: str, password: str, phone_number: Optional[str] = None,
                timezone: Optional[str] = None, sms_consent_text: Optional[str] = None) -> AuthResult:
        body = {"action": "signup", "email": email, "password": password}
        if phone_number:
            body["phoneNumber"] = phone_number
        if timezone:
            body["timezone"] = timezone

        try:
            response = self.gateway.invoke(body)
        except Exception as exc:
            return AuthResult(error=exc)

        data = response.get("data") or {}
        user_id = (data.get("user") or {}).get("id")

        # neither of these may fail the sign-up
        if self.onboarding is not None and phone_number:
            if sms_consent_text and user_id is not None:
                best_effort(
                    "Recording SMS consent",
                    self.onboarding.record_sms_consent,
                    user_id, phone_number, sms_consent_text,
                    logger=log,
                )
            best_effort(
                "Sending signup confirmation",
                self.onboarding.send_signup_confirmation,
                phone_number,
                logger=log,
            )

        return AuthResult(data=data)

    def sign_in(self, email: str, password: str) -> AuthResult:
        try:
            validation = self.gateway.invoke({"action": "signin", "email": email, "password": password})
        except Exception as exc:
            return AuthResult(error=exc)

        if not (validation or {}).get("validation_passed"):
            return AuthResult(error=AuthError("Security validation failed"))

        try:
            session = self.identity.sign_in_with_password(email, password)
        except Exception as exc:
            best_effort(
                "Tracking login failure",
                self.identity.track_login_failure,
                email, str(exc),
                logger=log,
            )
            return AuthResult(error=exc)

        self._adopt(session)
        return AuthResult(data=session)

    def sign_out(self) -> AuthResult:
        # local state goes first and stays gone, whatever the server says
        self._clear(force=True)
        try:
            self.identity.sign_out()
        except Exception as exc:
            log.info("Server sign out failed, but local state cleared: %s", exc)
        return AuthResult()
