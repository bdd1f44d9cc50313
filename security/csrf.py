"""
Double-submit CSRF protection for cookie-authenticated requests.

/auth/token sets a readable csrf_token cookie next to the session cookie; the
web client echoes it back in X-CSRF-Token on every state-changing call.
Requests authenticated with a bearer header never carry ambient credentials,
so they are not checked.
"""

import hmac
import secrets
from flask import g, request, jsonify, current_app

CSRF_COOKIE = "csrf_token"
CSRF_HEADER = "X-CSRF-Token"

UNSAFE_METHODS = ("POST", "PUT", "PATCH", "DELETE")

# called before any session exists, or by clients without cookies
EXEMPT_PATHS = frozenset({
    "/auth/token",
    "/auth/track-login-failure",
    "/functions/secure-auth",
    "/onboarding/sms-consent",
    "/onboarding/signup-confirmation",
    "/health",
})


def issue_csrf_token(resp):
    resp.set_cookie(
        CSRF_COOKIE,
        secrets.token_urlsafe(32),
        httponly=False,  # the web client reads it
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        max_age=current_app.config.get("SESSION_LIFETIME_SECONDS"),
        path="/",
    )
    return resp


def _tokens_match() -> bool:
    cookie_token = request.cookies.get(CSRF_COOKIE) or ""
    header_token = request.headers.get(CSRF_HEADER) or ""
    return bool(cookie_token) and bool(header_token) and hmac.compare_digest(cookie_token, header_token)


def csrf_guard():
    """before_request hook. Returns a 403 response or None."""
    if request.method not in UNSAFE_METHODS or request.path in EXEMPT_PATHS:
        return None
    if g.get("user") is None or not g.get("auth_via_cookie"):
        return None
    if not _tokens_match():
        return jsonify(error="CSRF validation failed"), 403
    return None
