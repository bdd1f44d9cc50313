from flask import Blueprint, request, jsonify, current_app, g

from security.csrf import issue_csrf_token
from security.errors import AuthProviderError, LockoutError, RateLimitError
from security.events import log_security_event
from security.lockout import is_locked, register_failure, reset_attempts
from security.rate_limit import check_rate_limit
from security.session import raw_token_from_request
from security.validation import is_valid_email, normalize_email
from services import get_identity_provider
from utils.auth_context import login_required
from utils.request_info import client_ip


auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _record_failure(email: str, ip: str, reason: str) -> bool:
    """Counts one failed credential check against the account; True if it just locked."""
    failed_attempts, locked_now = register_failure(email)
    if locked_now:
        log_security_event(
            "account_locked",
            identifier=email,
            details={"ip": ip, "failed_attempts": failed_attempts},
            severity="high",
        )
    else:
        log_security_event(
            "failed_signin",
            identifier=email,
            details={"ip": ip, "failed_attempts": failed_attempts, "error": reason},
            severity="medium",
        )
    return locked_now


@auth_bp.post("/token")
def token():
    """Password sign-in. Issues the session straight to the caller."""
    data = request.get_json(silent=True) or {}
    email = normalize_email(data.get("email"))
    password = data.get("password")

    if not email or not isinstance(password, str) or not password:
        return jsonify(error="Email and password are required"), 400

    ip = client_ip()
    limit = check_rate_limit(
        f"{ip}:{email}",
        "auth_token",
        current_app.config.get("AUTH_TOKEN_MAX_ATTEMPTS", 10),
        current_app.config.get("AUTH_RATE_WINDOW_MINUTES", 15),
    )
    if not limit.allowed:
        err = RateLimitError("Too many attempts. Please try again later.", limit.blocked_until)
        return jsonify(err.payload()), err.status_code

    status = is_locked(email)
    if status.locked:
        err = LockoutError("Account temporarily locked due to multiple failed login attempts", status.locked_until)
        return jsonify(err.payload()), err.status_code

    try:
        result = get_identity_provider().sign_in_with_password(email, password)
    except AuthProviderError as err:
        _record_failure(email, ip, err.message)
        # the client must not report this failure a second time
        return jsonify(error=err.message, failure_recorded=True), 401

    reset_attempts(email)
    log_security_event("signin_success", identifier=email, user_id=result["user"]["id"])

    cookie_name = current_app.config.get("AUTH_COOKIE_NAME", "journal_session")
    max_age = current_app.config.get("SESSION_LIFETIME_SECONDS", 7 * 24 * 60 * 60)

    resp = jsonify(result)
    resp.set_cookie(
        cookie_name,
        result["session"]["access_token"],
        httponly=True,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        max_age=max_age,
        path="/",
    )
    resp = issue_csrf_token(resp)
    return resp, 200


@auth_bp.get("/session")
def current_session():
    if getattr(g, "user", None) is None:
        return jsonify(session=None, user=None), 200
    return jsonify(
        session={"expires_at": g.session.expires_at.isoformat() + "Z"},
        user=g.user.to_dict(),
    ), 200


@auth_bp.post("/logout")
@login_required
def logout():
    cookie_name = current_app.config.get("AUTH_COOKIE_NAME", "journal_session")
    raw_token, _ = raw_token_from_request()

    get_identity_provider().sign_out(raw_token)

    resp = jsonify(message="Logged out")
    resp.delete_cookie(cookie_name, path="/")
    return resp, 200


@auth_bp.post("/track-login-failure")
def track_login_failure():
    data = request.get_json(silent=True) or {}
    email = normalize_email(data.get("email"))
    reason = str(data.get("error") or "")[:255]

    if not is_valid_email(email):
        return jsonify(error="Valid email address is required"), 400

    ip = client_ip()
    limit = check_rate_limit(
        f"{ip}:{email}",
        "track_login_failure",
        current_app.config.get("TRACK_FAILURE_MAX_ATTEMPTS", 10),
        current_app.config.get("AUTH_RATE_WINDOW_MINUTES", 15),
    )
    if not limit.allowed:
        return jsonify(error="Too many attempts. Please try again later."), 429

    locked_now = _record_failure(email, ip, reason)
    return jsonify(tracked=True, locked=locked_now), 200
