"""
Pre-flight checks for the secure-auth gateway.

Sign-in is validated here but never authenticated here: the client verifies
credentials against /auth/token itself, so session tokens never pass through
this hop. Sign-up has no client session to protect and is completed here.
"""

from flask import current_app

from security.errors import AuthProviderError, LockoutError, RateLimitError, ValidationError
from security.events import log_security_event
from security.lockout import is_locked
from security.password_policy import POLICY_MESSAGE, validate_password
from security.rate_limit import check_rate_limit
from security.validation import (
    detect_suspicious_input,
    format_phone_e164,
    is_valid_email,
    is_valid_phone,
    normalize_email,
)

ACTIONS = ("signin", "signup")
ENDPOINTS = {"signin": "auth_signin", "signup": "auth_signup"}


def validate_request(data: dict) -> dict:
    """Shape/strength checks, in order. Returns the normalized request."""
    action = data.get("action")
    if action not in ACTIONS:
        raise ValidationError("Invalid action. Must be signin or signup.")

    email = data.get("email")
    if not email or not is_valid_email(email):
        raise ValidationError("Valid email address is required")

    password = data.get("password")
    if not password or not isinstance(password, str):
        raise ValidationError("Password is required")

    if action == "signup":
        ok, _ = validate_password(password)
        if not ok:
            raise ValidationError(POLICY_MESSAGE)

    phone = data.get("phoneNumber")
    if phone and not is_valid_phone(phone):
        raise ValidationError("Invalid phone number format")

    timezone = data.get("timezone")
    if timezone is not None and not isinstance(timezone, str):
        raise ValidationError("Invalid timezone")

    return {
        "action": action,
        "email": normalize_email(email),
        "password": password,
        "phone_number": phone or None,
        "timezone": timezone or None,
    }


def _max_attempts(action: str) -> int:
    if action == "signin":
        return current_app.config.get("SIGNIN_MAX_ATTEMPTS", 5)
    return current_app.config.get("SIGNUP_MAX_ATTEMPTS", 3)


def run_preflight(data: dict, ip: str, identity) -> dict:
    """
    Full gateway pipeline. Returns the success body; raises AuthError
    subclasses for every rejection.
    """
    req = validate_request(data)
    action, email = req["action"], req["email"]

    if action == "signup" and detect_suspicious_input(data.get("email"), req["phone_number"]):
        log_security_event(
            "suspicious_signup_attempt",
            identifier=email,
            details={"ip": ip, "email": data.get("email"), "phone": req["phone_number"]},
            severity="high",
        )
        raise ValidationError("Invalid input detected. Please check your information.")

    identifier = f"{ip}:{email}"
    endpoint = ENDPOINTS[action]
    limit = check_rate_limit(
        identifier,
        endpoint,
        _max_attempts(action),
        current_app.config.get("AUTH_RATE_WINDOW_MINUTES", 15),
    )
    if not limit.allowed:
        log_security_event(
            "rate_limit_exceeded",
            identifier=identifier,
            details={
                "endpoint": endpoint,
                "ip": ip,
                "email": email,
                "blocked_until": limit.blocked_until.isoformat() if limit.blocked_until else None,
            },
            severity="medium",
        )
        raise RateLimitError("Too many attempts. Please try again later.", limit.blocked_until)

    if action == "signin":
        status = is_locked(email)
        if status.locked:
            raise LockoutError(
                "Account temporarily locked due to multiple failed login attempts",
                status.locked_until,
            )
        return {
            "validation_passed": True,
            "message": "Security validation passed",
            "rate_limit": limit.counters(),
        }

    metadata = {}
    if req["phone_number"]:
        metadata["phone_number"] = format_phone_e164(req["phone_number"])
    if req["timezone"]:
        metadata["timezone"] = req["timezone"]

    try:
        created = identity.sign_up(email, req["password"], metadata)
    except AuthProviderError as exc:
        log_security_event(
            "failed_signup",
            identifier=email,
            details={"ip": ip, "reason": exc.message},
            severity="medium",
        )
        raise

    user = created.get("user") or {}
    log_security_event(
        "user_signup",
        identifier=email,
        user_id=user.get("id"),
        details={
            "ip": ip,
            "has_phone": bool(req["phone_number"]),
            "timezone": req["timezone"] or "UTC",
        },
        severity="low",
    )
    return {"data": created, "rate_limit": limit.counters()}
