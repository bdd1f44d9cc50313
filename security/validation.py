import re
from typing import Optional

_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_NON_DIGIT = re.compile(r"\D")

# markup, script schemes and classic SQL meta-sequences
_SUSPICIOUS = [
    re.compile(r"<\s*/?\s*script", re.IGNORECASE),
    re.compile(r"javascript\s*:", re.IGNORECASE),
    re.compile(r"data\s*:\s*text/html", re.IGNORECASE),
    re.compile(r"\bon[a-z]+\s*=", re.IGNORECASE),
    re.compile(r"[<>]"),
    re.compile(r"(--|;|/\*|\*/)"),
    re.compile(r"\b(union\s+select|drop\s+table|insert\s+into|delete\s+from)\b", re.IGNORECASE),
]

MAX_EMAIL_LEN = 254
MIN_PHONE_DIGITS = 10
MAX_PHONE_DIGITS = 15


def normalize_email(value) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip().lower()


def is_valid_email(email) -> bool:
    return (
        isinstance(email, str)
        and len(email) <= MAX_EMAIL_LEN
        and _EMAIL.match(email) is not None
    )


def normalize_phone(phone: str) -> str:
    """Digits only: "555-123-4567" -> "5551234567"."""
    if not isinstance(phone, str):
        return ""
    return _NON_DIGIT.sub("", phone)


def is_valid_phone(phone) -> bool:
    if not isinstance(phone, str):
        return False
    return MIN_PHONE_DIGITS <= len(normalize_phone(phone)) <= MAX_PHONE_DIGITS


def format_phone_e164(phone: str) -> Optional[str]:
    """
    US-first E.164 formatting used when storing a number on the profile.
    10 digits -> +1XXXXXXXXXX, 11 digits starting with 1 -> +1XXXXXXXXXX,
    other valid lengths are assumed to already carry a country code.
    """
    digits = normalize_phone(phone)
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    if len(digits) == 10:
        return f"+1{digits}"
    if MIN_PHONE_DIGITS <= len(digits) <= MAX_PHONE_DIGITS:
        return f"+{digits}"
    return None


def detect_suspicious_input(*values) -> bool:
    for value in values:
        if not isinstance(value, str) or not value:
            continue
        if any(p.search(value) for p in _SUSPICIOUS):
            return True
    return False
