from datetime import datetime
from typing import Optional


def _iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    # stored naive in UTC
    return value.isoformat() + "Z" if value.tzinfo is None else value.isoformat()


class AuthError(Exception):
    """Base for errors that map straight onto a JSON error response."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def payload(self) -> dict:
        return {"error": self.message}


class ValidationError(AuthError):
    status_code = 400


class RateLimitError(AuthError):
    status_code = 429

    def __init__(self, message: str, blocked_until: Optional[datetime] = None):
        super().__init__(message)
        self.blocked_until = blocked_until

    def payload(self) -> dict:
        return {"error": self.message, "blocked_until": _iso(self.blocked_until)}


class LockoutError(AuthError):
    status_code = 423

    def __init__(self, message: str, locked_until: Optional[datetime] = None):
        super().__init__(message)
        self.locked_until = locked_until

    def payload(self) -> dict:
        return {"error": self.message, "locked_until": _iso(self.locked_until)}


class AuthProviderError(AuthError):
    """Identity provider refused; its message is passed through verbatim."""
    status_code = 400


class DecryptionError(Exception):
    """Stored value could not be decrypted. Always recovered by callers."""


class JournalValidationError(ValueError):
    pass


class EntryNotFound(LookupError):
    pass
