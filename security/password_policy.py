import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from flask import current_app, has_app_context

_UPPER = re.compile(r"[A-Z]")
_LOWER = re.compile(r"[a-z]")
_DIGIT = re.compile(r"\d")
_SYMBOL = re.compile(r"[^A-Za-z0-9]")

# returned verbatim by the gateway on a weak signup password
POLICY_MESSAGE = (
    "Password must be at least 8 characters long and contain uppercase, "
    "lowercase, and at least one number"
)


@dataclass(frozen=True)
class PasswordPolicy:
    min_len: int = 8
    max_len: int = 128
    require_upper: bool = True
    require_lower: bool = True
    require_digit: bool = True
    require_symbol: bool = False

    @classmethod
    def from_config(cls, config) -> "PasswordPolicy":
        default = cls()
        return cls(
            min_len=int(config.get("PASSWORD_MIN_LEN", default.min_len)),
            max_len=int(config.get("PASSWORD_MAX_LEN", default.max_len)),
            require_upper=bool(config.get("PASSWORD_REQUIRE_UPPER", default.require_upper)),
            require_lower=bool(config.get("PASSWORD_REQUIRE_LOWER", default.require_lower)),
            require_digit=bool(config.get("PASSWORD_REQUIRE_DIGIT", default.require_digit)),
            require_symbol=bool(config.get("PASSWORD_REQUIRE_SYMBOL", default.require_symbol)),
        )

    def problems(self, pw: str) -> List[str]:
        errors: List[str] = []
        if len(pw) < self.min_len:
            errors.append(f"Password must be at least {self.min_len} characters")
        if len(pw) > self.max_len:
            errors.append(f"Password must be at most {self.max_len} characters")

        if self.require_upper and not _UPPER.search(pw):
            errors.append("Password must include at least 1 uppercase letter")
        if self.require_lower and not _LOWER.search(pw):
            errors.append("Password must include at least 1 lowercase letter")
        if self.require_digit and not _DIGIT.search(pw):
            errors.append("Password must include at least 1 number")
        if self.require_symbol and not _SYMBOL.search(pw):
            errors.append("Password must include at least 1 symbol")
        return errors


def current_policy() -> PasswordPolicy:
    if has_app_context():
        return PasswordPolicy.from_config(current_app.config)
    return PasswordPolicy()


def validate_password(pw: str, policy: Optional[PasswordPolicy] = None) -> Tuple[bool, List[str]]:
    if not isinstance(pw, str):
        return False, ["Password must be a string"]
    errors = (policy or current_policy()).problems(pw)
    return (len(errors) == 0), errors
