import bcrypt
from flask import current_app, has_app_context

# bcrypt only looks at the first 72 bytes; newer releases raise instead of truncating
_BCRYPT_MAX_BYTES = 72

def _secret(plain_password: str) -> bytes:
    return plain_password.encode("utf-8")[:_BCRYPT_MAX_BYTES]

def _rounds() -> int:
    if has_app_context():
        return int(current_app.config.get("BCRYPT_ROUNDS", 12))
    return 12

def hash_password(plain_password: str) -> str:
    if not isinstance(plain_password, str) or len(plain_password) == 0:
        raise ValueError("Password must be a non-empty string")

    salt = bcrypt.gensalt(rounds=_rounds())
    hashed = bcrypt.hashpw(_secret(plain_password), salt)
    return hashed.decode("utf-8")

def verify_password(plain_password: str, password_hash: str) -> bool:
    if not plain_password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(_secret(plain_password), password_hash.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False
