from typing import Optional

from flask import request


def client_ip() -> str:
    """
    Best guess at the caller's address behind proxies.
    X-Forwarded-For (first hop) -> CF-Connecting-IP -> X-Real-IP -> "unknown"
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return (
        request.headers.get("CF-Connecting-IP")
        or request.headers.get("X-Real-IP")
        or "unknown"
    )


def user_agent() -> Optional[str]:
    ua = request.headers.get("User-Agent", "")
    return ua[:255] if ua else None
