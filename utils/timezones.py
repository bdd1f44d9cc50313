from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def resolve_timezone(name: Optional[str]) -> str:
    """Returns name if it is a known IANA zone, else "UTC"."""
    if not name or not isinstance(name, str):
        return "UTC"
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return "UTC"
    return name


def local_date(instant: datetime, tz_name: Optional[str]) -> date:
    """
    Calendar date of instant as seen in tz_name.
    Naive datetimes are taken to be UTC.
    """
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(ZoneInfo(resolve_timezone(tz_name))).date()
