"""
UTC helpers.

SQLite hands back naive datetimes even for timezone-aware columns, so any
comparison against "now" goes through ensure_utc first.
"""

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """
    Attach UTC to a naive datetime; convert aware ones to UTC.

    Args:
        dt: Datetime loaded from the database or built in code

    Returns:
        Timezone-aware UTC datetime
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def is_past(dt: datetime) -> bool:
    """True if the moment has already passed."""
    return ensure_utc(dt) <= utc_now()


def days_from_now(days: int) -> datetime:
    return utc_now() + timedelta(days=days)

