"""
Centralized datetime utilities.

Ensures consistent timezone handling across the application.
All timestamps are stored and transmitted as UTC with explicit timezone indicators.
"""

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """
    Get current UTC time as timezone-aware datetime.

    Use this instead of datetime.utcnow() to ensure timezone awareness.

    Returns:
        datetime: Current time in UTC with timezone info
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """
    Ensure datetime is UTC timezone-aware.

    SQLite hands back naive datetimes even for timezone-aware columns;
    those are assumed to already be UTC.

    Args:
        dt: Datetime object (naive or aware) or None

    Returns:
        datetime | None: UTC timezone-aware datetime or None

    Example:
        >>> naive_dt = datetime(2025, 12, 16, 11, 30)  # Naive
        >>> ensure_utc(naive_dt).tzinfo
        datetime.timezone.utc
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def to_iso_utc(dt: datetime | None) -> str | None:
    """
    Convert datetime to ISO format with 'Z' suffix (UTC indicator).

    Args:
        dt: Datetime object or None

    Returns:
        str | None: ISO 8601 string with 'Z' suffix (e.g., "2025-12-16T11:30:00.123456Z")
                   or None if input is None
    """
    if dt is None:
        return None

    return ensure_utc(dt).isoformat().replace('+00:00', 'Z')


def is_older_than(dt: datetime, age: timedelta, now: datetime | None = None) -> bool:
    """
    Check whether a timestamp lies further in the past than `age`.

    Args:
        dt: Timestamp to check (naive values are treated as UTC)
        age: Maximum allowed age
        now: Reference time, defaults to the current UTC time

    Returns:
        True if `now - dt > age`
    """
    reference = ensure_utc(now) if now is not None else utc_now()
    return reference - ensure_utc(dt) > age


def start_of_day_utc(now: datetime | None = None) -> datetime:
    """Midnight (UTC) of the day containing `now`."""
    reference = ensure_utc(now) if now is not None else utc_now()
    return reference.replace(hour=0, minute=0, second=0, microsecond=0)
