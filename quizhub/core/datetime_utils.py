"""
Datetime utility functions for handling timezone-aware datetimes.
"""
import calendar
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """
    Return the current datetime in UTC timezone.

    Use this instead of datetime.now(timezone.utc) directly so tests can
    patch a single function.
    """
    return datetime.now(timezone.utc)


def ensure_timezone_aware(dt: Optional[datetime]) -> datetime:
    """
    Ensure a datetime object is timezone-aware (UTC).
    SQLite may return timezone-naive datetimes even when stored as timezone-aware.

    Raises:
        ValueError: If dt is None
    """
    if dt is None:
        raise ValueError("datetime cannot be None")
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def subtract_one_month(dt: datetime) -> datetime:
    """
    Return the same wall-clock time one calendar month earlier.

    The day is clamped to the length of the target month, so March 31st
    becomes February 28th (or 29th in a leap year).
    """
    year, month = (dt.year, dt.month - 1) if dt.month > 1 else (dt.year - 1, 12)
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)
