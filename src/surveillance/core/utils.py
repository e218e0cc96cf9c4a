"""
Core Utilities - Shared time helpers for the pipeline.

All timestamps handled by the pipeline are timezone-aware UTC. Stores that
keep timestamps as text use ``to_db_timestamp`` so that lexical order of the
stored value equals chronological order.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Union


DB_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%f+00:00"


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def start_of_utc_day(now: datetime) -> datetime:
    """
    Return UTC midnight of the calendar day containing ``now``.

    Example:
        >>> start_of_utc_day(datetime(2026, 3, 4, 17, 5, tzinfo=timezone.utc))
        datetime.datetime(2026, 3, 4, 0, 0, tzinfo=datetime.timezone.utc)
    """
    now = ensure_utc(now)
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def days_ago(now: datetime, days: float) -> datetime:
    """Return ``now`` minus the given number of days."""
    return ensure_utc(now) - timedelta(days=days)


def to_db_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime to the fixed-width UTC text form used by text stores."""
    if value is None:
        return None
    return ensure_utc(value).strftime(DB_TIMESTAMP_FORMAT)


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """
    Parse a timestamp from a store row or a JSON payload.

    Accepts aware or naive datetimes, ISO-8601 strings (with or without a
    trailing ``Z``) and returns an aware UTC datetime.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(text))


def utc_date_key(value: Union[str, datetime]) -> str:
    """Return the YYYY-MM-DD UTC calendar date of a timestamp."""
    return parse_timestamp(value).strftime("%Y-%m-%d")
