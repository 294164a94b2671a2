"""UTC timestamp helpers.

Timestamps are timezone-aware UTC datetimes in memory and ISO 8601 strings
with a ``Z`` suffix on disk.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime; naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Format as ISO 8601 with a ``Z`` suffix (None stays None)."""
    if value is None:
        return None
    return as_utc(value).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse a timestamp written by format_timestamp."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return as_utc(datetime.fromisoformat(value))


def start_of_day(value: "date | datetime") -> datetime:
    """Plain dates start at midnight UTC; datetimes are only converted to UTC."""
    if isinstance(value, datetime):
        return as_utc(value)
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def end_of_day(value: "date | datetime") -> datetime:
    """Plain dates cover the whole day, up to its last microsecond."""
    if isinstance(value, datetime):
        return as_utc(value)
    return datetime.combine(value, time.max, tzinfo=timezone.utc)
