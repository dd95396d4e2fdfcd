"""Timezone helpers for consistent time handling across the watcher.

All instants inside the watcher are timezone-aware UTC datetimes. Guild
members think in Philippine Time (PHT), so digest slots and display
strings are converted at the edges.
"""

from datetime import datetime, time, timezone
from typing import Optional
from zoneinfo import ZoneInfo

# Philippine Time Zone
DEFAULT_TIMEZONE = "Asia/Manila"


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Normalize a datetime to aware UTC.

    Naive values are treated as UTC, matching how the guild state file
    stores timestamps.

    Args:
        value: Naive or aware datetime

    Returns:
        Aware datetime in UTC
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_local(value: datetime, tz_name: Optional[str] = None) -> datetime:
    """Convert a datetime to the guild's local timezone.

    Args:
        value: Naive (UTC) or aware datetime
        tz_name: IANA timezone name (default: Asia/Manila)

    Returns:
        Aware datetime in the requested timezone
    """
    return ensure_utc(value).astimezone(ZoneInfo(tz_name or DEFAULT_TIMEZONE))


def local_to_utc(value: datetime, tz_name: Optional[str] = None) -> datetime:
    """Interpret a naive local datetime in the guild timezone and return UTC.

    Args:
        value: Naive datetime in local time, or an aware datetime
        tz_name: IANA timezone name (default: Asia/Manila)

    Returns:
        Aware datetime in UTC
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=ZoneInfo(tz_name or DEFAULT_TIMEZONE))
    return value.astimezone(timezone.utc)


def parse_slot(value: str) -> time:
    """Parse an ``HH:MM`` time-of-day string.

    Args:
        value: Time of day, e.g. "06:00"

    Returns:
        datetime.time with second and microsecond zeroed

    Raises:
        ValueError: If the string is not a valid 24h time
    """
    parts = value.strip().split(":")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise ValueError(f"Invalid time slot '{value}', expected HH:MM")

    hour, minute = int(parts[0]), int(parts[1])
    if not 0 <= hour <= 23 or not 0 <= minute <= 59:
        raise ValueError(f"Invalid time slot '{value}', out of range")
    return time(hour=hour, minute=minute)


def format_duration(minutes: int) -> str:
    """Human readable minutes ("1 minute", "5 minutes")."""
    return "1 minute" if minutes == 1 else f"{minutes} minutes"
