"""
Timezone utilities for converting between UTC and local times.

All timestamps inside the service are timezone-aware UTC. These utilities
help normalize upstream values and convert to the display timezone
(placed workers are in Israel by default).
"""

from datetime import datetime

import pytz

DEFAULT_DISPLAY_TZ = "Asia/Jerusalem"
UTC_TZ = pytz.UTC


def utc_now() -> datetime:
    """Get current time in UTC (timezone-aware)."""
    return datetime.now(UTC_TZ)


def ensure_utc(dt: datetime) -> datetime:
    """
    Normalize a datetime to timezone-aware UTC.

    Naive datetimes are assumed to already be UTC, which is what the
    upstream API emits (ISO strings from `toISOString()`).
    """
    if dt.tzinfo is None:
        return UTC_TZ.localize(dt)
    return dt.astimezone(UTC_TZ)


def from_utc(utc_dt: datetime, timezone: str = DEFAULT_DISPLAY_TZ) -> datetime:
    """
    Convert a UTC datetime to local timezone.

    Args:
        utc_dt: Datetime in UTC (can be naive or aware)
        timezone: Target timezone name

    Returns:
        Timezone-aware datetime in local timezone
    """
    tz = pytz.timezone(timezone)
    return ensure_utc(utc_dt).astimezone(tz)


def format_local_time(
    utc_dt: datetime,
    timezone: str = DEFAULT_DISPLAY_TZ,
    fmt: str = "%Y-%m-%d %H:%M",
) -> str:
    """
    Format a UTC datetime as a local time string.

    Args:
        utc_dt: Datetime in UTC
        timezone: Target timezone name
        fmt: strftime format string

    Returns:
        Formatted datetime string in local timezone
    """
    local_dt = from_utc(utc_dt, timezone)
    return local_dt.strftime(fmt)


def hours_between(earlier: datetime, later: datetime) -> float:
    """Elapsed hours from `earlier` to `later`, never negative."""
    delta = ensure_utc(later) - ensure_utc(earlier)
    return max(0.0, delta.total_seconds() / 3600)
