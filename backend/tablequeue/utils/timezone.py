"""
Timezone utilities for converting between UTC and restaurant local times.

All database timestamps are stored as naive UTC. These utilities convert
to/from the restaurant's timezone, which decides where a "day" starts for
wait-time statistics.
"""

from datetime import date, datetime, time, timedelta

import pytz

UTC_TZ = pytz.UTC


def utc_now() -> datetime:
    """Get current time in UTC as a naive datetime (database format)."""
    return datetime.now(UTC_TZ).replace(tzinfo=None)


def to_utc(local_dt: datetime, timezone: str) -> datetime:
    """
    Convert a local datetime to UTC.

    Args:
        local_dt: Datetime in local timezone (can be naive or aware)
        timezone: Timezone name, e.g. "America/Sao_Paulo"

    Returns:
        Timezone-naive datetime in UTC (for database storage)
    """
    tz = pytz.timezone(timezone)

    if local_dt.tzinfo is None:
        # Naive datetime - assume it's in the specified timezone
        local_dt = tz.localize(local_dt)

    utc_dt = local_dt.astimezone(UTC_TZ)
    return utc_dt.replace(tzinfo=None)


def from_utc(utc_dt: datetime, timezone: str) -> datetime:
    """
    Convert a UTC datetime to local timezone.

    Args:
        utc_dt: Datetime in UTC (can be naive or aware)
        timezone: Target timezone name

    Returns:
        Timezone-aware datetime in local timezone
    """
    tz = pytz.timezone(timezone)

    if utc_dt.tzinfo is None:
        # Naive datetime - assume it's UTC
        utc_dt = UTC_TZ.localize(utc_dt)

    return utc_dt.astimezone(tz)


def local_date(utc_dt: datetime, timezone: str) -> date:
    """Calendar date of a UTC instant as seen in the given timezone."""
    return from_utc(utc_dt, timezone).date()


def local_midnight_utc(day: date, timezone: str) -> datetime:
    """Naive UTC instant at which the local calendar day starts."""
    return to_utc(datetime.combine(day, time.min), timezone)


def day_bounds(as_of_utc: datetime, timezone: str) -> tuple[datetime, datetime]:
    """
    UTC bounds [start, end) of the local calendar day containing as_of_utc.

    Computed from two local midnights so DST days have their real length.
    """
    today = local_date(as_of_utc, timezone)
    return (
        local_midnight_utc(today, timezone),
        local_midnight_utc(today + timedelta(days=1), timezone),
    )


def trailing_days_bounds(
    as_of_utc: datetime,
    timezone: str,
    days: int,
) -> tuple[datetime, datetime]:
    """
    UTC bounds [start, end) of the `days` full local days before today.

    Today is excluded; end is today's local midnight.
    """
    today = local_date(as_of_utc, timezone)
    return (
        local_midnight_utc(today - timedelta(days=days), timezone),
        local_midnight_utc(today, timezone),
    )


def format_local_time(
    utc_dt: datetime,
    timezone: str,
    fmt: str = "%Y-%m-%d %H:%M",
) -> str:
    """Format a UTC datetime as a local time string."""
    local_dt = from_utc(utc_dt, timezone)
    return local_dt.strftime(fmt)
