"""UTC datetime and calendar date utilities."""

from __future__ import annotations

import math
from datetime import date, datetime, time, timezone

from dateutil import parser as date_parser

SECONDS_PER_DAY = 86400


def utc_now() -> datetime:
    """
    Return current UTC time as timezone-aware datetime.

    This function should be used instead of datetime.now() or datetime.utcnow()
    to ensure all timestamps are timezone-aware and stored in UTC.

    Returns:
        Timezone-aware datetime in UTC
    """
    return datetime.now(timezone.utc)


def utc_today() -> date:
    """Return today's calendar date in UTC."""
    return utc_now().date()


def as_utc(value: datetime) -> datetime:
    """Treat a naive datetime (e.g. read back from SQLite) as UTC."""
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def start_of_day(day: date) -> datetime:
    """Midnight UTC of the given calendar date."""
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def days_until(day: date, now: datetime) -> int:
    """
    Whole days from ``now`` until midnight of ``day``, rounded up.

    A check-in 2.3 days away counts as 3 days; one that started 5 hours ago
    counts as 0; anything at least a full day in the past is negative.

    Args:
        day: Target calendar date (e.g. check-in)
        now: Reference instant; naive values are treated as UTC

    Returns:
        int: ceil((day at 00:00 UTC - now) in days)
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    seconds = (start_of_day(day) - now).total_seconds()
    return math.ceil(seconds / SECONDS_PER_DAY)


def parse_channel_date(value: str | None) -> date | None:
    """
    Parse a date coming from a channel manager payload.

    Accepts plain ``YYYY-MM-DD`` strings and full ISO datetimes. Returns None
    for missing or unparseable values so callers can skip the record.
    """
    if not value:
        return None

    try:
        if len(value) == 10:
            return date.fromisoformat(value)
        return date_parser.isoparse(value).date()
    except (ValueError, OverflowError):
        return None
