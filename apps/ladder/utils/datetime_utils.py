"""
Datetime utility functions.
Calendar-month helpers used by the award calculations.
"""

import os
import calendar
from datetime import datetime
from typing import Optional, Tuple
import pytz


def utcnow() -> datetime:
    """
    Get current UTC datetime using pytz.UTC.

    Returns:
        Current UTC datetime with pytz timezone information
    """
    return datetime.now(pytz.UTC)


def get_app_timezone():
    """Timezone that defines calendar months (APP_TIMEZONE, default UTC)."""
    return pytz.timezone(os.getenv("APP_TIMEZONE", "UTC"))


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to an aware UTC datetime.

    Naive values are assumed to already be UTC (SQLite hands them back
    without tzinfo).
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return pytz.UTC.localize(value)
    return value.astimezone(pytz.UTC)


def month_name(month: int) -> str:
    """Full English month name for a 1-indexed month ("August")."""
    return calendar.month_name[month]


def month_bounds(year: int, month: int, tz=None) -> Tuple[datetime, datetime]:
    """
    Return the [start, end) bounds of a calendar month as UTC datetimes.

    Args:
        year: Four digit year
        month: 1-indexed month
        tz: pytz timezone the month is defined in (defaults to APP_TIMEZONE)
    """
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be between 1 and 12, got {month}")
    tz = tz or get_app_timezone()
    next_year, next_month = (year + 1, 1) if month == 12 else (year, month + 1)
    start = tz.localize(datetime(year, month, 1))
    end = tz.localize(datetime(next_year, next_month, 1))
    return start.astimezone(pytz.UTC), end.astimezone(pytz.UTC)


def previous_month(year: int, month: int) -> Tuple[int, int]:
    """(year, month) of the calendar month before the given one."""
    if month == 1:
        return year - 1, 12
    return year, month - 1


def local_year_month(value: datetime, tz=None) -> Tuple[int, int]:
    """(year, month) of a datetime as seen in the app timezone."""
    tz = tz or get_app_timezone()
    local = as_utc(value).astimezone(tz)
    return local.year, local.month


def parse_year_month(text: str) -> Tuple[int, int]:
    """
    Parse "YYYY-MM" (or "YYYY-M") into a (year, month) tuple.

    Examples:
        >>> parse_year_month("2025-08")
        (2025, 8)
    """
    parts = text.strip().split("-")
    if len(parts) != 2:
        raise ValueError(f"Expected YYYY-MM, got '{text}'")
    year, month = int(parts[0]), int(parts[1])
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be between 1 and 12, got {month}")
    return year, month


def format_year_month(year: int, month: int) -> str:
    """Inverse of parse_year_month: (2025, 8) -> "2025-08"."""
    return f"{year:04d}-{month:02d}"
