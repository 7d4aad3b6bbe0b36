"""Datetime utilities with consistent UTC timezone handling.

All timestamps stored or compared by the services are timezone-aware.
Naive values coming from clients or the database are assumed to be UTC.
"""

from calendar import monthrange
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional


def now_utc() -> datetime:
    """Return current datetime in UTC timezone."""
    return datetime.now(timezone.utc)


def today_utc() -> date:
    """Return the current calendar date in UTC."""
    return now_utc().date()


def ensure_aware(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure datetime is timezone-aware, assuming UTC if naive.

    Args:
        dt: Datetime to check/convert, or None

    Returns:
        Timezone-aware datetime, or None if input was None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt


def start_of_day(day: date) -> datetime:
    """Midnight UTC of the given date."""
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def day_range(start: date, end: date) -> list:
    """Every date from start to end inclusive."""
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]


def week_start(day: date) -> date:
    """Monday of the week containing the given date."""
    return day - timedelta(days=day.weekday())


def add_months(day: date, months: int) -> date:
    """Advance a date by whole months, clamping to the last day of the month."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, min(day.day, monthrange(year, month)[1]))


def add_years(day: date, years: int) -> date:
    """Advance a date by whole years; Feb 29 becomes Feb 28 in common years."""
    year = day.year + years
    return date(year, day.month, min(day.day, monthrange(year, day.month)[1]))


def to_iso_string(dt: Optional[datetime]) -> Optional[str]:
    """Convert datetime to ISO string with timezone info.

    Args:
        dt: Datetime to convert, or None

    Returns:
        ISO format string with timezone, or None if input was None
    """
    if dt is None:
        return None

    return ensure_aware(dt).isoformat()


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO string into an aware datetime, None for empty input."""
    if not value:
        return None
    return ensure_aware(datetime.fromisoformat(value))


def parse_date(value: Optional[str]) -> Optional[date]:
    """Parse an ISO date string, None for empty input."""
    if not value:
        return None
    return date.fromisoformat(value)
