"""
Date helpers for the display format used across the tracker.

All stored dates are ``DD/MM/YYYY`` strings. Day counts are whole days rounded
up, measured from "now" to midnight of the target date, so a deadline that
falls later today counts as 0 days remaining and tomorrow's as 1.
"""

import math
from datetime import date, datetime, timedelta
from typing import Optional, Union

DISPLAY_FORMAT = "%d/%m/%Y"
ONE_DAY_SECONDS = 24 * 60 * 60

DateLike = Union[str, date, datetime]


def parse_display_date(value: str) -> date:
    """Parse a ``DD/MM/YYYY`` string. Raises ValueError on malformed input."""
    return datetime.strptime(value.strip(), DISPLAY_FORMAT).date()


def format_display_date(value: date) -> str:
    return value.strftime(DISPLAY_FORMAT)


def is_valid_display_date(value) -> bool:
    if not isinstance(value, str) or not value.strip():
        return False
    try:
        parse_display_date(value)
    except ValueError:
        return False
    return True


def _as_datetime(value: DateLike) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return _as_datetime(parse_display_date(value))


def today() -> str:
    """Current date in display format"""
    return format_display_date(date.today())


def days_between(start: DateLike, end: DateLike) -> int:
    """Signed whole days from ``start`` to ``end``, rounded up"""
    delta = _as_datetime(end) - _as_datetime(start)
    return math.ceil(delta.total_seconds() / ONE_DAY_SECONDS)


def days_remaining(deadline: DateLike, now: Optional[datetime] = None) -> int:
    """Days left until ``deadline``; negative once it has passed"""
    return days_between(now or datetime.now(), deadline)


def days_elapsed(since: DateLike, now: Optional[datetime] = None) -> int:
    """Days that have passed since ``since``"""
    return days_between(since, now or datetime.now())


def is_expiring_soon(deadline: DateLike, now: Optional[datetime] = None, window: int = 15) -> bool:
    return days_remaining(deadline, now) <= window


def add_days(value: DateLike, days: int) -> str:
    """Return the display date ``days`` after ``value``"""
    return format_display_date((_as_datetime(value) + timedelta(days=days)).date())
