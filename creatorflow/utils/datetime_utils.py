"""
Centralized datetime and timezone utilities.

Timestamps are stored as naive datetimes in the configured local timezone
(PostgreSQL TIMESTAMP WITHOUT TIME ZONE). Use these helpers instead of
calling datetime.now() directly.
"""

from datetime import date, datetime, timedelta
from typing import Optional, Tuple, Union
import pytz

from config import settings


def get_local_tz() -> pytz.BaseTzInfo:
    """Get the configured local timezone."""
    return pytz.timezone(settings.timezone)


def get_local_now() -> datetime:
    """Get current time in local timezone (naive)."""
    return datetime.now(get_local_tz()).replace(tzinfo=None)


def get_local_today() -> date:
    """Get today's date in local timezone."""
    return get_local_now().date()


def to_naive_local(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Convert any datetime to naive local time for database storage.

    Aware datetimes are converted to the local zone and stripped; naive
    datetimes are assumed to already be local.
    """
    if dt is None:
        return None

    if dt.tzinfo is not None:
        return dt.astimezone(get_local_tz()).replace(tzinfo=None)

    return dt


def to_aware_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Convert a naive local datetime to timezone-aware UTC."""
    if dt is None:
        return None

    if dt.tzinfo is not None:
        return dt.astimezone(pytz.UTC)

    return get_local_tz().localize(dt).astimezone(pytz.UTC)


def is_overdue(deadline: Optional[Union[date, datetime]], now: Optional[datetime] = None) -> bool:
    """
    Check if a deadline has passed.

    A bare date counts as its local midnight, so a task due today is
    overdue once the day has started.
    """
    if deadline is None:
        return False

    now = now or get_local_now()
    if not isinstance(deadline, datetime):
        deadline = datetime.combine(deadline, datetime.min.time())
    return deadline < now


def period_bounds(period: str, today: Optional[date] = None) -> Tuple[Optional[date], Optional[date]]:
    """
    Inclusive date range for a reporting period.

    Supports "today", "week" (Sunday-Saturday), "month" and "all"
    (unbounded).
    """
    today = today or get_local_today()

    if period == "today":
        return today, today
    if period == "week":
        start = today - timedelta(days=(today.weekday() + 1) % 7)
        return start, start + timedelta(days=6)
    if period == "month":
        start = today.replace(day=1)
        next_month = (start + timedelta(days=32)).replace(day=1)
        return start, next_month - timedelta(days=1)
    if period == "all":
        return None, None

    raise ValueError(f"Unknown period: {period}")


def format_time_spent(minutes: int) -> str:
    """Format minutes as '2h 5m' or '45m'."""
    if minutes < 0:
        minutes = 0

    hours, mins = divmod(minutes, 60)
    if hours > 0:
        return f"{hours}h {mins}m"
    return f"{mins}m"
