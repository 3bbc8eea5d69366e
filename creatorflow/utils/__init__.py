"""Utility modules for CreatorFlow."""

from .datetime_utils import (
    get_local_tz,
    get_local_now,
    get_local_today,
    to_naive_local,
    to_aware_utc,
    is_overdue,
    period_bounds,
    format_time_spent,
)
from .ids import generate_id
from .background_tasks import (
    create_safe_task,
    drain_background_tasks,
    pending_background_tasks,
)

__all__ = [
    # Datetime utilities
    "get_local_tz",
    "get_local_now",
    "get_local_today",
    "to_naive_local",
    "to_aware_utc",
    "is_overdue",
    "period_bounds",
    "format_time_spent",
    # Identity
    "generate_id",
    # Background tasks
    "create_safe_task",
    "drain_background_tasks",
    "pending_background_tasks",
]
