from .dashboard import (
    calculate_project_progress,
    compute_dashboard_stats,
    project_performance,
    category_breakdown,
)
from .time_tracking import TimeTracker, TimerState

__all__ = [
    "calculate_project_progress",
    "compute_dashboard_stats",
    "project_performance",
    "category_breakdown",
    "TimeTracker",
    "TimerState",
]
