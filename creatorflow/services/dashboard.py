"""
Dashboard and analytics figures computed from the local store state.

Everything here is a pure function over in-memory records; nothing touches
the database.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from config import settings
from ..models import Project, Task, TaskStatus, ProjectCategory, TimeEntry
from ..sync.store import StoreState
from ..utils.datetime_utils import is_overdue, get_local_now, format_time_spent

logger = logging.getLogger(__name__)


def calculate_project_progress(tasks: Iterable[Task]) -> int:
    """Percentage of tasks that are Done, rounded. 0 for no tasks."""
    tasks = list(tasks)
    if not tasks:
        return 0
    completed = sum(1 for t in tasks if t.status == TaskStatus.DONE)
    return round(completed / len(tasks) * 100)


def _average_progress(projects: List[Project]) -> int:
    if not projects:
        return 0
    return round(sum(p.progress for p in projects) / len(projects))


def compute_dashboard_stats(state: StoreState, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Headline numbers for the dashboard.

    Returns:
        {
            "stats": {total_projects, active_tasks, completed_tasks,
                      total_time_spent, total_time_spent_display,
                      overdue_items, avg_progress},
            "recent_projects": [Project, ...],    # most recently updated
            "upcoming_deadlines": [Task, ...],    # earliest deadline first
        }
    """
    now = now or get_local_now()
    projects = state.projects
    tasks = state.tasks

    total_time = sum(t.time_spent for t in tasks)

    stats = {
        "total_projects": len(projects),
        "active_tasks": sum(1 for t in tasks if t.status == TaskStatus.IN_PROGRESS),
        "completed_tasks": sum(1 for t in tasks if t.status == TaskStatus.DONE),
        "total_time_spent": total_time,
        "total_time_spent_display": format_time_spent(total_time),
        "overdue_items": sum(1 for t in tasks if is_overdue(t.deadline, now)),
        "avg_progress": _average_progress(projects),
    }

    recent_projects = sorted(projects, key=lambda p: p.updated_at, reverse=True)
    recent_projects = recent_projects[:settings.recent_projects_limit]

    upcoming = sorted((t for t in tasks if t.deadline is not None), key=lambda t: t.deadline)
    upcoming = upcoming[:settings.upcoming_deadlines_limit]

    return {
        "stats": stats,
        "recent_projects": recent_projects,
        "upcoming_deadlines": upcoming,
    }


def project_performance(
    state: StoreState,
    time_entries: Iterable[TimeEntry] = (),
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """Per-project task counts, completion rate, logged time and overdue flag."""
    now = now or get_local_now()
    entries = list(time_entries)

    performance = []
    for project in state.projects:
        project_tasks = [t for t in state.tasks if t.project_id == project.id]
        completed = sum(1 for t in project_tasks if t.status == TaskStatus.DONE)

        if entries:
            total_time = sum(e.duration for e in entries if e.project_id == project.id)
        else:
            total_time = sum(t.time_spent for t in project_tasks)

        performance.append({
            "project_id": project.id,
            "title": project.title,
            "total_tasks": len(project_tasks),
            "completed_tasks": completed,
            "completion_rate": calculate_project_progress(project_tasks),
            "total_time": total_time,
            "progress": project.progress,
            "overdue": project.progress < 100 and is_overdue(project.deadline, now),
        })

    return performance


def category_breakdown(projects: Iterable[Project]) -> Dict[str, int]:
    """Number of projects per category, every category present."""
    counts = {category.value: 0 for category in ProjectCategory}
    for project in projects:
        counts[project.category.value] += 1
    return counts
