"""
Repository classes for database operations.

Each repository handles owner-scoped CRUD for its table.
"""

from .projects import ProjectRepository, get_project_repository
from .tasks import TaskRepository, get_task_repository
from .milestones import MilestoneRepository, get_milestone_repository
from .time_tracking import TimeTrackingRepository, get_time_tracking_repository, parse_duration

__all__ = [
    "ProjectRepository",
    "get_project_repository",
    "TaskRepository",
    "get_task_repository",
    "MilestoneRepository",
    "get_milestone_repository",
    "TimeTrackingRepository",
    "get_time_tracking_repository",
    "parse_duration",
]
