"""
PostgreSQL Database Module for CreatorFlow.

Handles:
- Projects, tasks, subtasks and milestones scoped by owner
- Time entries

The hosted store is the durable copy; the sync layer mirrors it in memory.
"""

from .connection import (
    get_database,
    Database,
    init_database,
    close_database,
)
from .models import (
    Base,
    ProjectDB,
    TaskDB,
    SubtaskDB,
    MilestoneDB,
    TimeEntryDB,
)

__all__ = [
    "get_database",
    "Database",
    "init_database",
    "close_database",
    "Base",
    "ProjectDB",
    "TaskDB",
    "SubtaskDB",
    "MilestoneDB",
    "TimeEntryDB",
]
