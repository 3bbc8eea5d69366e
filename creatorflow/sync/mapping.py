"""
Conversion between database rows and application records.

Rows come back from the repositories as ORM objects; records are the
pydantic models the store and the web layer work with.
"""

from enum import Enum
from typing import Any, Dict, Iterable, List

from ..database.models import ProjectDB, TaskDB, SubtaskDB, MilestoneDB, TimeEntryDB
from ..models import Project, Task, Subtask, Milestone, TimeEntry

# Record fields that are never written back as columns
_NON_COLUMN_FIELDS = {"tasks", "milestones", "subtasks"}


def row_values(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Turn record fields into column values (enums to their raw strings)."""
    values = {}
    for key, value in fields.items():
        if key in _NON_COLUMN_FIELDS:
            continue
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, list):
            value = list(value)
        values[key] = value
    return values


def record_values(record) -> Dict[str, Any]:
    """Column values for inserting a whole record."""
    return row_values({name: getattr(record, name) for name in type(record).model_fields})


def project_from_row(row: ProjectDB) -> Project:
    return Project(
        id=row.id,
        title=row.title,
        description=row.description or "",
        category=row.category,
        deadline=row.deadline,
        priority=row.priority,
        status=row.status,
        color=row.color,
        tags=row.tags or [],
        progress=row.progress or 0,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def subtask_from_row(row: SubtaskDB) -> Subtask:
    return Subtask(
        id=row.id,
        task_id=row.task_id,
        title=row.title,
        completed=bool(row.completed),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def task_from_row(row: TaskDB, subtasks: Iterable[Subtask] = ()) -> Task:
    return Task(
        id=row.id,
        title=row.title,
        description=row.description or "",
        priority=row.priority,
        status=row.status,
        assignee=row.assignee or None,
        deadline=row.deadline,
        tags=row.tags or [],
        project_id=row.project_id,
        time_spent=row.time_spent or 0,
        created_at=row.created_at,
        updated_at=row.updated_at,
        subtasks=list(subtasks),
    )


def milestone_from_row(row: MilestoneDB) -> Milestone:
    return Milestone(
        id=row.id,
        title=row.title,
        description=row.description or "",
        deadline=row.deadline,
        status=row.status,
        progress=row.progress or 0,
        project_id=row.project_id,
        order=row.order or 0,
    )


def time_entry_from_row(row: TimeEntryDB) -> TimeEntry:
    return TimeEntry(
        id=row.id,
        task_id=row.task_id,
        project_id=row.project_id,
        description=row.description or "",
        duration=row.duration or 0,
        date=row.entry_date,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def group_subtasks(subtasks: Iterable[Subtask]) -> Dict[str, List[Subtask]]:
    """Index subtasks by their parent task id, keeping order."""
    grouped: Dict[str, List[Subtask]] = {}
    for subtask in subtasks:
        grouped.setdefault(subtask.task_id, []).append(subtask)
    return grouped
