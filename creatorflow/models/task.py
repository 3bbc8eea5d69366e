"""Task data model for the dashboard."""

from datetime import date, datetime
from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, Field


class Priority(str, Enum):
    """Priority levels shared by projects and tasks."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class TaskStatus(str, Enum):
    """Kanban columns a task moves through."""
    TODO = "To Do"
    IN_PROGRESS = "In Progress"
    REVIEW = "Review"
    DONE = "Done"


class Subtask(BaseModel):
    """A checklist item under a task."""
    id: str
    task_id: str
    title: str
    completed: bool = False
    created_at: datetime
    updated_at: datetime


class Task(BaseModel):
    """Task model representing a work item, optionally inside a project."""

    id: str
    title: str
    description: str = ""

    priority: Priority = Priority.MEDIUM
    status: TaskStatus = TaskStatus.TODO

    assignee: Optional[str] = None
    deadline: Optional[date] = None
    tags: List[str] = Field(default_factory=list)

    project_id: Optional[str] = None

    # Minutes, only ever increased by logged time entries
    time_spent: int = 0

    created_at: datetime
    updated_at: datetime

    subtasks: List[Subtask] = Field(default_factory=list)
