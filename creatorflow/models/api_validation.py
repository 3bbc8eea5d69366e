"""
Pydantic models for mutation input validation.

Create models describe a new record without the fields the store assigns
(id, timestamps, subtasks). Update models are partial patches: only the
fields a caller actually sends are applied, and unknown fields are rejected.
"""

import datetime as dt
from datetime import date
from typing import Any, ClassVar, Dict, FrozenSet, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .project import ProjectCategory, ProjectStatus, MilestoneStatus
from .task import Priority, TaskStatus


class PatchModel(BaseModel):
    """Base for partial updates."""

    model_config = ConfigDict(extra="forbid")

    # Fields that may be explicitly cleared with null
    nullable_fields: ClassVar[FrozenSet[str]] = frozenset()

    def changes(self) -> Dict[str, Any]:
        """Fields explicitly set by the caller, minus nulls on required fields."""
        return {
            key: value
            for key, value in self.model_dump(exclude_unset=True).items()
            if value is not None or key in self.nullable_fields
        }


# ============================================
# PROJECTS
# ============================================

class ProjectCreate(BaseModel):
    """Input for creating a project."""
    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    category: ProjectCategory = ProjectCategory.OTHER
    deadline: date
    priority: Priority = Priority.MEDIUM
    status: ProjectStatus = ProjectStatus.PLANNING
    color: str = Field("#3B82F6", max_length=20)
    tags: List[str] = Field(default_factory=list)
    progress: int = 0


class ProjectUpdate(PatchModel):
    """Partial update of a project."""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[ProjectCategory] = None
    deadline: Optional[date] = None
    priority: Optional[Priority] = None
    status: Optional[ProjectStatus] = None
    color: Optional[str] = Field(None, max_length=20)
    tags: Optional[List[str]] = None
    progress: Optional[int] = None


# ============================================
# TASKS
# ============================================

class TaskCreate(BaseModel):
    """Input for creating a task."""
    title: str = Field(..., min_length=1, max_length=500)
    description: str = ""
    priority: Priority = Priority.MEDIUM
    status: TaskStatus = TaskStatus.TODO
    assignee: Optional[str] = Field(None, max_length=100)
    deadline: Optional[date] = None
    tags: List[str] = Field(default_factory=list)
    project_id: Optional[str] = None
    time_spent: int = Field(0, ge=0)


class TaskUpdate(PatchModel):
    """Partial update of a task."""
    nullable_fields: ClassVar[FrozenSet[str]] = frozenset({"assignee", "deadline", "project_id"})

    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    priority: Optional[Priority] = None
    status: Optional[TaskStatus] = None
    assignee: Optional[str] = Field(None, max_length=100)
    deadline: Optional[date] = None
    tags: Optional[List[str]] = None
    project_id: Optional[str] = None
    time_spent: Optional[int] = Field(None, ge=0)


class SubtaskCreate(BaseModel):
    """Input for adding a subtask."""
    title: str = Field(..., min_length=1, max_length=500)
    completed: bool = False


class SubtaskUpdate(PatchModel):
    """Partial update of a subtask."""
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    completed: Optional[bool] = None


# ============================================
# MILESTONES
# ============================================

class MilestoneCreate(BaseModel):
    """Input for creating a milestone."""
    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    deadline: date
    status: MilestoneStatus = MilestoneStatus.NOT_STARTED
    progress: int = 0
    project_id: str = Field(..., min_length=1)
    order: int = 0


class MilestoneUpdate(PatchModel):
    """Partial update of a milestone."""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    deadline: Optional[date] = None
    status: Optional[MilestoneStatus] = None
    progress: Optional[int] = None
    order: Optional[int] = None


# ============================================
# TIME TRACKING
# ============================================

class TimeEntryCreate(BaseModel):
    """Manual time entry. Duration is minutes or a string like "1h30m"."""
    task_id: str = Field(..., min_length=1)
    project_id: Optional[str] = None
    description: Optional[str] = None
    duration: Union[int, str]
    date: Optional[dt.date] = None

    @field_validator("duration")
    @classmethod
    def validate_duration(cls, v):
        if isinstance(v, int) and v <= 0:
            raise ValueError("duration must be positive")
        if isinstance(v, str) and not v.strip():
            raise ValueError("duration must not be empty")
        return v


class TimerStart(BaseModel):
    """Start the session timer on a task."""
    task_id: str = Field(..., min_length=1)
    description: Optional[str] = None


class CurrentProjectSelection(BaseModel):
    """Select (or clear) the project being viewed."""
    project_id: Optional[str] = None
