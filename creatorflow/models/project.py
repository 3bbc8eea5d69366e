"""Project and milestone data models."""

from datetime import date, datetime
from enum import Enum
from typing import List
from pydantic import BaseModel, Field

from .task import Priority, Task


class ProjectCategory(str, Enum):
    """Content channel a project targets."""
    YOUTUBE = "YouTube"
    BLOG = "Blog"
    PODCAST = "Podcast"
    SOCIAL_MEDIA = "Social Media"
    OTHER = "Other"


class ProjectStatus(str, Enum):
    """Project lifecycle states."""
    PLANNING = "Planning"
    IN_PROGRESS = "In Progress"
    REVIEW = "Review"
    COMPLETE = "Complete"


class MilestoneStatus(str, Enum):
    """Milestone states."""
    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    COMPLETE = "Complete"


class Milestone(BaseModel):
    """A dated checkpoint within a project."""
    id: str
    title: str
    description: str = ""
    deadline: date
    status: MilestoneStatus = MilestoneStatus.NOT_STARTED
    progress: int = 0
    project_id: str
    order: int = 0


class Project(BaseModel):
    """
    A content project.

    Tasks and milestones refer to a project by id and are not embedded in
    stored records; `tasks` and `milestones` are only filled on the copy
    returned by the store's project detail view.
    """

    id: str
    title: str
    description: str = ""
    category: ProjectCategory = ProjectCategory.OTHER
    deadline: date
    priority: Priority = Priority.MEDIUM
    status: ProjectStatus = ProjectStatus.PLANNING
    color: str = "#3B82F6"
    tags: List[str] = Field(default_factory=list)

    # Set by the user, not derived from tasks
    progress: int = 0

    created_at: datetime
    updated_at: datetime

    milestones: List[Milestone] = Field(default_factory=list)
    tasks: List[Task] = Field(default_factory=list)
