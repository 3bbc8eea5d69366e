from .task import Task, Subtask, TaskStatus, Priority
from .project import Project, Milestone, ProjectCategory, ProjectStatus, MilestoneStatus
from .time_entry import TimeEntry, CalendarEvent, CalendarEventType
from .api_validation import (
    ProjectCreate,
    ProjectUpdate,
    TaskCreate,
    TaskUpdate,
    SubtaskCreate,
    SubtaskUpdate,
    MilestoneCreate,
    MilestoneUpdate,
    TimeEntryCreate,
    TimerStart,
    CurrentProjectSelection,
)

__all__ = [
    "Task",
    "Subtask",
    "TaskStatus",
    "Priority",
    "Project",
    "Milestone",
    "ProjectCategory",
    "ProjectStatus",
    "MilestoneStatus",
    "TimeEntry",
    "CalendarEvent",
    "CalendarEventType",
    "ProjectCreate",
    "ProjectUpdate",
    "TaskCreate",
    "TaskUpdate",
    "SubtaskCreate",
    "SubtaskUpdate",
    "MilestoneCreate",
    "MilestoneUpdate",
    "TimeEntryCreate",
    "TimerStart",
    "CurrentProjectSelection",
]
