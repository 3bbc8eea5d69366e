"""Time entry and calendar event models."""

import datetime as dt
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel


class TimeEntry(BaseModel):
    """Minutes logged against a task on a given day."""
    id: str
    task_id: Optional[str] = None
    project_id: Optional[str] = None
    description: str = ""
    duration: int = 0
    date: dt.date
    created_at: datetime
    updated_at: datetime


class CalendarEventType(str, Enum):
    PUBLISH = "Publish"
    DEADLINE = "Deadline"
    MEETING = "Meeting"
    OTHER = "Other"


class CalendarEvent(BaseModel):
    """A dated entry on the content calendar."""
    id: str
    title: str
    date: dt.date
    type: CalendarEventType = CalendarEventType.DEADLINE
    project_id: Optional[str] = None
    source_id: str
