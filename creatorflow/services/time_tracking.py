"""
Time tracking service.

Handles business logic for:
- A per-session start/stop timer on a task
- Manual time entries ("90", "1h30m", "2.5h"...)
- Listing entries by period with project/task filters
- Totals by project and by day

Time entries go straight to the database. Logging time also bumps the
task's time_spent through the local store, so the dashboard sees it at once.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Union

from ..database.exceptions import EntityNotFoundError, ValidationError
from ..database.repositories import (
    TimeTrackingRepository,
    get_time_tracking_repository,
    parse_duration,
)
from ..models import TimeEntry
from ..sync.mapping import time_entry_from_row
from ..sync.store import LocalStore
from ..utils.datetime_utils import get_local_now, period_bounds, format_time_spent
from ..utils.ids import generate_id

logger = logging.getLogger(__name__)


@dataclass
class TimerState:
    """A running timer."""
    task_id: str
    started_at: datetime
    description: Optional[str] = None

    def elapsed_seconds(self, now: Optional[datetime] = None) -> int:
        now = now or get_local_now()
        return max(0, int((now - self.started_at).total_seconds()))


class TimeTracker:
    """Timer and time entries for one session's store."""

    def __init__(self, store: LocalStore, repo: Optional[TimeTrackingRepository] = None):
        self.store = store
        self.repo = repo or get_time_tracking_repository()
        self.timer: Optional[TimerState] = None

    def _owner_id(self) -> str:
        owner_id = self.store.owner_id
        if owner_id is None:
            raise ValidationError("Time entries need a signed-in owner")
        return owner_id

    # ==================== TIMER ====================

    def start_timer(self, task_id: str, description: Optional[str] = None,
                    now: Optional[datetime] = None) -> TimerState:
        """Start timing a task. Only one timer runs at a time."""
        if self.store.get_task(task_id) is None:
            raise EntityNotFoundError(f"Task {task_id} not found")
        if self.timer is not None:
            raise ValidationError(f"Timer already running on task {self.timer.task_id}")

        self.timer = TimerState(task_id=task_id, started_at=now or get_local_now(), description=description)
        logger.info(f"Timer started on task {task_id}")
        return self.timer

    async def stop_timer(self, now: Optional[datetime] = None) -> Optional[TimeEntry]:
        """
        Stop the timer and log the whole minutes elapsed.

        Returns None when less than a minute has passed (nothing is logged).
        """
        if self.timer is None:
            raise ValidationError("No timer running")

        timer = self.timer
        self.timer = None

        minutes = timer.elapsed_seconds(now) // 60
        if minutes == 0:
            logger.info(f"Timer on task {timer.task_id} stopped under a minute, nothing logged")
            return None

        try:
            return await self.log_time(timer.task_id, minutes, description=timer.description)
        except EntityNotFoundError:
            logger.error(f"Timer on task {timer.task_id} stopped after {minutes}m but the task is gone")
            raise
        except Exception as e:
            # Put the timer back so it can be stopped again
            if self.timer is None:
                self.timer = timer
            logger.error(f"Error logging {minutes}m from timer on task {timer.task_id}: {e}")
            raise

    # ==================== ENTRIES ====================

    async def log_time(
        self,
        task_id: str,
        duration: Union[int, str],
        description: Optional[str] = None,
        entry_date: Optional[date] = None,
        project_id: Optional[str] = None,
    ) -> TimeEntry:
        """Record time against a task and add it to the task's time_spent."""
        task = self.store.get_task(task_id)
        if task is None:
            raise EntityNotFoundError(f"Task {task_id} not found")

        minutes = parse_duration(duration) if isinstance(duration, str) else duration
        if minutes <= 0:
            raise ValidationError(f"Invalid duration: {duration}")

        owner_id = self._owner_id()
        now = get_local_now()

        entry = TimeEntry(
            id=generate_id(),
            task_id=task_id,
            project_id=project_id or task.project_id,
            description=description or "",
            duration=minutes,
            date=entry_date or now.date(),
            created_at=now,
            updated_at=now,
        )

        await self.repo.create(owner_id, {
            "id": entry.id,
            "task_id": entry.task_id,
            "project_id": entry.project_id,
            "description": entry.description,
            "duration": entry.duration,
            "entry_date": entry.date,
            "created_at": entry.created_at,
            "updated_at": entry.updated_at,
        })

        # Re-read after the insert; other entries may have landed meanwhile
        current = self.store.get_task(task_id)
        if current is None:
            logger.warning(f"Task {task_id} deleted while logging {minutes}m, time_spent not updated")
            return entry

        # Entries are written directly, so settle the time_spent write too
        status = await self.store.update_task(task_id, {"time_spent": current.time_spent + minutes}).wait()

        logger.info(f"Logged {format_time_spent(minutes)} on task {task_id} ({status.value})")
        return entry

    async def list_entries(
        self,
        period: str = "week",
        project_id: Optional[str] = None,
        task_id: Optional[str] = None,
        today: Optional[date] = None,
    ) -> List[TimeEntry]:
        """Entries in the period (today / week / month / all), newest day first."""
        start, end = period_bounds(period, today)
        rows = await self.repo.list_for_owner(
            self._owner_id(),
            start=start,
            end=end,
            task_id=task_id,
            project_id=project_id,
        )
        return [time_entry_from_row(row) for row in rows]

    async def delete_entry(self, entry_id: str) -> bool:
        """Delete an entry. The task's time_spent is left as it is."""
        return await self.repo.delete(self._owner_id(), entry_id)

    @staticmethod
    def summarize(entries: Iterable[TimeEntry]) -> Dict[str, Any]:
        """Totals over a list of entries."""
        entries = list(entries)
        total = sum(e.duration for e in entries)

        by_project: Dict[str, int] = defaultdict(int)
        by_day: Dict[str, int] = defaultdict(int)
        for entry in entries:
            by_project[entry.project_id or "unassigned"] += entry.duration
            by_day[entry.date.isoformat()] += entry.duration

        days = len(by_day)
        return {
            "total_minutes": total,
            "total_display": format_time_spent(total),
            "entry_count": len(entries),
            "average_per_day": round(total / days) if days else 0,
            "by_project": dict(by_project),
            "by_day": dict(sorted(by_day.items())),
        }
