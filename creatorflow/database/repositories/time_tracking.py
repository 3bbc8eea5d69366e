"""
Repository for time tracking.

Time entries are written directly (no optimistic local copy); the timer and
the task time_spent bookkeeping live in the time tracking service.
"""

import logging
import re
from datetime import date
from typing import Optional, List, Dict, Any

from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError

from ..connection import get_database
from ..models import TimeEntryDB
from ..exceptions import DatabaseConstraintError, DatabaseOperationError, EntityNotFoundError

logger = logging.getLogger(__name__)

HOURS_PER_WORKDAY = 8


def parse_duration(duration_str: str) -> int:
    """
    Parse duration string to minutes.

    Supports:
    - "2h30m" -> 150
    - "2.5h" -> 150
    - "90m" -> 90
    - "1d" -> 480 (one 8 hour workday)
    - "45" -> 45
    """
    duration_str = duration_str.lower().strip()
    total_minutes = 0

    day_match = re.search(r"(\d+(?:\.\d+)?)\s*d", duration_str)
    if day_match:
        total_minutes += int(float(day_match.group(1)) * HOURS_PER_WORKDAY * 60)

    hour_match = re.search(r"(\d+(?:\.\d+)?)\s*h", duration_str)
    if hour_match:
        total_minutes += int(float(hour_match.group(1)) * 60)

    min_match = re.search(r"(\d+)\s*m(?:in)?", duration_str)
    if min_match:
        total_minutes += int(min_match.group(1))

    # Bare number means minutes
    if total_minutes == 0 and duration_str.isdigit():
        total_minutes = int(duration_str)

    return total_minutes


class TimeTrackingRepository:
    """Repository for time entry operations."""

    def __init__(self):
        self.db = get_database()

    async def list_for_owner(
        self,
        owner_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
        task_id: Optional[str] = None,
        project_id: Optional[str] = None,
    ) -> List[TimeEntryDB]:
        """Get an owner's time entries, most recent day first."""
        async with self.db.session() as session:
            try:
                query = select(TimeEntryDB).where(TimeEntryDB.user_id == owner_id)

                if start:
                    query = query.where(TimeEntryDB.entry_date >= start)
                if end:
                    query = query.where(TimeEntryDB.entry_date <= end)
                if task_id:
                    query = query.where(TimeEntryDB.task_id == task_id)
                if project_id:
                    query = query.where(TimeEntryDB.project_id == project_id)

                query = query.order_by(TimeEntryDB.entry_date.desc(), TimeEntryDB.created_at.desc())

                result = await session.execute(query)
                return list(result.scalars().all())

            except Exception as e:
                logger.error(f"Failed to load time entries for {owner_id}: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to load time entries: {e}")

    async def create(self, owner_id: str, values: Dict[str, Any]) -> TimeEntryDB:
        """Insert a time entry."""
        async with self.db.session() as session:
            try:
                entry = TimeEntryDB(user_id=owner_id, **values)
                session.add(entry)
                await session.flush()

                logger.info(f"Logged {entry.duration}m on task {entry.task_id}")
                return entry

            except IntegrityError as e:
                logger.error(f"Constraint violation creating time entry: {e}")
                raise DatabaseConstraintError(
                    f"Cannot create time entry {values.get('id')}: duplicate or constraint violation"
                )

            except Exception as e:
                logger.error(f"CRITICAL: Time entry creation failed: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to create time entry: {e}")

    async def delete(self, owner_id: str, entry_id: str) -> bool:
        """Delete an owned time entry."""
        async with self.db.session() as session:
            try:
                result = await session.execute(
                    delete(TimeEntryDB)
                    .where(TimeEntryDB.id == entry_id, TimeEntryDB.user_id == owner_id)
                )

                if result.rowcount == 0:
                    raise EntityNotFoundError(f"Time entry {entry_id} not found for deletion")

                return True

            except EntityNotFoundError:
                raise

            except Exception as e:
                logger.error(f"CRITICAL: Time entry deletion failed for {entry_id}: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to delete time entry {entry_id}: {e}")


# Singleton
_time_tracking_repository: Optional[TimeTrackingRepository] = None


def get_time_tracking_repository() -> TimeTrackingRepository:
    """Get the time tracking repository singleton."""
    global _time_tracking_repository
    if _time_tracking_repository is None:
        _time_tracking_repository = TimeTrackingRepository()
    return _time_tracking_repository
