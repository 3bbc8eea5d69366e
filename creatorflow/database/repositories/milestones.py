"""
Milestone repository.

Milestones always belong to a project and are listed by deadline.
"""

import logging
from typing import Optional, List, Dict, Any

from sqlalchemy import select, update, delete
from sqlalchemy.exc import IntegrityError

from ..connection import get_database
from ..models import MilestoneDB
from ..exceptions import DatabaseConstraintError, DatabaseOperationError, EntityNotFoundError

logger = logging.getLogger(__name__)


class MilestoneRepository:
    """Repository for milestone operations."""

    def __init__(self):
        self.db = get_database()

    async def list_for_owner(self, owner_id: str) -> List[MilestoneDB]:
        """Get all milestones of an owner, earliest deadline first."""
        async with self.db.session() as session:
            try:
                result = await session.execute(
                    select(MilestoneDB)
                    .where(MilestoneDB.user_id == owner_id)
                    .order_by(MilestoneDB.deadline.asc())
                )
                return list(result.scalars().all())

            except Exception as e:
                logger.error(f"Failed to load milestones for {owner_id}: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to load milestones: {e}")

    async def create(self, owner_id: str, values: Dict[str, Any]) -> MilestoneDB:
        """Insert a milestone row with a caller-assigned id."""
        async with self.db.session() as session:
            try:
                milestone = MilestoneDB(user_id=owner_id, **values)
                session.add(milestone)
                await session.flush()

                logger.info(f"Created milestone {milestone.id} for project {milestone.project_id}")
                return milestone

            except IntegrityError as e:
                logger.error(f"Constraint violation creating milestone: {e}")
                raise DatabaseConstraintError(
                    f"Cannot create milestone {values.get('id')}: duplicate or constraint violation"
                )

            except Exception as e:
                logger.error(f"CRITICAL: Milestone creation failed: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to create milestone: {e}")

    async def update(self, owner_id: str, milestone_id: str, updates: Dict[str, Any]) -> bool:
        """Update the given columns of an owned milestone."""
        async with self.db.session() as session:
            try:
                result = await session.execute(
                    update(MilestoneDB)
                    .where(MilestoneDB.id == milestone_id, MilestoneDB.user_id == owner_id)
                    .values(**updates)
                )

                if result.rowcount == 0:
                    raise EntityNotFoundError(f"Milestone {milestone_id} not found for update")

                return True

            except EntityNotFoundError:
                raise

            except Exception as e:
                logger.error(f"CRITICAL: Milestone update failed for {milestone_id}: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to update milestone {milestone_id}: {e}")

    async def delete(self, owner_id: str, milestone_id: str) -> bool:
        """Delete an owned milestone."""
        async with self.db.session() as session:
            try:
                result = await session.execute(
                    delete(MilestoneDB)
                    .where(MilestoneDB.id == milestone_id, MilestoneDB.user_id == owner_id)
                )

                if result.rowcount == 0:
                    raise EntityNotFoundError(f"Milestone {milestone_id} not found for deletion")

                return True

            except EntityNotFoundError:
                raise

            except Exception as e:
                logger.error(f"CRITICAL: Milestone deletion failed for {milestone_id}: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to delete milestone {milestone_id}: {e}")

    async def delete_for_project(self, owner_id: str, project_id: str) -> int:
        """Delete every milestone of a project. Returns the number removed."""
        async with self.db.session() as session:
            try:
                result = await session.execute(
                    delete(MilestoneDB)
                    .where(MilestoneDB.project_id == project_id, MilestoneDB.user_id == owner_id)
                )
                return result.rowcount or 0

            except Exception as e:
                logger.error(f"CRITICAL: Milestone cleanup failed for project {project_id}: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to delete milestones of project {project_id}: {e}")


# Singleton
_milestone_repository: Optional[MilestoneRepository] = None


def get_milestone_repository() -> MilestoneRepository:
    """Get the milestone repository singleton."""
    global _milestone_repository
    if _milestone_repository is None:
        _milestone_repository = MilestoneRepository()
    return _milestone_repository
