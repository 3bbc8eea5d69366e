"""
Project repository.

All queries are scoped to the owning account (user_id). Deleting a project
only targets the project row itself; tasks and milestones that reference it
are handled by their own repositories.
"""

import logging
from typing import Optional, List, Dict, Any

from sqlalchemy import select, update, delete
from sqlalchemy.exc import IntegrityError

from ..connection import get_database
from ..models import ProjectDB
from ..exceptions import DatabaseConstraintError, DatabaseOperationError, EntityNotFoundError

logger = logging.getLogger(__name__)


class ProjectRepository:
    """Repository for project operations."""

    def __init__(self):
        self.db = get_database()

    async def list_for_owner(self, owner_id: str) -> List[ProjectDB]:
        """Get all projects of an owner, newest first."""
        async with self.db.session() as session:
            try:
                result = await session.execute(
                    select(ProjectDB)
                    .where(ProjectDB.user_id == owner_id)
                    .order_by(ProjectDB.created_at.desc())
                )
                return list(result.scalars().all())

            except Exception as e:
                logger.error(f"Failed to load projects for {owner_id}: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to load projects: {e}")

    async def get_by_id(self, owner_id: str, project_id: str) -> Optional[ProjectDB]:
        """Get one project by id."""
        async with self.db.session() as session:
            result = await session.execute(
                select(ProjectDB).where(
                    ProjectDB.id == project_id,
                    ProjectDB.user_id == owner_id,
                )
            )
            return result.scalar_one_or_none()

    async def create(self, owner_id: str, values: Dict[str, Any]) -> ProjectDB:
        """Insert a project row with a caller-assigned id."""
        async with self.db.session() as session:
            try:
                project = ProjectDB(user_id=owner_id, **values)
                session.add(project)
                await session.flush()

                logger.info(f"Created project {project.id}: {project.title}")
                return project

            except IntegrityError as e:
                logger.error(f"Constraint violation creating project {values.get('id')}: {e}")
                raise DatabaseConstraintError(
                    f"Cannot create project {values.get('id')}: duplicate or constraint violation"
                )

            except Exception as e:
                logger.error(f"CRITICAL: Project creation failed for {values.get('id')}: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to create project {values.get('id')}: {e}")

    async def update(self, owner_id: str, project_id: str, updates: Dict[str, Any]) -> bool:
        """Update the given columns of an owned project."""
        async with self.db.session() as session:
            try:
                result = await session.execute(
                    update(ProjectDB)
                    .where(ProjectDB.id == project_id, ProjectDB.user_id == owner_id)
                    .values(**updates)
                )

                if result.rowcount == 0:
                    raise EntityNotFoundError(f"Project {project_id} not found for update")

                return True

            except EntityNotFoundError:
                raise

            except IntegrityError as e:
                logger.error(f"Constraint violation updating project {project_id}: {e}")
                raise DatabaseConstraintError(f"Cannot update project {project_id}: constraint violation")

            except Exception as e:
                logger.error(f"CRITICAL: Project update failed for {project_id}: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to update project {project_id}: {e}")

    async def delete(self, owner_id: str, project_id: str) -> bool:
        """Delete an owned project row."""
        async with self.db.session() as session:
            try:
                result = await session.execute(
                    delete(ProjectDB)
                    .where(ProjectDB.id == project_id, ProjectDB.user_id == owner_id)
                )

                if result.rowcount == 0:
                    raise EntityNotFoundError(f"Project {project_id} not found for deletion")

                logger.info(f"Deleted project {project_id}")
                return True

            except EntityNotFoundError:
                raise

            except Exception as e:
                logger.error(f"CRITICAL: Project deletion failed for {project_id}: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to delete project {project_id}: {e}")


# Singleton
_project_repository: Optional[ProjectRepository] = None


def get_project_repository() -> ProjectRepository:
    """Get the project repository singleton."""
    global _project_repository
    if _project_repository is None:
        _project_repository = ProjectRepository()
    return _project_repository
