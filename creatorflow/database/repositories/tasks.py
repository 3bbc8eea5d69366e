"""
Task repository with subtask support.

Handles:
- Owner-scoped task CRUD
- Subtask CRUD (subtasks are removed together with their task)
- Bulk removal of a project's tasks when remote cascades are enabled
"""

import logging
from typing import Optional, List, Dict, Any

from sqlalchemy import select, update, delete
from sqlalchemy.exc import IntegrityError

from ..connection import get_database
from ..models import TaskDB, SubtaskDB
from ..exceptions import (
    DatabaseConstraintError,
    DatabaseOperationError,
    EntityNotFoundError,
)

logger = logging.getLogger(__name__)


class TaskRepository:
    """Repository for task operations."""

    def __init__(self):
        self.db = get_database()

    # ==================== TASK CRUD ====================

    async def list_for_owner(self, owner_id: str) -> List[TaskDB]:
        """Get all tasks of an owner, newest first."""
        async with self.db.session() as session:
            try:
                result = await session.execute(
                    select(TaskDB)
                    .where(TaskDB.user_id == owner_id)
                    .order_by(TaskDB.created_at.desc())
                )
                return list(result.scalars().all())

            except Exception as e:
                logger.error(f"Failed to load tasks for {owner_id}: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to load tasks: {e}")

    async def create(self, owner_id: str, values: Dict[str, Any]) -> TaskDB:
        """Insert a task row with a caller-assigned id."""
        async with self.db.session() as session:
            try:
                task = TaskDB(user_id=owner_id, **values)
                session.add(task)
                await session.flush()

                logger.info(f"Created task {task.id} in database")
                return task

            except IntegrityError as e:
                logger.error(f"Constraint violation creating task: {e}")
                raise DatabaseConstraintError(
                    f"Cannot create task {values.get('id')}: duplicate or constraint violation"
                )

            except Exception as e:
                logger.error(f"CRITICAL: Task creation failed: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to create task: {e}")

    async def update(self, owner_id: str, task_id: str, updates: Dict[str, Any]) -> bool:
        """Update the given columns of an owned task."""
        async with self.db.session() as session:
            try:
                result = await session.execute(
                    update(TaskDB)
                    .where(TaskDB.id == task_id, TaskDB.user_id == owner_id)
                    .values(**updates)
                )

                if result.rowcount == 0:
                    raise EntityNotFoundError(f"Task {task_id} not found for update")

                return True

            except EntityNotFoundError:
                raise

            except IntegrityError as e:
                logger.error(f"Constraint violation updating task {task_id}: {e}")
                raise DatabaseConstraintError(f"Cannot update task {task_id}: constraint violation")

            except Exception as e:
                logger.error(f"CRITICAL: Task update failed for {task_id}: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to update task {task_id}: {e}")

    async def delete(self, owner_id: str, task_id: str) -> bool:
        """Delete an owned task and its subtasks."""
        async with self.db.session() as session:
            try:
                result = await session.execute(
                    delete(TaskDB)
                    .where(TaskDB.id == task_id, TaskDB.user_id == owner_id)
                )

                if result.rowcount == 0:
                    raise EntityNotFoundError(f"Task {task_id} not found for deletion")

                await session.execute(
                    delete(SubtaskDB)
                    .where(SubtaskDB.task_id == task_id, SubtaskDB.user_id == owner_id)
                )

                logger.info(f"Deleted task {task_id}")
                return True

            except EntityNotFoundError:
                raise

            except Exception as e:
                logger.error(f"CRITICAL: Task deletion failed for {task_id}: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to delete task {task_id}: {e}")

    async def delete_for_project(self, owner_id: str, project_id: str) -> int:
        """Delete every task (and subtask) of a project. Returns the task count."""
        async with self.db.session() as session:
            try:
                result = await session.execute(
                    select(TaskDB.id)
                    .where(TaskDB.project_id == project_id, TaskDB.user_id == owner_id)
                )
                task_ids = list(result.scalars().all())

                if not task_ids:
                    return 0

                await session.execute(
                    delete(SubtaskDB)
                    .where(SubtaskDB.task_id.in_(task_ids), SubtaskDB.user_id == owner_id)
                )
                await session.execute(
                    delete(TaskDB)
                    .where(TaskDB.id.in_(task_ids), TaskDB.user_id == owner_id)
                )

                logger.info(f"Deleted {len(task_ids)} tasks of project {project_id}")
                return len(task_ids)

            except Exception as e:
                logger.error(f"CRITICAL: Task cleanup failed for project {project_id}: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to delete tasks of project {project_id}: {e}")

    # ==================== SUBTASKS ====================

    async def list_subtasks_for_owner(self, owner_id: str) -> List[SubtaskDB]:
        """Get all subtasks of an owner, oldest first."""
        async with self.db.session() as session:
            try:
                result = await session.execute(
                    select(SubtaskDB)
                    .where(SubtaskDB.user_id == owner_id)
                    .order_by(SubtaskDB.created_at.asc())
                )
                return list(result.scalars().all())

            except Exception as e:
                logger.error(f"Failed to load subtasks for {owner_id}: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to load subtasks: {e}")

    async def add_subtask(self, owner_id: str, values: Dict[str, Any]) -> SubtaskDB:
        """Insert a subtask row with a caller-assigned id."""
        async with self.db.session() as session:
            try:
                subtask = SubtaskDB(user_id=owner_id, **values)
                session.add(subtask)
                await session.flush()

                logger.info(f"Added subtask to {subtask.task_id}: {subtask.title}")
                return subtask

            except IntegrityError as e:
                logger.error(f"Constraint violation creating subtask: {e}")
                raise DatabaseConstraintError(
                    f"Cannot create subtask {values.get('id')}: duplicate or constraint violation"
                )

            except Exception as e:
                logger.error(f"CRITICAL: Subtask creation failed: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to create subtask: {e}")

    async def update_subtask(self, owner_id: str, subtask_id: str, updates: Dict[str, Any]) -> bool:
        """Update the given columns of an owned subtask."""
        async with self.db.session() as session:
            try:
                result = await session.execute(
                    update(SubtaskDB)
                    .where(SubtaskDB.id == subtask_id, SubtaskDB.user_id == owner_id)
                    .values(**updates)
                )

                if result.rowcount == 0:
                    raise EntityNotFoundError(f"Subtask {subtask_id} not found for update")

                return True

            except EntityNotFoundError:
                raise

            except Exception as e:
                logger.error(f"CRITICAL: Subtask update failed for {subtask_id}: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to update subtask {subtask_id}: {e}")

    async def delete_subtask(self, owner_id: str, subtask_id: str) -> bool:
        """Delete an owned subtask."""
        async with self.db.session() as session:
            try:
                result = await session.execute(
                    delete(SubtaskDB)
                    .where(SubtaskDB.id == subtask_id, SubtaskDB.user_id == owner_id)
                )

                if result.rowcount == 0:
                    raise EntityNotFoundError(f"Subtask {subtask_id} not found for deletion")

                return True

            except EntityNotFoundError:
                raise

            except Exception as e:
                logger.error(f"CRITICAL: Subtask deletion failed for {subtask_id}: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to delete subtask {subtask_id}: {e}")


# Singleton
_task_repository: Optional[TaskRepository] = None


def get_task_repository() -> TaskRepository:
    """Get the task repository singleton."""
    global _task_repository
    if _task_repository is None:
        _task_repository = TaskRepository()
    return _task_repository
