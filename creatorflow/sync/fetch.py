"""
Remote fetch adapter.

Produces a read-only snapshot of everything the current owner has in the
hosted store. It runs only when the owner identity changes (or when asked
to refresh explicitly); local mutations never trigger it.

Reads, in order:
- projects, newest first
- tasks, newest first
- milestones, earliest deadline first
- subtasks, oldest first (attached to their task)

Any failing read aborts the whole fetch: the previous collections are kept
and the failure message is exposed as `error`.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, TypeVar

from pydantic import ValidationError as PydanticValidationError

from ..database.repositories import (
    ProjectRepository,
    TaskRepository,
    MilestoneRepository,
    get_project_repository,
    get_task_repository,
    get_milestone_repository,
)
from ..models import Project, Task, Milestone
from .mapping import (
    project_from_row,
    task_from_row,
    milestone_from_row,
    subtask_from_row,
    group_subtasks,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class FetchSnapshot:
    """What the adapter currently knows about the owner's data."""
    owner_id: Optional[str] = None
    projects: List[Project] = field(default_factory=list)
    tasks: List[Task] = field(default_factory=list)
    milestones: List[Milestone] = field(default_factory=list)
    loading: bool = False
    error: Optional[str] = None


SnapshotListener = Callable[[FetchSnapshot], None]


def _map_rows(rows, mapper: Callable[..., T], kind: str) -> List[T]:
    """Map rows, skipping (and logging) any whose values fail validation."""
    records = []
    for row in rows:
        try:
            records.append(mapper(row))
        except PydanticValidationError as e:
            logger.warning(f"Skipping {kind} {getattr(row, 'id', '?')} with invalid data: {e}")
    return records


class RemoteFetchAdapter:
    """Loads owner-scoped snapshots from the hosted store."""

    def __init__(
        self,
        project_repo: Optional[ProjectRepository] = None,
        task_repo: Optional[TaskRepository] = None,
        milestone_repo: Optional[MilestoneRepository] = None,
    ):
        self.project_repo = project_repo or get_project_repository()
        self.task_repo = task_repo or get_task_repository()
        self.milestone_repo = milestone_repo or get_milestone_repository()

        self.owner_id: Optional[str] = None
        self.projects: List[Project] = []
        self.tasks: List[Task] = []
        self.milestones: List[Milestone] = []
        self.loading = False
        self.error: Optional[str] = None

        self._listeners: List[SnapshotListener] = []

    def subscribe(self, listener: SnapshotListener) -> None:
        """Call `listener` with the snapshot each time loading finishes."""
        self._listeners.append(listener)

    def snapshot(self) -> FetchSnapshot:
        return FetchSnapshot(
            owner_id=self.owner_id,
            projects=list(self.projects),
            tasks=list(self.tasks),
            milestones=list(self.milestones),
            loading=self.loading,
            error=self.error,
        )

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in self._listeners:
            listener(snapshot)

    def _clear(self) -> None:
        self.projects = []
        self.tasks = []
        self.milestones = []
        self.error = None

    async def set_identity(self, owner_id: Optional[str]) -> None:
        """
        React to a session identity change.

        None clears everything; the same identity again is a no-op; a new
        identity starts from empty collections and fetches.
        """
        if owner_id == self.owner_id:
            return

        previous = self.owner_id
        self.owner_id = owner_id
        self._clear()

        if owner_id is None:
            logger.info(f"Identity {previous} signed out, snapshot cleared")
            self.loading = False
            self._notify()
            return

        logger.info(f"Identity changed to {owner_id}, fetching snapshot")
        await self.fetch()

    async def fetch(self) -> FetchSnapshot:
        """Run the owner-scoped reads and replace the collections on success."""
        owner_id = self.owner_id
        if owner_id is None:
            self.loading = False
            return self.snapshot()

        self.loading = True
        self.error = None

        try:
            project_rows = await self.project_repo.list_for_owner(owner_id)
            task_rows = await self.task_repo.list_for_owner(owner_id)
            milestone_rows = await self.milestone_repo.list_for_owner(owner_id)
            subtask_rows = await self.task_repo.list_subtasks_for_owner(owner_id)

        except Exception as e:
            logger.error(f"Error fetching data for {owner_id}: {e}")
            if owner_id == self.owner_id:
                self.loading = False
                self.error = str(e) or "An error occurred"
                self._notify()
            return self.snapshot()

        if owner_id != self.owner_id:
            # Identity changed while the reads were in flight
            logger.info(f"Discarding snapshot for stale identity {owner_id}")
            return self.snapshot()

        subtasks = group_subtasks(_map_rows(subtask_rows, subtask_from_row, "subtask"))

        self.projects = _map_rows(project_rows, project_from_row, "project")
        self.tasks = _map_rows(
            task_rows,
            lambda row: task_from_row(row, subtasks.get(row.id, [])),
            "task",
        )
        self.milestones = _map_rows(milestone_rows, milestone_from_row, "milestone")
        self.loading = False
        self.error = None

        logger.info(
            f"Fetched snapshot for {owner_id}: {len(self.projects)} projects, "
            f"{len(self.tasks)} tasks, {len(self.milestones)} milestones"
        )
        self._notify()
        return self.snapshot()
