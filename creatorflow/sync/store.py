"""
Local store: the in-memory source of truth for one session.

Holds projects, tasks (with subtasks), milestones and the current project
selection for the signed-in owner. The store is re-seeded wholesale from the
remote fetch adapter whenever a fetch finishes, and reset to empty when the
identity goes away.

Mutators are plain (non-async) methods. They change local state immediately
and schedule the matching remote write as a background task, returning a
Mutation that settles when the write completes. A failed insert always
removes the optimistic record again. Failed updates and deletes keep the
local change (DIVERGED) unless the store runs with RollbackPolicy.ALL.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Set, Type, TypeVar, Union

from pydantic import BaseModel

from config import settings
from ..database.exceptions import EntityNotFoundError
from ..database.repositories import (
    ProjectRepository,
    TaskRepository,
    MilestoneRepository,
    get_project_repository,
    get_task_repository,
    get_milestone_repository,
)
from ..models import (
    Project,
    Task,
    Subtask,
    Milestone,
    CalendarEvent,
    CalendarEventType,
    ProjectCreate,
    ProjectUpdate,
    TaskCreate,
    TaskUpdate,
    SubtaskCreate,
    SubtaskUpdate,
    MilestoneCreate,
    MilestoneUpdate,
)
from ..utils.background_tasks import create_safe_task
from ..utils.datetime_utils import get_local_now
from ..utils.ids import generate_id
from .fetch import FetchSnapshot, RemoteFetchAdapter
from .mapping import record_values, row_values
from .mutations import Mutation, MutationAction, MutationStatus, RollbackPolicy

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

RemoteWrite = Callable[[str], Awaitable[object]]


@dataclass
class StoreState:
    """Everything the dashboard shows for the signed-in owner."""
    projects: List[Project] = field(default_factory=list)
    tasks: List[Task] = field(default_factory=list)
    milestones: List[Milestone] = field(default_factory=list)
    current_project: Optional[Project] = None

    @property
    def calendar_events(self) -> List[CalendarEvent]:
        """Deadline events derived from projects, milestones and tasks."""
        events = [
            CalendarEvent(
                id=f"project-{p.id}",
                title=p.title,
                date=p.deadline,
                type=CalendarEventType.PUBLISH,
                project_id=p.id,
                source_id=p.id,
            )
            for p in self.projects
        ]
        events.extend(
            CalendarEvent(
                id=f"milestone-{m.id}",
                title=m.title,
                date=m.deadline,
                type=CalendarEventType.DEADLINE,
                project_id=m.project_id,
                source_id=m.id,
            )
            for m in self.milestones
        )
        events.extend(
            CalendarEvent(
                id=f"task-{t.id}",
                title=t.title,
                date=t.deadline,
                type=CalendarEventType.DEADLINE,
                project_id=t.project_id,
                source_id=t.id,
            )
            for t in self.tasks
            if t.deadline is not None
        )
        events.sort(key=lambda e: e.date)
        return events


def _coerce(model: Type[M], data: Union[M, dict]) -> M:
    if isinstance(data, model):
        return data
    return model.model_validate(data)


def _find(items: list, item_id: str) -> int:
    for index, item in enumerate(items):
        if item.id == item_id:
            return index
    return -1


class LocalStore:
    """Optimistic in-memory mirror of one owner's projects, tasks and milestones."""

    def __init__(
        self,
        adapter: Optional[RemoteFetchAdapter] = None,
        project_repo: Optional[ProjectRepository] = None,
        task_repo: Optional[TaskRepository] = None,
        milestone_repo: Optional[MilestoneRepository] = None,
        rollback_policy: Optional[Union[RollbackPolicy, str]] = None,
        cascade_remote_deletes: Optional[bool] = None,
    ):
        self.project_repo = project_repo or get_project_repository()
        self.task_repo = task_repo or get_task_repository()
        self.milestone_repo = milestone_repo or get_milestone_repository()
        self.adapter = adapter or RemoteFetchAdapter(
            self.project_repo, self.task_repo, self.milestone_repo
        )

        self.rollback_policy = RollbackPolicy(rollback_policy or settings.rollback_policy)
        if cascade_remote_deletes is None:
            cascade_remote_deletes = settings.cascade_remote_deletes
        self.cascade_remote_deletes = cascade_remote_deletes

        self.state = StoreState()
        self._writes: Set[asyncio.Task] = set()

        self.adapter.subscribe(self._on_snapshot)

    # ==================== STATE ACCESS ====================

    @property
    def owner_id(self) -> Optional[str]:
        return self.adapter.owner_id

    @property
    def loading(self) -> bool:
        return self.adapter.loading

    @property
    def error(self) -> Optional[str]:
        return self.adapter.error

    @property
    def projects(self) -> List[Project]:
        return self.state.projects

    @property
    def tasks(self) -> List[Task]:
        return self.state.tasks

    @property
    def milestones(self) -> List[Milestone]:
        return self.state.milestones

    @property
    def calendar_events(self) -> List[CalendarEvent]:
        return self.state.calendar_events

    @property
    def current_project(self) -> Optional[Project]:
        return self.state.current_project

    def get_project(self, project_id: str) -> Optional[Project]:
        index = _find(self.state.projects, project_id)
        return self.state.projects[index] if index >= 0 else None

    def get_task(self, task_id: str) -> Optional[Task]:
        index = _find(self.state.tasks, task_id)
        return self.state.tasks[index] if index >= 0 else None

    def get_milestone(self, milestone_id: str) -> Optional[Milestone]:
        index = _find(self.state.milestones, milestone_id)
        return self.state.milestones[index] if index >= 0 else None

    def project_detail(self, project_id: str) -> Project:
        """A copy of the project with its tasks and milestones filled in."""
        project = self.get_project(project_id)
        if project is None:
            raise EntityNotFoundError(f"Project {project_id} not found")

        milestones = sorted(
            (m for m in self.state.milestones if m.project_id == project_id),
            key=lambda m: m.order,
        )
        tasks = [t for t in self.state.tasks if t.project_id == project_id]
        return project.model_copy(update={"milestones": milestones, "tasks": tasks})

    def set_current_project(self, project: Optional[Project]) -> None:
        self.state.current_project = project

    # ==================== IDENTITY & RE-SEED ====================

    async def set_identity(self, owner_id: Optional[str]) -> None:
        """Switch the session owner. Re-seeding follows from the adapter."""
        if owner_id != self.owner_id:
            self.state = StoreState()
        await self.adapter.set_identity(owner_id)

    async def refresh(self) -> None:
        """Re-fetch the current owner's data and re-seed (reconciliation)."""
        await self.adapter.fetch()

    def _on_snapshot(self, snapshot: FetchSnapshot) -> None:
        """Re-seed when a fetch finishes; a failed fetch leaves local state as it is."""
        if snapshot.owner_id is None:
            self.state = StoreState()
            return
        if snapshot.loading:
            return
        if snapshot.error is not None:
            logger.warning(f"Fetch for {snapshot.owner_id} failed, keeping local state: {snapshot.error}")
            return
        self.reseed(snapshot)

    def reseed(self, snapshot: FetchSnapshot) -> None:
        """Replace the collections wholesale; the current selection survives."""
        self.state.projects = list(snapshot.projects)
        self.state.tasks = list(snapshot.tasks)
        self.state.milestones = list(snapshot.milestones)
        logger.debug(
            f"Re-seeded store for {snapshot.owner_id}: {len(self.state.projects)} projects, "
            f"{len(self.state.tasks)} tasks, {len(self.state.milestones)} milestones"
        )

    # ==================== REMOTE WRITES ====================

    def _dispatch(
        self,
        mutation: Mutation,
        write: RemoteWrite,
        rollback: Optional[Callable[[], None]],
    ) -> Mutation:
        owner_id = self.owner_id
        if owner_id is None:
            mutation.status = MutationStatus.LOCAL_ONLY
            logger.debug(f"No identity, {mutation.action.value} {mutation.entity} {mutation.entity_id} kept local")
            return mutation

        task = create_safe_task(
            self._confirm(mutation, write(owner_id), rollback),
            f"{mutation.action.value}-{mutation.entity}-{mutation.entity_id}",
        )
        self._writes.add(task)
        task.add_done_callback(self._writes.discard)
        mutation.task = task
        return mutation

    async def _confirm(
        self,
        mutation: Mutation,
        write: Awaitable[object],
        rollback: Optional[Callable[[], None]],
    ) -> MutationStatus:
        try:
            await write
        except Exception as e:
            mutation.error = str(e)
            if rollback is not None:
                rollback()
                mutation.status = MutationStatus.ROLLED_BACK
                logger.error(
                    f"Error on {mutation.action.value} {mutation.entity} {mutation.entity_id}, "
                    f"reverted local change: {e}"
                )
            else:
                mutation.status = MutationStatus.DIVERGED
                logger.error(
                    f"Error on {mutation.action.value} {mutation.entity} {mutation.entity_id}, "
                    f"local copy kept: {e}"
                )
            return mutation.status

        mutation.status = MutationStatus.APPLIED
        return mutation.status

    async def drain(self) -> None:
        """Wait until every in-flight remote write has settled."""
        while self._writes:
            await asyncio.gather(*list(self._writes), return_exceptions=True)

    @property
    def rolls_back_everything(self) -> bool:
        return self.rollback_policy == RollbackPolicy.ALL

    def _remove_by_id(self, collection: str, item_id: str) -> Callable[[], None]:
        def rollback():
            items = getattr(self.state, collection)
            setattr(self.state, collection, [item for item in items if item.id != item_id])
        return rollback

    def _restore(self, collection: str, replaced, previous) -> Callable[[], None]:
        """Put `previous` back, unless `replaced` has since been changed or re-seeded."""
        def rollback():
            items = getattr(self.state, collection)
            for index, item in enumerate(items):
                if item is replaced:
                    items[index] = previous
                    return
            logger.warning(f"Not restoring {previous.id}: it changed again locally")
        return rollback

    def _reinsert(self, collection: str, removed: list) -> Callable[[], None]:
        def rollback():
            items = getattr(self.state, collection)
            present = {item.id for item in items}
            items.extend(item for item in removed if item.id not in present)
        return rollback

    def _require(self, collection: str, item_id: str, label: str) -> int:
        index = _find(getattr(self.state, collection), item_id)
        if index < 0:
            raise EntityNotFoundError(f"{label} {item_id} not found")
        return index

    # ==================== PROJECTS ====================

    def create_project(self, data: Union[ProjectCreate, dict]) -> Mutation[Project]:
        data = _coerce(ProjectCreate, data)
        now = get_local_now()
        project = Project(id=generate_id(), created_at=now, updated_at=now, **data.model_dump())

        self.state.projects.append(project)

        mutation = Mutation("project", MutationAction.CREATE, project.id, record=project)
        values = record_values(project)
        return self._dispatch(
            mutation,
            lambda owner_id: self.project_repo.create(owner_id, values),
            self._remove_by_id("projects", project.id),
        )

    def update_project(self, project_id: str, patch: Union[ProjectUpdate, dict]) -> Mutation[Project]:
        changes = _coerce(ProjectUpdate, patch).changes()
        index = self._require("projects", project_id, "Project")

        previous = self.state.projects[index]
        now = get_local_now()
        updated = previous.model_copy(update={**changes, "updated_at": now})
        self.state.projects[index] = updated

        current = self.state.current_project
        if current is not None and current.id == project_id:
            self.state.current_project = updated

        mutation = Mutation("project", MutationAction.UPDATE, project_id, record=updated)
        values = row_values({**changes, "updated_at": now})
        rollback = self._restore("projects", updated, previous) if self.rolls_back_everything else None
        return self._dispatch(
            mutation,
            lambda owner_id: self.project_repo.update(owner_id, project_id, values),
            rollback,
        )

    def delete_project(self, project_id: str) -> Mutation[Project]:
        """
        Remove a project and, locally, its tasks and milestones.

        The remote delete targets only the project row unless
        cascade_remote_deletes is on.
        """
        index = self._require("projects", project_id, "Project")
        project = self.state.projects[index]

        removed_tasks = [t for t in self.state.tasks if t.project_id == project_id]
        removed_milestones = [m for m in self.state.milestones if m.project_id == project_id]

        self.state.projects = [p for p in self.state.projects if p.id != project_id]
        self.state.tasks = [t for t in self.state.tasks if t.project_id != project_id]
        self.state.milestones = [m for m in self.state.milestones if m.project_id != project_id]

        current = self.state.current_project
        if current is not None and current.id == project_id:
            self.state.current_project = None

        cascade = self.cascade_remote_deletes

        async def write(owner_id: str):
            await self.project_repo.delete(owner_id, project_id)
            if cascade:
                await self.task_repo.delete_for_project(owner_id, project_id)
                await self.milestone_repo.delete_for_project(owner_id, project_id)

        rollback = None
        if self.rolls_back_everything:
            restore_project = self._reinsert("projects", [project])
            restore_tasks = self._reinsert("tasks", removed_tasks)
            restore_milestones = self._reinsert("milestones", removed_milestones)

            def rollback():
                restore_project()
                restore_tasks()
                restore_milestones()

        mutation = Mutation("project", MutationAction.DELETE, project_id, record=project)
        return self._dispatch(mutation, write, rollback)

    # ==================== TASKS ====================

    def create_task(self, data: Union[TaskCreate, dict]) -> Mutation[Task]:
        data = _coerce(TaskCreate, data)
        if data.project_id is not None:
            self._require("projects", data.project_id, "Project")

        now = get_local_now()
        task = Task(id=generate_id(), created_at=now, updated_at=now, subtasks=[], **data.model_dump())

        self.state.tasks.append(task)

        mutation = Mutation("task", MutationAction.CREATE, task.id, record=task)
        values = record_values(task)
        return self._dispatch(
            mutation,
            lambda owner_id: self.task_repo.create(owner_id, values),
            self._remove_by_id("tasks", task.id),
        )

    def update_task(self, task_id: str, patch: Union[TaskUpdate, dict]) -> Mutation[Task]:
        changes = _coerce(TaskUpdate, patch).changes()
        index = self._require("tasks", task_id, "Task")

        previous = self.state.tasks[index]
        now = get_local_now()
        updated = previous.model_copy(update={**changes, "updated_at": now})
        self.state.tasks[index] = updated

        mutation = Mutation("task", MutationAction.UPDATE, task_id, record=updated)
        values = row_values({**changes, "updated_at": now})
        rollback = self._restore("tasks", updated, previous) if self.rolls_back_everything else None
        return self._dispatch(
            mutation,
            lambda owner_id: self.task_repo.update(owner_id, task_id, values),
            rollback,
        )

    def delete_task(self, task_id: str) -> Mutation[Task]:
        index = self._require("tasks", task_id, "Task")
        task = self.state.tasks.pop(index)

        rollback = self._reinsert("tasks", [task]) if self.rolls_back_everything else None
        mutation = Mutation("task", MutationAction.DELETE, task_id, record=task)
        return self._dispatch(
            mutation,
            lambda owner_id: self.task_repo.delete(owner_id, task_id),
            rollback,
        )

    # ==================== SUBTASKS ====================

    def add_subtask(self, task_id: str, data: Union[SubtaskCreate, dict]) -> Mutation[Subtask]:
        data = _coerce(SubtaskCreate, data)
        index = self._require("tasks", task_id, "Task")

        now = get_local_now()
        subtask = Subtask(id=generate_id(), task_id=task_id, created_at=now, updated_at=now, **data.model_dump())

        task = self.state.tasks[index]
        self.state.tasks[index] = task.model_copy(update={"subtasks": task.subtasks + [subtask]})

        def rollback():
            position = _find(self.state.tasks, task_id)
            if position >= 0:
                owner_task = self.state.tasks[position]
                self.state.tasks[position] = owner_task.model_copy(
                    update={"subtasks": [s for s in owner_task.subtasks if s.id != subtask.id]}
                )

        mutation = Mutation("subtask", MutationAction.CREATE, subtask.id, record=subtask)
        values = record_values(subtask)
        return self._dispatch(
            mutation,
            lambda owner_id: self.task_repo.add_subtask(owner_id, values),
            rollback,
        )

    def update_subtask(
        self, task_id: str, subtask_id: str, patch: Union[SubtaskUpdate, dict]
    ) -> Mutation[Subtask]:
        changes = _coerce(SubtaskUpdate, patch).changes()
        index = self._require("tasks", task_id, "Task")

        task = self.state.tasks[index]
        position = _find(task.subtasks, subtask_id)
        if position < 0:
            raise EntityNotFoundError(f"Subtask {subtask_id} not found on task {task_id}")

        now = get_local_now()
        subtask = task.subtasks[position].model_copy(update={**changes, "updated_at": now})
        subtasks = list(task.subtasks)
        subtasks[position] = subtask
        updated_task = task.model_copy(update={"subtasks": subtasks})
        self.state.tasks[index] = updated_task

        mutation = Mutation("subtask", MutationAction.UPDATE, subtask_id, record=subtask)
        values = row_values({**changes, "updated_at": now})
        rollback = self._restore("tasks", updated_task, task) if self.rolls_back_everything else None
        return self._dispatch(
            mutation,
            lambda owner_id: self.task_repo.update_subtask(owner_id, subtask_id, values),
            rollback,
        )

    def delete_subtask(self, task_id: str, subtask_id: str) -> Mutation[Subtask]:
        index = self._require("tasks", task_id, "Task")

        task = self.state.tasks[index]
        position = _find(task.subtasks, subtask_id)
        if position < 0:
            raise EntityNotFoundError(f"Subtask {subtask_id} not found on task {task_id}")

        subtask = task.subtasks[position]
        updated_task = task.model_copy(
            update={"subtasks": [s for s in task.subtasks if s.id != subtask_id]}
        )
        self.state.tasks[index] = updated_task

        rollback = self._restore("tasks", updated_task, task) if self.rolls_back_everything else None
        mutation = Mutation("subtask", MutationAction.DELETE, subtask_id, record=subtask)
        return self._dispatch(
            mutation,
            lambda owner_id: self.task_repo.delete_subtask(owner_id, subtask_id),
            rollback,
        )

    # ==================== MILESTONES ====================

    def create_milestone(self, data: Union[MilestoneCreate, dict]) -> Mutation[Milestone]:
        data = _coerce(MilestoneCreate, data)
        self._require("projects", data.project_id, "Project")

        milestone = Milestone(id=generate_id(), **data.model_dump())
        self.state.milestones.append(milestone)

        now = get_local_now()
        values = {**record_values(milestone), "created_at": now, "updated_at": now}

        mutation = Mutation("milestone", MutationAction.CREATE, milestone.id, record=milestone)
        return self._dispatch(
            mutation,
            lambda owner_id: self.milestone_repo.create(owner_id, values),
            self._remove_by_id("milestones", milestone.id),
        )

    def update_milestone(self, milestone_id: str, patch: Union[MilestoneUpdate, dict]) -> Mutation[Milestone]:
        changes = _coerce(MilestoneUpdate, patch).changes()
        index = self._require("milestones", milestone_id, "Milestone")

        previous = self.state.milestones[index]
        updated = previous.model_copy(update=changes)
        self.state.milestones[index] = updated

        mutation = Mutation("milestone", MutationAction.UPDATE, milestone_id, record=updated)
        values = row_values({**changes, "updated_at": get_local_now()})
        rollback = self._restore("milestones", updated, previous) if self.rolls_back_everything else None
        return self._dispatch(
            mutation,
            lambda owner_id: self.milestone_repo.update(owner_id, milestone_id, values),
            rollback,
        )

    def delete_milestone(self, milestone_id: str) -> Mutation[Milestone]:
        index = self._require("milestones", milestone_id, "Milestone")
        milestone = self.state.milestones.pop(index)

        rollback = self._reinsert("milestones", [milestone]) if self.rolls_back_everything else None
        mutation = Mutation("milestone", MutationAction.DELETE, milestone_id, record=milestone)
        return self._dispatch(
            mutation,
            lambda owner_id: self.milestone_repo.delete(owner_id, milestone_id),
            rollback,
        )
