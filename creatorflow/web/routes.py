"""
HTTP API over the local store.

The caller's owner identity comes from the X-Owner-Id header. Each owner gets
one LocalStore (and one TimeTracker), kept until the registry closes the least
recently used owners to stay under max_open_stores. The first request for an
owner loads their snapshot.

Mutations answer as soon as the local state has changed. Pass ?wait=true to
hold the response until the remote write has settled.
"""

import logging
from collections import OrderedDict
from typing import Any, Callable, Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query

from config import settings
from ..models import (
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
from ..services.dashboard import (
    compute_dashboard_stats,
    project_performance,
    category_breakdown,
)
from ..services.time_tracking import TimeTracker
from ..sync.mutations import Mutation
from ..sync.store import LocalStore

logger = logging.getLogger(__name__)

router = APIRouter()


class StoreRegistry:
    """
    One LocalStore and TimeTracker per owner identity.

    At most max_open_stores owners are kept. Opening one more closes the
    least recently used owner once its pending writes have settled.
    """

    def __init__(
        self,
        store_factory: Optional[Callable[[], LocalStore]] = None,
        tracker_factory: Optional[Callable[[LocalStore], TimeTracker]] = None,
        max_open_stores: Optional[int] = None,
    ):
        self._store_factory = store_factory or LocalStore
        self._tracker_factory = tracker_factory or TimeTracker
        self.max_open_stores = max(1, max_open_stores or settings.max_open_stores)
        self._stores: "OrderedDict[str, LocalStore]" = OrderedDict()
        self._trackers: Dict[str, TimeTracker] = {}

    def __len__(self) -> int:
        return len(self._stores)

    def __contains__(self, owner_id: str) -> bool:
        return owner_id in self._stores

    async def get_store(self, owner_id: str) -> LocalStore:
        store = self._stores.get(owner_id)
        if store is not None:
            self._stores.move_to_end(owner_id)
            return store

        store = self._store_factory()
        self._stores[owner_id] = store
        logger.info(f"Opening store for owner {owner_id}")
        await self._evict(keep=owner_id)
        await store.set_identity(owner_id)
        return store

    async def _evict(self, keep: str) -> None:
        while len(self._stores) > self.max_open_stores:
            owner_id = next(iter(self._stores))
            if owner_id == keep:
                self._stores.move_to_end(owner_id)
                continue

            store = self._stores[owner_id]
            await store.drain()
            if next(iter(self._stores), None) != owner_id:
                # Used again while draining
                continue

            del self._stores[owner_id]
            tracker = self._trackers.pop(owner_id, None)
            if tracker is not None and tracker.timer is not None:
                logger.warning(f"Closing store for owner {owner_id} with a running timer on task {tracker.timer.task_id}")
            logger.info(f"Closed least recently used store for owner {owner_id}")

    def get_tracker(self, owner_id: str, store: LocalStore) -> TimeTracker:
        tracker = self._trackers.get(owner_id)
        if tracker is None:
            tracker = self._tracker_factory(store)
            self._trackers[owner_id] = tracker
        return tracker

    async def drain(self) -> None:
        """Wait for every store's in-flight writes."""
        for store in list(self._stores.values()):
            await store.drain()

    def clear(self) -> None:
        self._stores.clear()
        self._trackers.clear()


_registry: Optional[StoreRegistry] = None


def get_registry() -> StoreRegistry:
    """Get the store registry singleton."""
    global _registry
    if _registry is None:
        _registry = StoreRegistry()
    return _registry


# ============================================================================
# Dependencies
# ============================================================================

def get_owner_id(x_owner_id: Optional[str] = Header(None)) -> str:
    if not x_owner_id:
        raise HTTPException(status_code=401, detail="X-Owner-Id header required")
    return x_owner_id


async def get_store(
    owner_id: str = Depends(get_owner_id),
    registry: StoreRegistry = Depends(get_registry),
) -> LocalStore:
    return await registry.get_store(owner_id)


async def get_tracker(
    owner_id: str = Depends(get_owner_id),
    store: LocalStore = Depends(get_store),
    registry: StoreRegistry = Depends(get_registry),
) -> TimeTracker:
    return registry.get_tracker(owner_id, store)


def _dump(record) -> Optional[Dict[str, Any]]:
    return record.model_dump(mode="json") if record is not None else None


async def _respond(mutation: Mutation, key: str, wait: bool) -> Dict[str, Any]:
    if wait:
        await mutation.wait()
    return {
        "ok": True,
        "mutation": mutation.to_dict(),
        key: _dump(mutation.record),
    }


def _state(store: LocalStore) -> Dict[str, Any]:
    return {
        "owner_id": store.owner_id,
        "loading": store.loading,
        "error": store.error,
        "projects": [_dump(p) for p in store.projects],
        "tasks": [_dump(t) for t in store.tasks],
        "milestones": [_dump(m) for m in store.milestones],
        "calendar_events": [_dump(e) for e in store.calendar_events],
        "current_project": _dump(store.current_project),
    }


# ============================================================================
# State
# ============================================================================

@router.get("/api/state")
async def get_state(store: LocalStore = Depends(get_store)):
    """Everything the dashboard needs for the signed-in owner."""
    return _state(store)


@router.post("/api/refresh")
async def refresh_state(store: LocalStore = Depends(get_store)):
    """Re-fetch from the database and re-seed the store."""
    await store.refresh()
    return _state(store)


@router.put("/api/current-project")
async def set_current_project(
    selection: CurrentProjectSelection,
    store: LocalStore = Depends(get_store),
):
    if selection.project_id is None:
        store.set_current_project(None)
    else:
        project = store.get_project(selection.project_id)
        if project is None:
            raise HTTPException(status_code=404, detail=f"Project {selection.project_id} not found")
        store.set_current_project(project)

    return {"ok": True, "current_project": _dump(store.current_project)}


# ============================================================================
# Projects
# ============================================================================

@router.get("/api/projects/{project_id}")
async def get_project(project_id: str, store: LocalStore = Depends(get_store)):
    """Project with its tasks and milestones."""
    return {"project": _dump(store.project_detail(project_id))}


@router.post("/api/projects", status_code=201)
async def create_project(
    data: ProjectCreate,
    wait: bool = False,
    store: LocalStore = Depends(get_store),
):
    return await _respond(store.create_project(data), "project", wait)


@router.patch("/api/projects/{project_id}")
async def update_project(
    project_id: str,
    patch: ProjectUpdate,
    wait: bool = False,
    store: LocalStore = Depends(get_store),
):
    return await _respond(store.update_project(project_id, patch), "project", wait)


@router.delete("/api/projects/{project_id}")
async def delete_project(
    project_id: str,
    wait: bool = False,
    store: LocalStore = Depends(get_store),
):
    return await _respond(store.delete_project(project_id), "project", wait)


# ============================================================================
# Tasks & subtasks
# ============================================================================

@router.post("/api/tasks", status_code=201)
async def create_task(
    data: TaskCreate,
    wait: bool = False,
    store: LocalStore = Depends(get_store),
):
    return await _respond(store.create_task(data), "task", wait)


@router.patch("/api/tasks/{task_id}")
async def update_task(
    task_id: str,
    patch: TaskUpdate,
    wait: bool = False,
    store: LocalStore = Depends(get_store),
):
    return await _respond(store.update_task(task_id, patch), "task", wait)


@router.delete("/api/tasks/{task_id}")
async def delete_task(
    task_id: str,
    wait: bool = False,
    store: LocalStore = Depends(get_store),
):
    return await _respond(store.delete_task(task_id), "task", wait)


@router.post("/api/tasks/{task_id}/subtasks", status_code=201)
async def add_subtask(
    task_id: str,
    data: SubtaskCreate,
    wait: bool = False,
    store: LocalStore = Depends(get_store),
):
    return await _respond(store.add_subtask(task_id, data), "subtask", wait)


@router.patch("/api/tasks/{task_id}/subtasks/{subtask_id}")
async def update_subtask(
    task_id: str,
    subtask_id: str,
    patch: SubtaskUpdate,
    wait: bool = False,
    store: LocalStore = Depends(get_store),
):
    return await _respond(store.update_subtask(task_id, subtask_id, patch), "subtask", wait)


@router.delete("/api/tasks/{task_id}/subtasks/{subtask_id}")
async def delete_subtask(
    task_id: str,
    subtask_id: str,
    wait: bool = False,
    store: LocalStore = Depends(get_store),
):
    return await _respond(store.delete_subtask(task_id, subtask_id), "subtask", wait)


# ============================================================================
# Milestones
# ============================================================================

@router.post("/api/milestones", status_code=201)
async def create_milestone(
    data: MilestoneCreate,
    wait: bool = False,
    store: LocalStore = Depends(get_store),
):
    return await _respond(store.create_milestone(data), "milestone", wait)


@router.patch("/api/milestones/{milestone_id}")
async def update_milestone(
    milestone_id: str,
    patch: MilestoneUpdate,
    wait: bool = False,
    store: LocalStore = Depends(get_store),
):
    return await _respond(store.update_milestone(milestone_id, patch), "milestone", wait)


@router.delete("/api/milestones/{milestone_id}")
async def delete_milestone(
    milestone_id: str,
    wait: bool = False,
    store: LocalStore = Depends(get_store),
):
    return await _respond(store.delete_milestone(milestone_id), "milestone", wait)


# ============================================================================
# Time tracking
# ============================================================================

@router.get("/api/time-entries")
async def list_time_entries(
    period: str = Query("week"),
    project_id: Optional[str] = None,
    task_id: Optional[str] = None,
    tracker: TimeTracker = Depends(get_tracker),
):
    """Entries for a period (today / week / month / all) with totals."""
    try:
        entries = await tracker.list_entries(period, project_id=project_id, task_id=task_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "entries": [_dump(e) for e in entries],
        "summary": TimeTracker.summarize(entries),
    }


@router.post("/api/time-entries", status_code=201)
async def log_time_entry(data: TimeEntryCreate, tracker: TimeTracker = Depends(get_tracker)):
    entry = await tracker.log_time(
        data.task_id,
        data.duration,
        description=data.description,
        entry_date=data.date,
        project_id=data.project_id,
    )
    return {"ok": True, "entry": _dump(entry)}


@router.delete("/api/time-entries/{entry_id}")
async def delete_time_entry(entry_id: str, tracker: TimeTracker = Depends(get_tracker)):
    await tracker.delete_entry(entry_id)
    return {"ok": True, "id": entry_id}


@router.post("/api/timer/start")
async def start_timer(data: TimerStart, tracker: TimeTracker = Depends(get_tracker)):
    timer = tracker.start_timer(data.task_id, data.description)
    return {
        "ok": True,
        "task_id": timer.task_id,
        "started_at": timer.started_at.isoformat(),
    }


@router.post("/api/timer/stop")
async def stop_timer(tracker: TimeTracker = Depends(get_tracker)):
    entry = await tracker.stop_timer()
    return {"ok": True, "entry": _dump(entry)}


# ============================================================================
# Dashboard
# ============================================================================

@router.get("/api/dashboard")
async def get_dashboard(store: LocalStore = Depends(get_store)):
    """Headline stats, recent projects, upcoming deadlines and per-project figures."""
    overview = compute_dashboard_stats(store.state)
    return {
        "stats": overview["stats"],
        "recent_projects": [_dump(p) for p in overview["recent_projects"]],
        "upcoming_deadlines": [_dump(t) for t in overview["upcoming_deadlines"]],
        "project_performance": project_performance(store.state),
        "categories": category_breakdown(store.projects),
    }
