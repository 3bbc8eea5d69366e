"""
Pytest configuration and shared fixtures.
"""

import pytest
from datetime import date, datetime, timedelta
from unittest.mock import AsyncMock

from creatorflow.database.models import ProjectDB, TaskDB, SubtaskDB, MilestoneDB, TimeEntryDB
from creatorflow.sync.store import LocalStore


OWNER_ID = "owner-1"


@pytest.fixture
def owner_id():
    return OWNER_ID


# ==================== MOCK REPOSITORIES ====================

@pytest.fixture
def project_repo():
    """Mock project repository."""
    repo = AsyncMock()
    repo.list_for_owner = AsyncMock(return_value=[])
    repo.create = AsyncMock(return_value=None)
    repo.update = AsyncMock(return_value=True)
    repo.delete = AsyncMock(return_value=True)
    return repo


@pytest.fixture
def task_repo():
    """Mock task repository."""
    repo = AsyncMock()
    repo.list_for_owner = AsyncMock(return_value=[])
    repo.list_subtasks_for_owner = AsyncMock(return_value=[])
    repo.create = AsyncMock(return_value=None)
    repo.update = AsyncMock(return_value=True)
    repo.delete = AsyncMock(return_value=True)
    repo.delete_for_project = AsyncMock(return_value=0)
    repo.add_subtask = AsyncMock(return_value=None)
    repo.update_subtask = AsyncMock(return_value=True)
    repo.delete_subtask = AsyncMock(return_value=True)
    return repo


@pytest.fixture
def milestone_repo():
    """Mock milestone repository."""
    repo = AsyncMock()
    repo.list_for_owner = AsyncMock(return_value=[])
    repo.create = AsyncMock(return_value=None)
    repo.update = AsyncMock(return_value=True)
    repo.delete = AsyncMock(return_value=True)
    repo.delete_for_project = AsyncMock(return_value=0)
    return repo


@pytest.fixture
def time_repo():
    """Mock time tracking repository."""
    repo = AsyncMock()
    repo.list_for_owner = AsyncMock(return_value=[])
    repo.create = AsyncMock(return_value=None)
    repo.delete = AsyncMock(return_value=True)
    return repo


@pytest.fixture
def make_store(project_repo, task_repo, milestone_repo):
    """Build a LocalStore over the mock repositories."""
    def _make(rollback_policy="create_only", cascade_remote_deletes=False):
        return LocalStore(
            project_repo=project_repo,
            task_repo=task_repo,
            milestone_repo=milestone_repo,
            rollback_policy=rollback_policy,
            cascade_remote_deletes=cascade_remote_deletes,
        )
    return _make


@pytest.fixture
def store(make_store):
    """Store with the default policy and no identity yet."""
    return make_store()


# ==================== SAMPLE DATA ====================

@pytest.fixture
def future_date():
    return date.today() + timedelta(days=30)


@pytest.fixture
def sample_project_data(future_date):
    """Sample project input."""
    return {
        "title": "Launch Video",
        "description": "Channel trailer",
        "category": "YouTube",
        "deadline": future_date,
        "priority": "High",
        "status": "Planning",
        "color": "#EF4444",
        "tags": ["launch", "video", "launch"],
        "progress": 10,
    }


@pytest.fixture
def sample_task_data():
    """Sample task input (no project)."""
    return {
        "title": "Write script",
        "description": "First draft",
        "priority": "Medium",
        "status": "To Do",
        "assignee": "Sam",
        "tags": ["writing"],
    }


@pytest.fixture
def project_row():
    """Factory for ProjectDB rows."""
    def _make(id="p-1", **overrides):
        values = {
            "id": id,
            "user_id": OWNER_ID,
            "title": "Podcast Ep. 1",
            "description": None,
            "category": "Podcast",
            "deadline": date(2026, 12, 1),
            "priority": "Medium",
            "status": "In Progress",
            "color": "#10B981",
            "tags": None,
            "progress": 40,
            "created_at": datetime(2026, 10, 1, 9, 0),
            "updated_at": datetime(2026, 10, 2, 9, 0),
        }
        values.update(overrides)
        return ProjectDB(**values)
    return _make


@pytest.fixture
def task_row():
    """Factory for TaskDB rows."""
    def _make(id="t-1", **overrides):
        values = {
            "id": id,
            "user_id": OWNER_ID,
            "project_id": "p-1",
            "title": "Record intro",
            "description": None,
            "priority": "High",
            "status": "To Do",
            "assignee": None,
            "deadline": None,
            "tags": None,
            "time_spent": None,
            "created_at": datetime(2026, 10, 3, 9, 0),
            "updated_at": datetime(2026, 10, 3, 9, 0),
        }
        values.update(overrides)
        return TaskDB(**values)
    return _make


@pytest.fixture
def subtask_row():
    """Factory for SubtaskDB rows."""
    def _make(id="s-1", task_id="t-1", **overrides):
        values = {
            "id": id,
            "user_id": OWNER_ID,
            "task_id": task_id,
            "title": "Buy mic",
            "completed": False,
            "created_at": datetime(2026, 10, 3, 10, 0),
            "updated_at": datetime(2026, 10, 3, 10, 0),
        }
        values.update(overrides)
        return SubtaskDB(**values)
    return _make


@pytest.fixture
def milestone_row():
    """Factory for MilestoneDB rows."""
    def _make(id="m-1", **overrides):
        values = {
            "id": id,
            "user_id": OWNER_ID,
            "project_id": "p-1",
            "title": "Script locked",
            "description": None,
            "deadline": date(2026, 11, 1),
            "status": "Not Started",
            "progress": None,
            "order": 1,
            "created_at": datetime(2026, 10, 1, 9, 0),
            "updated_at": datetime(2026, 10, 1, 9, 0),
        }
        values.update(overrides)
        return MilestoneDB(**values)
    return _make


@pytest.fixture
def time_entry_row():
    """Factory for TimeEntryDB rows."""
    def _make(id="e-1", **overrides):
        values = {
            "id": id,
            "user_id": OWNER_ID,
            "task_id": "t-1",
            "project_id": "p-1",
            "description": "Editing",
            "duration": 90,
            "entry_date": date(2026, 10, 5),
            "created_at": datetime(2026, 10, 5, 18, 0),
            "updated_at": datetime(2026, 10, 5, 18, 0),
        }
        values.update(overrides)
        return TimeEntryDB(**values)
    return _make
