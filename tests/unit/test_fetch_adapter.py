"""
Tests for creatorflow/sync/fetch.py

Identity-driven snapshots, failure handling and row mapping.
"""

import asyncio
import pytest
from unittest.mock import Mock

from creatorflow.database.exceptions import DatabaseOperationError
from creatorflow.models import ProjectStatus, TaskStatus
from creatorflow.sync.fetch import RemoteFetchAdapter


@pytest.fixture
def adapter(project_repo, task_repo, milestone_repo):
    return RemoteFetchAdapter(project_repo, task_repo, milestone_repo)


@pytest.fixture
def seeded_repos(project_repo, task_repo, milestone_repo, project_row, task_row, subtask_row, milestone_row):
    """Repos returning one project, two tasks, subtasks and a milestone."""
    project_repo.list_for_owner.return_value = [project_row()]
    task_repo.list_for_owner.return_value = [task_row(id="t-2"), task_row(id="t-1")]
    task_repo.list_subtasks_for_owner.return_value = [
        subtask_row(id="s-1", task_id="t-1"),
        subtask_row(id="s-2", task_id="t-1", completed=True),
    ]
    milestone_repo.list_for_owner.return_value = [milestone_row()]
    return project_repo, task_repo, milestone_repo


class TestIdentity:
    """Reacting to identity changes."""

    @pytest.mark.asyncio
    async def test_no_identity_does_nothing(self, adapter, project_repo):
        listener = Mock()
        adapter.subscribe(listener)

        await adapter.set_identity(None)

        assert adapter.loading is False
        assert adapter.projects == []
        project_repo.list_for_owner.assert_not_called()
        listener.assert_not_called()

    @pytest.mark.asyncio
    async def test_identity_fetches_all_collections(self, adapter, seeded_repos, owner_id):
        project_repo, task_repo, milestone_repo = seeded_repos

        await adapter.set_identity(owner_id)

        project_repo.list_for_owner.assert_awaited_once_with(owner_id)
        task_repo.list_for_owner.assert_awaited_once_with(owner_id)
        milestone_repo.list_for_owner.assert_awaited_once_with(owner_id)
        task_repo.list_subtasks_for_owner.assert_awaited_once_with(owner_id)

        assert adapter.loading is False
        assert adapter.error is None
        assert [p.id for p in adapter.projects] == ["p-1"]
        # Repository order is kept
        assert [t.id for t in adapter.tasks] == ["t-2", "t-1"]
        assert [m.id for m in adapter.milestones] == ["m-1"]

    @pytest.mark.asyncio
    async def test_same_identity_is_noop(self, adapter, seeded_repos, owner_id):
        project_repo, _, _ = seeded_repos

        await adapter.set_identity(owner_id)
        await adapter.set_identity(owner_id)

        assert project_repo.list_for_owner.await_count == 1

    @pytest.mark.asyncio
    async def test_sign_out_clears_and_notifies(self, adapter, seeded_repos, owner_id):
        listener = Mock()
        adapter.subscribe(listener)
        await adapter.set_identity(owner_id)

        await adapter.set_identity(None)

        snapshot = listener.call_args[0][0]
        assert snapshot.owner_id is None
        assert snapshot.projects == []
        assert snapshot.loading is False
        assert listener.call_count == 2

    @pytest.mark.asyncio
    async def test_identity_swap_never_shows_previous_owner(self, adapter, seeded_repos, owner_id):
        project_repo, _, _ = seeded_repos
        await adapter.set_identity(owner_id)
        project_repo.list_for_owner.side_effect = DatabaseOperationError("down")

        await adapter.set_identity("owner-2")

        assert adapter.owner_id == "owner-2"
        assert adapter.projects == []
        assert adapter.error == "down"


class TestFetch:
    """Fetch success and failure."""

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_collections(self, adapter, seeded_repos, owner_id):
        _, task_repo, _ = seeded_repos
        await adapter.set_identity(owner_id)
        task_repo.list_for_owner.side_effect = DatabaseOperationError("Failed to load tasks: timeout")

        snapshot = await adapter.fetch()

        assert snapshot.loading is False
        assert snapshot.error == "Failed to load tasks: timeout"
        assert [p.id for p in snapshot.projects] == ["p-1"]
        assert len(snapshot.tasks) == 2

    @pytest.mark.asyncio
    async def test_failure_on_first_run_leaves_empty(self, adapter, milestone_repo, owner_id):
        milestone_repo.list_for_owner.side_effect = DatabaseOperationError("boom")

        await adapter.set_identity(owner_id)

        assert adapter.projects == []
        assert adapter.tasks == []
        assert adapter.error == "boom"

    @pytest.mark.asyncio
    async def test_success_clears_previous_error(self, adapter, project_repo, owner_id):
        project_repo.list_for_owner.side_effect = [DatabaseOperationError("boom"), []]
        await adapter.set_identity(owner_id)
        assert adapter.error == "boom"

        await adapter.fetch()

        assert adapter.error is None

    @pytest.mark.asyncio
    async def test_stale_fetch_is_discarded(self, adapter, project_repo, project_row, owner_id):
        """A fetch that finishes after the identity changed is dropped."""
        release = asyncio.Event()

        async def slow_list(owner):
            await release.wait()
            return [project_row(id=f"{owner}-project")]

        project_repo.list_for_owner.side_effect = slow_list

        first = asyncio.create_task(adapter.set_identity(owner_id))
        await asyncio.sleep(0)
        adapter.owner_id = "owner-2"
        release.set()
        await first

        assert adapter.projects == []

    @pytest.mark.asyncio
    async def test_listener_sees_finished_snapshot(self, adapter, seeded_repos, owner_id):
        listener = Mock()
        adapter.subscribe(listener)

        await adapter.set_identity(owner_id)

        snapshot = listener.call_args[0][0]
        assert snapshot.owner_id == owner_id
        assert snapshot.loading is False
        assert len(snapshot.projects) == 1


class TestMapping:
    """Row to record normalization."""

    @pytest.mark.asyncio
    async def test_nulls_are_normalized(self, adapter, seeded_repos, owner_id):
        await adapter.set_identity(owner_id)

        project = adapter.projects[0]
        assert project.description == ""
        assert project.tags == []
        assert project.status == ProjectStatus.IN_PROGRESS

        task = adapter.tasks[0]
        assert task.description == ""
        assert task.assignee is None
        assert task.time_spent == 0
        assert task.status == TaskStatus.TODO

        assert adapter.milestones[0].progress == 0

    @pytest.mark.asyncio
    async def test_subtasks_attach_to_their_task(self, adapter, seeded_repos, owner_id):
        await adapter.set_identity(owner_id)

        tasks = {t.id: t for t in adapter.tasks}
        assert [s.id for s in tasks["t-1"].subtasks] == ["s-1", "s-2"]
        assert tasks["t-1"].subtasks[1].completed is True
        assert tasks["t-2"].subtasks == []

    @pytest.mark.asyncio
    async def test_invalid_enum_rows_are_skipped(self, adapter, project_repo, project_row, owner_id):
        project_repo.list_for_owner.return_value = [
            project_row(id="good"),
            project_row(id="bad", status="Archived"),
        ]

        await adapter.set_identity(owner_id)

        assert [p.id for p in adapter.projects] == ["good"]
        assert adapter.error is None
