"""
Tests for creatorflow/services/time_tracking.py
"""

import asyncio
import pytest
from datetime import date, datetime, timedelta

from creatorflow.database.exceptions import EntityNotFoundError, ValidationError
from creatorflow.services.time_tracking import TimeTracker
from creatorflow.models import TimeEntry


@pytest.fixture
async def tracker(store, time_repo, owner_id):
    await store.set_identity(owner_id)
    yield TimeTracker(store, repo=time_repo)
    await store.drain()


@pytest.fixture
async def task(tracker, sample_task_data):
    return tracker.store.create_task(sample_task_data).record


class TestLogTime:

    @pytest.mark.asyncio
    async def test_log_time_writes_entry_and_bumps_task(self, tracker, task, time_repo, owner_id):
        entry = await tracker.log_time(task.id, "1h30m", description="Editing")

        assert entry.duration == 90
        assert entry.task_id == task.id
        assert entry.description == "Editing"

        owner, values = time_repo.create.call_args[0]
        assert owner == owner_id
        assert values["entry_date"] == entry.date
        assert values["duration"] == 90

        assert tracker.store.get_task(task.id).time_spent == 90

    @pytest.mark.asyncio
    async def test_time_spent_accumulates(self, tracker, task):
        await tracker.log_time(task.id, 30)
        await tracker.log_time(task.id, "15m")

        assert tracker.store.get_task(task.id).time_spent == 45

    @pytest.mark.asyncio
    async def test_project_defaults_to_task_project(self, tracker, sample_project_data, sample_task_data):
        project = tracker.store.create_project(sample_project_data).record
        task = tracker.store.create_task({**sample_task_data, "project_id": project.id}).record

        entry = await tracker.log_time(task.id, 20, entry_date=date(2026, 10, 1))

        assert entry.project_id == project.id
        assert entry.date == date(2026, 10, 1)

    @pytest.mark.asyncio
    async def test_unknown_task(self, tracker):
        with pytest.raises(EntityNotFoundError):
            await tracker.log_time("missing", 10)

    @pytest.mark.asyncio
    async def test_invalid_duration(self, tracker, task, time_repo):
        with pytest.raises(ValidationError):
            await tracker.log_time(task.id, "later")
        time_repo.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_write_leaves_time_spent(self, tracker, task, time_repo):
        time_repo.create.side_effect = Exception("insert failed")

        with pytest.raises(Exception):
            await tracker.log_time(task.id, 10)

        assert tracker.store.get_task(task.id).time_spent == 0

    @pytest.mark.asyncio
    async def test_concurrent_entries_both_count(self, tracker, task, time_repo):
        async def slow_insert(owner_id, values):
            await asyncio.sleep(0.01)

        time_repo.create.side_effect = slow_insert

        await asyncio.gather(
            tracker.log_time(task.id, 30),
            tracker.log_time(task.id, 45),
        )

        assert tracker.store.get_task(task.id).time_spent == 75

    @pytest.mark.asyncio
    async def test_task_deleted_during_write(self, tracker, task, time_repo):
        async def insert_then_delete(owner_id, values):
            tracker.store.delete_task(task.id)

        time_repo.create.side_effect = insert_then_delete

        entry = await tracker.log_time(task.id, 20)

        assert entry.duration == 20
        assert tracker.store.get_task(task.id) is None
        time_repo.create.assert_awaited_once()

    def test_requires_identity(self, store, time_repo):
        tracker = TimeTracker(store, repo=time_repo)
        with pytest.raises(ValidationError):
            tracker._owner_id()


class TestTimer:

    @pytest.mark.asyncio
    async def test_start_and_stop_logs_whole_minutes(self, tracker, task):
        started = datetime(2026, 10, 18, 9, 0, 0)
        tracker.start_timer(task.id, "Recording", now=started)

        entry = await tracker.stop_timer(now=started + timedelta(minutes=25, seconds=59))

        assert entry.duration == 25
        assert entry.description == "Recording"
        assert tracker.timer is None
        assert tracker.store.get_task(task.id).time_spent == 25

    @pytest.mark.asyncio
    async def test_stop_under_a_minute_logs_nothing(self, tracker, task, time_repo):
        started = datetime(2026, 10, 18, 9, 0, 0)
        tracker.start_timer(task.id, now=started)

        assert await tracker.stop_timer(now=started + timedelta(seconds=40)) is None
        time_repo.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_write_keeps_timer(self, tracker, task, time_repo):
        started = datetime(2026, 10, 18, 9, 0, 0)
        tracker.start_timer(task.id, now=started)
        time_repo.create.side_effect = Exception("insert failed")

        with pytest.raises(Exception):
            await tracker.stop_timer(now=started + timedelta(minutes=10))

        assert tracker.timer is not None
        assert tracker.timer.task_id == task.id

        time_repo.create.side_effect = None
        entry = await tracker.stop_timer(now=started + timedelta(minutes=12))

        assert entry.duration == 12
        assert tracker.timer is None

    @pytest.mark.asyncio
    async def test_overlapping_stops_log_once(self, tracker, task, time_repo):
        async def slow_insert(owner_id, values):
            await asyncio.sleep(0.01)

        time_repo.create.side_effect = slow_insert
        started = datetime(2026, 10, 18, 9, 0, 0)
        tracker.start_timer(task.id, now=started)

        results = await asyncio.gather(
            tracker.stop_timer(now=started + timedelta(minutes=5)),
            tracker.stop_timer(now=started + timedelta(minutes=5)),
            return_exceptions=True,
        )

        assert results[0].duration == 5
        assert isinstance(results[1], ValidationError)
        time_repo.create.assert_awaited_once()
        assert tracker.store.get_task(task.id).time_spent == 5

    @pytest.mark.asyncio
    async def test_stop_after_task_deleted(self, tracker, task, time_repo):
        started = datetime(2026, 10, 18, 9, 0, 0)
        tracker.start_timer(task.id, now=started)
        tracker.store.delete_task(task.id)

        with pytest.raises(EntityNotFoundError):
            await tracker.stop_timer(now=started + timedelta(minutes=10))

        assert tracker.timer is None
        time_repo.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_one_timer_at_a_time(self, tracker, task):
        tracker.start_timer(task.id)
        with pytest.raises(ValidationError):
            tracker.start_timer(task.id)

    @pytest.mark.asyncio
    async def test_stop_without_timer(self, tracker):
        with pytest.raises(ValidationError):
            await tracker.stop_timer()

    @pytest.mark.asyncio
    async def test_start_unknown_task(self, tracker):
        with pytest.raises(EntityNotFoundError):
            tracker.start_timer("missing")


class TestEntries:

    @pytest.mark.asyncio
    async def test_list_entries_uses_period_bounds(self, tracker, time_repo, time_entry_row, owner_id):
        time_repo.list_for_owner.return_value = [time_entry_row()]

        entries = await tracker.list_entries("month", project_id="p-1", today=date(2026, 10, 18))

        assert entries[0].date == date(2026, 10, 5)
        time_repo.list_for_owner.assert_awaited_once_with(
            owner_id,
            start=date(2026, 10, 1),
            end=date(2026, 10, 31),
            task_id=None,
            project_id="p-1",
        )

    @pytest.mark.asyncio
    async def test_list_entries_bad_period(self, tracker):
        with pytest.raises(ValueError):
            await tracker.list_entries("decade")

    @pytest.mark.asyncio
    async def test_delete_entry(self, tracker, time_repo, owner_id):
        assert await tracker.delete_entry("e-1") is True
        time_repo.delete.assert_awaited_once_with(owner_id, "e-1")

    def test_summarize(self):
        now = datetime(2026, 10, 18, 12, 0)

        def entry(id, project_id, day, minutes):
            return TimeEntry(id=id, project_id=project_id, date=day, duration=minutes,
                             created_at=now, updated_at=now)

        summary = TimeTracker.summarize([
            entry("1", "p-1", date(2026, 10, 17), 60),
            entry("2", "p-1", date(2026, 10, 18), 30),
            entry("3", None, date(2026, 10, 18), 30),
        ])

        assert summary["total_minutes"] == 120
        assert summary["total_display"] == "2h 0m"
        assert summary["entry_count"] == 3
        assert summary["average_per_day"] == 60
        assert summary["by_project"] == {"p-1": 90, "unassigned": 30}
        assert list(summary["by_day"]) == ["2026-10-17", "2026-10-18"]

    def test_summarize_empty(self):
        summary = TimeTracker.summarize([])
        assert summary["total_minutes"] == 0
        assert summary["average_per_day"] == 0
