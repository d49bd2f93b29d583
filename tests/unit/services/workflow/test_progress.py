"""Unit tests for ProgressReporter."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.models.activity import ActivityType
from app.models.content_item import ContentStatus
from app.services.workflow.progress import ProgressReporter

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def activity_log() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def reporter(activity_log) -> ProgressReporter:
    return ProgressReporter(activity_log=activity_log, clock=lambda: NOW)


class TestProgressReporter:
    """Tests for ProgressReporter."""

    @pytest.mark.unit
    def test_unknown_run_has_no_progress(self, reporter):
        assert reporter.get_progress("nope") is None
        assert reporter.history("nope") == []

    @pytest.mark.asyncio
    async def test_history_is_append_only(self, reporter):
        await reporter.report("run-1", "outline", 10, "Generating outline")
        await reporter.report("run-1", "script", 20, "Writing script")
        await reporter.report("run-1", "outline", 12, "Outline retried")

        history = reporter.history("run-1")

        assert [record.stage for record in history] == ["outline", "script", "outline"]
        assert [record.percent for record in history] == [10, 20, 12]

    @pytest.mark.asyncio
    async def test_snapshot_reflects_last_record(self, reporter):
        await reporter.report("run-1", "outline", 10, "Generating outline")
        await reporter.report("run-1", "script", 20, "Writing script")

        snapshot = reporter.get_progress("run-1")

        assert snapshot.stage == "script"
        assert snapshot.percent == 20
        assert snapshot.updated_at == NOW
        assert snapshot.is_finished is False

    @pytest.mark.asyncio
    async def test_mark_terminal(self, reporter):
        await reporter.report("run-1", "rendering", 85, "Rendering")

        reporter.mark_terminal("run-1", ContentStatus.ERROR, "renderer crashed")
        snapshot = reporter.get_progress("run-1")

        assert snapshot.is_finished is True
        assert snapshot.terminal_status == "error"
        assert snapshot.error == "renderer crashed"
        assert snapshot.to_dict()["updated_at"] == NOW.isoformat()

    @pytest.mark.asyncio
    async def test_listener_receives_records(self, reporter):
        listener = MagicMock()
        reporter.on_progress("run-1", listener)

        record = await reporter.report("run-1", "outline", 10, "Generating outline")

        listener.assert_called_once_with(record)

    @pytest.mark.asyncio
    async def test_listener_replaced_and_removed(self, reporter):
        first, second = MagicMock(), MagicMock()
        reporter.on_progress("run-1", first)
        reporter.on_progress("run-1", second)

        await reporter.report("run-1", "outline", 10, "Generating outline")
        reporter.off_progress("run-1")
        await reporter.report("run-1", "script", 20, "Writing script")

        first.assert_not_called()
        second.assert_called_once()

    @pytest.mark.asyncio
    async def test_listener_errors_do_not_break_reporting(self, reporter):
        reporter.on_progress("run-1", MagicMock(side_effect=RuntimeError("socket closed")))

        await reporter.report("run-1", "outline", 10, "Generating outline")

        assert len(reporter.history("run-1")) == 1

    @pytest.mark.asyncio
    async def test_records_mirrored_to_activity_log(self, reporter, activity_log):
        await reporter.report("run-1", "outline", 10, "Generating outline")

        entry = activity_log.await_args.args[0]
        assert entry.type == ActivityType.VIDEO
        assert entry.entity_id == "run-1"
        assert entry.details == {"stage": "outline", "percent": 10}

    @pytest.mark.asyncio
    async def test_activity_log_failure_is_logged_only(self, reporter, activity_log):
        activity_log.side_effect = RuntimeError("database down")

        record = await reporter.report("run-1", "outline", 10, "Generating outline")

        assert record.stage == "outline"


class TestRetention:
    """Finished runs are evicted beyond the retention cap."""

    @pytest.mark.unit
    def test_rejects_zero_retention(self):
        with pytest.raises(ValueError):
            ProgressReporter(max_finished_runs=0)

    @pytest.mark.asyncio
    async def test_oldest_finished_runs_evicted(self):
        reporter = ProgressReporter(clock=lambda: NOW, max_finished_runs=2)
        for run_id in ("run-1", "run-2", "run-3"):
            await reporter.report(run_id, "complete", 100, "Done")
            reporter.mark_terminal(run_id, ContentStatus.RENDERED)

        assert reporter.get_progress("run-1") is None
        assert reporter.history("run-1") == []
        assert reporter.get_progress("run-2").is_finished is True
        assert reporter.get_progress("run-3").is_finished is True

    @pytest.mark.asyncio
    async def test_active_runs_never_evicted(self):
        reporter = ProgressReporter(clock=lambda: NOW, max_finished_runs=1)
        await reporter.report("active", "rendering", 85, "Rendering")
        for run_id in ("run-1", "run-2"):
            await reporter.report(run_id, "complete", 100, "Done")
            reporter.mark_terminal(run_id, ContentStatus.RENDERED)

        assert reporter.get_progress("active").stage == "rendering"
        assert reporter.get_progress("run-1") is None

    @pytest.mark.asyncio
    async def test_listener_dropped_when_run_finishes(self):
        reporter = ProgressReporter(clock=lambda: NOW)
        listener = MagicMock()
        reporter.on_progress("run-1", listener)

        reporter.mark_terminal("run-1", ContentStatus.ERROR, "cancelled")
        await reporter.report("run-1", "complete", 100, "Late record")

        listener.assert_not_called()
