"""Run progress reporting.

The ProgressReporter keeps an append-only history of progress records per
run, notifies at most one live listener per run and mirrors every record to
the activity log.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from app.core.logging import get_logger
from app.core.types import ActivityRecorder, Clock
from app.models.activity import ActivityLevel, ActivityLogEntry, ActivityType

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProgressRecord:
    """One progress update of a run."""

    run_id: str
    stage: str
    percent: float
    message: str
    timestamp: datetime


@dataclass(frozen=True)
class ProgressSnapshot:
    """Latest progress of a run.

    Attributes:
        run_id: Run identifier
        stage: Last reported stage
        percent: Last reported percent
        message: Last reported message
        updated_at: Time of the last record
        terminal_status: Final content status once the run has finished
        error: Failure message for runs that ended in error
    """

    run_id: str
    stage: str
    percent: float
    message: str
    updated_at: datetime
    terminal_status: str | None = None
    error: str | None = None

    @property
    def is_finished(self) -> bool:
        """Whether the run has reached a terminal status."""
        return self.terminal_status is not None

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses."""
        return {
            "run_id": self.run_id,
            "stage": self.stage,
            "percent": self.percent,
            "message": self.message,
            "updated_at": self.updated_at.isoformat(),
            "terminal_status": self.terminal_status,
            "error": self.error,
        }


ProgressListener = Callable[[ProgressRecord], None]


class ProgressReporter:
    """Records and broadcasts run progress.

    Percent values are not required to be monotonic. Only the most recent
    ``max_finished_runs`` finished runs are retained; older ones are evicted
    when another run finishes.

    Example:
        >>> reporter = ProgressReporter()
        >>> reporter.on_progress("v1", lambda record: print(record.percent))
        >>> await reporter.report("v1", "outline", 10, "Generating outline")
    """

    def __init__(
        self,
        activity_log: ActivityRecorder | None = None,
        clock: Clock | None = None,
        max_finished_runs: int = 200,
    ) -> None:
        """Initialize reporter.

        Args:
            activity_log: Optional activity log writer
            clock: Wall clock, UTC now by default
            max_finished_runs: Finished runs kept in memory
        """
        if max_finished_runs < 1:
            raise ValueError("max_finished_runs must be at least 1")

        self.max_finished_runs = max_finished_runs
        self._activity_log = activity_log
        self._clock = clock or (lambda: datetime.now(tz=UTC))
        self._history: dict[str, list[ProgressRecord]] = {}
        self._listeners: dict[str, ProgressListener] = {}
        self._terminal: dict[str, tuple[str, str | None]] = {}

    async def report(self, run_id: str, stage: str, percent: float, message: str) -> ProgressRecord:
        """Record a progress update.

        Args:
            run_id: Run identifier
            stage: Stage name
            percent: Completion percent (0-100)
            message: Human-readable message

        Returns:
            The appended record
        """
        record = ProgressRecord(
            run_id=run_id,
            stage=stage,
            percent=percent,
            message=message,
            timestamp=self._clock(),
        )
        self._history.setdefault(run_id, []).append(record)

        listener = self._listeners.get(run_id)
        if listener is not None:
            try:
                listener(record)
            except Exception as e:
                logger.error("Progress listener failed", run_id=run_id, stage=stage, error=str(e))

        logger.info("Run progress", run_id=run_id, stage=stage, percent=percent, message=message)

        if self._activity_log is not None:
            entry = ActivityLogEntry(
                type=ActivityType.VIDEO,
                entity_id=run_id,
                level=ActivityLevel.INFO,
                message=message,
                details={"stage": stage, "percent": percent},
            )
            try:
                await self._activity_log(entry)
            except Exception as e:
                logger.error("Failed to write activity log", run_id=run_id, error=str(e))

        return record

    def on_progress(self, run_id: str, listener: ProgressListener) -> None:
        """Register the live listener for a run, replacing any previous one."""
        self._listeners[run_id] = listener

    def off_progress(self, run_id: str) -> None:
        """Remove the live listener for a run."""
        self._listeners.pop(run_id, None)

    def mark_terminal(self, run_id: str, status: str, error: str | None = None) -> None:
        """Record the final status of a run.

        Args:
            run_id: Run identifier
            status: Final content status value
            error: Failure message, if the run failed
        """
        # Re-inserting keeps _terminal ordered by finish time.
        self._terminal.pop(run_id, None)
        self._terminal[run_id] = (str(getattr(status, "value", status)), error)
        self._listeners.pop(run_id, None)

        while len(self._terminal) > self.max_finished_runs:
            evicted = next(iter(self._terminal))
            self._terminal.pop(evicted)
            self._history.pop(evicted, None)
            logger.debug("Progress evicted", run_id=evicted)

    def get_progress(self, run_id: str) -> ProgressSnapshot | None:
        """Get the latest progress of a run.

        Returns:
            Snapshot, or None if nothing was reported for the run
        """
        records = self._history.get(run_id)
        if not records:
            return None

        last = records[-1]
        terminal_status, error = self._terminal.get(run_id, (None, None))
        return ProgressSnapshot(
            run_id=run_id,
            stage=last.stage,
            percent=last.percent,
            message=last.message,
            updated_at=last.timestamp,
            terminal_status=terminal_status,
            error=error,
        )

    def history(self, run_id: str) -> list[ProgressRecord]:
        """All progress records of a run, oldest first."""
        return list(self._history.get(run_id, []))


__all__ = [
    "ProgressListener",
    "ProgressRecord",
    "ProgressReporter",
    "ProgressSnapshot",
]
