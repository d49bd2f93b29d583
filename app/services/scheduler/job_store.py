"""Scheduled job storage.

The scheduler persists jobs through the JobStore interface. Two
implementations are provided: an in-memory store (single process, lost on
restart) and an async SQLAlchemy store backed by the ``scheduled_job`` table.
Stores hand out copies; callers persist changes with ``save``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from sqlalchemy import delete, select

from app.core.logging import get_logger
from app.core.types import SessionFactory
from app.models.job import JobStatus, ScheduledJob, ScheduledJobRecord

logger = get_logger(__name__)


@runtime_checkable
class JobStore(Protocol):
    """Storage interface for scheduled jobs."""

    async def add(self, job: ScheduledJob) -> None: ...

    async def get(self, job_id: str) -> ScheduledJob | None: ...

    async def save(self, job: ScheduledJob) -> None: ...

    async def remove(self, job_id: str) -> bool: ...

    async def list(self, channel_id: str | None = None) -> list[ScheduledJob]: ...

    async def due(self, now: datetime) -> list[ScheduledJob]: ...


class InMemoryJobStore:
    """Job store kept in process memory."""

    def __init__(self) -> None:
        self._jobs: dict[str, ScheduledJob] = {}

    async def add(self, job: ScheduledJob) -> None:
        """Add a new job."""
        self._jobs[job.id] = job.copy()

    async def get(self, job_id: str) -> ScheduledJob | None:
        """Get a job by id."""
        job = self._jobs.get(job_id)
        return job.copy() if job else None

    async def save(self, job: ScheduledJob) -> None:
        """Persist changes to a job.

        Saving a job that was removed in the meantime is a no-op, so a
        cancellation is never undone by an in-flight dispatch.
        """
        if job.id in self._jobs:
            self._jobs[job.id] = job.copy()

    async def remove(self, job_id: str) -> bool:
        """Remove a job, returning whether it existed."""
        return self._jobs.pop(job_id, None) is not None

    async def list(self, channel_id: str | None = None) -> list[ScheduledJob]:
        """List jobs ordered by scheduled time."""
        jobs = [
            job.copy()
            for job in self._jobs.values()
            if channel_id is None or job.channel_id == channel_id
        ]
        return sorted(jobs, key=lambda job: job.scheduled_at)

    async def due(self, now: datetime) -> list[ScheduledJob]:
        """List pending jobs scheduled at or before ``now``."""
        return [job for job in await self.list() if job.is_due(now)]


class SQLAlchemyJobStore:
    """Job store backed by the ``scheduled_job`` table.

    Example:
        >>> store = SQLAlchemyJobStore(create_session_factory())
        >>> await store.add(job)
    """

    def __init__(self, db_session_factory: SessionFactory) -> None:
        """Initialize store.

        Args:
            db_session_factory: Async session factory
        """
        self.db_session_factory = db_session_factory

    async def add(self, job: ScheduledJob) -> None:
        """Insert a new job."""
        async with self.db_session_factory() as session:
            session.add(ScheduledJobRecord.from_job(job))
            await session.commit()

    async def get(self, job_id: str) -> ScheduledJob | None:
        """Get a job by id."""
        async with self.db_session_factory() as session:
            record = await session.get(ScheduledJobRecord, job_id)
            return record.to_job() if record else None

    async def save(self, job: ScheduledJob) -> None:
        """Update an existing job; missing jobs are ignored."""
        async with self.db_session_factory() as session:
            record = await session.get(ScheduledJobRecord, job.id)
            if record is None:
                logger.debug("Job no longer stored, skipping save", job_id=job.id)
                return
            record.apply(job)
            await session.commit()

    async def remove(self, job_id: str) -> bool:
        """Delete a job, returning whether it existed."""
        async with self.db_session_factory() as session:
            result = await session.execute(
                delete(ScheduledJobRecord).where(ScheduledJobRecord.id == job_id)
            )
            await session.commit()
            return bool(result.rowcount)

    async def list(self, channel_id: str | None = None) -> list[ScheduledJob]:
        """List jobs ordered by scheduled time."""
        query = select(ScheduledJobRecord).order_by(ScheduledJobRecord.scheduled_at)
        if channel_id is not None:
            query = query.where(ScheduledJobRecord.channel_id == channel_id)
        async with self.db_session_factory() as session:
            result = await session.execute(query)
            return [record.to_job() for record in result.scalars().all()]

    async def due(self, now: datetime) -> list[ScheduledJob]:
        """List pending jobs scheduled at or before ``now``."""
        query = (
            select(ScheduledJobRecord)
            .where(
                ScheduledJobRecord.status == JobStatus.PENDING,
                ScheduledJobRecord.scheduled_at <= now,
            )
            .order_by(ScheduledJobRecord.scheduled_at)
        )
        async with self.db_session_factory() as session:
            result = await session.execute(query)
            return [record.to_job() for record in result.scalars().all()]


__all__ = [
    "InMemoryJobStore",
    "JobStore",
    "SQLAlchemyJobStore",
]
