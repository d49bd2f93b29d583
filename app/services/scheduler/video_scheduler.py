"""Video scheduler service.

Materializes cadence-based jobs for active channels and dispatches due jobs
into the run launcher. Job status changes happen only inside dispatches
started by ``tick``, which is serialized by a lock. Stopping the scheduler
stops the ticker; dispatches already in flight run to completion unless the
scheduler is shut down.
"""

import asyncio
import random
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

from app.config.channel import Channel, ScheduleCadence
from app.core.exceptions import SchedulerError
from app.core.logging import get_logger
from app.core.state_machine import StateMachine, create_job_state_machine
from app.core.types import Clock, Sleeper
from app.models.activity import ActivityLevel, ActivityLogEntry, ActivityType
from app.models.content_item import ContentItem
from app.models.job import JobStatus, ScheduledJob
from app.services.scheduler.job_store import JobStore
from app.services.workflow.collaborators import ContentRepository
from app.services.workflow.runner import RunLauncher

logger = get_logger(__name__)

# Delay from "now" to the first job of a batch, per cadence
CADENCE_DELAYS = {
    ScheduleCadence.DAILY: timedelta(days=1),
    ScheduleCadence.WEEKLY: timedelta(days=7),
    ScheduleCadence.CUSTOM: timedelta(days=1),
}


class VideoScheduler:
    """Cadence scheduler for pipeline runs.

    Attributes:
        job_store: Scheduled job storage
        repository: Content repository (channels, templates, content items)
        launcher: Run launcher used to execute dispatched jobs
        tick_seconds: Seconds between ticks
        materialize_seconds: Seconds between cadence materialization passes
        job_spacing: Time between jobs of one batch
        retry_delay: Time before a failed job is retried
        max_retries: Failed dispatches allowed per job

    Example:
        >>> scheduler = VideoScheduler(InMemoryJobStore(), repository, launcher)
        >>> await scheduler.start()
        >>> jobs = await scheduler.schedule_channel_videos(channel)
        >>> await scheduler.stop()
    """

    def __init__(
        self,
        job_store: JobStore,
        repository: ContentRepository,
        launcher: RunLauncher,
        tick_seconds: float = 60.0,
        materialize_seconds: float = 3600.0,
        job_spacing_minutes: int = 30,
        retry_delay_minutes: int = 5,
        max_retries: int = 3,
        clock: Clock | None = None,
        rng: random.Random | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        """Initialize scheduler.

        Args:
            job_store: Scheduled job storage
            repository: Content repository
            launcher: Run launcher
            tick_seconds: Seconds between ticks
            materialize_seconds: Seconds between materialization passes
            job_spacing_minutes: Minutes between jobs of one batch
            retry_delay_minutes: Minutes before a failed job is retried
            max_retries: Failed dispatches allowed per job
            clock: Wall clock, UTC now by default
            rng: Random source for batch sizes
            sleep: Async sleep used by the tick loop
        """
        self.job_store = job_store
        self.repository = repository
        self.launcher = launcher
        self.tick_seconds = tick_seconds
        self.materialize_seconds = materialize_seconds
        self.job_spacing = timedelta(minutes=job_spacing_minutes)
        self.retry_delay = timedelta(minutes=retry_delay_minutes)
        self.max_retries = max_retries
        self._clock = clock or (lambda: datetime.now(tz=UTC))
        self._rng = rng or random.Random()
        self._sleep = sleep

        self._lock = asyncio.Lock()
        self._task: asyncio.Task[None] | None = None
        self._dispatches: set[asyncio.Task[bool]] = set()
        self._last_materialized: datetime | None = None

        logger.info(
            "VideoScheduler initialized",
            tick_seconds=tick_seconds,
            materialize_seconds=materialize_seconds,
            job_spacing_minutes=job_spacing_minutes,
            max_retries=max_retries,
        )

    @property
    def is_running(self) -> bool:
        """Whether the tick loop is active."""
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the tick loop; the first tick runs immediately. Idempotent."""
        if self.is_running:
            return

        self._task = asyncio.create_task(self._loop(), name="video-scheduler")
        logger.info("Video scheduler started", tick_seconds=self.tick_seconds)

    async def stop(self) -> None:
        """Cancel the tick loop and wait for it. Idempotent.

        In-flight dispatches are not interrupted.
        """
        task = self._task
        self._task = None
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Video scheduler stopped", in_flight=len(self._dispatches))

    async def shutdown(self) -> None:
        """Stop the ticker and cancel in-flight dispatches.

        Interrupted jobs are put back to ``pending`` and their content items
        end in ``error``.
        """
        await self.stop()
        tasks = list(self._dispatches)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Video scheduler shut down", cancelled=len(tasks))

    async def _loop(self) -> None:
        while True:
            try:
                await self.tick()
            except Exception as e:
                logger.error("Scheduler tick failed", error=str(e), exc_info=True)
            await self._sleep(self.tick_seconds)

    async def tick(self) -> int:
        """Materialize cadence jobs and dispatch every due job.

        Returns:
            Number of jobs dispatched
        """
        async with self._lock:
            now = self._clock()

            if (
                self._last_materialized is None
                or (now - self._last_materialized).total_seconds() >= self.materialize_seconds
            ):
                await self._materialize()
                self._last_materialized = now

            due = await self.job_store.due(now)
            if not due:
                return 0

            logger.info("Dispatching due jobs", count=len(due))
            tasks = [
                asyncio.create_task(self._dispatch(job), name=f"job-{job.id}") for job in due
            ]
            for task in tasks:
                self._dispatches.add(task)
                task.add_done_callback(self._dispatches.discard)
            # Cancelling the tick leaves the dispatches running.
            results = await asyncio.shield(asyncio.gather(*tasks, return_exceptions=True))
            for job, result in zip(due, results, strict=True):
                if isinstance(result, BaseException):
                    logger.error("Job dispatch crashed", job_id=job.id, error=str(result))
            return len(due)

    async def _materialize(self) -> None:
        """Create jobs for active channels without pending or running jobs."""
        jobs = await self.job_store.list()
        busy = {
            job.channel_id
            for job in jobs
            if job.status in (JobStatus.PENDING, JobStatus.RUNNING)
        }
        for channel in await self.repository.list_channels():
            if channel.is_schedulable and channel.id not in busy:
                await self.schedule_channel_videos(channel)

    async def schedule_channel_videos(self, channel: Channel) -> list[ScheduledJob]:
        """Create the next batch of jobs for a channel.

        The batch size is uniform in ``[videos_min, videos_max]``. The first
        job is placed one cadence period from now and the rest follow at
        ``job_spacing`` intervals; templates are assigned round-robin.

        Args:
            channel: Channel to schedule

        Returns:
            Created jobs (empty for inactive channels or without templates)
        """
        if not channel.is_schedulable:
            logger.debug("Channel not schedulable", channel_id=channel.id)
            return []

        templates = await self.repository.list_templates()
        if not templates:
            logger.warning("No templates available for channel", channel_id=channel.id)
            return []

        count = self._rng.randint(channel.videos_min, channel.videos_max)
        first = self._clock() + CADENCE_DELAYS[channel.schedule]

        jobs = []
        for i in range(count):
            template = templates[i % len(templates)]
            job = ScheduledJob(
                channel_id=channel.id,
                template_id=template.id,
                scheduled_at=first + self.job_spacing * i,
                max_retries=self.max_retries,
            )
            await self.job_store.add(job)
            jobs.append(job)

        logger.info(
            "Channel videos scheduled",
            channel_id=channel.id,
            count=count,
            first_at=first.isoformat(),
            cadence=channel.schedule.value,
        )
        await self._log_activity(
            channel.id,
            ActivityLevel.INFO,
            f"Scheduled {count} videos for channel {channel.name}",
            job_ids=[job.id for job in jobs],
        )
        return jobs

    async def _dispatch(self, job: ScheduledJob) -> bool:
        """Run one due job and record its outcome.

        Returns:
            True if the run succeeded
        """
        machine = create_job_state_machine(job.status.value)
        machine.transition(JobStatus.RUNNING)
        job.status = JobStatus.RUNNING
        await self.job_store.save(job)

        try:
            channel = await self.repository.get_channel(job.channel_id)
            template = await self.repository.get_template(job.template_id)
            if channel is None or template is None:
                raise SchedulerError("Channel or template not found", job_id=job.id)

            item = await self.repository.create_content_item(
                ContentItem(id=str(uuid.uuid4()), channel_id=channel.id, template_id=template.id)
            )
            job.content_item_id = item.id
            await self.job_store.save(job)

            logger.info(
                "Executing scheduled job",
                job_id=job.id,
                channel_id=channel.id,
                template_id=template.id,
                run_id=item.id,
            )
            await self.launcher.run(item.id, channel, template, dry_run=False)
        except asyncio.CancelledError:
            await self._requeue(job, machine)
            raise
        except Exception as e:
            await self._record_failure(job, machine, e)
            return False

        machine.transition(JobStatus.COMPLETED)
        await self.job_store.remove(job.id)
        try:
            await self.repository.mark_channel_generated(job.channel_id, self._clock())
        except Exception as e:
            logger.error("Failed to stamp channel", channel_id=job.channel_id, error=str(e))

        logger.info("Scheduled job completed", job_id=job.id, run_id=job.content_item_id)
        await self._log_activity(
            job.channel_id,
            ActivityLevel.SUCCESS,
            "Scheduled video generated",
            job_id=job.id,
            content_item_id=job.content_item_id,
        )
        return True

    async def _requeue(self, job: ScheduledJob, machine: StateMachine) -> None:
        machine.transition(JobStatus.FAILED)
        machine.transition(JobStatus.PENDING)
        job.status = JobStatus.PENDING
        job.last_error = "Dispatch cancelled"
        await self.job_store.save(job)
        logger.warning(
            "Scheduled job interrupted, requeued",
            job_id=job.id,
            run_id=job.content_item_id,
            retry_count=job.retry_count,
        )
        await self._log_activity(
            job.channel_id,
            ActivityLevel.WARNING,
            "Scheduled job interrupted, requeued",
            job_id=job.id,
            content_item_id=job.content_item_id,
        )

    async def _record_failure(
        self, job: ScheduledJob, machine: StateMachine, error: Exception
    ) -> None:
        machine.transition(JobStatus.FAILED)
        job.status = JobStatus.FAILED
        job.retry_count += 1
        job.last_error = str(error)

        if job.retry_count < job.max_retries:
            machine.transition(JobStatus.PENDING)
            job.status = JobStatus.PENDING
            job.scheduled_at = self._clock() + self.retry_delay
            logger.warning(
                "Scheduled job failed, retrying",
                job_id=job.id,
                retry_count=job.retry_count,
                max_retries=job.max_retries,
                retry_at=job.scheduled_at.isoformat(),
                error=job.last_error,
            )
        else:
            logger.error(
                "Scheduled job failed permanently",
                job_id=job.id,
                retry_count=job.retry_count,
                error=job.last_error,
            )

        await self.job_store.save(job)
        await self._log_activity(
            job.channel_id,
            ActivityLevel.ERROR,
            f"Scheduled job failed: {error}",
            job_id=job.id,
            retry_count=job.retry_count,
            status=job.status.value,
        )

    async def list_jobs(self, channel_id: str | None = None) -> list[ScheduledJob]:
        """List scheduled jobs, optionally for one channel."""
        return await self.job_store.list(channel_id)

    async def get_job(self, job_id: str) -> ScheduledJob | None:
        """Get a scheduled job by id."""
        return await self.job_store.get(job_id)

    async def cancel_job(self, job_id: str) -> bool:
        """Remove a job in any state.

        An in-flight run is not interrupted; its outcome is simply not
        recorded.

        Returns:
            True if the job existed
        """
        job = await self.job_store.get(job_id)
        removed = await self.job_store.remove(job_id)
        if removed:
            logger.info("Scheduled job cancelled", job_id=job_id)
            await self._log_activity(
                job.channel_id if job else job_id,
                ActivityLevel.INFO,
                "Cancelled scheduled job",
                job_id=job_id,
                status=job.status.value if job else None,
            )
        return removed

    async def _log_activity(
        self, channel_id: str, level: ActivityLevel, message: str, **details: Any
    ) -> None:
        entry = ActivityLogEntry(
            type=ActivityType.SCHEDULER,
            entity_id=channel_id,
            level=level,
            message=message,
            details=details,
        )
        try:
            await self.repository.add_activity(entry)
        except Exception as e:
            logger.error("Failed to write activity log", channel_id=channel_id, error=str(e))


__all__ = [
    "CADENCE_DELAYS",
    "VideoScheduler",
]
