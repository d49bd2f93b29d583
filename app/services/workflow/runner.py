"""Run launcher: bounded pool of pipeline runs.

Runs execute as asyncio tasks; at most ``max_concurrent_runs`` orchestrator
runs are in progress at once, whether they were started through the HTTP
surface (detached) or by the scheduler (awaited).
"""

import asyncio
from functools import partial

from app.config.channel import Channel
from app.config.template import ContentTemplate
from app.core.exceptions import PipelineError, RecordNotFoundError
from app.core.logging import get_logger
from app.models.content_item import ContentItem, ContentStatus
from app.services.workflow.collaborators import ContentRepository
from app.services.workflow.orchestrator import WorkflowOrchestrator
from app.services.workflow.progress import ProgressSnapshot

logger = get_logger(__name__)


class RunLauncher:
    """Starts pipeline runs with bounded concurrency.

    Attributes:
        orchestrator: Workflow orchestrator
        repository: Content repository
        max_concurrent_runs: Runs allowed to execute at once
    """

    def __init__(
        self,
        orchestrator: WorkflowOrchestrator,
        repository: ContentRepository,
        max_concurrent_runs: int = 2,
    ) -> None:
        """Initialize launcher.

        Args:
            orchestrator: Workflow orchestrator
            repository: Content repository
            max_concurrent_runs: Runs allowed to execute at once
        """
        if max_concurrent_runs < 1:
            raise ValueError("max_concurrent_runs must be at least 1")

        self.orchestrator = orchestrator
        self.repository = repository
        self.max_concurrent_runs = max_concurrent_runs
        self._semaphore = asyncio.Semaphore(max_concurrent_runs)
        self._tasks: dict[str, asyncio.Task[ContentItem]] = {}

        logger.info("RunLauncher initialized", max_concurrent_runs=max_concurrent_runs)

    async def start_run(
        self,
        content_item_id: str,
        channel_id: str,
        template: ContentTemplate,
        dry_run: bool = False,
    ) -> None:
        """Start a detached run and return immediately.

        Failures of the run itself are logged; the content item carries the
        error.

        Args:
            content_item_id: Queued content item for the run
            channel_id: Channel the run is for
            template: Content template
            dry_run: Produce everything but never publish

        Raises:
            PipelineError: If a run for the content item is already active
            RecordNotFoundError: If the channel or content item is unknown
        """
        if content_item_id in self._tasks:
            raise PipelineError("Run already active", run_id=content_item_id)

        channel = await self.repository.get_channel(channel_id)
        if channel is None:
            raise RecordNotFoundError("Channel", channel_id)
        if await self.repository.get_content_item(content_item_id) is None:
            raise RecordNotFoundError("ContentItem", content_item_id)

        task = asyncio.create_task(
            self.run(content_item_id, channel, template, dry_run),
            name=f"run-{content_item_id}",
        )
        self._tasks[content_item_id] = task
        task.add_done_callback(partial(self._on_done, content_item_id))

        logger.info(
            "Run started",
            run_id=content_item_id,
            channel_id=channel_id,
            template_id=template.id,
            dry_run=dry_run,
        )

    async def run(
        self,
        content_item_id: str,
        channel: Channel,
        template: ContentTemplate,
        dry_run: bool = False,
    ) -> ContentItem:
        """Run the workflow and wait for it, within the concurrency bound.

        Returns:
            Content item in its terminal status

        Raises:
            Exception: The run's failure (the item is already marked error)
            asyncio.CancelledError: If cancelled; a run still waiting for a
                slot has its item marked error here
        """
        try:
            await self._semaphore.acquire()
        except asyncio.CancelledError:
            await self._abandon(content_item_id)
            raise
        try:
            return await self.orchestrator.run(content_item_id, channel, template, dry_run)
        finally:
            self._semaphore.release()

    async def _abandon(self, content_item_id: str) -> None:
        item = await self.repository.get_content_item(content_item_id)
        if item is None or item.status != ContentStatus.QUEUED:
            return
        item.status = ContentStatus.ERROR
        item.error_message = "Run cancelled before it started"
        await self.repository.save_content_item(item)
        self.orchestrator.progress.mark_terminal(
            content_item_id, ContentStatus.ERROR.value, item.error_message
        )
        logger.warning("Queued run cancelled", run_id=content_item_id)

    def _on_done(self, run_id: str, task: "asyncio.Task[ContentItem]") -> None:
        self._tasks.pop(run_id, None)
        if task.cancelled():
            logger.warning("Run cancelled", run_id=run_id)
            return
        error = task.exception()
        if error is not None:
            logger.error("Detached run failed", run_id=run_id, error=str(error))

    def get_progress(self, run_id: str) -> ProgressSnapshot | None:
        """Latest progress of a run, None if unknown."""
        return self.orchestrator.progress.get_progress(run_id)

    def active_runs(self) -> list[str]:
        """Ids of detached runs still in progress."""
        return list(self._tasks)

    async def shutdown(self) -> None:
        """Cancel detached runs and wait for them to finish.

        Runs already in the workflow end with their item marked error; runs
        that never got a slot have their queued item marked error here.
        """
        runs = dict(self._tasks)
        tasks = list(runs.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        for run_id in runs:
            await self._abandon(run_id)
        logger.info("RunLauncher shut down", cancelled=len(tasks))


__all__ = ["RunLauncher"]
