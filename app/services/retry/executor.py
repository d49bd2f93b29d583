"""Stage executor: retry, fallback and quality-gate wrappers.

Every unit of collaborator work in a pipeline run goes through one of the
StageExecutor methods. The executor owns the retry loop; collaborator
adapters only report failures with a typed ErrorKind.
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from app.core.exceptions import QualityGateError
from app.core.logging import get_logger
from app.core.types import ActivityRecorder, Sleeper
from app.models.activity import ActivityLevel, ActivityLogEntry, ActivityType
from app.services.retry.classifier import ErrorClass, ErrorClassifier
from app.services.retry.limiter import CollaboratorGate

logger = get_logger(__name__)

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]
QualityCheck = Callable[[T], bool | Awaitable[bool]]


@dataclass(frozen=True)
class StageContext:
    """Identifies the unit of work in logs and activity entries.

    Attributes:
        run_id: Content item id of the run
        stage: Stage name (e.g. "outline", "chapter_2_image_1")
        channel_id: Channel of the run
        template_id: Template of the run
        dry_run: Whether the run is a dry run
    """

    run_id: str
    stage: str
    channel_id: str | None = None
    template_id: str | None = None
    dry_run: bool = False

    def for_stage(self, stage: str) -> "StageContext":
        """Return a copy for another stage of the same run."""
        return StageContext(
            run_id=self.run_id,
            stage=stage,
            channel_id=self.channel_id,
            template_id=self.template_id,
            dry_run=self.dry_run,
        )

    def log_fields(self) -> dict[str, Any]:
        """Structured logging fields."""
        return {"run_id": self.run_id, "stage": self.stage}


class StageExecutor:
    """Runs collaborator operations with retry, fallback and quality gates.

    Attributes:
        classifier: Error classifier holding per-service retry policies
        gate: Optional per-service concurrency and rate limits
        quality_attempts: Default rounds for quality-gated stages
        quality_retry_delay: Pause between quality-gate rounds (seconds)

    Example:
        >>> executor = StageExecutor(ErrorClassifier(default_retry_config()))
        >>> outline = await executor.run_with_quality_gate(
        ...     lambda: text.generate(prompt, params),
        ...     lambda raw: parse_outline(raw) is not None,
        ...     StageContext(run_id="v1", stage="outline"),
        ...     "text_generation",
        ... )
    """

    def __init__(
        self,
        classifier: ErrorClassifier,
        gate: CollaboratorGate | None = None,
        activity_log: ActivityRecorder | None = None,
        sleep: Sleeper = asyncio.sleep,
        quality_attempts: int = 3,
        quality_retry_delay: float = 1.0,
    ) -> None:
        """Initialize executor.

        Args:
            classifier: Error classifier
            gate: Collaborator gate, None to call collaborators unthrottled
            activity_log: Optional activity log writer for failures
            sleep: Async sleep used for backoff and quality pauses
            quality_attempts: Default rounds for quality-gated stages
            quality_retry_delay: Pause between quality-gate rounds
        """
        self.classifier = classifier
        self.gate = gate
        self.quality_attempts = quality_attempts
        self.quality_retry_delay = quality_retry_delay
        self._activity_log = activity_log
        self._sleep = sleep

    async def run_with_retry(
        self,
        operation: Operation[T],
        context: StageContext,
        service: str,
    ) -> T:
        """Run an operation, retrying retryable failures with backoff.

        The operation is invoked at most ``max_retries + 1`` times. A
        non-retryable error stops the loop at once.

        Args:
            operation: Zero-argument coroutine factory
            context: Stage context for logging
            service: Collaborator service name (selects the policy)

        Returns:
            Result of the first successful invocation

        Raises:
            Exception: The last error raised by the operation
        """
        policy = self.classifier.policy_for(service)
        max_attempts = policy.max_retries + 1

        attempt = 0
        while True:
            try:
                return await self._invoke(operation, service)
            except Exception as e:
                error_class = self.classifier.classify(e, service)
                will_retry = error_class != ErrorClass.NON_RETRYABLE and attempt + 1 < max_attempts

                logger.warning(
                    "Stage attempt failed",
                    **context.log_fields(),
                    service=service,
                    attempt=attempt + 1,
                    max_attempts=max_attempts,
                    error=str(e),
                    error_type=type(e).__name__,
                    classification=error_class.value,
                    will_retry=will_retry,
                )
                await self._record(
                    context,
                    ActivityLevel.WARNING if will_retry else ActivityLevel.ERROR,
                    f"{context.stage} attempt {attempt + 1}/{max_attempts} failed: {e}",
                    service=service,
                    attempt=attempt + 1,
                    classification=error_class.value,
                )

                if not will_retry:
                    raise

                delay = self.classifier.delay_for(attempt, service)
                logger.info(
                    "Retrying stage",
                    **context.log_fields(),
                    service=service,
                    next_attempt=attempt + 2,
                    delay=delay,
                )
                await self._sleep(delay)
                attempt += 1

    async def run_with_fallback(
        self,
        primary: Operation[T],
        fallback: Operation[T],
        context: StageContext,
        service: str,
    ) -> T:
        """Run primary with retries, then fallback with retries.

        Args:
            primary: Preferred operation
            fallback: Operation used when primary finally fails
            context: Stage context for logging
            service: Collaborator service name

        Returns:
            Result of primary, or of fallback if primary failed

        Raises:
            Exception: The fallback's last error if both fail
        """
        try:
            return await self.run_with_retry(primary, context, service)
        except Exception as primary_error:
            logger.warning(
                "Primary operation failed, trying fallback",
                **context.log_fields(),
                service=service,
                error=str(primary_error),
            )
            await self._record(
                context,
                ActivityLevel.WARNING,
                f"{context.stage} primary failed, using fallback: {primary_error}",
                service=service,
            )

        try:
            return await self.run_with_retry(fallback, context, service)
        except Exception as fallback_error:
            logger.error(
                "Primary and fallback operations failed",
                **context.log_fields(),
                service=service,
                error=str(fallback_error),
            )
            await self._record(
                context,
                ActivityLevel.ERROR,
                f"{context.stage} fallback failed: {fallback_error}",
                service=service,
            )
            raise

    async def run_with_quality_gate(
        self,
        operation: Operation[T],
        is_acceptable: QualityCheck[T],
        context: StageContext,
        service: str,
        max_attempts: int | None = None,
    ) -> T:
        """Regenerate output until it passes an acceptability check.

        Each round applies the full retry contract to ``operation`` and then
        checks the result. A round whose retries are exhausted moves on to the
        next round; a non-retryable error propagates immediately.

        Args:
            operation: Zero-argument coroutine factory producing the output
            is_acceptable: Sync or async check on the output
            context: Stage context for logging
            service: Collaborator service name
            max_attempts: Rounds to perform (defaults to quality_attempts)

        Returns:
            First accepted output

        Raises:
            QualityGateError: If no round produced acceptable output
            Exception: A non-retryable error, or the last transport error
                when the last round failed to produce output
        """
        rounds = max_attempts or self.quality_attempts
        last_error: Exception | None = None

        for round_number in range(1, rounds + 1):
            try:
                result = await self.run_with_retry(operation, context, service)
            except Exception as e:
                if self.classifier.classify(e, service) == ErrorClass.NON_RETRYABLE:
                    raise
                last_error = e
                logger.warning(
                    "Quality gate round produced no output",
                    **context.log_fields(),
                    round=round_number,
                    max_rounds=rounds,
                    error=str(e),
                )
            else:
                last_error = None
                accepted = is_acceptable(result)
                if inspect.isawaitable(accepted):
                    accepted = await accepted
                if accepted:
                    if round_number > 1:
                        logger.info(
                            "Output accepted after regeneration",
                            **context.log_fields(),
                            round=round_number,
                        )
                    return result

                logger.warning(
                    "Output rejected by quality check",
                    **context.log_fields(),
                    round=round_number,
                    max_rounds=rounds,
                )
                await self._record(
                    context,
                    ActivityLevel.WARNING,
                    f"{context.stage} output rejected by quality check "
                    f"(round {round_number}/{rounds})",
                    service=service,
                    round=round_number,
                )

            if round_number < rounds and self.quality_retry_delay > 0:
                await self._sleep(self.quality_retry_delay)

        if last_error is not None:
            raise last_error
        raise QualityGateError(context.stage, rounds, context={"run_id": context.run_id})

    async def _invoke(self, operation: Operation[T], service: str) -> T:
        if self.gate is None:
            return await operation()
        async with self.gate.acquire(service):
            return await operation()

    async def _record(
        self,
        context: StageContext,
        level: ActivityLevel,
        message: str,
        **details: Any,
    ) -> None:
        if self._activity_log is None:
            return
        entry = ActivityLogEntry(
            type=ActivityType.VIDEO,
            entity_id=context.run_id,
            level=level,
            message=message,
            details={"stage": context.stage, **details},
        )
        try:
            await self._activity_log(entry)
        except Exception as e:
            logger.error(
                "Failed to write activity log",
                **context.log_fields(),
                error=str(e),
            )


__all__ = [
    "StageContext",
    "StageExecutor",
]
