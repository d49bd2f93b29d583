"""Per-collaborator call limiting.

Each collaborator service gets a CollaboratorGate lane: a semaphore bounding
calls in flight and a token bucket bounding the call rate. All runs share
the same lanes, so pacing holds across concurrent runs.
"""

import asyncio
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

from app.config.retry import CollaboratorLimit, RetryPolicyConfig
from app.core.logging import get_logger
from app.core.types import Sleeper

logger = get_logger(__name__)


class TokenBucket:
    """Token bucket rate limiter.

    Tokens refill continuously at ``rate`` per second up to ``capacity``.
    Each acquire consumes one token, waiting for a refill if none is left.

    Attributes:
        rate: Tokens added per second
        capacity: Maximum tokens held
    """

    def __init__(
        self,
        rate: float,
        capacity: int,
        monotonic: Callable[[], float] = time.monotonic,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        """Initialize token bucket.

        Args:
            rate: Tokens added per second
            capacity: Bucket size (burst)
            monotonic: Monotonic clock in seconds
            sleep: Async sleep function
        """
        if rate <= 0:
            raise ValueError("rate must be positive")
        if capacity < 1:
            raise ValueError("capacity must be at least 1")

        self.rate = rate
        self.capacity = capacity
        self._monotonic = monotonic
        self._sleep = sleep
        self._tokens = float(capacity)
        self._updated = monotonic()
        self._lock = asyncio.Lock()

    @property
    def tokens(self) -> float:
        """Tokens currently available (after refill)."""
        self._refill()
        return self._tokens

    def _refill(self) -> None:
        now = self._monotonic()
        elapsed = max(0.0, now - self._updated)
        self._tokens = min(float(self.capacity), self._tokens + elapsed * self.rate)
        self._updated = now

    async def acquire(self) -> float:
        """Take one token, waiting if necessary.

        Returns:
            Seconds spent waiting
        """
        waited = 0.0
        async with self._lock:
            self._refill()
            while self._tokens < 1.0:
                wait = (1.0 - self._tokens) / self.rate
                await self._sleep(wait)
                waited += wait
                self._refill()
            self._tokens -= 1.0
        return waited


class _Lane:
    def __init__(self, limit: CollaboratorLimit, bucket: TokenBucket) -> None:
        self.limit = limit
        self.semaphore = asyncio.Semaphore(limit.max_concurrency)
        self.bucket = bucket
        self.active = 0


class CollaboratorGate:
    """Concurrency and rate limits for every collaborator service.

    Example:
        >>> gate = CollaboratorGate(default_retry_config())
        >>> async with gate.acquire("image_generation"):
        ...     image = await image_generator.generate(prompt, model)
    """

    def __init__(
        self,
        config: RetryPolicyConfig,
        monotonic: Callable[[], float] = time.monotonic,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        """Initialize gate.

        Args:
            config: Retry configuration holding per-service limits
            monotonic: Monotonic clock for token buckets
            sleep: Async sleep for token buckets
        """
        self.config = config
        self._monotonic = monotonic
        self._sleep = sleep
        self._lanes: dict[str, _Lane] = {}

    def _lane(self, service: str) -> _Lane:
        lane = self._lanes.get(service)
        if lane is None:
            limit = self.config.limit_for(service)
            bucket = TokenBucket(
                rate=limit.rate_per_second,
                capacity=limit.burst,
                monotonic=self._monotonic,
                sleep=self._sleep,
            )
            lane = _Lane(limit, bucket)
            self._lanes[service] = lane
        return lane

    @asynccontextmanager
    async def acquire(self, service: str) -> AsyncIterator[None]:
        """Hold a call slot for a service.

        Waits for a concurrency slot first, then for a rate token.

        Args:
            service: Collaborator service name
        """
        lane = self._lane(service)
        async with lane.semaphore:
            waited = await lane.bucket.acquire()
            if waited > 0:
                logger.debug("Rate limited collaborator call", service=service, waited=waited)
            lane.active += 1
            try:
                yield
            finally:
                lane.active -= 1

    def in_flight(self, service: str) -> int:
        """Number of calls currently holding a slot for a service."""
        lane = self._lanes.get(service)
        if lane is None:
            return 0
        return lane.active


__all__ = [
    "CollaboratorGate",
    "TokenBucket",
]
