"""Generic State Machine for model status transitions.

This module provides a reusable state machine pattern for managing
status transitions of content items and scheduled jobs.

Example:
    # Define transitions
    JOB_TRANSITIONS: TransitionMap[JobStatus] = {
        JobStatus.PENDING: [JobStatus.RUNNING],
        JobStatus.RUNNING: [JobStatus.COMPLETED, JobStatus.FAILED],
        JobStatus.FAILED: [JobStatus.PENDING],  # Allow retry
        JobStatus.COMPLETED: [],
    }

    # Create state machine
    sm = StateMachine(JobStatus.PENDING, JOB_TRANSITIONS)

    # Check and perform transitions
    if sm.can_transition(JobStatus.RUNNING):
        sm.transition(JobStatus.RUNNING)

    # Or use transition_to for simpler API
    sm.transition_to(JobStatus.COMPLETED)
"""

from enum import Enum
from typing import Generic, TypeVar

from app.core.exceptions import ReelForgeError

T = TypeVar("T", bound=str | Enum)

# Type alias for transition maps
TransitionMap = dict[T, list[T]]


class InvalidTransitionError(ReelForgeError):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, current: T, target: T, allowed: list[T] | None = None):
        self.current = current
        self.target = target
        self.allowed = allowed or []
        self.error_code = "INVALID_TRANSITION"
        allowed_str = ", ".join(str(s) for s in self.allowed) if self.allowed else "none"
        super().__init__(
            message=f"Invalid transition from '{current}' to '{target}'. "
            f"Allowed transitions: {allowed_str}",
            context={
                "current": str(current),
                "target": str(target),
                "allowed": [str(s) for s in self.allowed],
            },
        )


class StateMachine(Generic[T]):
    """Generic state machine for status transitions.

    Provides a type-safe way to manage status transitions with
    explicit allowed transitions defined upfront.

    Attributes:
        current: Current state
        transitions: Map of allowed transitions from each state
    """

    def __init__(self, initial: T, transitions: TransitionMap[T]):
        """Initialize state machine.

        Args:
            initial: Initial state
            transitions: Map of state -> list of allowed target states
        """
        self._current = initial
        self._transitions = transitions

    @property
    def current(self) -> T:
        """Get current state."""
        return self._current

    @property
    def allowed_transitions(self) -> list[T]:
        """Get list of states we can transition to from current state."""
        return self._transitions.get(self._current, [])

    @property
    def is_terminal(self) -> bool:
        """Whether no further transitions are possible."""
        return not self.allowed_transitions

    def can_transition(self, target: T) -> bool:
        """Check if transition to target state is allowed.

        Args:
            target: Target state to check

        Returns:
            True if transition is allowed, False otherwise
        """
        return target in self.allowed_transitions

    def transition(self, target: T) -> None:
        """Perform transition to target state.

        Args:
            target: Target state

        Raises:
            InvalidTransitionError: If transition is not allowed
        """
        if not self.can_transition(target):
            raise InvalidTransitionError(
                current=self._current,
                target=target,
                allowed=self.allowed_transitions,
            )
        self._current = target

    def transition_to(self, target: T) -> T:
        """Perform transition and return new state.

        Args:
            target: Target state

        Returns:
            The new current state (same as target)

        Raises:
            InvalidTransitionError: If transition is not allowed
        """
        self.transition(target)
        return self._current

    def reset(self, state: T) -> None:
        """Reset state machine to a specific state (bypass transition rules).

        Use with caution - this bypasses transition validation.

        Args:
            state: State to reset to
        """
        self._current = state

    def __str__(self) -> str:
        return f"StateMachine(current={self._current})"

    def __repr__(self) -> str:
        return f"StateMachine(current={self._current!r}, allowed={self.allowed_transitions!r})"


# ============================================
# Predefined Transition Maps
# ============================================


def get_content_transitions() -> TransitionMap:
    """Get transition map for ContentStatus."""
    from app.models.content_item import ContentStatus

    return {
        ContentStatus.QUEUED: [ContentStatus.GENERATING, ContentStatus.ERROR],
        ContentStatus.GENERATING: [ContentStatus.RENDERING, ContentStatus.ERROR],
        ContentStatus.RENDERING: [
            ContentStatus.UPLOADING,
            ContentStatus.RENDERED,
            ContentStatus.TEST_COMPLETE,
            ContentStatus.ERROR,
        ],
        ContentStatus.UPLOADING: [ContentStatus.PUBLISHED, ContentStatus.ERROR],
        ContentStatus.PUBLISHED: [],  # Terminal state
        ContentStatus.RENDERED: [],  # Terminal state
        ContentStatus.TEST_COMPLETE: [],  # Terminal state
        ContentStatus.ERROR: [],  # Terminal state
    }


def get_job_transitions() -> TransitionMap:
    """Get transition map for JobStatus."""
    from app.models.job import JobStatus

    return {
        JobStatus.PENDING: [JobStatus.RUNNING, JobStatus.FAILED],
        JobStatus.RUNNING: [JobStatus.COMPLETED, JobStatus.FAILED],
        JobStatus.FAILED: [JobStatus.PENDING],  # Allow retry
        JobStatus.COMPLETED: [],  # Terminal state
    }


# ============================================
# Factory Functions
# ============================================


def create_content_state_machine(initial_status: str | None = None) -> StateMachine:
    """Create a state machine for ContentItem status.

    Args:
        initial_status: Initial status (default: QUEUED)

    Returns:
        Configured StateMachine for ContentItem
    """
    from app.models.content_item import ContentStatus

    initial = ContentStatus(initial_status) if initial_status else ContentStatus.QUEUED
    return StateMachine(initial, get_content_transitions())


def create_job_state_machine(initial_status: str | None = None) -> StateMachine:
    """Create a state machine for ScheduledJob status.

    Args:
        initial_status: Initial status (default: PENDING)

    Returns:
        Configured StateMachine for ScheduledJob
    """
    from app.models.job import JobStatus

    initial = JobStatus(initial_status) if initial_status else JobStatus.PENDING
    return StateMachine(initial, get_job_transitions())
