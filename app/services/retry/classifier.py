"""Error classification and backoff computation.

Decides whether a collaborator failure is worth retrying and how long to
wait before the next attempt. Classification uses the typed ErrorKind
reported by adapters and falls back to matching the error text against
per-service signatures.
"""

import enum

from app.config.retry import RetryPolicy, RetryPolicyConfig
from app.core.exceptions import CollaboratorError, ConfigNotFoundError, ErrorKind


class ErrorClass(str, enum.Enum):
    """Retry classification of an error."""

    RETRYABLE = "retryable"
    NON_RETRYABLE = "non_retryable"
    UNCLASSIFIED = "unclassified"


class ErrorClassifier:
    """Classifies errors against per-service retry policies.

    Non-retryable matches take precedence over retryable ones. Errors that
    match nothing are treated as retryable.

    Example:
        >>> classifier = ErrorClassifier(default_retry_config())
        >>> classifier.is_retryable(TimeoutError("timeout"), "text_generation")
        True
        >>> classifier.delay_for(1, "text_generation")
        2.0
    """

    def __init__(self, config: RetryPolicyConfig) -> None:
        """Initialize classifier.

        Args:
            config: Retry policies for every collaborator service
        """
        self.config = config

    def policy_for(self, service: str) -> RetryPolicy:
        """Get the retry policy for a service.

        Args:
            service: Collaborator service name

        Returns:
            RetryPolicy for the service

        Raises:
            ConfigNotFoundError: If no policy is configured for the service
        """
        policy = self.config.policies.get(service)
        if policy is None:
            raise ConfigNotFoundError(f"retry_policies.{service}")
        return policy

    def classify(self, error: BaseException, service: str) -> ErrorClass:
        """Classify an error for a service.

        Args:
            error: Raised error
            service: Collaborator service name

        Returns:
            ErrorClass of the error
        """
        policy = self.policy_for(service)
        kind = error.kind if isinstance(error, CollaboratorError) else None
        text = str(error).lower()

        if self._matches(kind, text, policy.non_retryable_kinds, policy.non_retryable_errors):
            return ErrorClass.NON_RETRYABLE
        if self._matches(kind, text, policy.retryable_kinds, policy.retryable_errors):
            return ErrorClass.RETRYABLE
        return ErrorClass.UNCLASSIFIED

    def is_retryable(self, error: BaseException, service: str) -> bool:
        """Check whether an error is worth retrying.

        Args:
            error: Raised error
            service: Collaborator service name

        Returns:
            False only for errors classified as non-retryable
        """
        return self.classify(error, service) != ErrorClass.NON_RETRYABLE

    def delay_for(self, attempt: int, service: str) -> float:
        """Compute the backoff delay before the next attempt.

        Args:
            attempt: Zero-based index of the attempt that just failed
            service: Collaborator service name

        Returns:
            Delay in seconds, capped at the policy's max_delay
        """
        policy = self.policy_for(service)
        delay = policy.base_delay * (policy.backoff_multiplier**attempt)
        return min(delay, policy.max_delay)

    @staticmethod
    def _matches(
        kind: ErrorKind | None,
        text: str,
        kinds: list[ErrorKind],
        signatures: list[str],
    ) -> bool:
        if kind is not None and kind in kinds:
            return True
        return any(signature in text for signature in signatures)


__all__ = [
    "ErrorClass",
    "ErrorClassifier",
]
