"""Retry policy configuration models.

This module provides typed Pydantic configuration for collaborator retries:
- Per-service retry policy (backoff parameters, error classification lists)
- Per-service call limits (concurrency and rate)
- Built-in defaults used when no YAML file is present
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from app.config.validators import normalize_string_list, validate_min_max
from app.core.exceptions import ErrorKind

# Collaborator service names
TEXT_GENERATION = "text_generation"
IMAGE_GENERATION = "image_generation"
NARRATION = "narration"
BACKGROUND_MUSIC = "background_music"
RENDERING = "rendering"
PUBLISH = "publish"

TRANSIENT_KINDS: list[ErrorKind] = [
    ErrorKind.RATE_LIMITED,
    ErrorKind.TIMEOUT,
    ErrorKind.UNAVAILABLE,
    ErrorKind.NETWORK,
    ErrorKind.GENERATION_FAILED,
]

TERMINAL_KINDS: list[ErrorKind] = [
    ErrorKind.AUTHENTICATION,
    ErrorKind.QUOTA_EXHAUSTED,
    ErrorKind.CONTENT_POLICY,
    ErrorKind.INVALID_INPUT,
    ErrorKind.NOT_FOUND,
]


class RetryPolicy(BaseModel):
    """Retry policy for one collaborator service.

    Attributes:
        max_retries: Retries after the first attempt
        base_delay: Delay before the first retry in seconds
        max_delay: Upper bound for any delay in seconds
        backoff_multiplier: Growth factor per attempt
        retryable_errors: Error text signatures that are worth retrying
        non_retryable_errors: Error text signatures that must not be retried
        retryable_kinds: Typed error kinds that are worth retrying
        non_retryable_kinds: Typed error kinds that must not be retried
    """

    model_config = {"frozen": True}

    max_retries: int = Field(default=2, ge=0, le=10, description="Retries after first attempt")
    base_delay: float = Field(default=1.0, ge=0.0, description="First retry delay (seconds)")
    max_delay: float = Field(default=10.0, ge=0.0, description="Delay ceiling (seconds)")
    backoff_multiplier: float = Field(default=2.0, ge=1.0, le=10.0, description="Backoff factor")
    retryable_errors: list[str] = Field(default_factory=list)
    non_retryable_errors: list[str] = Field(default_factory=list)
    retryable_kinds: list[ErrorKind] = Field(default_factory=lambda: list(TRANSIENT_KINDS))
    non_retryable_kinds: list[ErrorKind] = Field(default_factory=lambda: list(TERMINAL_KINDS))

    @field_validator("retryable_errors", "non_retryable_errors", mode="before")
    @classmethod
    def normalize_signatures(cls, v: Any) -> list[str]:
        """Lowercase signatures so matching is case-insensitive."""
        return normalize_string_list(v)

    @model_validator(mode="after")
    def validate_delays(self) -> "RetryPolicy":
        """Ensure base_delay <= max_delay."""
        validate_min_max(self.base_delay, self.max_delay, "Retry delay")
        return self


class CollaboratorLimit(BaseModel):
    """Call limits for one collaborator service.

    Attributes:
        max_concurrency: Calls allowed in flight at once
        rate_per_second: Sustained call rate (token refill rate)
        burst: Token bucket capacity
    """

    model_config = {"frozen": True}

    max_concurrency: int = Field(default=4, ge=1, le=64)
    rate_per_second: float = Field(default=5.0, gt=0.0)
    burst: int = Field(default=5, ge=1, le=100)


class RetryPolicyConfig(BaseModel):
    """Complete retry configuration for all collaborator services.

    Attributes:
        policies: Retry policy per service name
        limits: Call limits per service name
        default_limit: Limit used for services without an explicit entry
    """

    policies: dict[str, RetryPolicy] = Field(default_factory=dict)
    limits: dict[str, CollaboratorLimit] = Field(default_factory=dict)
    default_limit: CollaboratorLimit = Field(default_factory=CollaboratorLimit)

    def limit_for(self, service: str) -> CollaboratorLimit:
        """Get call limit for a service.

        Args:
            service: Collaborator service name

        Returns:
            Configured limit or the default limit
        """
        return self.limits.get(service, self.default_limit)


def default_retry_config() -> RetryPolicyConfig:
    """Build the built-in retry configuration.

    Rendering gets the smallest retry budget, text generation the largest.

    Returns:
        RetryPolicyConfig with policies for every collaborator service
    """
    return RetryPolicyConfig(
        policies={
            TEXT_GENERATION: RetryPolicy(
                max_retries=3,
                base_delay=1.0,
                max_delay=10.0,
                backoff_multiplier=2.0,
                retryable_errors=[
                    "rate_limit_exceeded",
                    "server_error",
                    "timeout",
                    "network_error",
                    "service_unavailable",
                ],
                non_retryable_errors=[
                    "invalid_api_key",
                    "insufficient_quota",
                    "model_not_found",
                    "invalid_request",
                ],
            ),
            IMAGE_GENERATION: RetryPolicy(
                max_retries=2,
                base_delay=2.0,
                max_delay=15.0,
                backoff_multiplier=2.0,
                retryable_errors=[
                    "generation_failed",
                    "timeout",
                    "service_unavailable",
                    "rate_limit",
                ],
                non_retryable_errors=[
                    "invalid_prompt",
                    "content_policy_violation",
                    "unsafe_content",
                ],
            ),
            NARRATION: RetryPolicy(
                max_retries=2,
                base_delay=1.5,
                max_delay=12.0,
                backoff_multiplier=2.0,
                retryable_errors=["generation_failed", "timeout", "service_unavailable"],
                non_retryable_errors=["invalid_text", "unsupported_language", "voice_not_found"],
            ),
            BACKGROUND_MUSIC: RetryPolicy(
                max_retries=1,
                base_delay=2.0,
                max_delay=10.0,
                backoff_multiplier=2.0,
                retryable_errors=["generation_failed", "timeout", "service_unavailable"],
                non_retryable_errors=["invalid_prompt", "unsupported_duration"],
            ),
            RENDERING: RetryPolicy(
                max_retries=1,
                base_delay=5.0,
                max_delay=30.0,
                backoff_multiplier=1.5,
                retryable_errors=["rendering_failed", "memory_error", "timeout"],
                non_retryable_errors=["invalid_config", "missing_assets", "unsupported_format"],
            ),
            PUBLISH: RetryPolicy(
                max_retries=2,
                base_delay=3.0,
                max_delay=20.0,
                backoff_multiplier=2.0,
                retryable_errors=["upload_failed", "network_error", "service_unavailable"],
                non_retryable_errors=[
                    "invalid_credentials",
                    "channel_not_found",
                    "content_policy_violation",
                    "quota_exceeded",
                ],
            ),
        },
        limits={
            TEXT_GENERATION: CollaboratorLimit(max_concurrency=4, rate_per_second=2.0, burst=4),
            IMAGE_GENERATION: CollaboratorLimit(max_concurrency=1, rate_per_second=0.5, burst=1),
            NARRATION: CollaboratorLimit(max_concurrency=2, rate_per_second=2.0, burst=2),
            BACKGROUND_MUSIC: CollaboratorLimit(max_concurrency=1, rate_per_second=1.0, burst=1),
            RENDERING: CollaboratorLimit(max_concurrency=1, rate_per_second=1.0, burst=1),
            PUBLISH: CollaboratorLimit(max_concurrency=1, rate_per_second=0.5, burst=1),
        },
    )


__all__ = [
    "BACKGROUND_MUSIC",
    "CollaboratorLimit",
    "IMAGE_GENERATION",
    "NARRATION",
    "PUBLISH",
    "RENDERING",
    "RetryPolicy",
    "RetryPolicyConfig",
    "TERMINAL_KINDS",
    "TEXT_GENERATION",
    "TRANSIENT_KINDS",
    "default_retry_config",
]
