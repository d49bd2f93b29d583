"""Custom exceptions for ReelForge application.

This module defines all custom exceptions used throughout the application.
All exceptions inherit from ReelForgeError for easy catching.

Exception classes include context dictionaries for structured logging
and debugging. Use the `context` property to access additional details.
"""

import enum
from typing import Any


class ReelForgeError(Exception):
    """Base exception for all ReelForge errors.

    All custom exceptions in the application should inherit from this class.
    Provides a context dictionary for structured error information.

    Attributes:
        context: Dictionary with additional error context

    Example:
        >>> try:
        ...     raise ReelForgeError("Something went wrong", context={"run_id": "123"})
        ... except ReelForgeError as e:
        ...     print(f"Error: {e}, Context: {e.context}")
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        """Initialize ReelForgeError.

        Args:
            message: Error message
            context: Optional dictionary with additional context
        """
        self.context = context or {}
        super().__init__(message)

    def with_context(self, **kwargs: Any) -> "ReelForgeError":
        """Add additional context to the exception.

        Args:
            **kwargs: Key-value pairs to add to context

        Returns:
            Self for method chaining
        """
        self.context.update(kwargs)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization.

        Returns:
            Dictionary with error type, message, and context
        """
        return {
            "error_type": self.__class__.__name__,
            "message": str(self),
            "context": self.context,
        }


# ============================================
# Configuration Errors
# ============================================


class ConfigError(ReelForgeError):
    """Base exception for configuration-related errors."""

    def __init__(
        self,
        message: str,
        config_path: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize ConfigError.

        Args:
            message: Error message
            config_path: Path to the config file/key
            context: Additional context
        """
        ctx = context or {}
        if config_path:
            ctx["config_path"] = config_path
        super().__init__(message, context=ctx)


class ConfigValidationError(ConfigError):
    """Raised when configuration validation fails.

    Supports two usage patterns:
    1. Simple: ConfigValidationError("error message")
    2. Structured: ConfigValidationError(field="name", value="x", reason="invalid")

    Attributes:
        field: Field that failed validation (optional)
        value: Invalid value (optional)
        reason: Validation failure reason (optional)
    """

    def __init__(
        self,
        message: str | None = None,
        *,
        field: str | None = None,
        value: Any = None,
        reason: str | None = None,
        config_path: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize ConfigValidationError.

        Args:
            message: Error message (for simple usage)
            field: Field that failed validation
            value: Invalid value
            reason: Validation failure reason
            config_path: Path to config file
            context: Additional context
        """
        ctx = context or {}

        self.field = field
        self.value = value
        self.reason = reason

        if field and reason:
            ctx.update({"field": field, "reason": reason})
            if value is not None:
                ctx["value"] = str(value)
            final_message = f"Config validation failed for '{field}': {reason}"
        elif message:
            final_message = message
        else:
            final_message = "Configuration validation failed"

        super().__init__(final_message, config_path=config_path, context=ctx)


class ConfigNotFoundError(ConfigError):
    """Raised when a required configuration is not found.

    Attributes:
        config_key: The configuration key that was not found
    """

    def __init__(
        self,
        config_key: str,
        config_path: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize ConfigNotFoundError.

        Args:
            config_key: Configuration key that was not found
            config_path: Path to config file
            context: Additional context
        """
        ctx = context or {}
        ctx["config_key"] = config_key
        super().__init__(
            f"Configuration '{config_key}' not found",
            config_path=config_path,
            context=ctx,
        )
        self.config_key = config_key


# ============================================
# Collaborator (Service) Errors
# ============================================


class ErrorKind(str, enum.Enum):
    """Closed set of failure kinds reported by collaborator adapters.

    Transient kinds are worth retrying; terminal kinds are not.
    """

    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    UNAVAILABLE = "unavailable"
    NETWORK = "network"
    GENERATION_FAILED = "generation_failed"
    AUTHENTICATION = "authentication"
    QUOTA_EXHAUSTED = "quota_exhausted"
    CONTENT_POLICY = "content_policy"
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    UNKNOWN = "unknown"


class ServiceError(ReelForgeError):
    """Base exception for service-related errors."""

    def __init__(
        self,
        message: str,
        service_name: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize ServiceError.

        Args:
            message: Error message
            service_name: Name of the service
            context: Additional context
        """
        ctx = context or {}
        if service_name:
            ctx["service_name"] = service_name
        super().__init__(message, context=ctx)


class CollaboratorError(ServiceError):
    """Raised by a collaborator adapter when an external call fails.

    Attributes:
        service: Collaborator service name (e.g. "text_generation")
        kind: Typed failure kind used for retry classification
        retry_after: Seconds the provider asked us to wait, if known
    """

    def __init__(
        self,
        service: str,
        message: str,
        kind: ErrorKind = ErrorKind.UNKNOWN,
        retry_after: float | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize CollaboratorError.

        Args:
            service: Collaborator service name
            message: Error message
            kind: Failure kind
            retry_after: Provider-suggested wait in seconds
            context: Additional context
        """
        ctx = context or {}
        ctx["kind"] = kind.value
        if retry_after is not None:
            ctx["retry_after"] = retry_after

        self.service = service
        self.kind = kind
        self.retry_after = retry_after

        super().__init__(f"{service} error: {message}", service_name=service, context=ctx)


# ============================================
# Content Errors
# ============================================


class ContentError(ReelForgeError):
    """Base exception for content-related errors."""

    def __init__(
        self,
        message: str,
        content_type: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize ContentError.

        Args:
            message: Error message
            content_type: Type of content (e.g., "script", "outline", "template")
            context: Additional context
        """
        ctx = context or {}
        if content_type:
            ctx["content_type"] = content_type
        super().__init__(message, context=ctx)


class ContentGenerationError(ContentError):
    """Raised when content generation produces unusable output.

    Attributes:
        stage: Generation stage that failed
    """

    def __init__(
        self,
        message: str,
        stage: str | None = None,
        content_type: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize ContentGenerationError.

        Args:
            message: Error message
            stage: Generation stage (e.g., "outline", "script")
            content_type: Type of content
            context: Additional context
        """
        ctx = context or {}
        if stage:
            ctx["stage"] = stage
        self.stage = stage
        super().__init__(message, content_type=content_type, context=ctx)


class ContentValidationError(ContentError):
    """Raised when input or generated content fails validation.

    Attributes:
        validation_errors: List of validation error details
    """

    def __init__(
        self,
        message: str,
        validation_errors: list[str] | None = None,
        content_type: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize ContentValidationError.

        Args:
            message: Error message
            validation_errors: List of validation error details
            content_type: Type of content
            context: Additional context
        """
        ctx = context or {}
        if validation_errors:
            ctx["validation_errors"] = validation_errors

        self.validation_errors = validation_errors or []

        super().__init__(message, content_type=content_type, context=ctx)


class QualityGateError(ContentError):
    """Raised when generated content never passes its acceptability check.

    Attributes:
        attempts: Number of produce/check rounds performed
    """

    def __init__(
        self,
        stage: str,
        attempts: int,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize QualityGateError.

        Args:
            stage: Stage whose output was rejected
            attempts: Number of rounds performed
            context: Additional context
        """
        ctx = context or {}
        ctx.update({"stage": stage, "attempts": attempts})
        self.stage = stage
        self.attempts = attempts
        super().__init__(
            f"Content generation for '{stage}' failed quality checks after {attempts} attempts",
            content_type=stage,
            context=ctx,
        )


# ============================================
# Pipeline Errors
# ============================================


class PipelineError(ReelForgeError):
    """Raised when a pipeline run cannot be started or continued.

    Attributes:
        stage: Stage in which the run stopped
        run_id: Content item id of the run
    """

    def __init__(
        self,
        message: str,
        stage: str | None = None,
        run_id: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize PipelineError.

        Args:
            message: Error message
            stage: Stage name
            run_id: Run identifier
            context: Additional context
        """
        ctx = context or {}
        if stage:
            ctx["stage"] = stage
        if run_id:
            ctx["run_id"] = run_id
        self.stage = stage
        self.run_id = run_id
        super().__init__(message, context=ctx)


class RecordNotFoundError(ReelForgeError):
    """Raised when the content repository has no record for an id.

    Attributes:
        model: Record type that was queried
        record_id: The ID that was not found
    """

    def __init__(
        self,
        model: str,
        record_id: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize RecordNotFoundError.

        Args:
            model: Name of the record type
            record_id: ID that was not found
            context: Additional context
        """
        ctx = context or {}
        ctx.update({"model": model, "record_id": record_id})
        super().__init__(f"{model} with id={record_id} not found", context=ctx)
        self.model = model
        self.record_id = record_id


# ============================================
# Scheduler Errors
# ============================================


class SchedulerError(ReelForgeError):
    """Base exception for scheduler errors."""

    def __init__(
        self,
        message: str,
        job_id: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize SchedulerError.

        Args:
            message: Error message
            job_id: Job identifier
            context: Additional context
        """
        ctx = context or {}
        if job_id:
            ctx["job_id"] = job_id
        super().__init__(message, context=ctx)


class JobNotFoundError(SchedulerError):
    """Raised when a scheduled job does not exist."""

    def __init__(self, job_id: str, context: dict[str, Any] | None = None) -> None:
        """Initialize JobNotFoundError.

        Args:
            job_id: Job identifier
            context: Additional context
        """
        super().__init__(f"Scheduled job {job_id} not found", job_id=job_id, context=context)
        self.job_id = job_id
