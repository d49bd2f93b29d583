"""Error statistics over the activity log.

Every failure that survives a retry budget, and every failed run or job, is
written to the activity log at ``error`` level. The statistics aggregate
those entries over a trailing window.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from app.core.logging import get_logger
from app.core.types import Clock
from app.models.activity import ActivityLevel, ActivityLogEntry

if TYPE_CHECKING:
    from app.services.workflow.collaborators import ContentRepository

logger = get_logger(__name__)

RECENT_ERRORS = 10
UNKNOWN = "unknown"


@dataclass(frozen=True)
class ErrorStatistics:
    """Error counts for a trailing window.

    Attributes:
        days: Window length in days
        total_errors: Error entries in the window
        errors_by_stage: Counts keyed by stage ("unknown" when not recorded)
        errors_by_service: Counts keyed by collaborator service, for entries
            that name one
        recent_errors: Newest entries first
    """

    days: int
    total_errors: int = 0
    errors_by_stage: dict[str, int] = field(default_factory=dict)
    errors_by_service: dict[str, int] = field(default_factory=dict)
    recent_errors: list[ActivityLogEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses."""
        return {
            "days": self.days,
            "total_errors": self.total_errors,
            "errors_by_stage": self.errors_by_stage,
            "errors_by_service": self.errors_by_service,
            "recent_errors": [
                {
                    "entity_id": entry.entity_id,
                    "type": entry.type.value,
                    "message": entry.message,
                    "stage": entry.details.get("stage"),
                    "service": entry.details.get("service"),
                    "timestamp": entry.created_at.isoformat(),
                }
                for entry in self.recent_errors
            ],
        }


async def error_statistics(
    repository: "ContentRepository",
    days: int = 7,
    clock: Clock | None = None,
) -> ErrorStatistics:
    """Aggregate error entries of the last ``days`` days.

    Args:
        repository: Repository holding the activity log
        days: Window length in days
        clock: Wall clock, UTC now by default

    Returns:
        Error statistics for the window

    Raises:
        ValueError: If days is not positive
    """
    if days < 1:
        raise ValueError("days must be at least 1")

    now = (clock or (lambda: datetime.now(tz=UTC)))()
    cutoff = now - timedelta(days=days)

    errors = sorted(
        (
            entry
            for entry in await repository.list_activity()
            if entry.level == ActivityLevel.ERROR and entry.created_at >= cutoff
        ),
        key=lambda entry: entry.created_at,
        reverse=True,
    )

    by_stage = Counter(entry.details.get("stage") or UNKNOWN for entry in errors)
    by_service = Counter(
        entry.details["service"] for entry in errors if entry.details.get("service")
    )

    logger.debug("Error statistics computed", days=days, total_errors=len(errors))
    return ErrorStatistics(
        days=days,
        total_errors=len(errors),
        errors_by_stage=dict(by_stage),
        errors_by_service=dict(by_service),
        recent_errors=errors[:RECENT_ERRORS],
    )


__all__ = [
    "ErrorStatistics",
    "error_statistics",
]
