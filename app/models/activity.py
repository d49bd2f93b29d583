"""Activity log entry model.

Activity log entries are append-only records keyed by entity and stage.
They are written by the pipeline and scheduler and persisted by the
content repository.
"""

import enum
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


class ActivityType(str, enum.Enum):
    """Which part of the system wrote the entry."""

    VIDEO = "video"
    SCHEDULER = "scheduler"
    ERROR = "error"


class ActivityLevel(str, enum.Enum):
    """Severity of the entry."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class ActivityLogEntry:
    """One append-only activity log record.

    Attributes:
        type: Writer of the entry
        entity_id: Content item id or channel id
        level: Severity
        message: Human-readable message
        details: Structured details (stage, attempt, error, ...)
        created_at: Creation timestamp
    """

    type: ActivityType
    entity_id: str
    level: ActivityLevel
    message: str
    details: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))


__all__ = [
    "ActivityLevel",
    "ActivityLogEntry",
    "ActivityType",
]
