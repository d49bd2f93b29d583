"""Content item (video) domain model.

A content item is created when a pipeline run starts and is mutated only
by the workflow orchestrator. Its ``status`` and ``error_message`` are the
single source of truth for what happened to a run.
"""

import enum
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


class ContentStatus(str, enum.Enum):
    """Content item lifecycle status."""

    QUEUED = "queued"  # Created, run not started yet
    GENERATING = "generating"  # Script, images and narration in progress
    RENDERING = "rendering"  # Render and thumbnail in progress
    UPLOADING = "uploading"  # Publishing in progress
    PUBLISHED = "published"  # Uploaded to the video host
    TEST_COMPLETE = "test_complete"  # Dry run finished
    RENDERED = "rendered"  # Finished, upload not requested
    ERROR = "error"  # Run stopped on an uncaught failure


TERMINAL_STATUSES = frozenset(
    {
        ContentStatus.PUBLISHED,
        ContentStatus.TEST_COMPLETE,
        ContentStatus.RENDERED,
        ContentStatus.ERROR,
    }
)


@dataclass
class ContentItem:
    """A video produced by one pipeline run.

    Attributes:
        id: Content item identifier (also the run id)
        channel_id: Owning channel
        template_id: Template used for the run
        title: Video title, "Generating..." until the outline exists
        status: Current lifecycle status
        error_message: Cause of failure, set only in ``error``
        script: Full narration script
        description: Publish description
        video_ref: Rendered video reference
        thumbnail_ref: Thumbnail image reference
        publish_id: Identifier assigned by the video host
        duration_seconds: Rendered duration
        created_at: Creation timestamp
        updated_at: Last update timestamp
    """

    id: str
    channel_id: str
    template_id: str
    title: str = "Generating..."
    status: ContentStatus = ContentStatus.QUEUED
    error_message: str | None = None
    script: str | None = None
    description: str | None = None
    video_ref: str | None = None
    thumbnail_ref: str | None = None
    publish_id: str | None = None
    duration_seconds: float | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    @property
    def is_terminal(self) -> bool:
        """Whether the run for this item has finished."""
        return self.status in TERMINAL_STATUSES

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses."""
        return {
            "id": self.id,
            "channel_id": self.channel_id,
            "template_id": self.template_id,
            "title": self.title,
            "status": self.status.value,
            "error_message": self.error_message,
            "script": self.script,
            "description": self.description,
            "video_ref": self.video_ref,
            "thumbnail_ref": self.thumbnail_ref,
            "publish_id": self.publish_id,
            "duration_seconds": self.duration_seconds,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


__all__ = [
    "ContentItem",
    "ContentStatus",
    "TERMINAL_STATUSES",
]
