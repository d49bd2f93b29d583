"""Domain and ORM models.

- ContentItem: the video produced by one pipeline run
- ScheduledJob / ScheduledJobRecord: scheduler jobs and their persistent form
- ActivityLogEntry: append-only activity log records
"""

from app.models.activity import ActivityLevel, ActivityLogEntry, ActivityType
from app.models.base import Base, TimestampMixin
from app.models.content_item import TERMINAL_STATUSES, ContentItem, ContentStatus
from app.models.job import JobStatus, ScheduledJob, ScheduledJobRecord

__all__ = [
    "Base",
    "TimestampMixin",
    "ActivityLevel",
    "ActivityLogEntry",
    "ActivityType",
    "ContentItem",
    "ContentStatus",
    "TERMINAL_STATUSES",
    "JobStatus",
    "ScheduledJob",
    "ScheduledJobRecord",
]
