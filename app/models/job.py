"""Scheduled job models.

ScheduledJob is the scheduler's in-process view of a job; ScheduledJobRecord
is its persistent form used by the SQLAlchemy job store.
"""

import enum
import uuid
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin


class JobStatus(str, enum.Enum):
    """Scheduled job status."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ScheduledJob:
    """A scheduler-owned intent to launch a run at or after a given time.

    Attributes:
        id: Job identifier
        channel_id: Channel the run is for
        template_id: Template the run uses
        scheduled_at: Earliest dispatch time
        status: Current job status
        retry_count: Failed dispatches so far
        max_retries: Failed dispatches allowed before the job stays failed
        last_error: Message of the last failure
        content_item_id: Content item of the last dispatch
    """

    channel_id: str
    template_id: str
    scheduled_at: datetime
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: JobStatus = JobStatus.PENDING
    retry_count: int = 0
    max_retries: int = 3
    last_error: str | None = None
    content_item_id: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    def is_due(self, now: datetime) -> bool:
        """Check whether the job should be dispatched at ``now``."""
        return self.status == JobStatus.PENDING and self.scheduled_at <= now

    def copy(self) -> "ScheduledJob":
        """Return a detached copy safe to hand out of the store."""
        return replace(self)

    def to_dict(self) -> dict[str, str | int | None]:
        """Serialize for API responses."""
        return {
            "id": self.id,
            "channel_id": self.channel_id,
            "template_id": self.template_id,
            "scheduled_at": self.scheduled_at.isoformat(),
            "status": self.status.value,
            "retry_count": self.retry_count,
            "max_retries": self.max_retries,
            "last_error": self.last_error,
            "content_item_id": self.content_item_id,
        }


class ScheduledJobRecord(Base, TimestampMixin):
    """Persistent scheduled job (table ``scheduled_job``)."""

    __tablename__ = "scheduled_job"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    channel_id: Mapped[str] = mapped_column(String(64), nullable=False)
    template_id: Mapped[str] = mapped_column(String(64), nullable=False)
    scheduled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[JobStatus] = mapped_column(
        SQLEnum(JobStatus, name="job_status"),
        nullable=False,
        default=JobStatus.PENDING,
    )
    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_retries: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    last_error: Mapped[str | None] = mapped_column(Text)
    content_item_id: Mapped[str | None] = mapped_column(String(64))

    __table_args__ = (
        Index("ix_scheduled_job_status_scheduled_at", "status", "scheduled_at"),
        Index("ix_scheduled_job_channel_id", "channel_id"),
    )

    @classmethod
    def from_job(cls, job: ScheduledJob) -> "ScheduledJobRecord":
        """Build a record from a ScheduledJob."""
        return cls(
            id=job.id,
            channel_id=job.channel_id,
            template_id=job.template_id,
            scheduled_at=job.scheduled_at,
            status=job.status,
            retry_count=job.retry_count,
            max_retries=job.max_retries,
            last_error=job.last_error,
            content_item_id=job.content_item_id,
        )

    def apply(self, job: ScheduledJob) -> None:
        """Copy mutable job fields onto this record."""
        self.scheduled_at = job.scheduled_at
        self.status = job.status
        self.retry_count = job.retry_count
        self.max_retries = job.max_retries
        self.last_error = job.last_error
        self.content_item_id = job.content_item_id

    def to_job(self) -> ScheduledJob:
        """Convert the record to a ScheduledJob."""
        return ScheduledJob(
            id=self.id,
            channel_id=self.channel_id,
            template_id=self.template_id,
            scheduled_at=self.scheduled_at,
            status=self.status,
            retry_count=self.retry_count,
            max_retries=self.max_retries,
            last_error=self.last_error,
            content_item_id=self.content_item_id,
            created_at=self.created_at,
        )


__all__ = [
    "JobStatus",
    "ScheduledJob",
    "ScheduledJobRecord",
]
