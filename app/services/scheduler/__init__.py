"""Video scheduling services.

This module provides cadence-based scheduling of pipeline runs and the
job stores that keep scheduled jobs.
"""

from app.services.scheduler.job_store import InMemoryJobStore, JobStore, SQLAlchemyJobStore
from app.services.scheduler.video_scheduler import VideoScheduler

__all__ = [
    "InMemoryJobStore",
    "JobStore",
    "SQLAlchemyJobStore",
    "VideoScheduler",
]
