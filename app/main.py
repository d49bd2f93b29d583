"""FastAPI application entry point.

This module creates and configures the FastAPI application instance and
exposes the control surface for pipeline runs and the video scheduler.
"""

import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from app.core.config import get_config
from app.core.container import (
    get_container,
    get_repository,
    get_run_launcher,
    get_video_scheduler,
)
from app.core.database import close_db
from app.core.exceptions import (
    JobNotFoundError,
    PipelineError,
    RecordNotFoundError,
    ReelForgeError,
)
from app.core.logging import get_logger, setup_logging
from app.models.content_item import ContentItem
from app.services.retry.statistics import error_statistics
from app.services.scheduler.video_scheduler import VideoScheduler
from app.services.workflow.runner import RunLauncher

# Setup logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events.

    Starts the video scheduler when enabled and tears down running work on
    shutdown.

    Args:
        app: FastAPI application instance

    Yields:
        None
    """
    config = get_config()
    container = get_container()
    # Startup
    logger.info("Starting ReelForge application", env=config.app_env)

    scheduler: VideoScheduler | None = None
    if config.scheduler_enabled:
        scheduler = container.video_scheduler()
        await scheduler.start()

    yield

    # Shutdown
    logger.info("Shutting down ReelForge application")
    if scheduler is not None:
        await scheduler.shutdown()
    if config.scheduler_enabled:
        await container.run_launcher().shutdown()
    if config.job_store_backend == "database":
        await close_db()
    logger.info("Cleanup complete")


# Create FastAPI application
_config = get_config()
app = FastAPI(
    title=_config.app_name,
    description="Automated faceless video production pipeline",
    version="0.1.0",
    docs_url="/docs" if _config.is_development else None,
    redoc_url="/redoc" if _config.is_development else None,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=_config.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================
# Error handlers
# ============================================


@app.exception_handler(RecordNotFoundError)
@app.exception_handler(JobNotFoundError)
async def not_found_handler(request: Request, exc: ReelForgeError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=exc.to_dict())


@app.exception_handler(PipelineError)
async def conflict_handler(request: Request, exc: PipelineError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=exc.to_dict())


@app.exception_handler(ReelForgeError)
async def app_error_handler(request: Request, exc: ReelForgeError) -> JSONResponse:
    logger.error("Request failed", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=exc.to_dict())


# ============================================
# Schemas
# ============================================


class RunRequest(BaseModel):
    """Request body for starting a pipeline run."""

    channel_id: str = Field(..., min_length=1)
    template_id: str = Field(..., min_length=1)
    dry_run: bool = Field(default=False, description="Produce everything but never publish")


class RunAccepted(BaseModel):
    """Response for an accepted run."""

    run_id: str
    status: str


# Health check endpoint
@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint.

    Returns:
        Health status
    """
    cfg = get_config()
    return {
        "status": "healthy",
        "app": cfg.app_name,
        "env": cfg.app_env,
    }


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint.

    Returns:
        Welcome message
    """
    return {
        "message": "ReelForge API",
        "version": "0.1.0",
        "docs": "/docs" if get_config().is_development else "disabled",
    }


# ============================================
# Runs
# ============================================


@app.post("/runs", status_code=status.HTTP_202_ACCEPTED, response_model=RunAccepted)
async def start_run(
    body: RunRequest,
    repository: Any = Depends(get_repository),
    launcher: RunLauncher = Depends(get_run_launcher),
) -> RunAccepted:
    """Queue a content item and start a detached run for it."""
    channel = await repository.get_channel(body.channel_id)
    if channel is None:
        raise RecordNotFoundError("Channel", body.channel_id)
    template = await repository.get_template(body.template_id)
    if template is None:
        raise RecordNotFoundError("ContentTemplate", body.template_id)

    item = await repository.create_content_item(
        ContentItem(id=str(uuid.uuid4()), channel_id=channel.id, template_id=template.id)
    )
    await launcher.start_run(item.id, channel.id, template, dry_run=body.dry_run)
    return RunAccepted(run_id=item.id, status=item.status.value)


@app.get("/runs/{run_id}/progress")
async def get_run_progress(
    run_id: str,
    launcher: RunLauncher = Depends(get_run_launcher),
) -> dict[str, Any]:
    """Latest progress of a run."""
    snapshot = launcher.get_progress(run_id)
    if snapshot is None:
        raise HTTPException(status_code=404, detail=f"No progress for run {run_id}")
    return snapshot.to_dict()


@app.get("/content/{item_id}")
async def get_content_item(
    item_id: str,
    repository: Any = Depends(get_repository),
) -> dict[str, Any]:
    """Current state of a content item."""
    item = await repository.get_content_item(item_id)
    if item is None:
        raise RecordNotFoundError("ContentItem", item_id)
    return item.to_dict()


@app.get("/errors/statistics")
async def get_error_statistics(
    days: int = Query(default=7, ge=1, le=365),
    repository: Any = Depends(get_repository),
) -> dict[str, Any]:
    """Error counts by stage and service over the last ``days`` days."""
    stats = await error_statistics(repository, days)
    return stats.to_dict()


# ============================================
# Scheduler
# ============================================


@app.get("/scheduler/jobs")
async def list_jobs(
    channel_id: str | None = None,
    scheduler: VideoScheduler = Depends(get_video_scheduler),
) -> list[dict[str, Any]]:
    """List scheduled jobs, optionally filtered by channel."""
    return [job.to_dict() for job in await scheduler.list_jobs(channel_id)]


@app.post("/scheduler/channels/{channel_id}/schedule", status_code=status.HTTP_201_CREATED)
async def schedule_channel(
    channel_id: str,
    repository: Any = Depends(get_repository),
    scheduler: VideoScheduler = Depends(get_video_scheduler),
) -> list[dict[str, Any]]:
    """Create the next batch of jobs for a channel."""
    channel = await repository.get_channel(channel_id)
    if channel is None:
        raise RecordNotFoundError("Channel", channel_id)
    jobs = await scheduler.schedule_channel_videos(channel)
    return [job.to_dict() for job in jobs]


@app.delete("/scheduler/jobs/{job_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_job(
    job_id: str,
    scheduler: VideoScheduler = Depends(get_video_scheduler),
) -> None:
    """Cancel a scheduled job."""
    if not await scheduler.cancel_job(job_id):
        raise JobNotFoundError(job_id)
