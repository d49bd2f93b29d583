"""Channel configuration models."""

import enum
from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from app.config.validators import validate_min_max


class ScheduleCadence(str, enum.Enum):
    """How often a channel receives a new batch of videos."""

    DAILY = "daily"
    WEEKLY = "weekly"
    CUSTOM = "custom"  # Not defined further; scheduled like daily


class ChannelStatus(str, enum.Enum):
    """Operational status of a channel."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    PROCESSING = "processing"
    ERROR = "error"


class WatermarkConfig(BaseModel):
    """Watermark overlay settings.

    Attributes:
        url: Watermark image reference
        position: Corner placement
        opacity: Opacity percentage (0-100)
        size: Size as percentage of frame width (1-100)
    """

    url: str = Field(..., min_length=1)
    position: str = Field(
        default="bottom-right",
        pattern=r"^(top|bottom)-(left|right)$",
        description="Corner placement",
    )
    opacity: int = Field(default=80, ge=0, le=100)
    size: int = Field(default=15, ge=1, le=100)


class Channel(BaseModel):
    """Channel owned by configuration storage, read-only to the pipeline.

    Attributes:
        id: Channel identifier
        name: Channel display name
        description: Channel description used in prompts
        is_active: Master on/off switch
        status: Operational status
        schedule: Cadence policy
        videos_min: Minimum videos per scheduled batch
        videos_max: Maximum videos per scheduled batch
        last_video_generated: When the last scheduled run succeeded
        publish_enabled: Whether publish credentials are configured
        video_description_prompt: Optional prompt for upload descriptions
        watermark: Optional watermark overlay
    """

    id: str = Field(..., min_length=1, description="Channel ID")
    name: str = Field(..., min_length=1, max_length=100, description="Channel name")
    description: str = Field(default="", max_length=2000, description="Channel description")
    is_active: bool = Field(default=True)
    status: ChannelStatus = Field(default=ChannelStatus.INACTIVE)
    schedule: ScheduleCadence = Field(default=ScheduleCadence.DAILY)
    videos_min: int = Field(default=1, ge=1, le=50)
    videos_max: int = Field(default=2, ge=1, le=50)
    last_video_generated: datetime | None = None
    publish_enabled: bool = Field(default=False)
    video_description_prompt: str | None = None
    watermark: WatermarkConfig | None = None

    @model_validator(mode="after")
    def validate_video_range(self) -> "Channel":
        """Ensure videos_min <= videos_max."""
        validate_min_max(self.videos_min, self.videos_max, "Videos per batch")
        return self

    @property
    def is_schedulable(self) -> bool:
        """Whether the scheduler may create jobs for this channel."""
        return self.is_active and self.status == ChannelStatus.ACTIVE


__all__ = [
    "Channel",
    "ChannelStatus",
    "ScheduleCadence",
    "WatermarkConfig",
]
