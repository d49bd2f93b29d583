"""Typed configuration models for channels, templates and retry policies."""

from app.config.channel import Channel, ChannelStatus, ScheduleCadence, WatermarkConfig
from app.config.retry import (
    BACKGROUND_MUSIC,
    IMAGE_GENERATION,
    NARRATION,
    PUBLISH,
    RENDERING,
    TEXT_GENERATION,
    CollaboratorLimit,
    RetryPolicy,
    RetryPolicyConfig,
    default_retry_config,
)
from app.config.template import (
    CaptionSettings,
    ContentTemplate,
    MusicSettings,
    PromptModel,
    ThumbnailFallback,
    VideoEffects,
)

__all__ = [
    "BACKGROUND_MUSIC",
    "CaptionSettings",
    "Channel",
    "ChannelStatus",
    "CollaboratorLimit",
    "ContentTemplate",
    "IMAGE_GENERATION",
    "MusicSettings",
    "NARRATION",
    "PUBLISH",
    "PromptModel",
    "RENDERING",
    "RetryPolicy",
    "RetryPolicyConfig",
    "ScheduleCadence",
    "TEXT_GENERATION",
    "ThumbnailFallback",
    "VideoEffects",
    "WatermarkConfig",
    "default_retry_config",
]
