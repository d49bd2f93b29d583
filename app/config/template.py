"""Content template configuration models.

A content template carries the prompts and generation parameters for every
stage of a pipeline run. Templates are immutable input to one run.
"""

import enum

from pydantic import BaseModel, Field


class ThumbnailFallback(str, enum.Enum):
    """Which chapter image to use when the AI thumbnail fails."""

    FIRST_IMAGE = "first-image"
    LAST_IMAGE = "last-image"
    RANDOM_IMAGE = "random-image"


class PromptModel(BaseModel):
    """Model parameters for one text-generation stage.

    Attributes:
        model: Model identifier (LiteLLM format), None for the default model
        temperature: Sampling temperature
        max_tokens: Maximum tokens in response
    """

    model_config = {"frozen": True}

    model: str | None = None
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=2000, ge=50, le=32000)


class CaptionSettings(BaseModel):
    """Caption overlay settings passed to the renderer."""

    model_config = {"frozen": True}

    enabled: bool = True
    font: str = "Inter"
    color: str = Field(default="#ffffff", pattern=r"^#[0-9a-fA-F]{6}$")
    position: str = Field(default="bottom", pattern=r"^(top|center|bottom)$")
    words_per_caption: int = Field(default=6, ge=1, le=20)


class VideoEffects(BaseModel):
    """Visual effect settings passed to the renderer."""

    model_config = {"frozen": True}

    ken_burns: bool = True
    ken_burns_speed: float = Field(default=1.0, gt=0.0, le=5.0)
    ken_burns_direction: str = "random"
    film_grain: bool = False
    fog: bool = False
    transition: str = "mix-fade"
    transition_duration: float = Field(default=2.0, ge=0.0, le=10.0)


class MusicSettings(BaseModel):
    """Background music style parameters."""

    model_config = {"frozen": True}

    style: str = "Ambient"
    mood: str = "Calm"
    volume: int = Field(default=30, ge=0, le=100)


class ContentTemplate(BaseModel):
    """Prompts and generation parameters for one kind of video.

    Prompts may contain shortcodes such as ``{{IDEAS}}``, ``{{OUTLINE}}``,
    ``{{SCRIPT}}``, ``{{TITLE}}``, ``{{VISUAL_STYLE}}`` and the chapter
    shortcodes ``{{CHAPTER_NAME}}`` / ``{{CHAPTER_CONTENT}}``.

    Attributes:
        id: Template identifier
        name: Template display name
        ideas_list: Delimited list of story ideas
        ideas_delimiter: Delimiter between ideas
        outline_prompt: Prompt producing title, summary and chapters
        script_prompt: Prompt producing the full narration script
        visual_style_prompt: Optional prompt producing a visual style guide
        hook_prompt: Optional prompt producing an opening hook
        chapter_content_prompt: Optional prompt producing per-chapter narration
        chapter_image_prompt: Prompt producing per-chapter image descriptions
        thumbnail_prompt: Optional prompt producing the thumbnail image prompt
        background_music_prompt: Optional prompt enabling background music
        image_count: Total images across all chapters
        image_model: Primary image model
        image_fallback_model: Fallback image model
        audio_voices: Voice ids to pick from, empty for the default voice
    """

    model_config = {"frozen": True}

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    ideas_list: str = Field(default="")
    ideas_delimiter: str = Field(default="---", min_length=1)

    outline_prompt: str | None = None
    outline_model: PromptModel = Field(default_factory=PromptModel)
    script_prompt: str | None = None
    script_model: PromptModel = Field(default_factory=PromptModel)
    visual_style_prompt: str | None = None
    visual_style_model: PromptModel = Field(default_factory=PromptModel)
    hook_prompt: str | None = None
    hook_model: PromptModel = Field(default_factory=PromptModel)
    chapter_content_prompt: str | None = None
    chapter_content_model: PromptModel = Field(default_factory=PromptModel)
    chapter_image_prompt: str | None = None
    thumbnail_prompt: str | None = None
    thumbnail_fallback: ThumbnailFallback = ThumbnailFallback.FIRST_IMAGE

    image_count: int = Field(default=8, ge=1, le=100)
    image_model: str = Field(default="flux-schnell")
    image_fallback_model: str = Field(default="dalle-3")

    audio_voices: list[str] = Field(default_factory=list)
    audio_pause_gap_ms: int = Field(default=500, ge=0, le=10000)

    background_music_prompt: str | None = None
    music: MusicSettings = Field(default_factory=MusicSettings)
    captions: CaptionSettings = Field(default_factory=CaptionSettings)
    effects: VideoEffects = Field(default_factory=VideoEffects)


__all__ = [
    "CaptionSettings",
    "ContentTemplate",
    "MusicSettings",
    "PromptModel",
    "ThumbnailFallback",
    "VideoEffects",
]
