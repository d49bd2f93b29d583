"""Collaborator contracts consumed by the workflow orchestrator.

Each content-generation capability is an external collaborator modelled by
its input/output contract. Adapters raise CollaboratorError with a typed
ErrorKind so the retry engine can classify failures.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol, runtime_checkable

from app.config.channel import Channel, WatermarkConfig
from app.config.template import CaptionSettings, ContentTemplate, PromptModel, VideoEffects
from app.models.activity import ActivityLogEntry
from app.models.content_item import ContentItem

# ============================================
# Handles
# ============================================


@dataclass(frozen=True)
class ImageHandle:
    """Reference to a generated or extracted image."""

    ref: str
    model: str | None = None
    prompt: str | None = None


@dataclass(frozen=True)
class AudioHandle:
    """Reference to generated background audio."""

    ref: str
    duration_seconds: float


@dataclass(frozen=True)
class WordTimestamp:
    """Timing of one spoken word."""

    word: str
    start_ms: int
    end_ms: int


@dataclass(frozen=True)
class NarrationResult:
    """Synthesized narration for one segment."""

    audio_ref: str
    duration_ms: int
    word_timestamps: tuple[WordTimestamp, ...] = ()


@dataclass(frozen=True)
class VideoHandle:
    """Reference to a rendered video."""

    ref: str
    duration_seconds: float


@dataclass(frozen=True)
class SceneSegment:
    """One narrated segment of the render scene.

    Attributes:
        text: Narration text
        audio_ref: Narration audio, None for a silent placeholder
        duration_ms: Segment duration
        image_refs: Images shown during the segment
        chapter_index: Owning chapter
    """

    text: str
    audio_ref: str | None
    duration_ms: int
    image_refs: tuple[str, ...]
    chapter_index: int


@dataclass(frozen=True)
class RenderScene:
    """Everything the renderer needs for one video."""

    run_id: str
    title: str
    segments: tuple[SceneSegment, ...]
    background_audio_ref: str | None = None
    music_volume: int = 30
    captions: CaptionSettings = field(default_factory=CaptionSettings)
    effects: VideoEffects = field(default_factory=VideoEffects)
    watermark: WatermarkConfig | None = None

    @property
    def duration_ms(self) -> int:
        """Total narrated duration."""
        return sum(segment.duration_ms for segment in self.segments)


@dataclass(frozen=True)
class PublishMetadata:
    """Metadata sent with a published video."""

    title: str
    description: str
    channel_id: str
    tags: tuple[str, ...] = ()


# ============================================
# Collaborator protocols
# ============================================


@runtime_checkable
class TextGenerator(Protocol):
    """Generates text from a prompt."""

    async def generate(self, prompt: str, params: PromptModel) -> str: ...


@runtime_checkable
class ImageGenerator(Protocol):
    """Generates an image from a prompt using a named model."""

    async def generate(self, prompt: str, model: str) -> ImageHandle: ...


@runtime_checkable
class NarrationSynthesizer(Protocol):
    """Synthesizes speech for narration text."""

    async def synthesize(self, text: str, voice_id: str) -> NarrationResult: ...

    def default_voice(self) -> str: ...


@runtime_checkable
class BackgroundAudioSynthesizer(Protocol):
    """Generates background music."""

    async def synthesize(self, style: str, duration_seconds: float) -> AudioHandle: ...


@runtime_checkable
class VideoRenderer(Protocol):
    """Renders a scene to a video and extracts frames."""

    async def render(self, scene: RenderScene) -> VideoHandle: ...

    async def extract_frame(self, video: VideoHandle, at_seconds: float) -> ImageHandle: ...


@runtime_checkable
class Publisher(Protocol):
    """Publishes a video to the video host."""

    async def publish(
        self,
        video: VideoHandle,
        thumbnail: ImageHandle | None,
        metadata: PublishMetadata,
    ) -> str: ...


@runtime_checkable
class ContentRepository(Protocol):
    """Persistent storage for channels, templates, content items and logs."""

    async def get_channel(self, channel_id: str) -> Channel | None: ...

    async def list_channels(self) -> list[Channel]: ...

    async def mark_channel_generated(self, channel_id: str, at: datetime) -> None: ...

    async def get_template(self, template_id: str) -> ContentTemplate | None: ...

    async def list_templates(self) -> list[ContentTemplate]: ...

    async def create_content_item(self, item: ContentItem) -> ContentItem: ...

    async def get_content_item(self, item_id: str) -> ContentItem | None: ...

    async def save_content_item(self, item: ContentItem) -> None: ...

    async def add_activity(self, entry: ActivityLogEntry) -> None: ...

    async def list_activity(self, entity_id: str | None = None) -> Sequence[ActivityLogEntry]: ...


@dataclass
class Collaborators:
    """The set of collaborators one orchestrator drives.

    Background audio and publishing are optional capabilities.
    """

    text: TextGenerator
    images: ImageGenerator
    narration: NarrationSynthesizer
    renderer: VideoRenderer
    background_audio: BackgroundAudioSynthesizer | None = None
    publisher: Publisher | None = None


__all__ = [
    "AudioHandle",
    "BackgroundAudioSynthesizer",
    "Collaborators",
    "ContentRepository",
    "ImageGenerator",
    "ImageHandle",
    "NarrationResult",
    "NarrationSynthesizer",
    "PublishMetadata",
    "Publisher",
    "RenderScene",
    "SceneSegment",
    "TextGenerator",
    "VideoHandle",
    "VideoRenderer",
    "WordTimestamp",
]
