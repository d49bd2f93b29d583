"""Per-run pipeline context.

PipelineContext aggregates every intermediate artifact of one run. It lives
only as long as the run and is never persisted as a whole.
"""

from dataclasses import dataclass, field

from app.config.channel import Channel
from app.config.template import ContentTemplate
from app.services.workflow.collaborators import AudioHandle, ImageHandle, VideoHandle, WordTimestamp


@dataclass
class Chapter:
    """One chapter of the outline.

    Attributes:
        title: Chapter title
        summary: What the chapter covers
        content: Narration text for the chapter
    """

    title: str
    summary: str = ""
    content: str = ""


@dataclass
class Outline:
    """Story outline produced by the outline stage."""

    title: str
    summary: str
    chapters: list[Chapter]


@dataclass
class ChapterAsset:
    """A generated image and the narration segment it illustrates."""

    chapter_index: int
    segment_index: int
    image: ImageHandle


@dataclass
class NarrationSegment:
    """A narrated piece of chapter text.

    Attributes:
        chapter_index: Owning chapter
        segment_index: Position within the chapter
        text: Narration text
        audio_ref: Synthesized audio, None for a placeholder
        duration_ms: Actual or estimated duration
        word_timestamps: Word timings from synthesis
    """

    chapter_index: int
    segment_index: int
    text: str
    audio_ref: str | None = None
    duration_ms: int = 0
    word_timestamps: tuple[WordTimestamp, ...] = ()

    @property
    def is_placeholder(self) -> bool:
        """Whether synthesis failed and the segment is silent."""
        return self.audio_ref is None


@dataclass
class PipelineContext:
    """Everything produced so far by one run."""

    run_id: str
    channel: Channel
    template: ContentTemplate
    dry_run: bool = False
    idea: str | None = None
    outline: Outline | None = None
    script: str | None = None
    visual_style: str | None = None
    hook: str | None = None
    segments: list[NarrationSegment] = field(default_factory=list)
    assets: list[ChapterAsset] = field(default_factory=list)
    background_audio: AudioHandle | None = None
    video: VideoHandle | None = None
    thumbnail: ImageHandle | None = None

    @property
    def chapters(self) -> list[Chapter]:
        """Outline chapters (empty before the outline stage)."""
        return self.outline.chapters if self.outline else []

    @property
    def title(self) -> str:
        """Video title, falling back to the template name."""
        return self.outline.title if self.outline else self.template.name

    def images_for_segment(self, chapter_index: int, segment_index: int) -> list[ImageHandle]:
        """Images associated with one narration segment."""
        return [
            asset.image
            for asset in self.assets
            if asset.chapter_index == chapter_index and asset.segment_index == segment_index
        ]

    def shortcodes(self) -> dict[str, str]:
        """Values for prompt shortcodes available at this point of the run."""
        values = {
            "IDEAS": self.idea or "",
            "CHANNEL_NAME": self.channel.name,
            "CHANNEL_DESCRIPTION": self.channel.description,
        }
        if self.outline:
            values["TITLE"] = self.outline.title
            values["SUMMARY"] = self.outline.summary
            values["OUTLINE"] = format_outline(self.outline)
        if self.script:
            values["SCRIPT"] = self.script
        if self.visual_style:
            values["VISUAL_STYLE"] = self.visual_style
        if self.hook:
            values["HOOK"] = self.hook
        return values


def format_outline(outline: Outline) -> str:
    """Render an outline as prompt text."""
    lines = [f"Title: {outline.title}", f"Summary: {outline.summary}", "Chapters:"]
    for index, chapter in enumerate(outline.chapters, start=1):
        line = f"{index}. {chapter.title}"
        if chapter.summary:
            line += f": {chapter.summary}"
        lines.append(line)
    return "\n".join(lines)


__all__ = [
    "Chapter",
    "ChapterAsset",
    "NarrationSegment",
    "Outline",
    "PipelineContext",
    "format_outline",
]
