"""Workflow orchestrator.

Drives one pipeline run from idea selection to publishing. Each stage goes
through the StageExecutor so that retries, fallbacks and quality gates are
applied uniformly; partial-asset failures (images, narration, music,
thumbnail) are absorbed, every other failure ends the run in ``error``.
"""

import asyncio
import math
import random
from datetime import UTC, datetime
from functools import partial
from typing import Any

from app.config.channel import Channel
from app.config.retry import (
    BACKGROUND_MUSIC,
    IMAGE_GENERATION,
    NARRATION,
    PUBLISH,
    RENDERING,
    TEXT_GENERATION,
)
from app.config.template import ContentTemplate, PromptModel
from app.core.exceptions import (
    ContentGenerationError,
    ContentValidationError,
    PipelineError,
    RecordNotFoundError,
)
from app.core.logging import get_logger
from app.core.state_machine import StateMachine, create_content_state_machine
from app.core.types import Clock
from app.models.activity import ActivityLevel, ActivityLogEntry, ActivityType
from app.models.content_item import ContentItem, ContentStatus
from app.services.retry.executor import StageContext, StageExecutor
from app.services.workflow.collaborators import (
    Collaborators,
    ContentRepository,
    PublishMetadata,
    RenderScene,
    SceneSegment,
)
from app.services.workflow.context import Chapter, ChapterAsset, NarrationSegment, PipelineContext
from app.services.workflow.progress import ProgressReporter
from app.services.workflow.shortcode import (
    extract_data,
    generate_image_prompts,
    parse_outline,
    parse_prompt_list,
    process,
    select_random_idea,
    split_script,
    split_text,
    word_count,
)
from app.services.workflow.thumbnail import ThumbnailLadder
from app.services.workflow.validation import (
    assess_content,
    ensure_valid_template,
    is_acceptable_outline,
    is_acceptable_script,
)

logger = get_logger(__name__)

# Nominal progress per stage
PROGRESS = {
    "initialization": 0,
    "idea_selection": 5,
    "outline": 10,
    "script": 20,
    "visual_style": 25,
    "hook": 28,
    "chapters": 30,
    "narration": 60,
    "background_music": 78,
    "rendering": 85,
    "thumbnail": 90,
    "upload": 95,
    "complete": 100,
}
CHAPTERS_SPAN = 30
NARRATION_SPAN = 15

PLACEHOLDER_MS_PER_WORD = 400
PLACEHOLDER_MIN_MS = 1000

PUBLISH_TAGS = ("AI Generated", "Story", "Automated")

DEFAULT_DESCRIPTION_PROMPT = (
    "Write an engaging video description for the {{CHANNEL_NAME}} channel. "
    "Channel: {{CHANNEL_DESCRIPTION}}. Title: {{TITLE}}. Summary: {{SUMMARY}}."
)


def placeholder_duration_ms(text: str) -> int:
    """Estimated duration of narration that could not be synthesized."""
    return max(PLACEHOLDER_MIN_MS, word_count(text) * PLACEHOLDER_MS_PER_WORD)


def distribute(total: int, buckets: int) -> list[int]:
    """Spread ``total`` items over ``buckets`` as evenly as possible."""
    if buckets <= 0:
        return []
    size, remainder = divmod(total, buckets)
    return [size + (1 if i < remainder else 0) for i in range(buckets)]


class WorkflowOrchestrator:
    """Runs the multi-stage video generation workflow.

    The orchestrator is the only writer of a ContentItem during a run. On
    any uncaught failure it marks the item ``error``, records the failure
    and re-raises so that callers (the scheduler) can react.

    Example:
        >>> orchestrator = WorkflowOrchestrator(collaborators, repository, executor, progress)
        >>> item = await orchestrator.run(item_id, channel, template, dry_run=True)
        >>> item.status
        <ContentStatus.TEST_COMPLETE: 'test_complete'>
    """

    def __init__(
        self,
        collaborators: Collaborators,
        repository: ContentRepository,
        executor: StageExecutor,
        progress: ProgressReporter,
        rng: random.Random | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            collaborators: Content-generation collaborators
            repository: Content repository
            executor: Stage executor (retry engine)
            progress: Progress reporter
            rng: Random source for idea and voice selection
            clock: Wall clock, UTC now by default
        """
        self.collaborators = collaborators
        self.repository = repository
        self.executor = executor
        self.progress = progress
        self._rng = rng or random.Random()
        self._clock = clock or (lambda: datetime.now(tz=UTC))
        self.thumbnails = ThumbnailLadder(
            executor=executor,
            text=collaborators.text,
            images=collaborators.images,
            renderer=collaborators.renderer,
            rng=self._rng,
        )
        self._last_ideas: dict[str, str] = {}

    async def run(
        self,
        content_item_id: str,
        channel: Channel,
        template: ContentTemplate,
        dry_run: bool = False,
    ) -> ContentItem:
        """Run the workflow for a queued content item.

        Args:
            content_item_id: Content item created for this run
            channel: Channel configuration
            template: Content template
            dry_run: Produce everything but never publish

        Returns:
            The content item in its terminal status

        Raises:
            RecordNotFoundError: If the content item does not exist
            Exception: Any stage failure, after the item was marked ``error``
            asyncio.CancelledError: If the run is cancelled, after the item was
                marked ``error``
        """
        item = await self.repository.get_content_item(content_item_id)
        if item is None:
            raise RecordNotFoundError("ContentItem", content_item_id)

        machine = create_content_state_machine(item.status.value)
        ctx = PipelineContext(run_id=item.id, channel=channel, template=template, dry_run=dry_run)
        base = StageContext(
            run_id=item.id,
            stage="initialization",
            channel_id=channel.id,
            template_id=template.id,
            dry_run=dry_run,
        )

        logger.info(
            "Pipeline run started",
            run_id=item.id,
            channel_id=channel.id,
            template_id=template.id,
            dry_run=dry_run,
        )

        stage = "initialization"
        try:
            await self._report(item.id, stage, "Starting video generation")
            ensure_valid_template(template)
            await self._transition(item, machine, ContentStatus.GENERATING)

            stage = "idea_selection"
            await self._report(item.id, stage, "Selecting story idea")
            self._select_idea(ctx)

            stage = "outline"
            await self._report(item.id, stage, "Generating story outline")
            await self._generate_outline(ctx, base.for_stage(stage))
            item.title = ctx.title
            await self._save(item)

            stage = "script"
            await self._report(item.id, stage, "Writing full script")
            await self._generate_script(ctx, base.for_stage(stage))
            item.script = ctx.script
            await self._save(item)

            stage = "visual_style"
            if template.visual_style_prompt:
                await self._report(item.id, stage, "Defining visual style")
                ctx.visual_style = await self._generate_text(
                    ctx,
                    base.for_stage(stage),
                    template.visual_style_prompt,
                    template.visual_style_model,
                )
            else:
                await self._report(item.id, stage, "Visual style skipped")

            stage = "hook"
            if template.hook_prompt:
                await self._report(item.id, stage, "Writing opening hook")
                ctx.hook = await self._generate_text(
                    ctx, base.for_stage(stage), template.hook_prompt, template.hook_model
                )

            stage = "chapters"
            await self._report(item.id, stage, f"Producing {len(ctx.chapters)} chapters")
            await self._produce_chapters(ctx, base)

            stage = "narration"
            await self._report(item.id, stage, f"Narrating {len(ctx.segments)} segments")
            await self._narrate(ctx, base)

            stage = "background_music"
            await self._background_music(ctx, base.for_stage(stage))

            self._assess(ctx)

            stage = "rendering"
            await self._transition(item, machine, ContentStatus.RENDERING)
            await self._report(item.id, stage, "Rendering video")
            scene = self._build_scene(ctx)
            ctx.video = await self.executor.run_with_retry(
                partial(self.collaborators.renderer.render, scene),
                base.for_stage(stage),
                RENDERING,
            )
            item.video_ref = ctx.video.ref
            item.duration_seconds = ctx.video.duration_seconds
            await self._save(item)

            stage = "thumbnail"
            await self._report(item.id, stage, "Creating thumbnail")
            ctx.thumbnail = await self.thumbnails.select(ctx, base.for_stage(stage))
            item.thumbnail_ref = ctx.thumbnail.ref if ctx.thumbnail else None

            if dry_run:
                final = ContentStatus.TEST_COMPLETE
            elif channel.publish_enabled:
                stage = "upload"
                await self._transition(item, machine, ContentStatus.UPLOADING)
                await self._report(item.id, stage, "Publishing video")
                item.description, item.publish_id = await self._publish(ctx, base.for_stage(stage))
                final = ContentStatus.PUBLISHED
            else:
                final = ContentStatus.RENDERED

            stage = "complete"
            await self._transition(item, machine, final)
            await self._report(item.id, stage, "Video generation complete")

        except asyncio.CancelledError as e:
            await self._fail(item, machine, stage, e, message="Run cancelled")
            raise
        except Exception as e:
            await self._fail(item, machine, stage, e)
            raise

        self.progress.mark_terminal(item.id, item.status.value)
        await self._log_activity(
            item.id,
            ActivityLevel.SUCCESS,
            f"Video '{item.title}' finished with status {item.status.value}",
            status=item.status.value,
            dry_run=dry_run,
        )
        logger.info(
            "Pipeline run finished",
            run_id=item.id,
            status=item.status.value,
            title=item.title,
            images=len(ctx.assets),
            segments=len(ctx.segments),
        )
        return item

    # ============================================
    # Stages
    # ============================================

    def _select_idea(self, ctx: PipelineContext) -> None:
        template = ctx.template
        idea = select_random_idea(
            template.ideas_list,
            template.ideas_delimiter,
            last_used=self._last_ideas.get(template.id),
            rng=self._rng,
        )
        if idea is None:
            raise ContentValidationError(
                f"Template '{template.id}' has no ideas", content_type="ideas"
            )
        self._last_ideas[template.id] = idea
        ctx.idea = idea

    async def _generate_outline(self, ctx: PipelineContext, stage: StageContext) -> None:
        template = ctx.template
        prompt = process(template.outline_prompt or "", ctx.shortcodes())
        raw = await self.executor.run_with_quality_gate(
            partial(self.collaborators.text.generate, prompt, template.outline_model),
            lambda response: is_acceptable_outline(parse_outline(response)),
            stage,
            TEXT_GENERATION,
        )
        outline = parse_outline(raw)
        if outline is None:
            raise ContentGenerationError(
                "Outline response could not be parsed", stage=stage.stage, content_type="outline"
            )
        ctx.outline = outline

    async def _generate_script(self, ctx: PipelineContext, stage: StageContext) -> None:
        template = ctx.template
        prompt = process(template.script_prompt or "", ctx.shortcodes())
        raw = await self.executor.run_with_quality_gate(
            partial(self.collaborators.text.generate, prompt, template.script_model),
            is_acceptable_script,
            stage,
            TEXT_GENERATION,
        )
        ctx.script = raw.strip()

    async def _generate_text(
        self,
        ctx: PipelineContext,
        stage: StageContext,
        prompt_template: str,
        params: PromptModel,
        extra: dict[str, str] | None = None,
        chapter: Chapter | None = None,
    ) -> str:
        values = ctx.shortcodes()
        if extra:
            values.update(extra)
        prompt = process(prompt_template, values, chapter)
        raw = await self.executor.run_with_retry(
            partial(self.collaborators.text.generate, prompt, params),
            stage,
            TEXT_GENERATION,
        )
        return raw.strip()

    async def _produce_chapters(self, ctx: PipelineContext, base: StageContext) -> None:
        template = ctx.template
        chapters = ctx.chapters
        total = len(chapters)

        if not template.chapter_content_prompt:
            contents = split_script(ctx.script or "", total)
            for chapter, content in zip(chapters, contents, strict=True):
                chapter.content = content

        image_counts = distribute(template.image_count, total)

        for index, chapter in enumerate(chapters):
            number = index + 1
            if template.chapter_content_prompt:
                chapter.content = await self._generate_text(
                    ctx,
                    base.for_stage(f"chapter_{number}_content"),
                    template.chapter_content_prompt,
                    template.chapter_content_model,
                    chapter=chapter,
                )

            count = image_counts[index]
            texts = split_text(chapter.content, count)
            ctx.segments.extend(
                NarrationSegment(chapter_index=index, segment_index=i, text=text)
                for i, text in enumerate(texts)
            )

            if count > 0:
                await self._produce_images(ctx, base, index, count, len(texts))

            await self._report(
                ctx.run_id,
                "chapters",
                f"Chapter {number}/{total} ready: {chapter.title}",
                percent=PROGRESS["chapters"] + CHAPTERS_SPAN * number / total,
            )

    async def _produce_images(
        self,
        ctx: PipelineContext,
        base: StageContext,
        chapter_index: int,
        count: int,
        segment_count: int,
    ) -> None:
        template = ctx.template
        chapter = ctx.chapters[chapter_index]
        number = chapter_index + 1

        raw = await self._generate_text(
            ctx,
            base.for_stage(f"chapter_{number}_image_prompts"),
            template.chapter_image_prompt or "",
            template.outline_model,
            extra={"imageCount": str(count)},
            chapter=chapter,
        )
        prompts = parse_prompt_list(raw)[:count]
        if len(prompts) < count:
            prompts += generate_image_prompts(count, extract_data(raw))[len(prompts) :]

        images = self.collaborators.images
        generated = 0
        for i, prompt in enumerate(prompts):
            stage = base.for_stage(f"chapter_{number}_image_{i + 1}")
            try:
                image = await self.executor.run_with_fallback(
                    partial(images.generate, prompt, template.image_model),
                    partial(images.generate, prompt, template.image_fallback_model),
                    stage,
                    IMAGE_GENERATION,
                )
            except Exception as e:
                logger.warning("Skipping failed image", **stage.log_fields(), error=str(e))
                continue
            ctx.assets.append(
                ChapterAsset(
                    chapter_index=chapter_index,
                    segment_index=min(i, segment_count - 1),
                    image=image,
                )
            )
            generated += 1

        logger.info(
            "Chapter images generated",
            run_id=ctx.run_id,
            chapter=number,
            requested=count,
            generated=generated,
        )

    async def _narrate(self, ctx: PipelineContext, base: StageContext) -> None:
        total = len(ctx.segments)
        narration = self.collaborators.narration

        for number, segment in enumerate(ctx.segments, start=1):
            stage = base.for_stage(f"narration_segment_{number}")
            if segment.text.strip():
                try:
                    voice = self._pick_voice(ctx.template)
                    result = await self.executor.run_with_retry(
                        partial(narration.synthesize, segment.text, voice),
                        stage,
                        NARRATION,
                    )
                except Exception as e:
                    segment.duration_ms = placeholder_duration_ms(segment.text)
                    logger.warning(
                        "Using placeholder narration",
                        **stage.log_fields(),
                        duration_ms=segment.duration_ms,
                        error=str(e),
                    )
                else:
                    segment.audio_ref = result.audio_ref
                    segment.duration_ms = result.duration_ms
                    segment.word_timestamps = result.word_timestamps
            else:
                segment.duration_ms = PLACEHOLDER_MIN_MS

            await self._report(
                ctx.run_id,
                "narration",
                f"Narration {number}/{total} ready",
                percent=PROGRESS["narration"] + NARRATION_SPAN * number / total,
            )

    def _pick_voice(self, template: ContentTemplate) -> str:
        if template.audio_voices:
            return self._rng.choice(template.audio_voices)
        return self.collaborators.narration.default_voice()

    async def _background_music(self, ctx: PipelineContext, stage: StageContext) -> None:
        template = ctx.template
        if not template.background_music_prompt:
            return
        synthesizer = self.collaborators.background_audio
        if synthesizer is None:
            logger.warning(
                "Background music requested but no synthesizer configured",
                **stage.log_fields(),
            )
            return

        await self._report(ctx.run_id, stage.stage, "Generating background music")
        style = (
            f"{process(template.background_music_prompt, ctx.shortcodes())} "
            f"Style: {template.music.style}. Mood: {template.music.mood}."
        )
        duration = math.ceil(sum(segment.duration_ms for segment in ctx.segments) / 1000)
        try:
            ctx.background_audio = await self.executor.run_with_retry(
                partial(synthesizer.synthesize, style, float(duration)),
                stage,
                BACKGROUND_MUSIC,
            )
        except Exception as e:
            logger.warning(
                "Continuing without background music", **stage.log_fields(), error=str(e)
            )
            await self._log_activity(
                ctx.run_id,
                ActivityLevel.WARNING,
                f"Background music failed, continuing without it: {e}",
                stage=stage.stage,
            )

    def _assess(self, ctx: PipelineContext) -> None:
        report = assess_content(
            title=ctx.title,
            script=ctx.script or "",
            image_count=len(ctx.assets),
            narrated_segments=sum(1 for segment in ctx.segments if not segment.is_placeholder),
        )
        log = logger.info if report.passed else logger.warning
        log(
            "Content quality assessed",
            run_id=ctx.run_id,
            score=report.score,
            issues=report.issues,
            recommendations=report.recommendations,
        )

    def _build_scene(self, ctx: PipelineContext) -> RenderScene:
        template = ctx.template
        segments = tuple(
            SceneSegment(
                text=segment.text,
                audio_ref=segment.audio_ref,
                duration_ms=segment.duration_ms,
                image_refs=tuple(
                    image.ref
                    for image in ctx.images_for_segment(
                        segment.chapter_index, segment.segment_index
                    )
                ),
                chapter_index=segment.chapter_index,
            )
            for segment in ctx.segments
        )
        return RenderScene(
            run_id=ctx.run_id,
            title=ctx.title,
            segments=segments,
            background_audio_ref=ctx.background_audio.ref if ctx.background_audio else None,
            music_volume=template.music.volume,
            captions=template.captions,
            effects=template.effects,
            watermark=ctx.channel.watermark,
        )

    async def _publish(self, ctx: PipelineContext, stage: StageContext) -> tuple[str, str]:
        publisher = self.collaborators.publisher
        if publisher is None:
            raise PipelineError("No publisher configured", stage=stage.stage, run_id=ctx.run_id)
        if ctx.video is None:
            raise PipelineError(
                "No rendered video to publish", stage=stage.stage, run_id=ctx.run_id
            )

        description = await self._generate_text(
            ctx,
            stage,
            ctx.channel.video_description_prompt or DEFAULT_DESCRIPTION_PROMPT,
            ctx.template.script_model,
        )
        metadata = PublishMetadata(
            title=ctx.title,
            description=description,
            channel_id=ctx.channel.id,
            tags=PUBLISH_TAGS,
        )
        publish_id = await self.executor.run_with_retry(
            partial(publisher.publish, ctx.video, ctx.thumbnail, metadata),
            stage,
            PUBLISH,
        )
        return description, publish_id

    # ============================================
    # Helpers
    # ============================================

    async def _report(
        self,
        run_id: str,
        stage: str,
        message: str,
        percent: float | None = None,
    ) -> None:
        await self.progress.report(
            run_id, stage, PROGRESS[stage] if percent is None else percent, message
        )

    async def _transition(
        self, item: ContentItem, machine: StateMachine, status: ContentStatus
    ) -> None:
        machine.transition(status)
        item.status = status
        await self._save(item)

    async def _save(self, item: ContentItem) -> None:
        item.updated_at = self._clock()
        await self.repository.save_content_item(item)

    async def _fail(
        self,
        item: ContentItem,
        machine: StateMachine,
        stage: str,
        error: BaseException,
        message: str | None = None,
    ) -> None:
        message = message or str(error)
        logger.error(
            "Pipeline run failed",
            run_id=item.id,
            stage=stage,
            error=message,
            error_type=type(error).__name__,
        )

        if machine.can_transition(ContentStatus.ERROR):
            machine.transition(ContentStatus.ERROR)
            item.status = ContentStatus.ERROR
            item.error_message = message
            try:
                await self._save(item)
            except Exception as save_error:
                logger.error(
                    "Failed to save failed content item",
                    run_id=item.id,
                    error=str(save_error),
                )

        self.progress.mark_terminal(item.id, ContentStatus.ERROR.value, message)
        await self._log_activity(
            item.id,
            ActivityLevel.ERROR,
            f"Video generation failed at {stage}: {message}",
            stage=stage,
            error_type=type(error).__name__,
        )

    async def _log_activity(
        self, run_id: str, level: ActivityLevel, message: str, **details: Any
    ) -> None:
        entry = ActivityLogEntry(
            type=ActivityType.VIDEO,
            entity_id=run_id,
            level=level,
            message=message,
            details=details,
        )
        try:
            await self.repository.add_activity(entry)
        except Exception as e:
            logger.error("Failed to write activity log", run_id=run_id, error=str(e))


__all__ = [
    "PROGRESS",
    "WorkflowOrchestrator",
    "distribute",
    "placeholder_duration_ms",
]
