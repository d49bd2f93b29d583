"""Thumbnail selection ladder.

The thumbnail stage never fails a run. It tries, in order:
1. An AI-generated image from a text-generated prompt
2. One of the chapter images (first, last or random, per template)
3. A frame extracted from the rendered video
and returns None if all of them fail.
"""

import random

from app.config.retry import IMAGE_GENERATION, RENDERING, TEXT_GENERATION
from app.config.template import ThumbnailFallback
from app.core.logging import get_logger
from app.services.retry.executor import StageContext, StageExecutor
from app.services.workflow.collaborators import (
    ImageGenerator,
    ImageHandle,
    TextGenerator,
    VideoRenderer,
)
from app.services.workflow.context import PipelineContext
from app.services.workflow.shortcode import extract_data, process

logger = get_logger(__name__)

DEFAULT_THUMBNAIL_PROMPT = (
    "Write a single vivid image description for a video thumbnail. "
    "Title: {{TITLE}}. Summary: {{SUMMARY}}. Visual style: {{VISUAL_STYLE}}. "
    "Return only the description."
)

# Position of the extracted frame as a fraction of the video duration
FRAME_POSITION = 0.33


class ThumbnailLadder:
    """Picks a thumbnail for a run, degrading through fallbacks."""

    def __init__(
        self,
        executor: StageExecutor,
        text: TextGenerator,
        images: ImageGenerator,
        renderer: VideoRenderer,
        rng: random.Random | None = None,
    ) -> None:
        self.executor = executor
        self.text = text
        self.images = images
        self.renderer = renderer
        self._rng = rng or random.Random()

    async def select(self, ctx: PipelineContext, stage: StageContext) -> ImageHandle | None:
        """Produce a thumbnail for the run.

        Args:
            ctx: Pipeline context with assets and the rendered video
            stage: Stage context for logging

        Returns:
            Thumbnail image, or None if every option failed
        """
        try:
            return await self._generate(ctx, stage)
        except Exception as e:
            logger.warning(
                "AI thumbnail failed, using chapter image", **stage.log_fields(), error=str(e)
            )

        chapter_image = self._pick_chapter_image(ctx, ctx.template.thumbnail_fallback)
        if chapter_image is not None:
            return chapter_image

        if ctx.video is not None:
            video = ctx.video
            at_seconds = video.duration_seconds * FRAME_POSITION
            try:
                return await self.executor.run_with_retry(
                    lambda: self.renderer.extract_frame(video, at_seconds),
                    stage,
                    RENDERING,
                )
            except Exception as e:
                logger.warning("Frame extraction failed", **stage.log_fields(), error=str(e))

        logger.warning("No thumbnail available", **stage.log_fields())
        return None

    async def _generate(self, ctx: PipelineContext, stage: StageContext) -> ImageHandle:
        template = ctx.template
        prompt = process(template.thumbnail_prompt or DEFAULT_THUMBNAIL_PROMPT, ctx.shortcodes())
        raw = await self.executor.run_with_retry(
            lambda: self.text.generate(prompt, template.outline_model),
            stage,
            TEXT_GENERATION,
        )
        image_prompt = extract_data(raw)
        return await self.executor.run_with_fallback(
            lambda: self.images.generate(image_prompt, template.image_model),
            lambda: self.images.generate(image_prompt, template.image_fallback_model),
            stage,
            IMAGE_GENERATION,
        )

    def _pick_chapter_image(
        self, ctx: PipelineContext, strategy: ThumbnailFallback
    ) -> ImageHandle | None:
        if not ctx.assets:
            return None
        if strategy == ThumbnailFallback.LAST_IMAGE:
            return ctx.assets[-1].image
        if strategy == ThumbnailFallback.RANDOM_IMAGE:
            return self._rng.choice(ctx.assets).image
        return ctx.assets[0].image


__all__ = [
    "DEFAULT_THUMBNAIL_PROMPT",
    "ThumbnailLadder",
]
