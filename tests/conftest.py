"""Pytest configuration and fixtures.

This module provides common fixtures used across all tests: in-memory
collaborators, a populated content repository and a pipeline wired with
no-op sleeps.
"""

import asyncio
import json
import os
import random
from datetime import UTC, datetime

import pytest

# Use litellm's bundled model cost map instead of fetching it over the network
os.environ.setdefault("LITELLM_LOCAL_MODEL_COST_MAP", "True")

from app.config.channel import Channel, ChannelStatus
from app.config.retry import BACKGROUND_MUSIC, IMAGE_GENERATION, default_retry_config
from app.config.template import ContentTemplate, PromptModel
from app.core.exceptions import CollaboratorError, ErrorKind
from app.core.logging import setup_logging
from app.infrastructure.memory_store import InMemoryContentRepository
from app.services.retry.classifier import ErrorClassifier
from app.services.retry.executor import StageExecutor
from app.services.workflow.collaborators import (
    AudioHandle,
    Collaborators,
    ImageHandle,
    NarrationResult,
    PublishMetadata,
    RenderScene,
    VideoHandle,
)
from app.services.workflow.orchestrator import WorkflowOrchestrator
from app.services.workflow.progress import ProgressReporter

# Setup logging for tests
setup_logging()


NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)

OUTLINE_RESPONSE = json.dumps(
    {
        "title": "The Lighthouse Keeper",
        "summary": "A keeper finds a message in the fog.",
        "chapters": [
            {"name": "The Fog", "description": "Fog rolls over the island"},
            {"name": "The Message", "description": "A bottle washes ashore"},
        ],
    }
)

SCRIPT_RESPONSE = (
    "The fog came in heavy that night. The keeper lit the lamp and waited by the window.\n\n"
    "At dawn a bottle lay on the rocks. Inside was a note written in his own hand."
)


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakeTextGenerator:
    """Text generator answering by prompt markers."""

    def __init__(self, responses: dict[str, str] | None = None) -> None:
        self.responses = {
            "OUTLINE REQUEST": OUTLINE_RESPONSE,
            "SCRIPT REQUEST": SCRIPT_RESPONSE,
            "IMAGE PROMPTS": "1. Fog over a lighthouse\n2. A lamp glowing in the dark",
            "thumbnail": "---A lighthouse in thick fog---",
            "video description": "A keeper receives a message from himself.",
        }
        if responses:
            self.responses.update(responses)
        self.prompts: list[str] = []

    async def generate(self, prompt: str, params: PromptModel) -> str:
        self.prompts.append(prompt)
        for marker, response in self.responses.items():
            if marker in prompt:
                return response
        return "Generic generated text."


class FakeImageGenerator:
    """Image generator that can fail for selected models."""

    def __init__(self, failing_models: set[str] | None = None) -> None:
        self.failing_models = failing_models or set()
        self.calls: list[tuple[str, str]] = []

    async def generate(self, prompt: str, model: str) -> ImageHandle:
        self.calls.append((prompt, model))
        if model in self.failing_models:
            raise CollaboratorError(
                IMAGE_GENERATION, "unsafe_content", kind=ErrorKind.CONTENT_POLICY
            )
        return ImageHandle(ref=f"image-{len(self.calls)}", model=model, prompt=prompt)


class FakeNarrationSynthesizer:
    """Narration synthesizer returning fixed-length audio."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple[str, str]] = []

    async def synthesize(self, text: str, voice_id: str) -> NarrationResult:
        self.calls.append((text, voice_id))
        if self.fail:
            raise CollaboratorError("narration", "voice_not_found", kind=ErrorKind.NOT_FOUND)
        return NarrationResult(audio_ref=f"audio-{len(self.calls)}", duration_ms=2000)

    def default_voice(self) -> str:
        return "default-narrator"


class FailingBackgroundAudio:
    """Background audio synthesizer that always fails."""

    def __init__(self) -> None:
        self.calls = 0

    async def synthesize(self, style: str, duration_seconds: float) -> AudioHandle:
        self.calls += 1
        raise CollaboratorError(BACKGROUND_MUSIC, "invalid_prompt", kind=ErrorKind.INVALID_INPUT)


class FakeVideoRenderer:
    """Renderer recording the scenes it receives.

    With ``block`` set, render signals ``started`` and then never returns.
    """

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.block = False
        self.started = asyncio.Event()
        self.scenes: list[RenderScene] = []

    async def render(self, scene: RenderScene) -> VideoHandle:
        self.scenes.append(scene)
        if self.block:
            self.started.set()
            await asyncio.Event().wait()
        if self.fail:
            raise CollaboratorError("rendering", "missing_assets", kind=ErrorKind.INVALID_INPUT)
        return VideoHandle(ref=f"video-{scene.run_id}", duration_seconds=scene.duration_ms / 1000)

    async def extract_frame(self, video: VideoHandle, at_seconds: float) -> ImageHandle:
        return ImageHandle(ref=f"frame-{at_seconds:.1f}")


class FakePublisher:
    """Publisher returning a fixed publish id."""

    def __init__(self) -> None:
        self.published: list[PublishMetadata] = []

    async def publish(
        self,
        video: VideoHandle,
        thumbnail: ImageHandle | None,
        metadata: PublishMetadata,
    ) -> str:
        self.published.append(metadata)
        return "publish-123"


@pytest.fixture
def sleep() -> RecordingSleep:
    """Recording no-op sleep."""
    return RecordingSleep()


@pytest.fixture
def channel() -> Channel:
    """Active channel with publishing disabled."""
    return Channel(
        id="ch-1",
        name="Night Tales",
        description="Short eerie stories",
        status=ChannelStatus.ACTIVE,
        videos_min=2,
        videos_max=2,
    )


@pytest.fixture
def template() -> ContentTemplate:
    """Template whose prompts carry markers understood by FakeTextGenerator."""
    return ContentTemplate(
        id="tpl-1",
        name="Lighthouse stories",
        ideas_list="A lighthouse keeper---A sunken bell---A lost radio signal",
        outline_prompt="OUTLINE REQUEST about {{IDEAS}} for {{CHANNEL_NAME}}",
        script_prompt="SCRIPT REQUEST following {{OUTLINE}}",
        chapter_image_prompt="IMAGE PROMPTS for {{CHAPTER_NAME}}, give {{imageCount}}",
        image_count=4,
        audio_voices=["voice-a"],
        background_music_prompt="Eerie ambience for {{TITLE}}",
    )


@pytest.fixture
def repository(channel: Channel, template: ContentTemplate) -> InMemoryContentRepository:
    """Repository holding the test channel and template."""
    return InMemoryContentRepository(channels=[channel], templates=[template])


@pytest.fixture
def text_generator() -> FakeTextGenerator:
    return FakeTextGenerator()


@pytest.fixture
def image_generator() -> FakeImageGenerator:
    return FakeImageGenerator()


@pytest.fixture
def narration() -> FakeNarrationSynthesizer:
    return FakeNarrationSynthesizer()


@pytest.fixture
def renderer() -> FakeVideoRenderer:
    return FakeVideoRenderer()


@pytest.fixture
def publisher() -> FakePublisher:
    return FakePublisher()


@pytest.fixture
def collaborators(
    text_generator: FakeTextGenerator,
    image_generator: FakeImageGenerator,
    narration: FakeNarrationSynthesizer,
    renderer: FakeVideoRenderer,
    publisher: FakePublisher,
) -> Collaborators:
    """Collaborators with a failing background music synthesizer."""
    return Collaborators(
        text=text_generator,
        images=image_generator,
        narration=narration,
        renderer=renderer,
        background_audio=FailingBackgroundAudio(),
        publisher=publisher,
    )


@pytest.fixture
def executor(repository: InMemoryContentRepository, sleep: RecordingSleep) -> StageExecutor:
    """Stage executor with default policies, no gate and no real sleeping."""
    return StageExecutor(
        ErrorClassifier(default_retry_config()),
        activity_log=repository.add_activity,
        sleep=sleep,
        quality_attempts=3,
        quality_retry_delay=0.5,
    )


@pytest.fixture
def progress(repository: InMemoryContentRepository) -> ProgressReporter:
    return ProgressReporter(activity_log=repository.add_activity, clock=lambda: NOW)


@pytest.fixture
def orchestrator(
    collaborators: Collaborators,
    repository: InMemoryContentRepository,
    executor: StageExecutor,
    progress: ProgressReporter,
) -> WorkflowOrchestrator:
    """Orchestrator wired to fake collaborators."""
    return WorkflowOrchestrator(
        collaborators,
        repository,
        executor,
        progress,
        rng=random.Random(7),
        clock=lambda: NOW,
    )


@pytest.fixture
def anyio_backend() -> str:
    """Specify backend for anyio.

    Returns:
        Backend name
    """
    return "asyncio"
