"""Unit tests for Dependency Injection Container.

Tests cover:
- Container initialization and sub-container composition
- Job store backend selection
- Wiring of the retry engine, launcher and scheduler
- Collaborator overrides
"""

import pytest
from dependency_injector import providers

from app.core.config import Config
from app.core.container import (
    ApplicationContainer,
    container,
    create_container,
    get_container,
)
from app.infrastructure.memory_store import InMemoryContentRepository
from app.services.retry.executor import StageExecutor
from app.services.scheduler.job_store import InMemoryJobStore
from app.services.scheduler.video_scheduler import VideoScheduler
from app.services.workflow.runner import RunLauncher


@pytest.fixture
def wired(image_generator, narration, renderer):
    """Fresh container with deployment collaborators supplied."""
    new_container = create_container()
    new_container.infrastructure.image_generator.override(providers.Object(image_generator))
    new_container.infrastructure.narration_synthesizer.override(providers.Object(narration))
    new_container.infrastructure.video_renderer.override(providers.Object(renderer))
    return new_container


class TestContainerCreation:
    """Tests for container creation and configuration."""

    def test_create_container_returns_new_instance(self) -> None:
        new_container = create_container()

        assert isinstance(new_container, ApplicationContainer)
        assert new_container is not container

    def test_global_container(self) -> None:
        assert get_container() is container

    def test_config_is_global_singleton(self) -> None:
        new_container = create_container()

        assert new_container.config() is new_container.config()
        assert new_container.config().job_store_backend in ("memory", "database")


class TestInfrastructureContainer:
    """Tests for InfrastructureContainer."""

    def test_repository_singleton(self) -> None:
        new_container = create_container()

        repository = new_container.repository()

        assert isinstance(repository, InMemoryContentRepository)
        assert new_container.infrastructure.content_repository() is repository

    def test_memory_job_store_selected(self) -> None:
        new_container = create_container()
        new_container.config.override(providers.Object(Config(job_store_backend="memory")))

        assert isinstance(new_container.infrastructure.job_store(), InMemoryJobStore)


class TestServiceContainer:
    """Tests for ServiceContainer wiring."""

    def test_stage_executor_wired(self, wired) -> None:
        executor = wired.services.stage_executor()

        assert isinstance(executor, StageExecutor)
        assert wired.services.stage_executor() is executor

    def test_run_launcher_wired(self, wired) -> None:
        launcher = wired.run_launcher()

        assert isinstance(launcher, RunLauncher)
        assert wired.run_launcher() is launcher

    def test_video_scheduler_wired(self, wired) -> None:
        scheduler = wired.video_scheduler()

        assert isinstance(scheduler, VideoScheduler)
        assert scheduler.is_running is False

    def test_collaborator_overrides_reach_orchestrator(self, wired, renderer) -> None:
        collaborators = wired.services.collaborators()

        assert collaborators.renderer is renderer
        assert collaborators.publisher is None
