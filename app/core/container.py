"""Dependency Injection Container.

This module provides a centralized DI container using dependency-injector.
Lifecycles:
- Singleton: One instance for the entire application (retry engine,
  launcher, scheduler, repository)
- Dependency: Collaborator adapters supplied by the deployment

Usage:
    # In FastAPI
    from app.core.container import get_run_launcher

    @app.post("/runs")
    async def start(launcher: RunLauncher = Depends(get_run_launcher)):
        ...

    # Wiring collaborator adapters
    container.infrastructure.image_generator.override(providers.Object(my_images))

    # In tests
    with container.infrastructure.video_renderer.override(fake_renderer):
        ...
"""

from dependency_injector import containers, providers
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import Config, get_config
from app.core.config_loader import load_retry_policies


class InfrastructureContainer(containers.DeclarativeContainer):
    """Infrastructure layer dependencies (database, storage, collaborators)."""

    global_config = providers.Dependency(instance_of=Config)

    # ============================================
    # Database
    # ============================================

    db_engine = providers.Singleton(
        create_async_engine,
        url=global_config.provided.database_url,
        echo=global_config.provided.database_echo,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
    )

    db_session_factory = providers.Singleton(
        async_sessionmaker,
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    # ============================================
    # Storage
    # ============================================

    content_repository = providers.Singleton(
        "app.infrastructure.memory_store.InMemoryContentRepository",
    )

    job_store = providers.Selector(
        global_config.provided.job_store_backend,
        memory=providers.Singleton(
            "app.services.scheduler.job_store.InMemoryJobStore",
        ),
        database=providers.Singleton(
            "app.services.scheduler.job_store.SQLAlchemyJobStore",
            db_session_factory=db_session_factory,
        ),
    )

    # ============================================
    # Collaborators
    # ============================================

    # Unified LLM client (LiteLLM-based, provider-agnostic)
    text_generator = providers.Singleton(
        "app.infrastructure.llm.LLMTextGenerator",
        default_model=global_config.provided.llm_default_model,
        timeout=global_config.provided.llm_timeout_seconds,
    )

    # Supplied by the deployment
    image_generator = providers.Dependency()
    narration_synthesizer = providers.Dependency()
    video_renderer = providers.Dependency()

    # Optional capabilities
    background_audio = providers.Object(None)
    publisher = providers.Object(None)


class ConfigContainer(containers.DeclarativeContainer):
    """Configuration models container.

    Retry policies are loaded once from YAML and reused.
    """

    global_config = providers.Dependency(instance_of=Config)

    retry_config = providers.Singleton(
        load_retry_policies,
        path=global_config.provided.retry_policies_path,
    )


class ServiceContainer(containers.DeclarativeContainer):
    """Service layer dependencies."""

    global_config = providers.Dependency(instance_of=Config)
    infrastructure = providers.DependenciesContainer()
    configs = providers.DependenciesContainer()

    # ============================================
    # Retry Engine
    # ============================================

    error_classifier = providers.Singleton(
        "app.services.retry.classifier.ErrorClassifier",
        config=configs.retry_config,
    )

    collaborator_gate = providers.Singleton(
        "app.services.retry.limiter.CollaboratorGate",
        config=configs.retry_config,
    )

    stage_executor = providers.Singleton(
        "app.services.retry.executor.StageExecutor",
        classifier=error_classifier,
        gate=collaborator_gate,
        activity_log=infrastructure.content_repository.provided.add_activity,
        quality_attempts=global_config.provided.quality_gate_attempts,
        quality_retry_delay=global_config.provided.quality_retry_delay,
    )

    # ============================================
    # Workflow
    # ============================================

    progress_reporter = providers.Singleton(
        "app.services.workflow.progress.ProgressReporter",
        activity_log=infrastructure.content_repository.provided.add_activity,
        max_finished_runs=global_config.provided.progress_retained_runs,
    )

    collaborators = providers.Singleton(
        "app.services.workflow.collaborators.Collaborators",
        text=infrastructure.text_generator,
        images=infrastructure.image_generator,
        narration=infrastructure.narration_synthesizer,
        renderer=infrastructure.video_renderer,
        background_audio=infrastructure.background_audio,
        publisher=infrastructure.publisher,
    )

    orchestrator = providers.Singleton(
        "app.services.workflow.orchestrator.WorkflowOrchestrator",
        collaborators=collaborators,
        repository=infrastructure.content_repository,
        executor=stage_executor,
        progress=progress_reporter,
    )

    run_launcher = providers.Singleton(
        "app.services.workflow.runner.RunLauncher",
        orchestrator=orchestrator,
        repository=infrastructure.content_repository,
        max_concurrent_runs=global_config.provided.max_concurrent_runs,
    )

    # ============================================
    # Scheduler
    # ============================================

    video_scheduler = providers.Singleton(
        "app.services.scheduler.video_scheduler.VideoScheduler",
        job_store=infrastructure.job_store,
        repository=infrastructure.content_repository,
        launcher=run_launcher,
        tick_seconds=global_config.provided.scheduler_tick_seconds,
        materialize_seconds=global_config.provided.scheduler_materialize_seconds,
        job_spacing_minutes=global_config.provided.job_spacing_minutes,
        retry_delay_minutes=global_config.provided.job_retry_delay_minutes,
        max_retries=global_config.provided.job_max_retries,
    )


class ApplicationContainer(containers.DeclarativeContainer):
    """Root application container.

    Composes all sub-containers and provides the main entry point.
    """

    # Global Config singleton (environment variables)
    # Uses get_config() to ensure same instance across the app
    config = providers.Singleton(get_config)

    # Sub-containers
    infrastructure = providers.Container(
        InfrastructureContainer,
        global_config=config,
    )

    configs = providers.Container(
        ConfigContainer,
        global_config=config,
    )

    services = providers.Container(
        ServiceContainer,
        global_config=config,
        infrastructure=infrastructure,
        configs=configs,
    )

    # ============================================
    # Convenience accessors (shortcuts)
    # ============================================

    repository = providers.Singleton(
        lambda repo: repo,
        repo=infrastructure.content_repository,
    )

    run_launcher = providers.Singleton(
        lambda svc: svc,
        svc=services.run_launcher,
    )

    video_scheduler = providers.Singleton(
        lambda svc: svc,
        svc=services.video_scheduler,
    )


def create_container() -> ApplicationContainer:
    """Create and configure the application container.

    Returns:
        Configured ApplicationContainer instance
    """
    return ApplicationContainer()


# Global container instance
container = create_container()


# ============================================
# FastAPI Integration
# ============================================


def get_container() -> ApplicationContainer:
    """Get the global container (for FastAPI Depends)."""
    return container


def get_repository():
    """FastAPI dependency for the content repository."""
    return container.repository()


def get_run_launcher():
    """FastAPI dependency for the run launcher."""
    return container.run_launcher()


def get_video_scheduler():
    """FastAPI dependency for the video scheduler."""
    return container.video_scheduler()


__all__ = [
    "ApplicationContainer",
    "ConfigContainer",
    "InfrastructureContainer",
    "ServiceContainer",
    "container",
    "create_container",
    "get_config",
    "get_container",
    "get_repository",
    "get_run_launcher",
    "get_video_scheduler",
]
