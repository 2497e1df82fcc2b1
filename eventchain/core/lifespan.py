"""Application lifespan: startup and shutdown.

Single place for all startup/shutdown logic. Used by main.py; no business
logic here, only wiring of infrastructure (registry, repositories, worker
pool, telemetry, DB engine dispose).
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from eventchain.application.interfaces.repositories import IRepositoryProvider
from eventchain.application.services import PayloadValidator, build_registry, load_chain_modules
from eventchain.core.config import Settings, get_settings
from eventchain.infrastructure.actions import HandlerActionExecutor
from eventchain.infrastructure.messaging import LoggingEventPublisher
from eventchain.infrastructure.orchestrator import ExecutionWorkerPool
from eventchain.shared.telemetry.logging import get_logger, setup_logging

logger = get_logger(__name__)


def build_repository_provider(settings: Settings) -> IRepositoryProvider:
    """Return the repository provider for the configured database backend."""
    if settings.database_backend == "postgres":
        from eventchain.infrastructure.persistence.database import get_session_factory
        from eventchain.infrastructure.persistence.providers import (
            SqlAlchemyRepositoryProvider,
        )

        return SqlAlchemyRepositoryProvider(get_session_factory())

    from eventchain.infrastructure.persistence.memory import InMemoryRepositoryProvider

    logger.warning("Using in-memory repositories; data is lost on restart")
    return InMemoryRepositoryProvider()


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run startup then yield; on exit run shutdown.

    Startup order: logging, telemetry (if enabled), chain modules and
    registry, repositories, worker pool, recovery sweep. Shutdown order:
    worker pool stop, telemetry shutdown, SQL engine dispose.
    """
    settings = get_settings()
    setup_logging()

    # ---- Startup ----
    telemetry = None
    if settings.telemetry_enabled:
        from eventchain.shared.telemetry.telemetry import TelemetryConfig, set_telemetry

        telemetry = TelemetryConfig(
            service_name=settings.app_name,
            service_version=settings.app_version,
            enabled=True,
            environment=settings.telemetry_environment,
        )
        telemetry.setup_telemetry(
            exporter_type=settings.telemetry_exporter,
            otlp_endpoint=settings.telemetry_otlp_endpoint,
            jaeger_endpoint=settings.telemetry_jaeger_endpoint,
            sample_rate=settings.telemetry_sample_rate,
        )
        set_telemetry(telemetry)
        telemetry.instrument_fastapi(app)
        telemetry.instrument_logging()
        logger.info("Telemetry initialized")

    modules = load_chain_modules(settings.chain_module_paths)
    registry, handlers = build_registry(modules)
    payload_validator = PayloadValidator()
    event_publisher = LoggingEventPublisher()
    repositories = build_repository_provider(settings)

    if telemetry is not None and settings.database_backend == "postgres":
        from eventchain.infrastructure.persistence import database

        telemetry.instrument_sqlalchemy(database.engine)

    worker_pool = ExecutionWorkerPool(
        repositories,
        HandlerActionExecutor(registry, handlers, payload_validator),
        worker_count=settings.execution_worker_count,
        queue_size=settings.execution_queue_size,
        step_timeout_seconds=settings.step_timeout_seconds,
        shutdown_grace_seconds=settings.worker_shutdown_grace_seconds,
        event_publisher=event_publisher,
    )

    app.state.registry = registry
    app.state.payload_validator = payload_validator
    app.state.event_publisher = event_publisher
    app.state.repositories = repositories
    app.state.worker_pool = worker_pool

    await worker_pool.start()
    if settings.recovery_on_startup:
        await worker_pool.recover(settings.recovery_batch_size)

    yield

    # ---- Shutdown ----
    await worker_pool.stop()

    from eventchain.shared.telemetry.telemetry import get_telemetry

    telemetry_instance = get_telemetry()
    if telemetry_instance is not None:
        telemetry_instance.shutdown()
        logger.info("Telemetry shutdown complete")

    if settings.database_backend == "postgres":
        from eventchain.infrastructure.persistence.database import dispose_engine

        await dispose_engine()
