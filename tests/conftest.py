"""Pytest configuration and fixtures for the event-chain engine.

The fake business module below registers a 'task.created' trigger and a
handful of actions whose handlers record every call. Tests tune behaviour
through RecordingModule.failures / delays. HTTP tests use
eventchain.main.create_app with app.state filled by hand (ASGITransport
does not run the lifespan).
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from eventchain.application.services import build_registry
from eventchain.application.services.payload_validator import PayloadValidator
from eventchain.core.limiter import limiter
from eventchain.domain.entities import ChainDefinition, ChainDefinitionStep
from eventchain.domain.registry import ActionDescriptor, ChainRegistry, TriggerDescriptor
from eventchain.infrastructure.actions import HandlerActionExecutor
from eventchain.infrastructure.messaging import InMemoryOutbox
from eventchain.infrastructure.orchestrator import ExecutionWorkerPool
from eventchain.infrastructure.persistence import database
from eventchain.infrastructure.persistence.memory import (
    InMemoryChainStore,
    InMemoryRepositoryProvider,
)
from eventchain.main import create_app

FAMILY_ID = "fam_1"
OTHER_FAMILY_ID = "fam_2"
USER_ID = "user_1"
TRIGGER = "task.created"

TASK_CREATED_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "task_id": {"type": "string"},
        "amount": {"type": "number"},
    },
    "required": ["task_id"],
}


class RecordingModule:
    """Business module whose handlers record calls and can be told to fail or stall."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.failures: dict[str, str] = {}
        self.delays: dict[str, float] = {}

    def triggers(self) -> list[TriggerDescriptor]:
        return [
            TriggerDescriptor(
                event_type=TRIGGER,
                module="tasks",
                name="Task created",
                output_schema=TASK_CREATED_SCHEMA,
            ),
            TriggerDescriptor(event_type="member.joined", module="family"),
        ]

    def actions(self) -> list[ActionDescriptor]:
        return [
            ActionDescriptor(
                "tasks.create_reminder",
                "1.0",
                "tasks",
                is_compensatable=True,
                compensation_action_type="tasks.delete_reminder",
            ),
            ActionDescriptor("tasks.delete_reminder", "1.0", "tasks"),
            ActionDescriptor(
                "notify.send",
                "1.0",
                "notifications",
                input_schema={
                    "type": "object",
                    "properties": {"message": {"type": "string"}},
                    "required": ["message"],
                },
            ),
            ActionDescriptor(
                "billing.charge",
                "1.0",
                "billing",
                is_compensatable=True,
                compensation_action_type="billing.refund",
            ),
            ActionDescriptor("billing.refund", "1.0", "billing"),
            ActionDescriptor("audit.record", "1.0", "audit"),
        ]

    def handlers(self) -> dict[tuple[str, str], Callable]:
        return {(a.action_type, a.version): self._handler(a.action_type) for a in self.actions()}

    def _handler(self, action_type: str) -> Callable:
        async def handle(inputs: dict[str, Any], cancel_event: asyncio.Event) -> dict[str, Any]:
            self.calls.append((action_type, dict(inputs)))
            delay = self.delays.get(action_type)
            if delay:
                await asyncio.sleep(delay)
            if action_type in self.failures:
                raise RuntimeError(self.failures[action_type])
            return {"id": f"{action_type}-{len(self.calls)}", "echo": dict(inputs)}

        return handle

    def calls_to(self, action_type: str) -> list[dict[str, Any]]:
        return [inputs for name, inputs in self.calls if name == action_type]


@pytest.fixture
def chain_module() -> RecordingModule:
    return RecordingModule()


@pytest.fixture
def registry_and_handlers(chain_module: RecordingModule):
    return build_registry([chain_module])


@pytest.fixture
def registry(registry_and_handlers) -> ChainRegistry:
    return registry_and_handlers[0]


@pytest.fixture
def action_executor(registry_and_handlers) -> HandlerActionExecutor:
    registry, handlers = registry_and_handlers
    return HandlerActionExecutor(registry, handlers, PayloadValidator())


@pytest.fixture
def store() -> InMemoryChainStore:
    return InMemoryChainStore()


@pytest.fixture
def provider(store: InMemoryChainStore) -> InMemoryRepositoryProvider:
    return InMemoryRepositoryProvider(store)


@pytest.fixture
def outbox() -> InMemoryOutbox:
    return InMemoryOutbox()


@pytest.fixture
def make_definition(registry: ChainRegistry):
    """Factory: build (not persist) a definition from step dicts.

    Each dict needs alias, action_type and step_order; name defaults to the
    alias and action_version to "1.0".
    """

    def _make(
        steps: list[dict[str, Any]] = (),
        *,
        family_id: str = FAMILY_ID,
        is_enabled: bool = True,
        trigger: str = TRIGGER,
        name: str = "Reminder chain",
    ) -> ChainDefinition:
        definition, _ = ChainDefinition.create(
            name=name,
            description=None,
            family_id=family_id,
            created_by_user_id=USER_ID,
            trigger_event_type=trigger,
            registry=registry,
            is_enabled=is_enabled,
        )
        for spec in steps:
            spec = {"name": spec["alias"], "action_version": "1.0", **spec}
            definition.add_step(ChainDefinitionStep.create(**spec), registry)
        return definition

    return _make


@pytest.fixture
async def worker_pool(provider, action_executor, outbox):
    """Started pool with a short step timeout; stopped after the test."""
    pool = ExecutionWorkerPool(
        provider,
        action_executor,
        worker_count=2,
        queue_size=10,
        step_timeout_seconds=2.0,
        shutdown_grace_seconds=0.1,
        event_publisher=outbox,
    )
    await pool.start()
    yield pool
    await pool.stop()


@pytest.fixture
async def app(registry, provider, outbox, worker_pool):
    """FastAPI app wired to the in-memory backend and the test registry."""
    application = create_app()
    application.state.registry = registry
    application.state.payload_validator = PayloadValidator()
    application.state.event_publisher = outbox
    application.state.repositories = provider
    application.state.worker_pool = worker_pool
    limiter.reset()
    return application


@pytest.fixture
async def client(app) -> AsyncClient:
    """Async HTTP client against the FastAPI app (ASGI)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def family_headers() -> dict[str, str]:
    return {"X-Family-ID": FAMILY_ID, "X-User-ID": USER_ID}


@pytest.fixture
async def db_session_factory():
    """Session factory for repository integration tests.

    Requires DATABASE_BACKEND=postgres, DATABASE_URL and a migrated schema
    (alembic upgrade head). Skips when Postgres is not configured. Mark
    such tests with @pytest.mark.requires_db; run without DB via
    pytest -m 'not requires_db'.
    """
    database._ensure_engine()
    if database.AsyncSessionLocal is None:
        pytest.skip(
            "Postgres not configured: set DATABASE_BACKEND=postgres and DATABASE_URL, "
            "then run: alembic upgrade head"
        )
    yield database.AsyncSessionLocal
    await database.dispose_engine()
