"""In-memory repositories for the 'memory' backend (development and tests).

State lives in an InMemoryChainStore shared by every repository scope of
the process. Aggregates are deep-copied on the way in and out so callers
never share mutable state with the store, and writes are version-checked
like the SQL repositories.
"""

from __future__ import annotations

import copy
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime

from eventchain.application.interfaces.repositories import ChainRepositories
from eventchain.domain.entities import ChainDefinition, ChainExecution
from eventchain.domain.enums import ChainExecutionStatus
from eventchain.domain.exceptions import (
    ConcurrencyConflictException,
    DefinitionInUseException,
    ResourceNotFoundException,
)


@dataclass
class InMemoryChainStore:
    """Process-wide storage for definitions and executions."""

    definitions: dict[str, ChainDefinition] = field(default_factory=dict)
    executions: dict[str, ChainExecution] = field(default_factory=dict)


class InMemoryChainDefinitionRepository:
    """Dict-backed chain definition repository (implements IChainDefinitionRepository)."""

    def __init__(self, store: InMemoryChainStore) -> None:
        self.store = store

    async def get_by_id(
        self, definition_id: str, family_id: str | None = None
    ) -> ChainDefinition | None:
        definition = self.store.definitions.get(definition_id)
        if definition is None or (family_id is not None and definition.family_id != family_id):
            return None
        return copy.deepcopy(definition)

    async def get_by_family(
        self, family_id: str, is_enabled: bool | None = None
    ) -> list[ChainDefinition]:
        found = [
            d
            for d in self.store.definitions.values()
            if d.family_id == family_id and (is_enabled is None or d.is_enabled == is_enabled)
        ]
        found.sort(key=lambda d: d.created_at, reverse=True)
        return copy.deepcopy(found)

    async def get_enabled_by_trigger(
        self, family_id: str, event_type: str
    ) -> list[ChainDefinition]:
        found = [
            d
            for d in self.store.definitions.values()
            if d.family_id == family_id and d.can_trigger_on(event_type)
        ]
        found.sort(key=lambda d: d.created_at)
        return copy.deepcopy(found)

    async def add(self, definition: ChainDefinition) -> ChainDefinition:
        definition.version = 1
        self.store.definitions[definition.id] = copy.deepcopy(definition)
        return definition

    async def update(self, definition: ChainDefinition) -> ChainDefinition:
        stored = self.store.definitions.get(definition.id)
        if stored is None:
            raise ResourceNotFoundException("chain_definition", definition.id)
        if stored.version != definition.version:
            raise ConcurrencyConflictException(
                "chain_definition", definition.id, definition.version
            )
        definition.version += 1
        self.store.definitions[definition.id] = copy.deepcopy(definition)
        return definition

    async def delete(self, definition: ChainDefinition) -> None:
        if any(
            e.chain_definition_id == definition.id for e in self.store.executions.values()
        ):
            raise DefinitionInUseException(definition.id)
        self.store.definitions.pop(definition.id, None)


class InMemoryChainExecutionRepository:
    """Dict-backed chain execution repository (implements IChainExecutionRepository)."""

    def __init__(self, store: InMemoryChainStore) -> None:
        self.store = store

    async def add(self, execution: ChainExecution) -> ChainExecution:
        execution.version = 1
        self.store.executions[execution.id] = copy.deepcopy(execution)
        return execution

    async def save(self, execution: ChainExecution) -> ChainExecution:
        stored = self.store.executions.get(execution.id)
        if stored is None:
            raise ResourceNotFoundException("chain_execution", execution.id)
        if stored.version != execution.version:
            raise ConcurrencyConflictException(
                "chain_execution", execution.id, execution.version
            )
        # The cancel flag is sticky; request_cancel may have set it on the stored copy.
        execution.cancel_requested = execution.cancel_requested or stored.cancel_requested
        execution.version += 1
        self.store.executions[execution.id] = copy.deepcopy(execution)
        return execution

    async def request_cancel(self, execution_id: str) -> None:
        stored = self.store.executions.get(execution_id)
        if stored is not None:
            stored.cancel_requested = True

    async def get_by_id(
        self, execution_id: str, family_id: str | None = None
    ) -> ChainExecution | None:
        execution = self.store.executions.get(execution_id)
        if execution is None or (family_id is not None and execution.family_id != family_id):
            return None
        return copy.deepcopy(execution)

    async def list(
        self,
        family_id: str,
        definition_id: str | None = None,
        status: ChainExecutionStatus | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[ChainExecution]:
        found = [
            e
            for e in self.store.executions.values()
            if e.family_id == family_id
            and (definition_id is None or e.chain_definition_id == definition_id)
            and (status is None or e.status == status)
        ]
        found.sort(key=lambda e: e.started_at, reverse=True)
        return copy.deepcopy(found[skip : skip + limit])

    async def get_unfinished(self, limit: int) -> list[ChainExecution]:
        found = [e for e in self.store.executions.values() if not e.status.is_terminal]
        found.sort(key=lambda e: e.started_at)
        return copy.deepcopy(found[:limit])

    async def count_for_definition(self, definition_id: str) -> int:
        return sum(
            1 for e in self.store.executions.values() if e.chain_definition_id == definition_id
        )

    async def last_executed_at(self, definition_id: str) -> datetime | None:
        started = [
            e.started_at
            for e in self.store.executions.values()
            if e.chain_definition_id == definition_id
        ]
        return max(started, default=None)


class InMemoryRepositoryProvider:
    """Repository provider over one shared store (implements IRepositoryProvider)."""

    def __init__(self, store: InMemoryChainStore | None = None) -> None:
        self.store = store or InMemoryChainStore()

    @asynccontextmanager
    async def scope(self) -> AsyncIterator[ChainRepositories]:
        yield ChainRepositories(
            definitions=InMemoryChainDefinitionRepository(self.store),
            executions=InMemoryChainExecutionRepository(self.store),
        )
