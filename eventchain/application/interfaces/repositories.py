"""Repository interfaces (ports) for the application layer.

Protocols define contracts that infrastructure implementations must fulfill (DIP).
Repositories load and store whole aggregates (root plus owned children).
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, NamedTuple, Protocol

if TYPE_CHECKING:
    from contextlib import AbstractAsyncContextManager

    from eventchain.domain.entities import ChainDefinition, ChainExecution
    from eventchain.domain.enums import ChainExecutionStatus


# Chain definition repository interface
class IChainDefinitionRepository(Protocol):
    """Protocol for chain definition persistence (definition + ordered steps)."""

    async def get_by_id(
        self, definition_id: str, family_id: str | None = None
    ) -> ChainDefinition | None:
        """Return definition by id; when family_id is given, only within that family."""

    async def get_by_family(
        self, family_id: str, is_enabled: bool | None = None
    ) -> list[ChainDefinition]:
        """Return definitions of a family (optionally filtered by is_enabled), newest first."""

    async def get_enabled_by_trigger(
        self, family_id: str, event_type: str
    ) -> list[ChainDefinition]:
        """Return enabled definitions of a family listening to event_type."""

    async def add(self, definition: ChainDefinition) -> ChainDefinition:
        """Persist a new definition; sets definition.version."""

    async def update(self, definition: ChainDefinition) -> ChainDefinition:
        """Persist scalar and step changes.

        Raises ConcurrencyConflictException when definition.version is stale.
        """

    async def delete(self, definition: ChainDefinition) -> None:
        """Delete the definition and its steps.

        Raises DefinitionInUseException when an execution references it.
        """


# Chain execution repository interface
class IChainExecutionRepository(Protocol):
    """Protocol for chain execution persistence (execution + step executions)."""

    async def add(self, execution: ChainExecution) -> ChainExecution:
        """Persist a new execution with its step executions."""

    async def save(self, execution: ChainExecution) -> ChainExecution:
        """Persist progress; version-checked.

        Raises ConcurrencyConflictException when execution.version is stale.
        """

    async def request_cancel(self, execution_id: str) -> None:
        """Set cancel_requested on the stored row without bumping its version."""

    async def get_by_id(
        self, execution_id: str, family_id: str | None = None
    ) -> ChainExecution | None:
        """Return execution by id; when family_id is given, only within that family."""

    async def list(
        self,
        family_id: str,
        definition_id: str | None = None,
        status: ChainExecutionStatus | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[ChainExecution]:
        """Return executions of a family, newest first."""

    async def get_unfinished(self, limit: int) -> list[ChainExecution]:
        """Return pending, running and compensating executions, oldest first."""

    async def count_for_definition(self, definition_id: str) -> int:
        """Return number of executions recorded for a definition."""

    async def last_executed_at(self, definition_id: str) -> datetime | None:
        """Return started_at of the most recent execution of a definition."""


class ChainRepositories(NamedTuple):
    """Repositories sharing one unit of work."""

    definitions: IChainDefinitionRepository
    executions: IChainExecutionRepository


# Repository provider interface
class IRepositoryProvider(Protocol):
    """Protocol for opening a repository scope (one session / unit of work)."""

    def scope(self) -> AbstractAsyncContextManager[ChainRepositories]:
        """Return an async context manager yielding ChainRepositories.

        Pending definition changes are committed on clean exit and rolled back
        on error. Execution writes are visible to other scopes immediately.
        """
