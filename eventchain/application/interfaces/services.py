"""Service interfaces (ports) for the application layer.

Protocols define contracts for application services (DIP).
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from eventchain.domain.events import DomainEvent


@dataclass(frozen=True)
class ActionResult:
    """Outcome of one action invocation: output on success, error otherwise."""

    output: dict[str, Any] | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, output: Mapping[str, Any] | None = None) -> ActionResult:
        return cls(output=dict(output or {}))

    @classmethod
    def fail(cls, error: str) -> ActionResult:
        return cls(error=error)


# Action executor interface
class IActionExecutor(Protocol):
    """Protocol for invoking a registered action (the boundary to business modules)."""

    async def execute(
        self,
        action_type: str,
        version: str,
        inputs: dict[str, Any],
        cancel_event: asyncio.Event | None = None,
    ) -> ActionResult:
        """Run the action for (action_type, version) with resolved inputs.

        Returns an error result for an unknown pair or a failing handler;
        raises MappingError when inputs violate the action's input schema.
        """


# Execution dispatcher interface
class IExecutionDispatcher(Protocol):
    """Protocol for handing a persisted execution to the worker pool."""

    def dispatch(self, execution_id: str) -> None:
        """Enqueue execution_id; raise ExecutionQueueFullException when at capacity."""

    def request_cancel(self, execution_id: str) -> None:
        """Signal the cancel event of a queued or running execution."""


# Domain event publisher interface
class IDomainEventPublisher(Protocol):
    """Protocol for publishing domain events returned by aggregate operations."""

    async def publish(self, events: Iterable[DomainEvent]) -> None:
        """Publish events in order."""
