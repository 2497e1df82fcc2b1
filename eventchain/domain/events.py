"""Domain events returned by aggregate operations.

Aggregates do not keep a mutable event list. Each state-changing operation
returns the event value it produced and the application layer hands it to
an IDomainEventPublisher (outbox).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, ClassVar

from eventchain.shared.utils.datetime import utc_now


@dataclass(frozen=True)
class DomainEvent:
    """Base for all domain events (occurred_at set on creation)."""

    event_name: ClassVar[str] = "domain_event"

    occurred_at: datetime = field(default_factory=utc_now, kw_only=True)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logging or an outbox row."""
        data = asdict(self)
        data["event_name"] = self.event_name
        data["occurred_at"] = self.occurred_at.isoformat()
        return data


@dataclass(frozen=True)
class ChainDefinitionCreated(DomainEvent):
    event_name: ClassVar[str] = "chain_definition.created"

    chain_definition_id: str
    family_id: str
    trigger_event_type: str
    created_by_user_id: str


@dataclass(frozen=True)
class ChainDefinitionUpdated(DomainEvent):
    event_name: ClassVar[str] = "chain_definition.updated"

    chain_definition_id: str
    family_id: str
    step_count: int


@dataclass(frozen=True)
class ChainDefinitionEnabled(DomainEvent):
    event_name: ClassVar[str] = "chain_definition.enabled"

    chain_definition_id: str
    family_id: str


@dataclass(frozen=True)
class ChainDefinitionDisabled(DomainEvent):
    event_name: ClassVar[str] = "chain_definition.disabled"

    chain_definition_id: str
    family_id: str


@dataclass(frozen=True)
class ChainDefinitionDeleted(DomainEvent):
    event_name: ClassVar[str] = "chain_definition.deleted"

    chain_definition_id: str
    family_id: str


@dataclass(frozen=True)
class ChainExecutionStarted(DomainEvent):
    event_name: ClassVar[str] = "chain_execution.started"

    chain_execution_id: str
    chain_definition_id: str
    family_id: str
    correlation_id: str
    trigger_event_type: str


@dataclass(frozen=True)
class ChainExecutionCompleted(DomainEvent):
    event_name: ClassVar[str] = "chain_execution.completed"

    chain_execution_id: str
    chain_definition_id: str
    family_id: str
    correlation_id: str
    succeeded_steps: int
    total_steps: int


@dataclass(frozen=True)
class ChainExecutionFailed(DomainEvent):
    event_name: ClassVar[str] = "chain_execution.failed"

    chain_execution_id: str
    chain_definition_id: str
    family_id: str
    correlation_id: str
    failed_step_alias: str | None
    reason: str
    compensation_outcome: str
