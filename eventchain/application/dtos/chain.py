"""DTOs for chain authoring and queries (no ORM dependency)."""

from dataclasses import dataclass, field
from datetime import datetime

from eventchain.domain.entities import ChainDefinition


@dataclass(frozen=True)
class StepSpec:
    """Authoring input for one chain step (validated when added to a definition)."""

    alias: str
    name: str
    action_type: str
    action_version: str
    step_order: int
    input_mappings: dict[str, str] = field(default_factory=dict)
    condition: str | None = None


@dataclass(frozen=True)
class ChainDefinitionDetails:
    """Definition read-model with execution statistics."""

    definition: ChainDefinition
    execution_count: int
    last_executed_at: datetime | None
