"""Domain layer: aggregates, value objects, enums, events and exceptions.

No dependencies on infrastructure or presentation. Used by application
and infrastructure layers.
"""

from eventchain.domain.entities import (
    ChainDefinition,
    ChainDefinitionStep,
    ChainExecution,
    StepExecution,
)
from eventchain.domain.enums import (
    ChainExecutionStatus,
    CompensationOutcome,
    StepExecutionStatus,
)
from eventchain.domain.exceptions import (
    ConcurrencyConflictException,
    DefinitionInUseException,
    DuplicateAliasException,
    EventChainException,
    ExecutionQueueFullException,
    InvalidStateTransitionException,
    MappingError,
    ResourceNotFoundException,
    SchemaValidationException,
    UnknownActionException,
    UnknownTriggerException,
    ValidationException,
)
from eventchain.domain.registry import ActionDescriptor, ChainRegistry, TriggerDescriptor
from eventchain.domain.value_objects import ActionVersion, ChainName, StepAlias

__all__ = [
    # Aggregates
    "ChainDefinition",
    "ChainDefinitionStep",
    "ChainExecution",
    "StepExecution",
    # Enums
    "ChainExecutionStatus",
    "CompensationOutcome",
    "StepExecutionStatus",
    # Exceptions
    "ConcurrencyConflictException",
    "DefinitionInUseException",
    "DuplicateAliasException",
    "EventChainException",
    "ExecutionQueueFullException",
    "InvalidStateTransitionException",
    "MappingError",
    "ResourceNotFoundException",
    "SchemaValidationException",
    "UnknownActionException",
    "UnknownTriggerException",
    "ValidationException",
    # Registry
    "ActionDescriptor",
    "ChainRegistry",
    "TriggerDescriptor",
    # Value objects
    "ActionVersion",
    "ChainName",
    "StepAlias",
]
