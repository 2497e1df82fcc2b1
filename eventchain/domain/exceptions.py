"""Domain exceptions for the event-chain engine.

Defines domain-level exceptions that represent business rule violations.
These exceptions are independent of infrastructure concerns. Presentation
layer maps them to HTTP responses in exception handlers.

Run-time step failures are never raised to callers; they are recorded on
the execution. MappingError is the one exception the orchestrator raises
and catches internally.
"""

from typing import Any


class EventChainException(Exception):
    """Base exception for all event-chain application errors.

    All custom exceptions should inherit from this class to allow
    consistent error handling and logging. Presentation layer maps
    these to HTTP responses using message, error_code, and details.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. field, resource_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON body used by the API exception handler."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(EventChainException):
    """Raised when input validation fails (e.g. invalid format or range)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field or attribute that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class ResourceNotFoundException(EventChainException):
    """Raised when a requested resource is not found (or belongs to another family)."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialize with resource type and id.

        Args:
            resource_type: Type of resource (e.g. 'chain_definition').
            resource_id: The ID that was not found.
        """
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class UnknownTriggerException(EventChainException):
    """Raised when a chain definition references a trigger the registry does not know."""

    def __init__(self, event_type: str) -> None:
        super().__init__(
            f"Unknown trigger event type: {event_type}",
            "UNKNOWN_TRIGGER",
            {"event_type": event_type},
        )


class UnknownActionException(EventChainException):
    """Raised when a step references an (action_type, version) pair not in the registry."""

    def __init__(self, action_type: str, version: str) -> None:
        super().__init__(
            f"Unknown action: {action_type}@{version}",
            "UNKNOWN_ACTION",
            {"action_type": action_type, "version": version},
        )


class DuplicateAliasException(EventChainException):
    """Raised when a step alias is already used within the same chain definition."""

    def __init__(self, alias: str) -> None:
        super().__init__(
            f"Step alias '{alias}' is already used in this chain",
            "DUPLICATE_ALIAS",
            {"alias": alias},
        )


class SchemaValidationException(EventChainException):
    """Raised when a payload fails JSON Schema validation (trigger payload or action input)."""

    def __init__(self, schema_type: str, validation_errors: list[Any]) -> None:
        """Initialize with schema type and validation errors.

        Args:
            schema_type: Trigger event type or action reference.
            validation_errors: List of validation error messages (from jsonschema).
        """
        super().__init__(
            f"Schema validation failed for {schema_type}",
            "SCHEMA_VALIDATION_ERROR",
            {"schema_type": schema_type, "errors": validation_errors},
        )


class InvalidStateTransitionException(EventChainException):
    """Raised when an aggregate is asked to move to a status it cannot reach."""

    def __init__(self, entity: str, current: str, target: str) -> None:
        super().__init__(
            f"Cannot move {entity} from '{current}' to '{target}'",
            "INVALID_STATE_TRANSITION",
            {"entity": entity, "current": current, "target": target},
        )


class ConcurrencyConflictException(EventChainException):
    """Raised when a stale aggregate version is written (optimistic lock)."""

    def __init__(self, resource_type: str, resource_id: str, expected_version: int) -> None:
        super().__init__(
            f"{resource_type} {resource_id} was modified concurrently; reload and retry.",
            "CONCURRENCY_CONFLICT",
            {
                "resource_type": resource_type,
                "resource_id": resource_id,
                "expected_version": expected_version,
            },
        )


class DefinitionInUseException(EventChainException):
    """Raised when a chain definition with execution history is deleted."""

    def __init__(self, definition_id: str) -> None:
        super().__init__(
            f"Chain definition {definition_id} has executions and cannot be deleted; "
            "disable it instead.",
            "DEFINITION_IN_USE",
            {"chain_definition_id": definition_id},
        )


class ExecutionQueueFullException(EventChainException):
    """Raised when the execution queue is at capacity (backpressure)."""

    def __init__(self, capacity: int) -> None:
        super().__init__(
            "Chain execution queue is full; try again later.",
            "EXECUTION_QUEUE_FULL",
            {"capacity": capacity},
        )


class MappingError(EventChainException):
    """Raised when a binding expression or condition cannot be resolved against the context."""

    def __init__(self, expression: str, reason: str) -> None:
        super().__init__(
            f"Cannot resolve '{expression}': {reason}",
            "MAPPING_ERROR",
            {"expression": expression, "reason": reason},
        )


class SqlNotConfiguredException(EventChainException):
    """Raised when an operation requires Postgres but the backend is not configured."""

    def __init__(self) -> None:
        super().__init__(
            message="This operation requires a SQL database that is not configured.",
            error_code="SERVICE_UNAVAILABLE",
        )
