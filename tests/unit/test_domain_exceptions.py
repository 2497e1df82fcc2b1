"""Tests for domain exceptions (error_code, message, details) and their HTTP mapping."""

import pytest

from eventchain.core.exception_handlers import status_for
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
    SqlNotConfiguredException,
    UnknownActionException,
    UnknownTriggerException,
    ValidationException,
)


def test_base_exception_default_error_code() -> None:
    """Base exception uses class name as error_code when not provided."""
    exc = EventChainException("Something failed")
    assert exc.message == "Something failed"
    assert exc.error_code == "EventChainException"
    assert exc.details == {}


def test_base_exception_to_dict() -> None:
    exc = EventChainException("Oops", error_code="CUSTOM", details={"key": "value"})
    assert exc.to_dict() == {
        "error": "CUSTOM",
        "message": "Oops",
        "details": {"key": "value"},
    }


def test_validation_exception_carries_field() -> None:
    exc = ValidationException("bad alias", field="alias")
    assert exc.error_code == "VALIDATION_ERROR"
    assert exc.details == {"field": "alias"}


def test_unknown_action_details() -> None:
    exc = UnknownActionException("tasks.nope", "2.0")
    assert exc.error_code == "UNKNOWN_ACTION"
    assert exc.details == {"action_type": "tasks.nope", "version": "2.0"}
    assert "tasks.nope@2.0" in exc.message


def test_mapping_error_details() -> None:
    exc = MappingError("step1.id", "'step1' is not defined")
    assert exc.error_code == "MAPPING_ERROR"
    assert exc.details["expression"] == "step1.id"


@pytest.mark.parametrize(
    ("exc", "status"),
    [
        (ValidationException("x"), 400),
        (UnknownTriggerException("x.y"), 400),
        (UnknownActionException("x", "1"), 400),
        (SchemaValidationException("x.y", ["<root>: bad"]), 400),
        (ResourceNotFoundException("chain_definition", "c1"), 404),
        (DuplicateAliasException("step1"), 409),
        (ConcurrencyConflictException("chain_definition", "c1", 3), 409),
        (DefinitionInUseException("c1"), 409),
        (InvalidStateTransitionException("chain execution", "completed", "cancel"), 409),
        (ExecutionQueueFullException(10), 503),
        (SqlNotConfiguredException(), 503),
        (EventChainException("unmapped"), 400),
    ],
)
def test_error_code_maps_to_http_status(exc: EventChainException, status: int) -> None:
    assert status_for(exc) == status
