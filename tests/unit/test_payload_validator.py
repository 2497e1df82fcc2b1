"""PayloadValidator: trigger payloads and action inputs against registry schemas."""

import pytest

from eventchain.application.services import PayloadValidator
from eventchain.domain.exceptions import MappingError, SchemaValidationException
from eventchain.domain.registry import ActionDescriptor, TriggerDescriptor


@pytest.fixture
def validator() -> PayloadValidator:
    return PayloadValidator()


def test_valid_trigger_payload_passes(validator, registry) -> None:
    trigger = registry.get_trigger("task.created")
    validator.validate_trigger_payload(trigger, {"task_id": "t1", "amount": 3})


def test_invalid_trigger_payload_lists_errors(validator, registry) -> None:
    trigger = registry.get_trigger("task.created")
    with pytest.raises(SchemaValidationException) as exc_info:
        validator.validate_trigger_payload(trigger, {"amount": "lots"})
    errors = exc_info.value.details["errors"]
    assert exc_info.value.details["schema_type"] == "task.created"
    assert any("task_id" in e for e in errors)
    assert any(e.startswith("amount:") for e in errors)


def test_empty_schema_accepts_anything(validator) -> None:
    validator.validate_trigger_payload(TriggerDescriptor("x.y", "m"), {"anything": [1, 2]})


def test_broken_trigger_schema_is_schema_validation_error(validator) -> None:
    trigger = TriggerDescriptor("x.y", "m", output_schema={"type": "not-a-type"})
    with pytest.raises(SchemaValidationException):
        validator.validate_trigger_payload(trigger, {})


def test_action_inputs_violation_is_mapping_error(validator, registry) -> None:
    action = registry.get_action("notify.send", "1.0")
    validator.validate_action_inputs(action, {"message": "hi"})
    with pytest.raises(MappingError) as exc_info:
        validator.validate_action_inputs(action, {"msg": "hi"})
    assert exc_info.value.details["expression"] == "notify.send@1.0"


def test_action_without_schema_accepts_anything(validator) -> None:
    validator.validate_action_inputs(ActionDescriptor("x", "1", "m"), {"a": object()})
