"""JSON Schema validation for trigger payloads and action inputs."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import jsonschema

from eventchain.domain.exceptions import MappingError, SchemaValidationException
from eventchain.domain.registry import ActionDescriptor, TriggerDescriptor


def _schema_errors(schema: Mapping[str, Any], instance: Any) -> list[str]:
    if not schema:
        return []
    validator_cls = jsonschema.validators.validator_for(schema)
    validator_cls.check_schema(schema)
    validator = validator_cls(schema)
    return [
        f"{'/'.join(str(p) for p in error.absolute_path) or '<root>'}: {error.message}"
        for error in sorted(validator.iter_errors(instance), key=lambda e: list(e.path))
    ]


class PayloadValidator:
    """Validates payloads against registry schemas; an empty schema accepts anything."""

    def validate_trigger_payload(
        self, trigger: TriggerDescriptor, payload: dict[str, Any]
    ) -> None:
        """Raise SchemaValidationException when payload violates trigger.output_schema."""
        try:
            errors = _schema_errors(trigger.output_schema, payload)
        except jsonschema.SchemaError as e:
            raise SchemaValidationException(
                schema_type=trigger.event_type,
                validation_errors=[str(e.message)],
            ) from e
        if errors:
            raise SchemaValidationException(
                schema_type=trigger.event_type, validation_errors=errors
            )

    def validate_action_inputs(
        self, action: ActionDescriptor, inputs: dict[str, Any]
    ) -> None:
        """Raise MappingError when resolved inputs violate action.input_schema."""
        ref = f"{action.action_type}@{action.version}"
        try:
            errors = _schema_errors(action.input_schema, inputs)
        except jsonschema.SchemaError as e:
            raise MappingError(ref, f"invalid input schema: {e.message}") from e
        if errors:
            raise MappingError(ref, "; ".join(errors))
