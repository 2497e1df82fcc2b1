"""Chain definition aggregate.

A chain definition is an authored blueprint: a trigger event type plus an
ordered list of steps, each bound to a registered (action_type, version),
with input bindings and an optional condition. Steps are owned exclusively
by their definition.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from eventchain.domain.events import (
    ChainDefinitionCreated,
    ChainDefinitionDeleted,
    ChainDefinitionDisabled,
    ChainDefinitionEnabled,
    ChainDefinitionUpdated,
)
from eventchain.domain.exceptions import (
    DuplicateAliasException,
    UnknownActionException,
    UnknownTriggerException,
    ValidationException,
)
from eventchain.domain.registry import ChainRegistry
from eventchain.domain.value_objects.core import (
    ActionVersion,
    BindingExpression,
    ChainName,
    StepAlias,
)
from eventchain.shared.utils.datetime import utc_now
from eventchain.shared.utils.generators import generate_cuid


@dataclass
class ChainDefinitionStep:
    """One step of a chain definition.

    is_compensatable, compensation_action_type and module are copied from
    the registry's ActionDescriptor when the step is added to a definition.
    """

    alias: StepAlias
    name: str
    action_type: str
    action_version: ActionVersion
    step_order: int
    input_mappings: dict[str, str] = field(default_factory=dict)
    condition: str | None = None
    module: str = ""
    is_compensatable: bool = False
    compensation_action_type: str | None = None

    @classmethod
    def create(
        cls,
        alias: str,
        name: str,
        action_type: str,
        action_version: str,
        step_order: int,
        input_mappings: dict[str, str] | None = None,
        condition: str | None = None,
    ) -> ChainDefinitionStep:
        """Build a step from raw values, validating every field.

        Raises:
            ValidationException: If alias, version, a mapping or the condition is invalid.
        """
        try:
            alias_vo = StepAlias(alias)
        except ValueError as e:
            raise ValidationException(str(e), field="alias") from e
        try:
            version_vo = ActionVersion(action_version)
        except ValueError as e:
            raise ValidationException(str(e), field="action_version") from e
        if not action_type:
            raise ValidationException("Action type is required", field="action_type")
        if not name or not name.strip():
            raise ValidationException("Step name is required", field="name")
        mappings = dict(input_mappings or {})
        for param, expression in mappings.items():
            if not param:
                raise ValidationException(
                    "Input mapping parameter names must be non-empty",
                    field="input_mappings",
                )
            try:
                BindingExpression(expression)
            except ValueError as e:
                raise ValidationException(
                    f"Input mapping '{param}': {e}", field="input_mappings"
                ) from e
        if condition is not None:
            condition = condition.strip() or None
        if condition is not None:
            try:
                BindingExpression(condition)
            except ValueError as e:
                raise ValidationException(str(e), field="condition") from e
        return cls(
            alias=alias_vo,
            name=name.strip(),
            action_type=action_type,
            action_version=version_vo,
            step_order=step_order,
            input_mappings=mappings,
            condition=condition,
        )


@dataclass
class ChainDefinition:
    """Aggregate root for a chain definition.

    Invariants: steps sorted by step_order (stable by insertion on ties);
    aliases unique within the definition. A definition with zero steps is
    legal but inert.
    """

    id: str
    family_id: str
    name: ChainName
    description: str | None
    created_by_user_id: str
    trigger_event_type: str
    trigger_module: str = ""
    trigger_description: str | None = None
    trigger_output_schema: dict[str, Any] = field(default_factory=dict)
    is_enabled: bool = True
    version: int = 0
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    steps: list[ChainDefinitionStep] = field(default_factory=list)

    @classmethod
    def create(
        cls,
        *,
        name: str,
        description: str | None,
        family_id: str,
        created_by_user_id: str,
        trigger_event_type: str,
        registry: ChainRegistry,
        is_enabled: bool = True,
    ) -> tuple[ChainDefinition, ChainDefinitionCreated]:
        """Create a new definition after validating the trigger against the registry.

        Returns:
            The new definition and its ChainDefinitionCreated event.

        Raises:
            UnknownTriggerException: If the registry does not know trigger_event_type.
            ValidationException: If name, family or author is missing/invalid.
        """
        trigger = registry.get_trigger(trigger_event_type)
        if trigger is None:
            raise UnknownTriggerException(trigger_event_type)
        if not family_id:
            raise ValidationException("Chain must belong to a family", field="family_id")
        if not created_by_user_id:
            raise ValidationException(
                "Chain author is required", field="created_by_user_id"
            )
        try:
            chain_name = ChainName(name)
        except ValueError as e:
            raise ValidationException(str(e), field="name") from e
        definition = cls(
            id=generate_cuid(),
            family_id=family_id,
            name=chain_name,
            description=description,
            created_by_user_id=created_by_user_id,
            trigger_event_type=trigger.event_type,
            trigger_module=trigger.module,
            trigger_description=trigger.description or None,
            trigger_output_schema=dict(trigger.output_schema),
            is_enabled=is_enabled,
        )
        event = ChainDefinitionCreated(
            chain_definition_id=definition.id,
            family_id=family_id,
            trigger_event_type=definition.trigger_event_type,
            created_by_user_id=created_by_user_id,
        )
        return definition, event

    def add_step(self, step: ChainDefinitionStep, registry: ChainRegistry) -> None:
        """Append a step, keeping steps sorted by step_order.

        Raises:
            DuplicateAliasException: If step.alias is already used here.
            UnknownActionException: If (action_type, action_version) is not registered.
        """
        if any(s.alias == step.alias for s in self.steps):
            raise DuplicateAliasException(step.alias.value)
        action = registry.get_action(step.action_type, step.action_version.value)
        if action is None:
            raise UnknownActionException(step.action_type, step.action_version.value)
        step.module = action.module
        step.is_compensatable = action.is_compensatable
        step.compensation_action_type = action.compensation_action_type
        self.steps.append(step)
        # list.sort is stable: equal step_order keeps insertion order.
        self.steps.sort(key=lambda s: s.step_order)
        self.updated_at = utc_now()

    def clear_steps(self) -> None:
        """Remove all steps (full-replace update: clear then re-add)."""
        self.steps.clear()
        self.updated_at = utc_now()

    def update(
        self,
        name: str | None = None,
        description: str | None = None,
        is_enabled: bool | None = None,
    ) -> ChainDefinitionUpdated:
        """Mutate scalar fields only; steps change through clear_steps + add_step."""
        if name is not None:
            try:
                self.name = ChainName(name)
            except ValueError as e:
                raise ValidationException(str(e), field="name") from e
        if description is not None:
            self.description = description
        if is_enabled is not None:
            self.is_enabled = is_enabled
        self.updated_at = utc_now()
        return ChainDefinitionUpdated(
            chain_definition_id=self.id,
            family_id=self.family_id,
            step_count=len(self.steps),
        )

    def enable(self) -> ChainDefinitionEnabled:
        self.is_enabled = True
        self.updated_at = utc_now()
        return ChainDefinitionEnabled(chain_definition_id=self.id, family_id=self.family_id)

    def disable(self) -> ChainDefinitionDisabled:
        self.is_enabled = False
        self.updated_at = utc_now()
        return ChainDefinitionDisabled(chain_definition_id=self.id, family_id=self.family_id)

    def mark_deleted(self) -> ChainDefinitionDeleted:
        """Return the deletion event; the repository removes the row."""
        return ChainDefinitionDeleted(chain_definition_id=self.id, family_id=self.family_id)

    def get_step(self, alias: str) -> ChainDefinitionStep | None:
        return next((s for s in self.steps if s.alias.value == alias), None)

    def belongs_to_family(self, family_id: str) -> bool:
        """Return whether this definition belongs to the given family."""
        return self.family_id == family_id

    def can_trigger_on(self, event_type: str) -> bool:
        """Return whether this definition is enabled and listens to event_type."""
        return self.is_enabled and self.trigger_event_type == event_type
