"""ChainDefinition aggregate: creation, step validation, ordering, lifecycle events."""

import pytest

from eventchain.domain.entities import ChainDefinition, ChainDefinitionStep
from eventchain.domain.events import ChainDefinitionCreated, ChainDefinitionUpdated
from eventchain.domain.exceptions import (
    DuplicateAliasException,
    UnknownActionException,
    UnknownTriggerException,
    ValidationException,
)


def _step(alias: str, order: int, action_type: str = "audit.record", **kwargs) -> ChainDefinitionStep:
    return ChainDefinitionStep.create(
        alias=alias,
        name=alias.replace("_", " "),
        action_type=action_type,
        action_version="1.0",
        step_order=order,
        **kwargs,
    )


def test_create_copies_trigger_metadata(registry) -> None:
    definition, event = ChainDefinition.create(
        name="Welcome",
        description="on join",
        family_id="fam_1",
        created_by_user_id="user_1",
        trigger_event_type="task.created",
        registry=registry,
    )
    assert definition.trigger_module == "tasks"
    assert definition.trigger_output_schema["required"] == ["task_id"]
    assert definition.is_enabled is True
    assert definition.version == 0
    assert isinstance(event, ChainDefinitionCreated)
    assert event.chain_definition_id == definition.id


def test_create_rejects_unknown_trigger(registry) -> None:
    with pytest.raises(UnknownTriggerException):
        ChainDefinition.create(
            name="x",
            description=None,
            family_id="fam_1",
            created_by_user_id="user_1",
            trigger_event_type="task.exploded",
            registry=registry,
        )


def test_create_rejects_blank_name(registry) -> None:
    with pytest.raises(ValidationException) as exc_info:
        ChainDefinition.create(
            name="  ",
            description=None,
            family_id="fam_1",
            created_by_user_id="user_1",
            trigger_event_type="task.created",
            registry=registry,
        )
    assert exc_info.value.details == {"field": "name"}


def test_steps_sorted_by_order_with_stable_ties(make_definition, registry) -> None:
    definition = make_definition()
    definition.add_step(_step("third", 3), registry)
    definition.add_step(_step("first", 1), registry)
    definition.add_step(_step("tie_a", 2), registry)
    definition.add_step(_step("tie_b", 2), registry)
    assert [s.alias.value for s in definition.steps] == ["first", "tie_a", "tie_b", "third"]


def test_add_step_copies_compensation_from_registry(make_definition, registry) -> None:
    definition = make_definition()
    definition.add_step(_step("remind", 1, action_type="tasks.create_reminder"), registry)
    step = definition.get_step("remind")
    assert step.is_compensatable is True
    assert step.compensation_action_type == "tasks.delete_reminder"
    assert step.module == "tasks"


def test_add_step_rejects_duplicate_alias(make_definition, registry) -> None:
    definition = make_definition([{"alias": "log", "action_type": "audit.record", "step_order": 1}])
    with pytest.raises(DuplicateAliasException):
        definition.add_step(_step("log", 2), registry)
    assert len(definition.steps) == 1


def test_add_step_rejects_unregistered_version(make_definition, registry) -> None:
    definition = make_definition()
    step = ChainDefinitionStep.create(
        alias="log", name="log", action_type="audit.record", action_version="9.9", step_order=1
    )
    with pytest.raises(UnknownActionException):
        definition.add_step(step, registry)


@pytest.mark.parametrize(
    ("kwargs", "field"),
    [
        ({"alias": "Bad-Alias"}, "alias"),
        ({"alias": "trigger"}, "alias"),
        ({"action_version": ""}, "action_version"),
        ({"input_mappings": {"task": "trigger."}}, "input_mappings"),
        ({"condition": "trigger.amount >"}, "condition"),
    ],
)
def test_step_create_validates_fields(kwargs, field) -> None:
    values = {
        "alias": "ok",
        "name": "ok",
        "action_type": "audit.record",
        "action_version": "1.0",
        "step_order": 1,
        **kwargs,
    }
    with pytest.raises(ValidationException) as exc_info:
        ChainDefinitionStep.create(**values)
    assert exc_info.value.details["field"] == field


def test_blank_condition_is_dropped() -> None:
    step = ChainDefinitionStep.create(
        alias="ok", name="ok", action_type="audit.record", action_version="1.0",
        step_order=1, condition="   ",
    )
    assert step.condition is None


def test_update_changes_scalars_and_reports_step_count(make_definition) -> None:
    definition = make_definition([{"alias": "log", "action_type": "audit.record", "step_order": 1}])
    event = definition.update(name="Renamed", is_enabled=False)
    assert definition.name.value == "Renamed"
    assert definition.is_enabled is False
    assert isinstance(event, ChainDefinitionUpdated)
    assert event.step_count == 1


def test_enable_disable_and_trigger_matching(make_definition) -> None:
    definition = make_definition()
    definition.disable()
    assert not definition.can_trigger_on("task.created")
    definition.enable()
    assert definition.can_trigger_on("task.created")
    assert not definition.can_trigger_on("member.joined")
    assert definition.belongs_to_family("fam_1")
    assert not definition.belongs_to_family("fam_2")
