"""RegistryBuilder, ChainRegistry and module loading tests."""

import sys
import types

import pytest

from eventchain.application.services import RegistryBuilder, build_registry, load_chain_modules
from eventchain.domain.registry import ActionDescriptor, TriggerDescriptor


async def _noop(inputs, cancel_event):
    return {}


def test_registry_lookups_are_exact(registry) -> None:
    assert registry.is_valid_trigger("task.created")
    assert not registry.is_valid_trigger("task.deleted")
    assert registry.is_valid_action("tasks.create_reminder", "1.0")
    assert not registry.is_valid_action("tasks.create_reminder", "1")
    assert registry.get_action("tasks.create_reminder", "2.0") is None


def test_registry_lists_are_sorted_and_filterable(registry) -> None:
    assert [t.event_type for t in registry.list_triggers()] == ["member.joined", "task.created"]
    billing = registry.list_actions("billing")
    assert [a.action_type for a in billing] == ["billing.charge", "billing.refund"]
    assert len(registry.list_actions()) == 6


def test_build_registry_returns_handlers_for_every_action(registry_and_handlers) -> None:
    registry, handlers = registry_and_handlers
    assert set(handlers) == {a.key for a in registry.list_actions()}


def test_duplicate_trigger_rejected() -> None:
    builder = RegistryBuilder().add_trigger(TriggerDescriptor("a.b", "m"))
    with pytest.raises(ValueError, match="registered twice"):
        builder.add_trigger(TriggerDescriptor("a.b", "other"))


def test_duplicate_action_rejected() -> None:
    builder = RegistryBuilder().add_action(ActionDescriptor("x", "1", "m"))
    with pytest.raises(ValueError, match="registered twice"):
        builder.add_action(ActionDescriptor("x", "1", "m"))


def test_same_action_type_different_versions_coexist() -> None:
    registry = (
        RegistryBuilder()
        .add_action(ActionDescriptor("x", "1", "m"), _noop)
        .add_action(ActionDescriptor("x", "2", "m"), _noop)
        .build()
    )
    assert registry.is_valid_action("x", "1")
    assert registry.is_valid_action("x", "2")


def test_compensatable_action_requires_registered_compensation() -> None:
    builder = RegistryBuilder().add_action(
        ActionDescriptor("pay", "1", "m", is_compensatable=True, compensation_action_type="refund")
    )
    with pytest.raises(ValueError, match="not registered"):
        builder.build()


def test_compensatable_action_must_name_compensation() -> None:
    builder = RegistryBuilder().add_action(ActionDescriptor("pay", "1", "m", is_compensatable=True))
    with pytest.raises(ValueError, match="does not name"):
        builder.build()


def test_handler_for_unknown_action_rejected() -> None:
    class Module:
        def triggers(self):
            return []

        def actions(self):
            return []

        def handlers(self):
            return {("ghost", "1"): _noop}

    with pytest.raises(ValueError, match="unknown action"):
        build_registry([Module()])


def test_load_chain_modules_reads_module_attribute(monkeypatch, chain_module) -> None:
    fake = types.ModuleType("fake_chain_module")
    fake.module = chain_module
    monkeypatch.setitem(sys.modules, "fake_chain_module", fake)
    assert load_chain_modules(["fake_chain_module"]) == [chain_module]


def test_load_chain_modules_requires_module_attribute(monkeypatch) -> None:
    monkeypatch.setitem(sys.modules, "empty_chain_module", types.ModuleType("empty_chain_module"))
    with pytest.raises(ValueError, match="does not expose"):
        load_chain_modules(["empty_chain_module"])
