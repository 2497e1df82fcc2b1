"""Chain registry: read-only catalog of triggers and versioned actions.

Built once at start-up (see application.services.registry.RegistryBuilder)
and passed by dependency injection. Lookups are exact; an action is found
only by (action_type, version), never by "latest".
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any


@dataclass(frozen=True)
class TriggerDescriptor:
    """A domain event type a chain can react to, as declared by its owning module."""

    event_type: str
    module: str
    name: str = ""
    description: str = ""
    # JSON Schema for the trigger payload; empty dict accepts anything.
    output_schema: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ActionDescriptor:
    """A versioned unit of work a chain step can invoke."""

    action_type: str
    version: str
    module: str
    name: str = ""
    description: str = ""
    input_schema: Mapping[str, Any] = field(default_factory=dict)
    output_schema: Mapping[str, Any] = field(default_factory=dict)
    is_compensatable: bool = False
    compensation_action_type: str | None = None
    is_deprecated: bool = False

    @property
    def key(self) -> tuple[str, str]:
        return (self.action_type, self.version)


class ChainRegistry:
    """Immutable trigger/action catalog.

    No runtime mutation and no locking: the mappings are read-only views
    over dicts owned by this instance. Absence of an entry is not an error
    here; callers decide how to react.
    """

    def __init__(
        self,
        triggers: Iterable[TriggerDescriptor] = (),
        actions: Iterable[ActionDescriptor] = (),
    ) -> None:
        self._triggers: Mapping[str, TriggerDescriptor] = MappingProxyType(
            {t.event_type: t for t in triggers}
        )
        self._actions: Mapping[tuple[str, str], ActionDescriptor] = MappingProxyType(
            {a.key: a for a in actions}
        )

    def is_valid_trigger(self, event_type: str) -> bool:
        return event_type in self._triggers

    def get_trigger(self, event_type: str) -> TriggerDescriptor | None:
        return self._triggers.get(event_type)

    def is_valid_action(self, action_type: str, version: str) -> bool:
        return (action_type, version) in self._actions

    def get_action(self, action_type: str, version: str) -> ActionDescriptor | None:
        return self._actions.get((action_type, version))

    def list_triggers(self) -> list[TriggerDescriptor]:
        """Return all triggers sorted by event type."""
        return sorted(self._triggers.values(), key=lambda t: t.event_type)

    def list_actions(self, module: str | None = None) -> list[ActionDescriptor]:
        """Return actions (optionally of one module) sorted by type then version."""
        actions = [
            a for a in self._actions.values() if module is None or a.module == module
        ]
        return sorted(actions, key=lambda a: (a.action_type, a.version))

    def __len__(self) -> int:
        return len(self._triggers) + len(self._actions)
