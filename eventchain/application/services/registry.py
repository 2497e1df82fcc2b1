"""Build the chain registry from business modules at start-up.

A business module is any object exposing triggers(), actions() and
handlers(). Modules are listed in settings.chain_modules as dotted import
paths; each path must expose a `module` attribute.
"""

from __future__ import annotations

import asyncio
import importlib
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any, Protocol

from eventchain.domain.registry import ActionDescriptor, ChainRegistry, TriggerDescriptor
from eventchain.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

ActionHandler = Callable[[dict[str, Any], asyncio.Event], Awaitable[Mapping[str, Any] | None]]


class IChainModule(Protocol):
    """Protocol for a business module contributing triggers and actions."""

    def triggers(self) -> Iterable[TriggerDescriptor]:
        """Return trigger descriptors owned by this module."""

    def actions(self) -> Iterable[ActionDescriptor]:
        """Return action descriptors owned by this module."""

    def handlers(self) -> Mapping[tuple[str, str], ActionHandler]:
        """Return async handlers keyed by (action_type, version)."""


class RegistryBuilder:
    """Collects descriptors and handlers from modules, then builds an immutable registry.

    Duplicate registrations and compensatable actions whose compensation
    action is not registered at the same version fail with ValueError.
    """

    def __init__(self) -> None:
        self._triggers: dict[str, TriggerDescriptor] = {}
        self._actions: dict[tuple[str, str], ActionDescriptor] = {}
        self._handlers: dict[tuple[str, str], ActionHandler] = {}

    def add_trigger(self, trigger: TriggerDescriptor) -> RegistryBuilder:
        if trigger.event_type in self._triggers:
            raise ValueError(f"Trigger '{trigger.event_type}' is registered twice")
        self._triggers[trigger.event_type] = trigger
        return self

    def add_action(
        self, action: ActionDescriptor, handler: ActionHandler | None = None
    ) -> RegistryBuilder:
        if action.key in self._actions:
            raise ValueError(
                f"Action '{action.action_type}@{action.version}' is registered twice"
            )
        self._actions[action.key] = action
        if handler is not None:
            self._handlers[action.key] = handler
        return self

    def add_module(self, module: IChainModule) -> RegistryBuilder:
        """Register every trigger, action and handler a module declares."""
        for trigger in module.triggers():
            self.add_trigger(trigger)
        for action in module.actions():
            self.add_action(action)
        for key, handler in module.handlers().items():
            key = (key[0], key[1])
            if key in self._handlers:
                raise ValueError(f"Handler for '{key[0]}@{key[1]}' is registered twice")
            self._handlers[key] = handler
        return self

    def build(self) -> ChainRegistry:
        """Validate cross references and return the registry.

        Raises:
            ValueError: On a missing compensation action or a handler without descriptor.
        """
        for action in self._actions.values():
            if not action.is_compensatable:
                continue
            if not action.compensation_action_type:
                raise ValueError(
                    f"Compensatable action '{action.action_type}@{action.version}' "
                    "does not name a compensation action"
                )
            if (action.compensation_action_type, action.version) not in self._actions:
                raise ValueError(
                    f"Compensation action '{action.compensation_action_type}@{action.version}' "
                    f"for '{action.action_type}' is not registered"
                )
        for key in self._handlers:
            if key not in self._actions:
                raise ValueError(f"Handler registered for unknown action '{key[0]}@{key[1]}'")
        for key in self._actions:
            if key not in self._handlers:
                logger.warning("Action %s@%s has no handler; invocations will fail", *key)
        registry = ChainRegistry(self._triggers.values(), self._actions.values())
        logger.info(
            "Chain registry built: %d triggers, %d actions",
            len(self._triggers),
            len(self._actions),
        )
        return registry

    @property
    def handlers(self) -> Mapping[tuple[str, str], ActionHandler]:
        return dict(self._handlers)


def load_chain_modules(paths: Iterable[str]) -> list[IChainModule]:
    """Import each dotted path and return its `module` attribute.

    Raises:
        ValueError: If an imported path does not expose `module`.
    """
    modules: list[IChainModule] = []
    for path in paths:
        imported = importlib.import_module(path)
        module = getattr(imported, "module", None)
        if module is None:
            raise ValueError(f"Chain module '{path}' does not expose a 'module' attribute")
        modules.append(module)
        logger.info("Loaded chain module %s", path)
    return modules


def build_registry(
    modules: Iterable[IChainModule],
) -> tuple[ChainRegistry, Mapping[tuple[str, str], ActionHandler]]:
    """Build the registry and the handler table from modules in one call."""
    builder = RegistryBuilder()
    for module in modules:
        builder.add_module(module)
    return builder.build(), builder.handlers
