"""Default action executor: dispatch to handlers registered by business modules."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

from eventchain.application.interfaces.services import ActionResult
from eventchain.application.services.payload_validator import PayloadValidator
from eventchain.application.services.registry import ActionHandler
from eventchain.domain.registry import ChainRegistry
from eventchain.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class HandlerActionExecutor:
    """Looks up the async handler for (action_type, version) and runs it (implements IActionExecutor).

    An unregistered pair or a pair without a handler yields an error result.
    Inputs are validated against the action's input_schema first; a
    violation raises MappingError. Handler exceptions propagate to the
    orchestrator, which records them on the step.
    """

    def __init__(
        self,
        registry: ChainRegistry,
        handlers: Mapping[tuple[str, str], ActionHandler],
        payload_validator: PayloadValidator | None = None,
    ) -> None:
        self._registry = registry
        self._handlers = dict(handlers)
        self._payload_validator = payload_validator or PayloadValidator()

    async def execute(
        self,
        action_type: str,
        version: str,
        inputs: dict[str, Any],
        cancel_event: asyncio.Event | None = None,
    ) -> ActionResult:
        action = self._registry.get_action(action_type, version)
        if action is None:
            return ActionResult.fail(f"Unknown action: {action_type}@{version}")
        handler = self._handlers.get((action_type, version))
        if handler is None:
            return ActionResult.fail(f"No handler registered for {action_type}@{version}")
        if action.is_deprecated:
            logger.warning("Invoking deprecated action %s@%s", action_type, version)
        self._payload_validator.validate_action_inputs(action, inputs)
        output = await handler(inputs, cancel_event or asyncio.Event())
        return ActionResult.ok(output)
