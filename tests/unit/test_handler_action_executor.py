"""HandlerActionExecutor: dispatch to module handlers by exact (action_type, version)."""

import asyncio

import pytest

from eventchain.application.services import RegistryBuilder
from eventchain.domain.exceptions import MappingError
from eventchain.domain.registry import ActionDescriptor
from eventchain.infrastructure.actions import HandlerActionExecutor


async def test_execute_calls_handler_and_wraps_output(action_executor, chain_module) -> None:
    result = await action_executor.execute("audit.record", "1.0", {"what": "joined"})
    assert result.succeeded
    assert result.output["echo"] == {"what": "joined"}
    assert chain_module.calls == [("audit.record", {"what": "joined"})]


async def test_unknown_pair_returns_error_result(action_executor, chain_module) -> None:
    result = await action_executor.execute("audit.record", "2.0", {})
    assert not result.succeeded
    assert "Unknown action" in result.error
    assert chain_module.calls == []


async def test_missing_handler_returns_error_result() -> None:
    builder = RegistryBuilder().add_action(ActionDescriptor("orphan", "1", "m"))
    executor = HandlerActionExecutor(builder.build(), builder.handlers)
    result = await executor.execute("orphan", "1", {})
    assert result.error == "No handler registered for orphan@1"


async def test_input_schema_violation_raises_before_handler(action_executor, chain_module) -> None:
    with pytest.raises(MappingError):
        await action_executor.execute("notify.send", "1.0", {"text": "hi"})
    assert chain_module.calls == []


async def test_handler_exception_propagates(action_executor, chain_module) -> None:
    chain_module.failures["audit.record"] = "disk full"
    with pytest.raises(RuntimeError, match="disk full"):
        await action_executor.execute("audit.record", "1.0", {})


async def test_handler_receives_cancel_event() -> None:
    seen: list[asyncio.Event] = []

    async def handler(inputs, cancel_event):
        seen.append(cancel_event)
        return None

    builder = RegistryBuilder().add_action(ActionDescriptor("a", "1", "m"), handler)
    executor = HandlerActionExecutor(builder.build(), builder.handlers)
    event = asyncio.Event()
    result = await executor.execute("a", "1", {}, event)
    assert seen == [event]
    assert result.output == {}
