"""Start chain executions: manually (API) or from a domain event.

Both paths validate the trigger payload, snapshot the definition's steps
into a pending execution, persist it and hand its id to the dispatcher.
The run itself happens on the worker pool; run-time failures never reach
the caller.
"""

from __future__ import annotations

from typing import Any

from eventchain.application.interfaces.repositories import (
    IChainDefinitionRepository,
    IChainExecutionRepository,
)
from eventchain.application.interfaces.services import (
    IDomainEventPublisher,
    IExecutionDispatcher,
)
from eventchain.application.services.payload_validator import PayloadValidator
from eventchain.domain.entities import ChainDefinition, ChainExecution
from eventchain.domain.exceptions import (
    EventChainException,
    ExecutionQueueFullException,
    ResourceNotFoundException,
    UnknownTriggerException,
)
from eventchain.domain.registry import ChainRegistry
from eventchain.shared.telemetry.logging import get_logger
from eventchain.shared.utils.generators import generate_uuid

logger = get_logger(__name__)

REASON_QUEUE_FULL = "rejected: execution queue full"


class _ExecutionStarter:
    """Shared start path: validate, snapshot, persist, dispatch, publish."""

    def __init__(
        self,
        definition_repo: IChainDefinitionRepository,
        execution_repo: IChainExecutionRepository,
        registry: ChainRegistry,
        dispatcher: IExecutionDispatcher,
        event_publisher: IDomainEventPublisher,
        payload_validator: PayloadValidator | None = None,
    ) -> None:
        self.definition_repo = definition_repo
        self.execution_repo = execution_repo
        self.registry = registry
        self.dispatcher = dispatcher
        self.event_publisher = event_publisher
        self.payload_validator = payload_validator or PayloadValidator()

    async def _start(
        self,
        definition: ChainDefinition,
        trigger_event_id: str,
        payload: dict[str, Any],
    ) -> ChainExecution:
        trigger = self.registry.get_trigger(definition.trigger_event_type)
        if trigger is None:
            raise UnknownTriggerException(definition.trigger_event_type)
        self.payload_validator.validate_trigger_payload(trigger, payload)

        execution, started = ChainExecution.for_definition(
            definition, trigger_event_id, payload
        )
        execution = await self.execution_repo.add(execution)
        try:
            self.dispatcher.dispatch(execution.id)
        except ExecutionQueueFullException:
            execution.mark_failed(REASON_QUEUE_FULL)
            await self.execution_repo.save(execution)
            logger.warning(
                "Chain execution rejected (queue full): execution_id=%s definition_id=%s",
                execution.id,
                definition.id,
            )
            raise
        await self.event_publisher.publish([started])
        logger.info(
            "Chain %s triggered by %s: execution_id=%s correlation_id=%s",
            definition.name.value,
            definition.trigger_event_type,
            execution.id,
            execution.correlation_id,
        )
        return execution


class ExecuteChainUseCase(_ExecutionStarter):
    """Manual execution of one definition with a caller-supplied trigger payload."""

    async def execute_manually(
        self,
        definition_id: str,
        family_id: str,
        payload: dict[str, Any] | None = None,
    ) -> ChainExecution:
        """Start and dispatch one execution; return it while still pending.

        Raises:
            ResourceNotFoundException: If the definition is not in this family.
            SchemaValidationException: If payload violates the trigger schema.
            ExecutionQueueFullException: If the worker queue is at capacity.
        """
        definition = await self.definition_repo.get_by_id(definition_id, family_id)
        if definition is None:
            raise ResourceNotFoundException("chain_definition", definition_id)
        return await self._start(definition, generate_uuid(), dict(payload or {}))


class TriggerChainsUseCase(_ExecutionStarter):
    """Reacts to a domain event by starting every matching enabled chain of the family."""

    async def handle(
        self,
        event_type: str,
        event_id: str,
        family_id: str,
        payload: dict[str, Any] | None = None,
    ) -> list[ChainExecution]:
        """Start one execution per matching definition.

        A definition that fails to start is logged and skipped; the others
        still start. Returns the executions that were dispatched.
        """
        if not self.registry.is_valid_trigger(event_type):
            logger.debug("Ignoring unregistered trigger event type %s", event_type)
            return []
        definitions = await self.definition_repo.get_enabled_by_trigger(family_id, event_type)
        if not definitions:
            logger.debug(
                "No chain definitions match event %s for family_id=%s", event_type, family_id
            )
            return []
        started: list[ChainExecution] = []
        for definition in definitions:
            try:
                execution = await self._start(definition, event_id, dict(payload or {}))
            except EventChainException as e:
                logger.error(
                    "Failed to trigger chain %s for event %s: %s",
                    definition.id,
                    event_type,
                    e.message,
                )
                continue
            except Exception:
                logger.exception(
                    "Failed to trigger chain %s for event %s", definition.id, event_type
                )
                continue
            started.append(execution)
        return started
