"""Chain definition operations: create, update, delete, enable, disable, get, list."""

from __future__ import annotations

from collections.abc import Sequence

from eventchain.application.dtos.chain import ChainDefinitionDetails, StepSpec
from eventchain.application.interfaces.repositories import (
    IChainDefinitionRepository,
    IChainExecutionRepository,
)
from eventchain.application.interfaces.services import IDomainEventPublisher
from eventchain.domain.entities import ChainDefinition, ChainDefinitionStep
from eventchain.domain.exceptions import (
    DefinitionInUseException,
    ResourceNotFoundException,
)
from eventchain.domain.registry import ChainRegistry
from eventchain.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


def _apply_steps(
    definition: ChainDefinition, steps: Sequence[StepSpec], registry: ChainRegistry
) -> None:
    for spec in steps:
        step = ChainDefinitionStep.create(
            alias=spec.alias,
            name=spec.name,
            action_type=spec.action_type,
            action_version=spec.action_version,
            step_order=spec.step_order,
            input_mappings=spec.input_mappings,
            condition=spec.condition,
        )
        definition.add_step(step, registry)


class ChainDefinitionService:
    """Authoring and queries for chain definitions (family scoped).

    All validation happens on the aggregate before the repository is
    touched, so nothing is persisted when authoring fails.
    """

    def __init__(
        self,
        definition_repo: IChainDefinitionRepository,
        execution_repo: IChainExecutionRepository,
        registry: ChainRegistry,
        event_publisher: IDomainEventPublisher,
    ) -> None:
        self.definition_repo = definition_repo
        self.execution_repo = execution_repo
        self.registry = registry
        self.event_publisher = event_publisher

    async def _get_owned(self, definition_id: str, family_id: str) -> ChainDefinition:
        definition = await self.definition_repo.get_by_id(definition_id, family_id)
        if definition is None:
            raise ResourceNotFoundException("chain_definition", definition_id)
        return definition

    async def create(
        self,
        *,
        family_id: str,
        created_by_user_id: str,
        name: str,
        trigger_event_type: str,
        steps: Sequence[StepSpec] = (),
        description: str | None = None,
        is_enabled: bool = True,
    ) -> ChainDefinition:
        """Create a definition with its steps.

        Raises:
            UnknownTriggerException: If trigger_event_type is not registered.
            UnknownActionException: If a step references an unregistered action.
            DuplicateAliasException: If two steps share an alias.
            ValidationException: If a name, alias, binding or condition is invalid.
        """
        definition, created = ChainDefinition.create(
            name=name,
            description=description,
            family_id=family_id,
            created_by_user_id=created_by_user_id,
            trigger_event_type=trigger_event_type,
            registry=self.registry,
            is_enabled=is_enabled,
        )
        _apply_steps(definition, steps, self.registry)
        definition = await self.definition_repo.add(definition)
        await self.event_publisher.publish([created])
        logger.info(
            "Chain definition created: id=%s family_id=%s trigger=%s steps=%d",
            definition.id,
            family_id,
            trigger_event_type,
            len(definition.steps),
        )
        return definition

    async def update(
        self,
        definition_id: str,
        family_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
        is_enabled: bool | None = None,
        steps: Sequence[StepSpec] | None = None,
        expected_version: int | None = None,
    ) -> ChainDefinition:
        """Update scalars and, when steps is given, replace all steps.

        expected_version, when given, overrides the loaded version so a client
        holding a stale copy gets ConcurrencyConflictException.
        """
        definition = await self._get_owned(definition_id, family_id)
        if expected_version is not None:
            definition.version = expected_version
        if steps is not None:
            definition.clear_steps()
            _apply_steps(definition, steps, self.registry)
        updated = definition.update(name=name, description=description, is_enabled=is_enabled)
        definition = await self.definition_repo.update(definition)
        await self.event_publisher.publish([updated])
        logger.info(
            "Chain definition updated: id=%s version=%s steps=%d",
            definition.id,
            definition.version,
            len(definition.steps),
        )
        return definition

    async def delete(self, definition_id: str, family_id: str) -> None:
        """Delete a definition that has never been executed.

        Raises:
            DefinitionInUseException: If any execution references it.
        """
        definition = await self._get_owned(definition_id, family_id)
        if await self.execution_repo.count_for_definition(definition.id):
            raise DefinitionInUseException(definition.id)
        deleted = definition.mark_deleted()
        await self.definition_repo.delete(definition)
        await self.event_publisher.publish([deleted])
        logger.info("Chain definition deleted: id=%s family_id=%s", definition_id, family_id)

    async def enable(self, definition_id: str, family_id: str) -> ChainDefinition:
        definition = await self._get_owned(definition_id, family_id)
        event = definition.enable()
        definition = await self.definition_repo.update(definition)
        await self.event_publisher.publish([event])
        return definition

    async def disable(self, definition_id: str, family_id: str) -> ChainDefinition:
        definition = await self._get_owned(definition_id, family_id)
        event = definition.disable()
        definition = await self.definition_repo.update(definition)
        await self.event_publisher.publish([event])
        return definition

    async def get(self, definition_id: str, family_id: str) -> ChainDefinitionDetails:
        """Return the definition with its execution count and last execution time."""
        definition = await self._get_owned(definition_id, family_id)
        count = await self.execution_repo.count_for_definition(definition.id)
        last = await self.execution_repo.last_executed_at(definition.id)
        return ChainDefinitionDetails(
            definition=definition, execution_count=count, last_executed_at=last
        )

    async def list_by_family(
        self, family_id: str, is_enabled: bool | None = None
    ) -> list[ChainDefinition]:
        return await self.definition_repo.get_by_family(family_id, is_enabled=is_enabled)
