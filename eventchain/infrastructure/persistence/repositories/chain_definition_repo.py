"""Chain definition repository (definition + ordered steps)."""

from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from eventchain.domain.entities import ChainDefinition, ChainDefinitionStep
from eventchain.domain.exceptions import DefinitionInUseException
from eventchain.domain.value_objects import ActionVersion, ChainName, StepAlias
from eventchain.infrastructure.persistence.models.chain import (
    ChainDefinitionModel,
    ChainDefinitionStepModel,
)
from eventchain.infrastructure.persistence.repositories.base import BaseRepository
from eventchain.shared.utils.datetime import ensure_utc


def _step_to_model(
    step: ChainDefinitionStep, definition_id: str, position: int
) -> ChainDefinitionStepModel:
    return ChainDefinitionStepModel(
        chain_definition_id=definition_id,
        alias=step.alias.value,
        name=step.name,
        action_type=step.action_type,
        action_version=step.action_version.value,
        module=step.module,
        input_mappings=dict(step.input_mappings),
        condition=step.condition,
        is_compensatable=step.is_compensatable,
        compensation_action_type=step.compensation_action_type,
        step_order=step.step_order,
        position=position,
    )


def _to_entity(model: ChainDefinitionModel) -> ChainDefinition:
    steps = [
        ChainDefinitionStep(
            alias=StepAlias(s.alias),
            name=s.name,
            action_type=s.action_type,
            action_version=ActionVersion(s.action_version),
            step_order=s.step_order,
            input_mappings=dict(s.input_mappings or {}),
            condition=s.condition,
            module=s.module,
            is_compensatable=s.is_compensatable,
            compensation_action_type=s.compensation_action_type,
        )
        for s in model.steps
    ]
    return ChainDefinition(
        id=model.id,
        family_id=model.family_id,
        name=ChainName(model.name),
        description=model.description,
        created_by_user_id=model.created_by_user_id,
        trigger_event_type=model.trigger_event_type,
        trigger_module=model.trigger_module,
        trigger_description=model.trigger_description,
        trigger_output_schema=dict(model.trigger_output_schema or {}),
        is_enabled=model.is_enabled,
        version=model.version,
        created_at=ensure_utc(model.created_at),
        updated_at=ensure_utc(model.updated_at),
        steps=steps,
    )


class ChainDefinitionRepository(BaseRepository[ChainDefinitionModel]):
    """Chain definition repository (implements IChainDefinitionRepository).

    Updates are version-checked; steps are replaced wholesale on every update.
    """

    resource_type = "chain_definition"

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, ChainDefinitionModel)

    async def get_by_id(
        self, definition_id: str, family_id: str | None = None
    ) -> ChainDefinition | None:
        criteria = []
        if family_id is not None:
            criteria.append(ChainDefinitionModel.family_id == family_id)
        model = await self._get_model(definition_id, *criteria)
        return _to_entity(model) if model else None

    async def get_by_family(
        self, family_id: str, is_enabled: bool | None = None
    ) -> list[ChainDefinition]:
        stmt = select(ChainDefinitionModel).where(
            ChainDefinitionModel.family_id == family_id
        )
        if is_enabled is not None:
            stmt = stmt.where(ChainDefinitionModel.is_enabled == is_enabled)
        stmt = stmt.order_by(ChainDefinitionModel.created_at.desc()).execution_options(
            populate_existing=True
        )
        result = await self.db.execute(stmt)
        return [_to_entity(m) for m in result.scalars().all()]

    async def get_enabled_by_trigger(
        self, family_id: str, event_type: str
    ) -> list[ChainDefinition]:
        stmt = (
            select(ChainDefinitionModel)
            .where(
                ChainDefinitionModel.family_id == family_id,
                ChainDefinitionModel.trigger_event_type == event_type,
                ChainDefinitionModel.is_enabled.is_(True),
            )
            .order_by(ChainDefinitionModel.created_at)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return [_to_entity(m) for m in result.scalars().all()]

    async def add(self, definition: ChainDefinition) -> ChainDefinition:
        model = ChainDefinitionModel(
            id=definition.id,
            family_id=definition.family_id,
            name=definition.name.value,
            description=definition.description,
            created_by_user_id=definition.created_by_user_id,
            trigger_event_type=definition.trigger_event_type,
            trigger_module=definition.trigger_module,
            trigger_description=definition.trigger_description,
            trigger_output_schema=dict(definition.trigger_output_schema),
            is_enabled=definition.is_enabled,
            version=1,
            created_at=definition.created_at,
            updated_at=definition.updated_at,
            steps=[
                _step_to_model(step, definition.id, i)
                for i, step in enumerate(definition.steps)
            ],
        )
        self.db.add(model)
        await self.db.flush()
        definition.version = 1
        return definition

    async def update(self, definition: ChainDefinition) -> ChainDefinition:
        new_version = await self._versioned_update(
            definition.id,
            definition.version,
            {
                "name": definition.name.value,
                "description": definition.description,
                "is_enabled": definition.is_enabled,
                "updated_at": definition.updated_at,
            },
        )
        await self.db.execute(
            delete(ChainDefinitionStepModel).where(
                ChainDefinitionStepModel.chain_definition_id == definition.id
            )
        )
        self.db.add_all(
            _step_to_model(step, definition.id, i)
            for i, step in enumerate(definition.steps)
        )
        await self.db.flush()
        definition.version = new_version
        return definition

    async def delete(self, definition: ChainDefinition) -> None:
        """Delete the row and its steps; executions keep the row alive (ON DELETE RESTRICT)."""
        try:
            await self.db.execute(
                delete(ChainDefinitionModel).where(ChainDefinitionModel.id == definition.id)
            )
            await self.db.flush()
        except IntegrityError as e:
            raise DefinitionInUseException(definition.id) from e
