"""Chain execution repository (execution + step executions).

Executions are shared between request handlers and the worker pool, which
use separate sessions, so every write here is committed immediately.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from eventchain.domain.entities import ChainExecution, StepExecution
from eventchain.domain.enums import (
    ChainExecutionStatus,
    CompensationOutcome,
    StepExecutionStatus,
)
from eventchain.infrastructure.persistence.models.chain import (
    ChainExecutionModel,
    StepExecutionModel,
)
from eventchain.infrastructure.persistence.repositories.base import BaseRepository
from eventchain.shared.utils.datetime import ensure_utc

_UNFINISHED = (
    ChainExecutionStatus.PENDING.value,
    ChainExecutionStatus.RUNNING.value,
    ChainExecutionStatus.COMPENSATING.value,
)


def _step_values(step: StepExecution) -> dict[str, Any]:
    return {
        "status": step.status.value,
        "input_payload": step.input_payload,
        "output": step.output,
        "error": step.error,
        "compensation_error": step.compensation_error,
        "started_at": step.started_at,
        "completed_at": step.completed_at,
        "compensated_at": step.compensated_at,
    }


def _execution_values(execution: ChainExecution) -> dict[str, Any]:
    return {
        "status": execution.status.value,
        "context": execution.context,
        "error_message": execution.error_message,
        "failure_reason": execution.failure_reason,
        "compensation_outcome": execution.compensation_outcome.value,
        "completed_at": execution.completed_at,
        "failed_at": execution.failed_at,
    }


def _step_to_entity(model: StepExecutionModel) -> StepExecution:
    return StepExecution(
        id=model.id,
        chain_execution_id=model.chain_execution_id,
        alias=model.alias,
        name=model.name,
        action_type=model.action_type,
        action_version=model.action_version,
        step_order=model.step_order,
        status=StepExecutionStatus(model.status),
        input_payload=model.input_payload,
        output=model.output,
        error=model.error,
        compensation_error=model.compensation_error,
        started_at=ensure_utc(model.started_at),
        completed_at=ensure_utc(model.completed_at),
        compensated_at=ensure_utc(model.compensated_at),
    )


def _to_entity(model: ChainExecutionModel) -> ChainExecution:
    return ChainExecution(
        id=model.id,
        chain_definition_id=model.chain_definition_id,
        family_id=model.family_id,
        correlation_id=model.correlation_id,
        trigger_event_type=model.trigger_event_type,
        trigger_event_id=model.trigger_event_id,
        trigger_payload=dict(model.trigger_payload or {}),
        status=ChainExecutionStatus(model.status),
        context=dict(model.context or {}),
        error_message=model.error_message,
        failure_reason=model.failure_reason,
        compensation_outcome=CompensationOutcome(model.compensation_outcome),
        cancel_requested=model.cancel_requested,
        version=model.version,
        started_at=ensure_utc(model.started_at),
        completed_at=ensure_utc(model.completed_at),
        failed_at=ensure_utc(model.failed_at),
        step_executions=[_step_to_entity(s) for s in model.step_executions],
    )


class ChainExecutionRepository(BaseRepository[ChainExecutionModel]):
    """Chain execution repository (implements IChainExecutionRepository)."""

    resource_type = "chain_execution"

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, ChainExecutionModel)

    async def add(self, execution: ChainExecution) -> ChainExecution:
        model = ChainExecutionModel(
            id=execution.id,
            chain_definition_id=execution.chain_definition_id,
            family_id=execution.family_id,
            correlation_id=execution.correlation_id,
            trigger_event_type=execution.trigger_event_type,
            trigger_event_id=execution.trigger_event_id,
            trigger_payload=execution.trigger_payload,
            started_at=execution.started_at,
            cancel_requested=execution.cancel_requested,
            version=1,
            **_execution_values(execution),
            step_executions=[
                StepExecutionModel(
                    id=step.id,
                    chain_execution_id=execution.id,
                    alias=step.alias,
                    name=step.name,
                    action_type=step.action_type,
                    action_version=step.action_version,
                    step_order=step.step_order,
                    position=i,
                    **_step_values(step),
                )
                for i, step in enumerate(execution.step_executions)
            ],
        )
        self.db.add(model)
        await self.db.commit()
        execution.version = 1
        return execution

    async def save(self, execution: ChainExecution) -> ChainExecution:
        """Write status, context and step progress. cancel_requested is only ever set by request_cancel."""
        new_version = await self._versioned_update(
            execution.id, execution.version, _execution_values(execution)
        )
        for step in execution.step_executions:
            await self.db.execute(
                update(StepExecutionModel)
                .where(StepExecutionModel.id == step.id)
                .values(**_step_values(step))
                .execution_options(synchronize_session=False)
            )
        await self.db.commit()
        execution.version = new_version
        return execution

    async def request_cancel(self, execution_id: str) -> None:
        await self.db.execute(
            update(ChainExecutionModel)
            .where(ChainExecutionModel.id == execution_id)
            .values(cancel_requested=True)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

    async def get_by_id(
        self, execution_id: str, family_id: str | None = None
    ) -> ChainExecution | None:
        criteria = []
        if family_id is not None:
            criteria.append(ChainExecutionModel.family_id == family_id)
        model = await self._get_model(execution_id, *criteria)
        return _to_entity(model) if model else None

    async def list(
        self,
        family_id: str,
        definition_id: str | None = None,
        status: ChainExecutionStatus | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[ChainExecution]:
        stmt = select(ChainExecutionModel).where(ChainExecutionModel.family_id == family_id)
        if definition_id is not None:
            stmt = stmt.where(ChainExecutionModel.chain_definition_id == definition_id)
        if status is not None:
            stmt = stmt.where(ChainExecutionModel.status == status.value)
        stmt = (
            stmt.order_by(ChainExecutionModel.started_at.desc())
            .offset(skip)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return [_to_entity(m) for m in result.scalars().all()]

    async def get_unfinished(self, limit: int) -> list[ChainExecution]:
        stmt = (
            select(ChainExecutionModel)
            .where(ChainExecutionModel.status.in_(_UNFINISHED))
            .order_by(ChainExecutionModel.started_at)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return [_to_entity(m) for m in result.scalars().all()]

    async def count_for_definition(self, definition_id: str) -> int:
        result = await self.db.execute(
            select(func.count(ChainExecutionModel.id)).where(
                ChainExecutionModel.chain_definition_id == definition_id
            )
        )
        return result.scalar_one() or 0

    async def last_executed_at(self, definition_id: str) -> datetime | None:
        result = await self.db.execute(
            select(func.max(ChainExecutionModel.started_at)).where(
                ChainExecutionModel.chain_definition_id == definition_id
            )
        )
        return ensure_utc(result.scalar_one_or_none())
