"""Chain execution queries and cancellation (family scoped)."""

from __future__ import annotations

from eventchain.application.interfaces.repositories import IChainExecutionRepository
from eventchain.application.interfaces.services import IExecutionDispatcher
from eventchain.domain.entities import ChainExecution
from eventchain.domain.enums import ChainExecutionStatus
from eventchain.domain.exceptions import ResourceNotFoundException
from eventchain.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


class ChainExecutionService:
    """Get, list and cancel chain executions."""

    def __init__(
        self,
        execution_repo: IChainExecutionRepository,
        dispatcher: IExecutionDispatcher,
    ) -> None:
        self.execution_repo = execution_repo
        self.dispatcher = dispatcher

    async def get(self, execution_id: str, family_id: str) -> ChainExecution:
        execution = await self.execution_repo.get_by_id(execution_id, family_id)
        if execution is None:
            raise ResourceNotFoundException("chain_execution", execution_id)
        return execution

    async def list(
        self,
        family_id: str,
        definition_id: str | None = None,
        status: ChainExecutionStatus | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[ChainExecution]:
        return await self.execution_repo.list(
            family_id, definition_id=definition_id, status=status, skip=skip, limit=limit
        )

    async def cancel(self, execution_id: str, family_id: str) -> ChainExecution:
        """Request cancellation of a pending or running execution.

        The flag is persisted without bumping the version (the worker owns
        the row) and the worker pool's cancel event is set. The run settles
        to failed with reason "cancelled" asynchronously.

        Raises:
            ResourceNotFoundException: If the execution is not in this family.
            InvalidStateTransitionException: If the execution already finished.
        """
        execution = await self.get(execution_id, family_id)
        execution.request_cancel()
        await self.execution_repo.request_cancel(execution.id)
        self.dispatcher.request_cancel(execution.id)
        logger.info("Cancellation requested: execution_id=%s", execution.id)
        return execution
