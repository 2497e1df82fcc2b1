"""Chain execution API: status queries and cancellation."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from eventchain.api.v1.dependencies import get_chain_execution_service, get_family_id
from eventchain.application.use_cases.chains import ChainExecutionService
from eventchain.core.limiter import limit_writes
from eventchain.domain.enums import ChainExecutionStatus
from eventchain.schemas.chain import ChainExecutionResponse

router = APIRouter()


@router.get("", response_model=list[ChainExecutionResponse])
async def list_chain_executions(
    family_id: Annotated[str, Depends(get_family_id)],
    service: Annotated[ChainExecutionService, Depends(get_chain_execution_service)],
    definition_id: str | None = Query(None),
    status: ChainExecutionStatus | None = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
):
    """List the family's executions, newest first."""
    executions = await service.list(
        family_id, definition_id=definition_id, status=status, skip=skip, limit=limit
    )
    return [ChainExecutionResponse.from_entity(e) for e in executions]


@router.get("/{execution_id}", response_model=ChainExecutionResponse)
async def get_chain_execution(
    execution_id: str,
    family_id: Annotated[str, Depends(get_family_id)],
    service: Annotated[ChainExecutionService, Depends(get_chain_execution_service)],
):
    """Get an execution with its step executions."""
    execution = await service.get(execution_id, family_id)
    return ChainExecutionResponse.from_entity(execution)


@router.post(
    "/{execution_id}/cancel", response_model=ChainExecutionResponse, status_code=202
)
@limit_writes
async def cancel_chain_execution(
    request: Request,
    execution_id: str,
    family_id: Annotated[str, Depends(get_family_id)],
    service: Annotated[ChainExecutionService, Depends(get_chain_execution_service)],
):
    """Request cancellation; the run settles to failed ("cancelled") asynchronously.

    A finished execution cannot be cancelled (409).
    """
    execution = await service.cancel(execution_id, family_id)
    return ChainExecutionResponse.from_entity(execution)
