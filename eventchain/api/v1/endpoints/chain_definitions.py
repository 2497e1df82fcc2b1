"""Chain definition API: thin routes delegating to ChainDefinitionService and ExecuteChainUseCase."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response

from eventchain.api.v1.dependencies import (
    get_chain_definition_service,
    get_execute_chain_use_case,
    get_family_id,
    get_user_id,
)
from eventchain.application.use_cases.chains import (
    ChainDefinitionService,
    ExecuteChainUseCase,
)
from eventchain.core.limiter import limit_execute, limit_writes
from eventchain.schemas.chain import (
    ChainDefinitionCreateRequest,
    ChainDefinitionDetailResponse,
    ChainDefinitionResponse,
    ChainDefinitionUpdateRequest,
    ChainExecutionResponse,
    ExecuteChainRequest,
)

router = APIRouter()


@router.post("", response_model=ChainDefinitionResponse, status_code=201)
@limit_writes
async def create_chain_definition(
    request: Request,
    body: ChainDefinitionCreateRequest,
    family_id: Annotated[str, Depends(get_family_id)],
    user_id: Annotated[str, Depends(get_user_id)],
    service: Annotated[ChainDefinitionService, Depends(get_chain_definition_service)],
):
    """Create a chain definition with its steps (family-scoped).

    Unknown trigger or action is 400, duplicate alias 409; nothing is
    persisted on rejection.
    """
    definition = await service.create(
        family_id=family_id,
        created_by_user_id=user_id,
        name=body.name,
        description=body.description,
        trigger_event_type=body.trigger_event_type,
        is_enabled=body.is_enabled,
        steps=[s.to_spec() for s in body.steps],
    )
    return ChainDefinitionResponse.from_entity(definition)


@router.get("", response_model=list[ChainDefinitionResponse])
async def list_chain_definitions(
    family_id: Annotated[str, Depends(get_family_id)],
    service: Annotated[ChainDefinitionService, Depends(get_chain_definition_service)],
    is_enabled: bool | None = Query(None),
):
    """List the family's chain definitions, newest first."""
    definitions = await service.list_by_family(family_id, is_enabled=is_enabled)
    return [ChainDefinitionResponse.from_entity(d) for d in definitions]


@router.get("/{definition_id}", response_model=ChainDefinitionDetailResponse)
async def get_chain_definition(
    definition_id: str,
    family_id: Annotated[str, Depends(get_family_id)],
    service: Annotated[ChainDefinitionService, Depends(get_chain_definition_service)],
):
    """Get a chain definition with its execution count and last execution time."""
    details = await service.get(definition_id, family_id)
    return ChainDefinitionDetailResponse.from_details(details)


@router.put("/{definition_id}", response_model=ChainDefinitionResponse)
@limit_writes
async def update_chain_definition(
    request: Request,
    definition_id: str,
    body: ChainDefinitionUpdateRequest,
    family_id: Annotated[str, Depends(get_family_id)],
    service: Annotated[ChainDefinitionService, Depends(get_chain_definition_service)],
):
    """Update a chain definition; steps, when given, replace all steps."""
    definition = await service.update(
        definition_id,
        family_id,
        name=body.name,
        description=body.description,
        is_enabled=body.is_enabled,
        steps=[s.to_spec() for s in body.steps] if body.steps is not None else None,
        expected_version=body.version,
    )
    return ChainDefinitionResponse.from_entity(definition)


@router.delete("/{definition_id}", status_code=204)
@limit_writes
async def delete_chain_definition(
    request: Request,
    definition_id: str,
    family_id: Annotated[str, Depends(get_family_id)],
    service: Annotated[ChainDefinitionService, Depends(get_chain_definition_service)],
):
    """Delete a chain definition and its steps; 409 if any execution references it."""
    await service.delete(definition_id, family_id)
    return Response(status_code=204)


@router.post("/{definition_id}/enable", response_model=ChainDefinitionResponse)
@limit_writes
async def enable_chain_definition(
    request: Request,
    definition_id: str,
    family_id: Annotated[str, Depends(get_family_id)],
    service: Annotated[ChainDefinitionService, Depends(get_chain_definition_service)],
):
    definition = await service.enable(definition_id, family_id)
    return ChainDefinitionResponse.from_entity(definition)


@router.post("/{definition_id}/disable", response_model=ChainDefinitionResponse)
@limit_writes
async def disable_chain_definition(
    request: Request,
    definition_id: str,
    family_id: Annotated[str, Depends(get_family_id)],
    service: Annotated[ChainDefinitionService, Depends(get_chain_definition_service)],
):
    definition = await service.disable(definition_id, family_id)
    return ChainDefinitionResponse.from_entity(definition)


@router.post(
    "/{definition_id}/execute",
    response_model=ChainExecutionResponse,
    status_code=202,
    responses={503: {"description": "Execution queue full"}},
)
@limit_execute
async def execute_chain_definition(
    request: Request,
    definition_id: str,
    family_id: Annotated[str, Depends(get_family_id)],
    use_case: Annotated[ExecuteChainUseCase, Depends(get_execute_chain_use_case)],
    body: ExecuteChainRequest | None = None,
):
    """Start a manual execution; returns the pending execution immediately.

    The chain runs on the worker pool; poll GET /chain-executions/{id}.
    """
    payload = body.payload if body is not None else {}
    execution = await use_case.execute_manually(definition_id, family_id, payload)
    return ChainExecutionResponse.from_entity(execution)
