"""Catalog API: registered triggers and actions (read-only registry)."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from eventchain.api.v1.dependencies import get_registry
from eventchain.domain.registry import ChainRegistry
from eventchain.schemas.chain import ActionResponse, TriggerResponse

router = APIRouter()


@router.get("/triggers", response_model=list[TriggerResponse])
def list_triggers(registry: Annotated[ChainRegistry, Depends(get_registry)]):
    return [TriggerResponse.from_descriptor(t) for t in registry.list_triggers()]


@router.get("/actions", response_model=list[ActionResponse])
def list_actions(
    registry: Annotated[ChainRegistry, Depends(get_registry)],
    module: str | None = Query(None, description="Only actions of this business module"),
):
    return [ActionResponse.from_descriptor(a) for a in registry.list_actions(module)]
