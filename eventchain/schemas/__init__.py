"""Pydantic request/response schemas for the API."""

from eventchain.schemas.chain import (
    ActionResponse,
    ChainDefinitionCreateRequest,
    ChainDefinitionDetailResponse,
    ChainDefinitionResponse,
    ChainDefinitionUpdateRequest,
    ChainExecutionResponse,
    ChainStepRequest,
    ChainStepResponse,
    ExecuteChainRequest,
    StepExecutionResponse,
    TriggerResponse,
)
from eventchain.schemas.health import (
    HealthResponse,
    ReadinessErrorResponse,
    ReadinessResponse,
)

__all__ = [
    "ActionResponse",
    "ChainDefinitionCreateRequest",
    "ChainDefinitionDetailResponse",
    "ChainDefinitionResponse",
    "ChainDefinitionUpdateRequest",
    "ChainExecutionResponse",
    "ChainStepRequest",
    "ChainStepResponse",
    "ExecuteChainRequest",
    "HealthResponse",
    "ReadinessErrorResponse",
    "ReadinessResponse",
    "StepExecutionResponse",
    "TriggerResponse",
]
