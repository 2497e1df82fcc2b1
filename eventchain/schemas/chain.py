"""Chain definition, chain execution and catalog API schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from eventchain.application.dtos import ChainDefinitionDetails, StepSpec
from eventchain.domain.entities import (
    ChainDefinition,
    ChainDefinitionStep,
    ChainExecution,
    StepExecution,
)
from eventchain.domain.registry import ActionDescriptor, TriggerDescriptor


class ChainStepRequest(BaseModel):
    """One step of a chain definition (create or full replace)."""

    alias: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=200)
    action_type: str = Field(..., min_length=1, max_length=128)
    action_version: str = Field(default="1.0", min_length=1, max_length=32)
    step_order: int = Field(..., ge=0)
    input_mappings: dict[str, str] = Field(default_factory=dict)
    condition: str | None = None

    def to_spec(self) -> StepSpec:
        return StepSpec(
            alias=self.alias,
            name=self.name,
            action_type=self.action_type,
            action_version=self.action_version,
            step_order=self.step_order,
            input_mappings=dict(self.input_mappings),
            condition=self.condition,
        )


class ChainDefinitionCreateRequest(BaseModel):
    """Request body for creating a chain definition."""

    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    trigger_event_type: str = Field(..., min_length=1, max_length=128)
    is_enabled: bool = True
    steps: list[ChainStepRequest] = Field(default_factory=list)


class ChainDefinitionUpdateRequest(BaseModel):
    """Request body for updating a chain definition (partial).

    steps, when present, replaces every step. version, when present, must
    match the stored version (optimistic concurrency).
    """

    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    is_enabled: bool | None = None
    steps: list[ChainStepRequest] | None = None
    version: int | None = Field(default=None, ge=1)


class ChainStepResponse(BaseModel):
    alias: str
    name: str
    action_type: str
    action_version: str
    module: str
    step_order: int
    input_mappings: dict[str, str]
    condition: str | None
    is_compensatable: bool
    compensation_action_type: str | None

    @classmethod
    def from_entity(cls, step: ChainDefinitionStep) -> ChainStepResponse:
        return cls(
            alias=step.alias.value,
            name=step.name,
            action_type=step.action_type,
            action_version=step.action_version.value,
            module=step.module,
            step_order=step.step_order,
            input_mappings=dict(step.input_mappings),
            condition=step.condition,
            is_compensatable=step.is_compensatable,
            compensation_action_type=step.compensation_action_type,
        )


class ChainDefinitionResponse(BaseModel):
    """Chain definition with its ordered steps."""

    id: str
    family_id: str
    name: str
    description: str | None
    created_by_user_id: str
    trigger_event_type: str
    trigger_module: str
    is_enabled: bool
    version: int
    created_at: datetime
    updated_at: datetime
    steps: list[ChainStepResponse]

    @classmethod
    def from_entity(cls, definition: ChainDefinition) -> ChainDefinitionResponse:
        return cls(
            id=definition.id,
            family_id=definition.family_id,
            name=definition.name.value,
            description=definition.description,
            created_by_user_id=definition.created_by_user_id,
            trigger_event_type=definition.trigger_event_type,
            trigger_module=definition.trigger_module,
            is_enabled=definition.is_enabled,
            version=definition.version,
            created_at=definition.created_at,
            updated_at=definition.updated_at,
            steps=[ChainStepResponse.from_entity(s) for s in definition.steps],
        )


class ChainDefinitionDetailResponse(ChainDefinitionResponse):
    """Chain definition plus execution statistics (GET by id)."""

    execution_count: int = 0
    last_executed_at: datetime | None = None

    @classmethod
    def from_details(cls, details: ChainDefinitionDetails) -> ChainDefinitionDetailResponse:
        base = ChainDefinitionResponse.from_entity(details.definition)
        return cls(
            **base.model_dump(),
            execution_count=details.execution_count,
            last_executed_at=details.last_executed_at,
        )


class ExecuteChainRequest(BaseModel):
    """Request body for a manual execution: the trigger payload."""

    payload: dict[str, Any] = Field(default_factory=dict)


class StepExecutionResponse(BaseModel):
    id: str
    alias: str
    name: str
    action_type: str
    action_version: str
    step_order: int
    status: str
    input_payload: dict[str, Any] | None
    output: dict[str, Any] | None
    error: str | None
    compensation_error: str | None
    started_at: datetime | None
    completed_at: datetime | None
    compensated_at: datetime | None

    @classmethod
    def from_entity(cls, step: StepExecution) -> StepExecutionResponse:
        return cls(
            id=step.id,
            alias=step.alias,
            name=step.name,
            action_type=step.action_type,
            action_version=step.action_version,
            step_order=step.step_order,
            status=step.status.value,
            input_payload=step.input_payload,
            output=step.output,
            error=step.error,
            compensation_error=step.compensation_error,
            started_at=step.started_at,
            completed_at=step.completed_at,
            compensated_at=step.compensated_at,
        )


class ChainExecutionResponse(BaseModel):
    """Chain execution with its step executions in step order."""

    id: str
    chain_definition_id: str
    family_id: str
    correlation_id: str
    trigger_event_type: str
    trigger_event_id: str
    trigger_payload: dict[str, Any]
    status: str
    error_message: str | None
    failure_reason: str | None
    compensation_outcome: str
    cancel_requested: bool
    started_at: datetime
    completed_at: datetime | None
    failed_at: datetime | None
    step_executions: list[StepExecutionResponse]

    @classmethod
    def from_entity(cls, execution: ChainExecution) -> ChainExecutionResponse:
        return cls(
            id=execution.id,
            chain_definition_id=execution.chain_definition_id,
            family_id=execution.family_id,
            correlation_id=execution.correlation_id,
            trigger_event_type=execution.trigger_event_type,
            trigger_event_id=execution.trigger_event_id,
            trigger_payload=execution.trigger_payload,
            status=execution.status.value,
            error_message=execution.error_message,
            failure_reason=execution.failure_reason,
            compensation_outcome=execution.compensation_outcome.value,
            cancel_requested=execution.cancel_requested,
            started_at=execution.started_at,
            completed_at=execution.completed_at,
            failed_at=execution.failed_at,
            step_executions=[
                StepExecutionResponse.from_entity(s)
                for s in sorted(execution.step_executions, key=lambda s: s.step_order)
            ],
        )


class TriggerResponse(BaseModel):
    """Registered trigger (catalog)."""

    event_type: str
    module: str
    name: str
    description: str
    output_schema: dict[str, Any]

    @classmethod
    def from_descriptor(cls, trigger: TriggerDescriptor) -> TriggerResponse:
        return cls(
            event_type=trigger.event_type,
            module=trigger.module,
            name=trigger.name,
            description=trigger.description,
            output_schema=dict(trigger.output_schema),
        )


class ActionResponse(BaseModel):
    """Registered action (catalog)."""

    action_type: str
    version: str
    module: str
    name: str
    description: str
    input_schema: dict[str, Any]
    output_schema: dict[str, Any]
    is_compensatable: bool
    compensation_action_type: str | None
    is_deprecated: bool

    @classmethod
    def from_descriptor(cls, action: ActionDescriptor) -> ActionResponse:
        return cls(
            action_type=action.action_type,
            version=action.version,
            module=action.module,
            name=action.name,
            description=action.description,
            input_schema=dict(action.input_schema),
            output_schema=dict(action.output_schema),
            is_compensatable=action.is_compensatable,
            compensation_action_type=action.compensation_action_type,
            is_deprecated=action.is_deprecated,
        )
