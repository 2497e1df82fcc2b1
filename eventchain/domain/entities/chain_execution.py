"""Chain execution aggregate.

One run of a chain definition for one trigger occurrence. The step
executions are created 1:1 with the definition's steps before any step
runs and their count and order never change afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from eventchain.domain.enums import (
    ChainExecutionStatus,
    CompensationOutcome,
    StepExecutionStatus,
)
from eventchain.domain.events import (
    ChainExecutionCompleted,
    ChainExecutionFailed,
    ChainExecutionStarted,
)
from eventchain.domain.exceptions import (
    InvalidStateTransitionException,
    ValidationException,
)
from eventchain.shared.utils.datetime import utc_now
from eventchain.shared.utils.generators import generate_cuid, generate_uuid

if TYPE_CHECKING:
    from eventchain.domain.entities.chain_definition import (
        ChainDefinition,
        ChainDefinitionStep,
    )

# Failure reasons recorded on ChainExecution.failure_reason
REASON_CHAIN_DISABLED = "chain disabled"
REASON_STEP_FAILED = "step failed"
REASON_CANCELLED = "cancelled"
REASON_INTERRUPTED = "interrupted"
REASON_DEFINITION_MISSING = "definition missing"


@dataclass
class StepExecution:
    """Record of one step's run inside a chain execution."""

    id: str
    chain_execution_id: str
    alias: str
    name: str
    action_type: str
    action_version: str
    step_order: int
    status: StepExecutionStatus = StepExecutionStatus.PENDING
    input_payload: dict[str, Any] | None = None
    output: dict[str, Any] | None = None
    error: str | None = None
    compensation_error: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    compensated_at: datetime | None = None

    @classmethod
    def create(cls, chain_execution_id: str, step: ChainDefinitionStep) -> StepExecution:
        """Snapshot a definition step as a pending step execution."""
        return cls(
            id=generate_cuid(),
            chain_execution_id=chain_execution_id,
            alias=step.alias.value,
            name=step.name,
            action_type=step.action_type,
            action_version=step.action_version.value,
            step_order=step.step_order,
        )

    def _transition(
        self, allowed: tuple[StepExecutionStatus, ...], target: StepExecutionStatus
    ) -> None:
        if self.status not in allowed:
            raise InvalidStateTransitionException(
                f"step '{self.alias}'", self.status.value, target.value
            )
        self.status = target

    def mark_running(self) -> None:
        self._transition((StepExecutionStatus.PENDING,), StepExecutionStatus.RUNNING)
        self.started_at = utc_now()

    def mark_skipped(self) -> None:
        self._transition((StepExecutionStatus.RUNNING,), StepExecutionStatus.SKIPPED)
        self.completed_at = utc_now()

    def record_input(self, payload: dict[str, Any]) -> None:
        self.input_payload = payload

    def mark_succeeded(self, output: dict[str, Any] | None) -> None:
        self._transition((StepExecutionStatus.RUNNING,), StepExecutionStatus.SUCCEEDED)
        self.output = output if output is not None else {}
        self.completed_at = utc_now()

    def mark_failed(self, error: str) -> None:
        self._transition((StepExecutionStatus.RUNNING,), StepExecutionStatus.FAILED)
        self.error = error
        self.completed_at = utc_now()

    def mark_cancelled(self, reason: str = "Step cancelled") -> None:
        self._transition((StepExecutionStatus.RUNNING,), StepExecutionStatus.CANCELLED)
        self.error = reason
        self.completed_at = utc_now()

    def mark_compensated(self) -> None:
        self._transition(
            (StepExecutionStatus.SUCCEEDED,), StepExecutionStatus.COMPENSATED
        )
        self.compensated_at = utc_now()

    def record_compensation_failure(self, error: str) -> None:
        """Keep the step SUCCEEDED; its side effect was not undone."""
        if self.status != StepExecutionStatus.SUCCEEDED:
            raise InvalidStateTransitionException(
                f"step '{self.alias}'", self.status.value, "compensation"
            )
        self.compensation_error = error

    @property
    def is_finished(self) -> bool:
        return self.status not in (StepExecutionStatus.PENDING, StepExecutionStatus.RUNNING)


@dataclass
class ChainExecution:
    """Aggregate root for one chain run.

    Lifecycle: pending -> running -> {completed | failed}, with compensating
    entered from running on step failure before settling to failed.
    """

    id: str
    chain_definition_id: str
    family_id: str
    correlation_id: str
    trigger_event_type: str
    trigger_event_id: str
    trigger_payload: dict[str, Any]
    status: ChainExecutionStatus = ChainExecutionStatus.PENDING
    context: dict[str, Any] = field(default_factory=dict)
    error_message: str | None = None
    failure_reason: str | None = None
    compensation_outcome: CompensationOutcome = CompensationOutcome.NONE
    cancel_requested: bool = False
    version: int = 0
    started_at: datetime = field(default_factory=utc_now)
    completed_at: datetime | None = None
    failed_at: datetime | None = None
    step_executions: list[StepExecution] = field(default_factory=list)

    @classmethod
    def start(
        cls,
        definition_id: str,
        family_id: str,
        trigger_event_type: str,
        trigger_event_id: str,
        payload: dict[str, Any] | None,
    ) -> tuple[ChainExecution, ChainExecutionStarted]:
        """Create a pending execution with a fresh correlation id and no steps."""
        execution = cls(
            id=generate_cuid(),
            chain_definition_id=definition_id,
            family_id=family_id,
            correlation_id=generate_uuid(),
            trigger_event_type=trigger_event_type,
            trigger_event_id=trigger_event_id,
            trigger_payload=dict(payload or {}),
        )
        event = ChainExecutionStarted(
            chain_execution_id=execution.id,
            chain_definition_id=definition_id,
            family_id=family_id,
            correlation_id=execution.correlation_id,
            trigger_event_type=trigger_event_type,
        )
        return execution, event

    @classmethod
    def for_definition(
        cls,
        definition: ChainDefinition,
        trigger_event_id: str,
        payload: dict[str, Any] | None,
    ) -> tuple[ChainExecution, ChainExecutionStarted]:
        """Start an execution and snapshot every definition step in order."""
        execution, event = cls.start(
            definition.id,
            definition.family_id,
            definition.trigger_event_type,
            trigger_event_id,
            payload,
        )
        for step in definition.steps:
            execution.add_step_execution(StepExecution.create(execution.id, step))
        return execution, event

    def add_step_execution(self, step_execution: StepExecution) -> None:
        """Append a step execution; only legal before the run starts."""
        if self.status != ChainExecutionStatus.PENDING:
            raise InvalidStateTransitionException(
                "chain execution", self.status.value, "add_step_execution"
            )
        if step_execution.chain_execution_id != self.id:
            raise ValidationException(
                "Step execution belongs to a different chain execution",
                field="chain_execution_id",
            )
        if self.get_step(step_execution.alias) is not None:
            raise ValidationException(
                f"Step execution for alias '{step_execution.alias}' already exists",
                field="alias",
            )
        self.step_executions.append(step_execution)

    def get_step(self, alias: str) -> StepExecution | None:
        return next((s for s in self.step_executions if s.alias == alias), None)

    def mark_running(self) -> None:
        if self.status != ChainExecutionStatus.PENDING:
            raise InvalidStateTransitionException(
                "chain execution", self.status.value, ChainExecutionStatus.RUNNING.value
            )
        self.status = ChainExecutionStatus.RUNNING

    def mark_compensating(self) -> None:
        if self.status != ChainExecutionStatus.RUNNING:
            raise InvalidStateTransitionException(
                "chain execution",
                self.status.value,
                ChainExecutionStatus.COMPENSATING.value,
            )
        self.status = ChainExecutionStatus.COMPENSATING

    def update_context(self, context: dict[str, Any]) -> None:
        self.context = context

    def request_cancel(self) -> None:
        """Flag the execution for cancellation.

        Raises:
            InvalidStateTransitionException: If the execution already finished.
        """
        if self.status.is_terminal:
            raise InvalidStateTransitionException(
                "chain execution", self.status.value, "cancel"
            )
        self.cancel_requested = True

    def mark_completed(self) -> ChainExecutionCompleted:
        if self.status != ChainExecutionStatus.RUNNING:
            raise InvalidStateTransitionException(
                "chain execution",
                self.status.value,
                ChainExecutionStatus.COMPLETED.value,
            )
        now = utc_now()
        self.status = ChainExecutionStatus.COMPLETED
        self.completed_at = now
        return ChainExecutionCompleted(
            chain_execution_id=self.id,
            chain_definition_id=self.chain_definition_id,
            family_id=self.family_id,
            correlation_id=self.correlation_id,
            succeeded_steps=sum(
                1 for s in self.step_executions if s.status == StepExecutionStatus.SUCCEEDED
            ),
            total_steps=len(self.step_executions),
        )

    def mark_failed(
        self,
        reason: str,
        error_message: str | None = None,
        compensation_outcome: CompensationOutcome = CompensationOutcome.NONE,
    ) -> ChainExecutionFailed:
        """Settle the execution as failed from any non-terminal status."""
        if self.status.is_terminal:
            raise InvalidStateTransitionException(
                "chain execution", self.status.value, ChainExecutionStatus.FAILED.value
            )
        now = utc_now()
        self.status = ChainExecutionStatus.FAILED
        self.failure_reason = reason
        self.error_message = error_message or reason
        self.compensation_outcome = compensation_outcome
        self.completed_at = now
        self.failed_at = now
        failed_step = next(
            (
                s
                for s in self.step_executions
                if s.status in (StepExecutionStatus.FAILED, StepExecutionStatus.CANCELLED)
            ),
            None,
        )
        return ChainExecutionFailed(
            chain_execution_id=self.id,
            chain_definition_id=self.chain_definition_id,
            family_id=self.family_id,
            correlation_id=self.correlation_id,
            failed_step_alias=failed_step.alias if failed_step else None,
            reason=reason,
            compensation_outcome=compensation_outcome.value,
        )

    def belongs_to_family(self, family_id: str) -> bool:
        return self.family_id == family_id

    @property
    def is_finished(self) -> bool:
        return self.status.is_terminal
