"""Chain orchestrator: walk an execution against its definition.

The execution's step snapshot drives the walk, so steps run sequentially
in their snapshotted step_order; a step whose definition entry was since
removed or pointed at another action fails. Each step's condition is evaluated,
its input bindings resolved, and its action invoked under the per-step
timeout, raced against the execution's cancel event. The first failure
(error result, exception, timeout, mapping error or cancellation) stops
the walk and succeeded compensatable steps are undone in reverse order.
Progress is persisted after every step transition.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any

from eventchain.application.interfaces.repositories import IChainExecutionRepository
from eventchain.application.interfaces.services import (
    ActionResult,
    IActionExecutor,
    IDomainEventPublisher,
)
from eventchain.application.services.expression_evaluator import ExpressionEvaluator
from eventchain.domain.entities import ChainDefinition, ChainExecution
from eventchain.domain.entities.chain_definition import ChainDefinitionStep
from eventchain.domain.entities.chain_execution import (
    REASON_CANCELLED,
    REASON_CHAIN_DISABLED,
    REASON_DEFINITION_MISSING,
    REASON_INTERRUPTED,
    REASON_STEP_FAILED,
    StepExecution,
)
from eventchain.domain.enums import (
    ChainExecutionStatus,
    CompensationOutcome,
    StepExecutionStatus,
)
from eventchain.domain.events import DomainEvent
from eventchain.domain.exceptions import MappingError
from eventchain.domain.value_objects import TRIGGER_CONTEXT_KEY
from eventchain.shared.telemetry.logging import get_logger
from eventchain.shared.telemetry.tracing import (
    add_span_attributes,
    add_span_event,
    set_span_error,
    traced,
)

logger = get_logger(__name__)


class _StepOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"
    CANCELLED = "cancelled"


class _Cancelled(Exception):
    """The cancel event fired while an action was in flight."""


class ChainOrchestrator:
    """Runs one chain execution to a terminal status (no automatic retry)."""

    def __init__(
        self,
        execution_repo: IChainExecutionRepository,
        action_executor: IActionExecutor,
        *,
        step_timeout_seconds: float = 30.0,
        evaluator: ExpressionEvaluator | None = None,
        event_publisher: IDomainEventPublisher | None = None,
    ) -> None:
        if step_timeout_seconds <= 0:
            raise ValueError("step_timeout_seconds must be positive")
        self.execution_repo = execution_repo
        self.action_executor = action_executor
        self.step_timeout_seconds = step_timeout_seconds
        self.evaluator = evaluator or ExpressionEvaluator()
        self.event_publisher = event_publisher

    async def _save(self, execution: ChainExecution) -> None:
        await self.execution_repo.save(execution)

    async def _publish(self, event: DomainEvent) -> None:
        if self.event_publisher is not None:
            await self.event_publisher.publish([event])

    @traced("chain.execute")
    async def run(
        self,
        execution: ChainExecution,
        definition: ChainDefinition,
        cancel_event: asyncio.Event | None = None,
    ) -> ChainExecution:
        """Run a pending execution to completed or failed and return it."""
        cancel_event = cancel_event or asyncio.Event()
        if execution.cancel_requested:
            cancel_event.set()
        add_span_attributes(
            execution_id=execution.id,
            chain_definition_id=definition.id,
            correlation_id=execution.correlation_id,
        )

        if not definition.is_enabled:
            logger.info(
                "Chain %s is disabled; execution %s not run", definition.id, execution.id
            )
            await self._finish_failed(execution, REASON_CHAIN_DISABLED)
            return execution
        if cancel_event.is_set():
            logger.info("Execution %s cancelled before start", execution.id)
            await self._finish_failed(execution, REASON_CANCELLED)
            return execution

        execution.mark_running()
        await self._save(execution)
        logger.info(
            "Chain execution started: execution_id=%s definition_id=%s correlation_id=%s",
            execution.id,
            definition.id,
            execution.correlation_id,
        )

        context = self._build_context(execution)
        failure_reason: str | None = None
        failure_message: str | None = None

        for step in sorted(execution.step_executions, key=lambda s: s.step_order):
            if step.status != StepExecutionStatus.PENDING:
                continue
            if cancel_event.is_set():
                failure_reason = REASON_CANCELLED
                failure_message = f"Cancelled before step '{step.alias}'"
                break
            step_def = self._matching_step(definition, step)
            if step_def is None:
                step.mark_running()
                step.mark_failed(
                    "Step no longer matches its chain definition "
                    f"({step.action_type}@{step.action_version})"
                )
                await self._save(execution)
                failure_reason = REASON_STEP_FAILED
                failure_message = f"Step '{step.alias}' failed: {step.error}"
                break
            outcome = await self._run_step(execution, step_def, step, context, cancel_event)
            await self._save(execution)
            if outcome in (_StepOutcome.SUCCEEDED, _StepOutcome.SKIPPED):
                continue
            if outcome == _StepOutcome.CANCELLED:
                failure_reason = REASON_CANCELLED
                failure_message = f"Step '{step.alias}' cancelled"
            else:
                failure_reason = REASON_STEP_FAILED
                failure_message = f"Step '{step.alias}' failed: {step.error}"
            break

        execution.update_context(context)
        if failure_reason is None:
            completed = execution.mark_completed()
            await self._save(execution)
            await self._publish(completed)
            logger.info(
                "Chain execution completed: execution_id=%s succeeded=%d total=%d",
                execution.id,
                completed.succeeded_steps,
                completed.total_steps,
            )
            return execution

        execution.mark_compensating()
        await self._save(execution)
        outcome = await self.compensate(execution, definition)
        await self._finish_failed(execution, failure_reason, failure_message, outcome)
        return execution

    @traced("chain.recover")
    async def recover_interrupted(
        self,
        execution: ChainExecution,
        definition: ChainDefinition | None,
        message: str = "Execution interrupted by a restart",
    ) -> ChainExecution:
        """Settle an execution left unfinished by a crash or an aborted run.

        The running step (if any) is marked failed, compensation runs over
        the succeeded steps, and the execution ends failed with reason
        "interrupted".
        """
        for step in execution.step_executions:
            if step.status == StepExecutionStatus.RUNNING:
                step.mark_failed(REASON_INTERRUPTED)
        if execution.status == ChainExecutionStatus.RUNNING:
            execution.mark_compensating()
        await self._save(execution)
        if definition is None:
            logger.warning(
                "Definition %s missing; execution %s failed without compensation",
                execution.chain_definition_id,
                execution.id,
            )
            outcome = (
                CompensationOutcome.PARTIALLY_COMPENSATED
                if any(s.status == StepExecutionStatus.SUCCEEDED for s in execution.step_executions)
                else CompensationOutcome.NONE
            )
            await self._finish_failed(execution, REASON_DEFINITION_MISSING, None, outcome)
            return execution
        outcome = await self.compensate(execution, definition)
        await self._finish_failed(execution, REASON_INTERRUPTED, message, outcome)
        return execution

    async def _finish_failed(
        self,
        execution: ChainExecution,
        reason: str,
        message: str | None = None,
        outcome: CompensationOutcome = CompensationOutcome.NONE,
    ) -> None:
        failed = execution.mark_failed(reason, message, outcome)
        await self._save(execution)
        await self._publish(failed)
        logger.warning(
            "Chain execution failed: execution_id=%s reason=%s compensation=%s",
            execution.id,
            reason,
            outcome.value,
        )

    @staticmethod
    def _build_context(execution: ChainExecution) -> dict[str, Any]:
        context: dict[str, Any] = {TRIGGER_CONTEXT_KEY: execution.trigger_payload}
        for step in execution.step_executions:
            if step.status in (StepExecutionStatus.SUCCEEDED, StepExecutionStatus.COMPENSATED):
                context[step.alias] = step.output or {}
        return context

    @staticmethod
    def _matching_step(
        definition: ChainDefinition, step: StepExecution
    ) -> ChainDefinitionStep | None:
        """Return the definition step the snapshot was taken from, if it is unchanged."""
        step_def = definition.get_step(step.alias)
        if (
            step_def is None
            or step_def.action_type != step.action_type
            or step_def.action_version.value != step.action_version
        ):
            return None
        return step_def

    async def _run_step(
        self,
        execution: ChainExecution,
        step_def: ChainDefinitionStep,
        step: StepExecution,
        context: dict[str, Any],
        cancel_event: asyncio.Event,
    ) -> _StepOutcome:
        step.mark_running()
        await self._save(execution)
        try:
            if not self.evaluator.evaluate_condition(step_def.condition, context):
                step.mark_skipped()
                logger.info("Step %s skipped (condition not met)", step.alias)
                return _StepOutcome.SKIPPED
            inputs = self.evaluator.resolve_mappings(step_def.input_mappings, context)
            step.record_input(inputs)
            result = await self._invoke(
                step_def.action_type, step_def.action_version.value, inputs, cancel_event
            )
        except MappingError as e:
            step.mark_failed(e.message)
        except _Cancelled:
            step.mark_cancelled()
            return _StepOutcome.CANCELLED
        except TimeoutError:
            step.mark_failed(f"Step timed out after {self.step_timeout_seconds:g}s")
        except Exception as e:
            logger.exception("Step %s raised", step.alias)
            set_span_error(e)
            step.mark_failed(f"{type(e).__name__}: {e}")
        else:
            if result.succeeded:
                step.mark_succeeded(result.output)
                context[step.alias] = step.output
                return _StepOutcome.SUCCEEDED
            step.mark_failed(result.error or "Action failed")
        logger.warning("Step %s failed: %s", step.alias, step.error)
        return _StepOutcome.FAILED

    @traced("chain.action")
    async def _invoke(
        self,
        action_type: str,
        version: str,
        inputs: dict[str, Any],
        cancel_event: asyncio.Event,
    ) -> ActionResult:
        """Run one action under the step timeout, racing the cancel event.

        Raises:
            TimeoutError: The action did not finish within step_timeout_seconds.
            _Cancelled: The cancel event fired first.
        """
        add_span_attributes(action_type=action_type, version=version)
        action = asyncio.ensure_future(
            self.action_executor.execute(action_type, version, inputs, cancel_event)
        )
        cancel_wait = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {action, cancel_wait},
                timeout=self.step_timeout_seconds,
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            action.cancel()
            raise
        finally:
            cancel_wait.cancel()
        if action in done:
            return action.result()
        action.cancel()
        await asyncio.gather(action, return_exceptions=True)
        if cancel_event.is_set():
            add_span_event("action.cancelled")
            raise _Cancelled()
        add_span_event("action.timeout")
        raise TimeoutError()

    async def compensate(
        self, execution: ChainExecution, definition: ChainDefinition
    ) -> CompensationOutcome:
        """Undo succeeded compensatable steps in reverse step_order.

        Each compensating action runs under the step timeout. The first
        compensation failure (error result, exception or timeout) stops the
        walk and is fatal.
        """
        succeeded = sorted(
            (s for s in execution.step_executions if s.status == StepExecutionStatus.SUCCEEDED),
            key=lambda s: s.step_order,
            reverse=True,
        )
        if not succeeded:
            return CompensationOutcome.NONE
        partial = False
        for step in succeeded:
            step_def = self._matching_step(definition, step)
            if (
                step_def is None
                or not step_def.is_compensatable
                or not step_def.compensation_action_type
            ):
                partial = True
                continue
            payload = {"input": step.input_payload or {}, "output": step.output or {}}
            try:
                result = await asyncio.wait_for(
                    self.action_executor.execute(
                        step_def.compensation_action_type,
                        step.action_version,
                        payload,
                        None,
                    ),
                    self.step_timeout_seconds,
                )
            except TimeoutError:
                add_span_event("compensation.timeout", {"alias": step.alias})
                result = ActionResult.fail(
                    f"Compensation timed out after {self.step_timeout_seconds:g}s"
                )
            except Exception as e:
                logger.exception("Compensation of step %s raised", step.alias)
                set_span_error(e)
                result = ActionResult.fail(f"{type(e).__name__}: {e}")
            if not result.succeeded:
                step.record_compensation_failure(result.error or "Compensation failed")
                await self._save(execution)
                logger.error(
                    "Compensation failed for step %s of execution %s: %s",
                    step.alias,
                    execution.id,
                    step.compensation_error,
                )
                return CompensationOutcome.COMPENSATION_FAILED
            step.mark_compensated()
            await self._save(execution)
            logger.info("Step %s compensated", step.alias)
        return (
            CompensationOutcome.PARTIALLY_COMPENSATED
            if partial
            else CompensationOutcome.COMPENSATED
        )
