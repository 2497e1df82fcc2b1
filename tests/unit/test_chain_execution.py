"""ChainExecution and StepExecution state machines."""

import pytest

from eventchain.domain.entities import ChainExecution, StepExecution
from eventchain.domain.entities.chain_execution import REASON_STEP_FAILED
from eventchain.domain.enums import (
    ChainExecutionStatus,
    CompensationOutcome,
    StepExecutionStatus,
)
from eventchain.domain.events import ChainExecutionStarted
from eventchain.domain.exceptions import InvalidStateTransitionException, ValidationException

THREE_STEPS = [
    {"alias": "remind", "action_type": "tasks.create_reminder", "step_order": 10},
    {"alias": "notify", "action_type": "notify.send", "step_order": 20},
    {"alias": "log", "action_type": "audit.record", "step_order": 30},
]


@pytest.fixture
def execution(make_definition) -> ChainExecution:
    definition = make_definition(THREE_STEPS)
    execution, _ = ChainExecution.for_definition(definition, "evt_1", {"task_id": "t1"})
    return execution


def test_for_definition_snapshots_steps_in_order(make_definition) -> None:
    definition = make_definition(THREE_STEPS)
    execution, event = ChainExecution.for_definition(definition, "evt_1", {"task_id": "t1"})
    assert execution.status == ChainExecutionStatus.PENDING
    assert [s.step_order for s in execution.step_executions] == [10, 20, 30]
    assert [s.alias for s in execution.step_executions] == ["remind", "notify", "log"]
    assert all(s.status == StepExecutionStatus.PENDING for s in execution.step_executions)
    assert execution.trigger_event_type == "task.created"
    assert execution.correlation_id
    assert isinstance(event, ChainExecutionStarted)
    assert event.correlation_id == execution.correlation_id


def test_two_executions_have_independent_ids(make_definition) -> None:
    definition = make_definition(THREE_STEPS)
    first, _ = ChainExecution.for_definition(definition, "evt_1", {})
    second, _ = ChainExecution.for_definition(definition, "evt_1", {})
    assert first.id != second.id
    assert first.correlation_id != second.correlation_id
    assert {s.id for s in first.step_executions}.isdisjoint(s.id for s in second.step_executions)


def test_add_step_execution_only_while_pending(execution) -> None:
    execution.mark_running()
    extra = StepExecution(
        id="s_x", chain_execution_id=execution.id, alias="extra", name="extra",
        action_type="audit.record", action_version="1.0", step_order=40,
    )
    with pytest.raises(InvalidStateTransitionException):
        execution.add_step_execution(extra)


def test_add_step_execution_rejects_foreign_or_duplicate(execution) -> None:
    foreign = StepExecution(
        id="s_x", chain_execution_id="other", alias="extra", name="extra",
        action_type="audit.record", action_version="1.0", step_order=40,
    )
    with pytest.raises(ValidationException):
        execution.add_step_execution(foreign)
    duplicate = StepExecution(
        id="s_y", chain_execution_id=execution.id, alias="log", name="log",
        action_type="audit.record", action_version="1.0", step_order=40,
    )
    with pytest.raises(ValidationException):
        execution.add_step_execution(duplicate)


def test_step_lifecycle(execution) -> None:
    step = execution.get_step("remind")
    step.mark_running()
    assert step.started_at is not None
    step.mark_succeeded(None)
    assert step.output == {}
    step.mark_compensated()
    assert step.status == StepExecutionStatus.COMPENSATED
    assert step.compensated_at is not None
    with pytest.raises(InvalidStateTransitionException):
        step.mark_running()


def test_step_cannot_finish_without_running(execution) -> None:
    step = execution.get_step("notify")
    with pytest.raises(InvalidStateTransitionException):
        step.mark_succeeded({"ok": True})
    with pytest.raises(InvalidStateTransitionException):
        step.mark_compensated()


def test_compensation_failure_keeps_step_succeeded(execution) -> None:
    step = execution.get_step("remind")
    step.mark_running()
    step.mark_succeeded({"id": "r1"})
    step.record_compensation_failure("refund service down")
    assert step.status == StepExecutionStatus.SUCCEEDED
    assert step.compensation_error == "refund service down"


def test_mark_completed_counts_succeeded_steps(execution) -> None:
    execution.mark_running()
    for alias in ("remind", "log"):
        step = execution.get_step(alias)
        step.mark_running()
        step.mark_succeeded({})
    notify = execution.get_step("notify")
    notify.mark_running()
    notify.mark_skipped()
    event = execution.mark_completed()
    assert execution.status == ChainExecutionStatus.COMPLETED
    assert execution.completed_at is not None
    assert (event.succeeded_steps, event.total_steps) == (2, 3)


def test_mark_failed_records_reason_and_failed_step(execution) -> None:
    execution.mark_running()
    step = execution.get_step("remind")
    step.mark_running()
    step.mark_failed("boom")
    execution.mark_compensating()
    event = execution.mark_failed(REASON_STEP_FAILED, "Step 'remind' failed: boom")
    assert execution.status == ChainExecutionStatus.FAILED
    assert execution.failure_reason == REASON_STEP_FAILED
    assert execution.failed_at is not None
    assert execution.compensation_outcome == CompensationOutcome.NONE
    assert event.failed_step_alias == "remind"


def test_terminal_execution_rejects_transitions(execution) -> None:
    execution.mark_failed("chain disabled")
    with pytest.raises(InvalidStateTransitionException):
        execution.mark_failed("again")
    with pytest.raises(InvalidStateTransitionException):
        execution.mark_running()
    with pytest.raises(InvalidStateTransitionException):
        execution.request_cancel()


def test_completed_requires_running(execution) -> None:
    with pytest.raises(InvalidStateTransitionException):
        execution.mark_completed()
    with pytest.raises(InvalidStateTransitionException):
        execution.mark_compensating()


def test_request_cancel_sets_flag(execution) -> None:
    execution.request_cancel()
    assert execution.cancel_requested is True
    assert not execution.is_finished
