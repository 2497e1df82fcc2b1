"""Chain use cases against the in-memory repositories."""

from unittest.mock import MagicMock

import pytest

from eventchain.application.dtos.chain import StepSpec
from eventchain.application.use_cases.chains import (
    ChainDefinitionService,
    ChainExecutionService,
    ExecuteChainUseCase,
    TriggerChainsUseCase,
)
from eventchain.application.use_cases.chains.execute_chain import REASON_QUEUE_FULL
from eventchain.domain.entities import ChainExecution
from eventchain.domain.enums import ChainExecutionStatus, StepExecutionStatus
from eventchain.domain.events import (
    ChainDefinitionCreated,
    ChainDefinitionDeleted,
    ChainExecutionStarted,
)
from eventchain.domain.exceptions import (
    ConcurrencyConflictException,
    DefinitionInUseException,
    DuplicateAliasException,
    ExecutionQueueFullException,
    InvalidStateTransitionException,
    ResourceNotFoundException,
    SchemaValidationException,
    UnknownActionException,
    UnknownTriggerException,
    ValidationException,
)
from eventchain.infrastructure.persistence.memory import (
    InMemoryChainDefinitionRepository,
    InMemoryChainExecutionRepository,
)

FAMILY_ID = "fam_1"
OTHER_FAMILY_ID = "fam_2"
USER_ID = "user_1"
TRIGGER = "task.created"


def _spec(alias: str, action_type: str, step_order: int, **kwargs) -> StepSpec:
    return StepSpec(
        alias=alias,
        name=alias.title(),
        action_type=action_type,
        action_version="1.0",
        step_order=step_order,
        **kwargs,
    )


@pytest.fixture
def definition_repo(store) -> InMemoryChainDefinitionRepository:
    return InMemoryChainDefinitionRepository(store)


@pytest.fixture
def execution_repo(store) -> InMemoryChainExecutionRepository:
    return InMemoryChainExecutionRepository(store)


@pytest.fixture
def dispatcher() -> MagicMock:
    return MagicMock()


@pytest.fixture
def definitions(definition_repo, execution_repo, registry, outbox) -> ChainDefinitionService:
    return ChainDefinitionService(definition_repo, execution_repo, registry, outbox)


@pytest.fixture
def execute(definition_repo, execution_repo, registry, dispatcher, outbox) -> ExecuteChainUseCase:
    return ExecuteChainUseCase(definition_repo, execution_repo, registry, dispatcher, outbox)


@pytest.fixture
def trigger_chains(
    definition_repo, execution_repo, registry, dispatcher, outbox
) -> TriggerChainsUseCase:
    return TriggerChainsUseCase(definition_repo, execution_repo, registry, dispatcher, outbox)


async def _create(definitions: ChainDefinitionService, steps=None, **kwargs):
    options = {
        "family_id": FAMILY_ID,
        "created_by_user_id": USER_ID,
        "name": "Reminder chain",
        "trigger_event_type": TRIGGER,
        "steps": steps
        if steps is not None
        else [
            _spec("remind", "tasks.create_reminder", 1, input_mappings={"task": "trigger.task_id"}),
            _spec("log", "audit.record", 2),
        ],
    }
    options.update(kwargs)
    return await definitions.create(**options)


class TestChainDefinitionService:
    async def test_create_persists_definition_and_publishes(
        self, definitions, store, outbox
    ) -> None:
        definition = await _create(definitions)

        assert definition.version == 1
        assert definition.id in store.definitions
        assert [s.alias.value for s in definition.steps] == ["remind", "log"]
        assert definition.steps[0].is_compensatable is True
        assert definition.steps[0].module == "tasks"
        [created] = outbox.of_type(ChainDefinitionCreated)
        assert created.chain_definition_id == definition.id

    @pytest.mark.parametrize(
        ("kwargs", "exc_type"),
        [
            ({"trigger_event_type": "task.deleted"}, UnknownTriggerException),
            ({"steps": [_spec("pay", "billing.charge_twice", 1)]}, UnknownActionException),
            (
                {"steps": [_spec("log", "audit.record", 1), _spec("log", "audit.record", 2)]},
                DuplicateAliasException,
            ),
            ({"steps": [_spec("trigger", "audit.record", 1)]}, ValidationException),
            ({"name": "   "}, ValidationException),
        ],
    )
    async def test_invalid_authoring_persists_nothing(
        self, definitions, store, outbox, kwargs, exc_type
    ) -> None:
        with pytest.raises(exc_type):
            await _create(definitions, **kwargs)
        assert store.definitions == {}
        assert outbox.events == []

    async def test_equal_step_orders_keep_submission_order(self, definitions) -> None:
        definition = await _create(
            definitions,
            steps=[
                _spec("second_b", "audit.record", 2),
                _spec("first", "audit.record", 1),
                _spec("second_a", "audit.record", 2),
            ],
        )
        assert [s.alias.value for s in definition.steps] == ["first", "second_b", "second_a"]

    async def test_update_replaces_steps_and_bumps_version(self, definitions) -> None:
        definition = await _create(definitions)
        updated = await definitions.update(
            definition.id,
            FAMILY_ID,
            name="Renamed",
            steps=[_spec("notify", "notify.send", 1, input_mappings={"message": "'hi'"})],
            expected_version=1,
        )
        assert updated.version == 2
        assert updated.name.value == "Renamed"
        assert [s.alias.value for s in updated.steps] == ["notify"]

        reloaded = await definitions.get(definition.id, FAMILY_ID)
        assert [s.alias.value for s in reloaded.definition.steps] == ["notify"]

    async def test_update_with_stale_version_conflicts(self, definitions) -> None:
        definition = await _create(definitions)
        await definitions.update(definition.id, FAMILY_ID, description="v2")
        with pytest.raises(ConcurrencyConflictException):
            await definitions.update(
                definition.id, FAMILY_ID, description="stale", expected_version=1
            )

    async def test_other_family_cannot_see_definition(self, definitions) -> None:
        definition = await _create(definitions)
        with pytest.raises(ResourceNotFoundException):
            await definitions.get(definition.id, OTHER_FAMILY_ID)
        assert await definitions.list_by_family(OTHER_FAMILY_ID) == []

    async def test_enable_disable_and_filtered_list(self, definitions) -> None:
        first = await _create(definitions, name="First")
        await _create(definitions, name="Second")
        disabled = await definitions.disable(first.id, FAMILY_ID)
        assert disabled.is_enabled is False

        enabled = await definitions.list_by_family(FAMILY_ID, is_enabled=True)
        assert [d.name.value for d in enabled] == ["Second"]
        assert len(await definitions.list_by_family(FAMILY_ID)) == 2

        assert (await definitions.enable(first.id, FAMILY_ID)).is_enabled is True

    async def test_get_reports_execution_statistics(
        self, definitions, execution_repo
    ) -> None:
        definition = await _create(definitions)
        details = await definitions.get(definition.id, FAMILY_ID)
        assert details.execution_count == 0
        assert details.last_executed_at is None

        execution, _ = ChainExecution.for_definition(definition, "evt", {"task_id": "t"})
        await execution_repo.add(execution)
        details = await definitions.get(definition.id, FAMILY_ID)
        assert details.execution_count == 1
        assert details.last_executed_at == execution.started_at

    async def test_delete_removes_unexecuted_definition(
        self, definitions, store, outbox
    ) -> None:
        definition = await _create(definitions)

        await definitions.delete(definition.id, FAMILY_ID)

        assert store.definitions == {}
        assert len(outbox.of_type(ChainDefinitionDeleted)) == 1
        with pytest.raises(ResourceNotFoundException):
            await definitions.delete(definition.id, FAMILY_ID)

    async def test_delete_with_execution_history_is_rejected(
        self, definitions, execution_repo, store, outbox
    ) -> None:
        definition = await _create(definitions)
        execution, _ = ChainExecution.for_definition(definition, "evt", {"task_id": "t"})
        await execution_repo.add(execution)

        with pytest.raises(DefinitionInUseException):
            await definitions.delete(definition.id, FAMILY_ID)

        assert definition.id in store.definitions
        assert execution.id in store.executions
        assert outbox.of_type(ChainDefinitionDeleted) == []


class TestExecuteChainUseCase:
    async def test_manual_execution_is_pending_and_dispatched(
        self, definitions, execute, dispatcher, outbox
    ) -> None:
        definition = await _create(definitions)
        execution = await execute.execute_manually(
            definition.id, FAMILY_ID, {"task_id": "t1", "amount": 3}
        )

        assert execution.status == ChainExecutionStatus.PENDING
        assert execution.trigger_payload == {"task_id": "t1", "amount": 3}
        assert [s.alias for s in execution.step_executions] == ["remind", "log"]
        assert all(s.status == StepExecutionStatus.PENDING for s in execution.step_executions)
        dispatcher.dispatch.assert_called_once_with(execution.id)
        [started] = outbox.of_type(ChainExecutionStarted)
        assert started.correlation_id == execution.correlation_id

    async def test_payload_schema_violation_persists_nothing(
        self, definitions, execute, store, dispatcher
    ) -> None:
        definition = await _create(definitions)
        with pytest.raises(SchemaValidationException):
            await execute.execute_manually(definition.id, FAMILY_ID, {"amount": 3})
        assert store.executions == {}
        dispatcher.dispatch.assert_not_called()

    async def test_unknown_definition_is_not_found(self, execute) -> None:
        with pytest.raises(ResourceNotFoundException):
            await execute.execute_manually("missing", FAMILY_ID, {"task_id": "t"})

    async def test_queue_full_marks_execution_rejected(
        self, definitions, execute, dispatcher, execution_repo
    ) -> None:
        dispatcher.dispatch.side_effect = ExecutionQueueFullException(1)
        definition = await _create(definitions)

        with pytest.raises(ExecutionQueueFullException):
            await execute.execute_manually(definition.id, FAMILY_ID, {"task_id": "t"})

        [stored] = await execution_repo.list(FAMILY_ID)
        assert stored.status == ChainExecutionStatus.FAILED
        assert stored.failure_reason == REASON_QUEUE_FULL


class TestTriggerChainsUseCase:
    async def test_starts_every_enabled_matching_chain(
        self, definitions, trigger_chains, dispatcher
    ) -> None:
        first = await _create(definitions, name="First")
        second = await _create(definitions, name="Second")
        disabled = await _create(definitions, name="Disabled", is_enabled=False)
        await _create(definitions, name="Other family", family_id=OTHER_FAMILY_ID)
        await _create(
            definitions, name="Other trigger", trigger_event_type="member.joined", steps=[]
        )

        started = await trigger_chains.handle(TRIGGER, "evt_9", FAMILY_ID, {"task_id": "t"})

        assert sorted(e.chain_definition_id for e in started) == sorted([first.id, second.id])
        assert disabled.id not in {e.chain_definition_id for e in started}
        assert all(e.trigger_event_id == "evt_9" for e in started)
        assert dispatcher.dispatch.call_count == 2

    async def test_one_failing_definition_does_not_block_others(
        self, definitions, trigger_chains, dispatcher
    ) -> None:
        await _create(definitions, name="First")
        await _create(definitions, name="Second")
        dispatcher.dispatch.side_effect = [ExecutionQueueFullException(1), None]

        started = await trigger_chains.handle(TRIGGER, "evt", FAMILY_ID, {"task_id": "t"})

        assert len(started) == 1
        assert dispatcher.dispatch.call_count == 2

    async def test_invalid_payload_starts_nothing(
        self, definitions, trigger_chains, store
    ) -> None:
        await _create(definitions)
        assert await trigger_chains.handle(TRIGGER, "evt", FAMILY_ID, {"amount": 1}) == []
        assert store.executions == {}

    async def test_unregistered_event_type_is_ignored(self, trigger_chains, dispatcher) -> None:
        assert await trigger_chains.handle("nobody.listens", "evt", FAMILY_ID) == []
        dispatcher.dispatch.assert_not_called()


class TestChainExecutionService:
    @pytest.fixture
    def executions(self, execution_repo, dispatcher) -> ChainExecutionService:
        return ChainExecutionService(execution_repo, dispatcher)

    async def _started(self, definitions, execute) -> ChainExecution:
        definition = await _create(definitions)
        return await execute.execute_manually(definition.id, FAMILY_ID, {"task_id": "t"})

    async def test_cancel_pending_execution(
        self, definitions, execute, executions, dispatcher, execution_repo
    ) -> None:
        execution = await self._started(definitions, execute)
        cancelled = await executions.cancel(execution.id, FAMILY_ID)

        assert cancelled.cancel_requested is True
        dispatcher.request_cancel.assert_called_once_with(execution.id)
        stored = await execution_repo.get_by_id(execution.id)
        assert stored.cancel_requested is True
        assert stored.version == execution.version

    async def test_cancel_finished_execution_conflicts(
        self, definitions, execute, executions, execution_repo
    ) -> None:
        execution = await self._started(definitions, execute)
        stored = await execution_repo.get_by_id(execution.id)
        stored.mark_running()
        stored.mark_completed()
        await execution_repo.save(stored)

        with pytest.raises(InvalidStateTransitionException):
            await executions.cancel(execution.id, FAMILY_ID)

    async def test_cancel_in_other_family_is_not_found(
        self, definitions, execute, executions
    ) -> None:
        execution = await self._started(definitions, execute)
        with pytest.raises(ResourceNotFoundException):
            await executions.cancel(execution.id, OTHER_FAMILY_ID)

    async def test_list_filters_by_status(self, definitions, execute, executions) -> None:
        execution = await self._started(definitions, execute)
        assert [e.id for e in await executions.list(FAMILY_ID)] == [execution.id]
        assert await executions.list(FAMILY_ID, status=ChainExecutionStatus.COMPLETED) == []
        assert await executions.list(OTHER_FAMILY_ID) == []
