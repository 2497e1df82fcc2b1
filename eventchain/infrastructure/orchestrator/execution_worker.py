"""Execution worker pool: bounded queue, fixed workers, start-up recovery.

Requests persist a pending execution and hand its id to dispatch(); a
fixed number of long-lived asyncio tasks claim ids from a bounded queue,
load the execution and its definition in a fresh repository scope and run
the orchestrator. A full queue rejects new work (backpressure).
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from eventchain.application.interfaces.repositories import IRepositoryProvider
from eventchain.application.interfaces.services import (
    IActionExecutor,
    IDomainEventPublisher,
)
from eventchain.application.services.expression_evaluator import ExpressionEvaluator
from eventchain.domain.entities.chain_execution import REASON_DEFINITION_MISSING
from eventchain.domain.enums import ChainExecutionStatus
from eventchain.domain.exceptions import ExecutionQueueFullException
from eventchain.infrastructure.orchestrator.chain_orchestrator import ChainOrchestrator
from eventchain.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RecoveryReport:
    """Result of a start-up recovery sweep."""

    requeued: int = 0
    interrupted: int = 0
    errors: int = 0


class ExecutionWorkerPool:
    """Fixed pool of asyncio workers draining a bounded execution queue (implements IExecutionDispatcher)."""

    def __init__(
        self,
        repositories: IRepositoryProvider,
        action_executor: IActionExecutor,
        *,
        worker_count: int = 4,
        queue_size: int = 1000,
        step_timeout_seconds: float = 30.0,
        shutdown_grace_seconds: float = 10.0,
        event_publisher: IDomainEventPublisher | None = None,
        evaluator: ExpressionEvaluator | None = None,
    ) -> None:
        if worker_count < 1:
            raise ValueError("worker_count must be at least 1")
        if queue_size < 1:
            raise ValueError("queue_size must be at least 1")
        self._repositories = repositories
        self._action_executor = action_executor
        self._worker_count = worker_count
        self._step_timeout_seconds = step_timeout_seconds
        self._shutdown_grace_seconds = shutdown_grace_seconds
        self._event_publisher = event_publisher
        self._evaluator = evaluator or ExpressionEvaluator()
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=queue_size)
        # One entry per queued or running execution id.
        self._cancel_events: dict[str, asyncio.Event] = {}
        self._workers: list[asyncio.Task[None]] = []
        self._busy: set[asyncio.Task[None]] = set()
        self._stopping = False

    @property
    def capacity(self) -> int:
        return self._queue.maxsize

    @property
    def queue_depth(self) -> int:
        return self._queue.qsize()

    @property
    def is_running(self) -> bool:
        return bool(self._workers) and not self._stopping

    def _orchestrator(self, execution_repo) -> ChainOrchestrator:
        return ChainOrchestrator(
            execution_repo,
            self._action_executor,
            step_timeout_seconds=self._step_timeout_seconds,
            evaluator=self._evaluator,
            event_publisher=self._event_publisher,
        )

    async def start(self) -> None:
        if self._workers:
            return
        self._stopping = False
        self._workers = [
            asyncio.create_task(self._worker(i), name=f"chain-worker-{i}")
            for i in range(self._worker_count)
        ]
        logger.info(
            "Execution worker pool started: workers=%d capacity=%d",
            self._worker_count,
            self.capacity,
        )

    async def stop(self) -> None:
        """Stop workers; busy ones get shutdown_grace_seconds to finish, then are cancelled.

        Cancelled runs stay running in storage and are settled by the next
        recovery sweep.
        """
        if not self._workers:
            return
        self._stopping = True
        busy = [t for t in self._workers if t in self._busy]
        for task in self._workers:
            if task not in self._busy:
                task.cancel()
        if busy:
            _, pending = await asyncio.wait(busy, timeout=self._shutdown_grace_seconds)
            for task in pending:
                task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        self._busy.clear()
        logger.info("Execution worker pool stopped")

    def dispatch(self, execution_id: str) -> None:
        """Enqueue an execution id.

        Raises:
            ExecutionQueueFullException: If the queue is at capacity.
        """
        if execution_id in self._cancel_events:
            logger.debug("Execution %s already queued", execution_id)
            return
        try:
            self._queue.put_nowait(execution_id)
        except asyncio.QueueFull as e:
            raise ExecutionQueueFullException(self.capacity) from e
        self._cancel_events[execution_id] = asyncio.Event()

    def request_cancel(self, execution_id: str) -> None:
        event = self._cancel_events.get(execution_id)
        if event is not None:
            event.set()

    async def join(self) -> None:
        """Wait until every queued execution has been processed."""
        await self._queue.join()

    async def _worker(self, index: int) -> None:
        me = asyncio.current_task()
        while not self._stopping:
            execution_id = await self._queue.get()
            if me is not None:
                self._busy.add(me)
            try:
                await self._process(execution_id)
            except asyncio.CancelledError:
                logger.warning(
                    "Worker %d cancelled while running execution %s", index, execution_id
                )
                raise
            except Exception:
                logger.exception("Worker %d failed on execution %s", index, execution_id)
                await self._settle(execution_id)
            finally:
                self._cancel_events.pop(execution_id, None)
                if me is not None:
                    self._busy.discard(me)
                self._queue.task_done()

    async def _process(self, execution_id: str) -> None:
        cancel_event = self._cancel_events.get(execution_id) or asyncio.Event()
        async with self._repositories.scope() as repos:
            execution = await repos.executions.get_by_id(execution_id)
            if execution is None:
                logger.warning("Execution %s not found; dropping", execution_id)
                return
            if execution.status != ChainExecutionStatus.PENDING:
                logger.info(
                    "Execution %s is %s; not running again",
                    execution_id,
                    execution.status.value,
                )
                return
            orchestrator = self._orchestrator(repos.executions)
            definition = await repos.definitions.get_by_id(execution.chain_definition_id)
            if definition is None:
                execution.mark_failed(REASON_DEFINITION_MISSING)
                await repos.executions.save(execution)
                logger.warning(
                    "Execution %s failed: definition %s missing",
                    execution_id,
                    execution.chain_definition_id,
                )
                return
            await orchestrator.run(execution, definition, cancel_event)

    async def _settle(self, execution_id: str) -> None:
        """Fail an execution whose run raised, in a fresh repository scope.

        If this also fails the execution stays unfinished for the next
        recovery sweep.
        """
        try:
            async with self._repositories.scope() as repos:
                execution = await repos.executions.get_by_id(execution_id)
                if execution is None or execution.status.is_terminal:
                    return
                definition = await repos.definitions.get_by_id(execution.chain_definition_id)
                await self._orchestrator(repos.executions).recover_interrupted(
                    execution, definition, "Execution aborted by an internal error"
                )
        except Exception:
            logger.exception("Could not settle execution %s", execution_id)

    async def recover(self, batch_size: int = 500) -> RecoveryReport:
        """Re-enqueue pending executions and settle interrupted ones.

        Running or compensating executions were cut off by a restart: their
        running step is failed, compensation runs and they end failed with
        reason "interrupted".
        """
        requeue: list[str] = []
        interrupted = 0
        errors = 0
        async with self._repositories.scope() as repos:
            unfinished = await repos.executions.get_unfinished(batch_size)
            orchestrator = self._orchestrator(repos.executions)
            for execution in unfinished:
                if execution.status == ChainExecutionStatus.PENDING:
                    requeue.append(execution.id)
                    continue
                try:
                    definition = await repos.definitions.get_by_id(
                        execution.chain_definition_id
                    )
                    await orchestrator.recover_interrupted(execution, definition)
                except Exception:
                    errors += 1
                    logger.exception("Recovery of execution %s failed", execution.id)
                    continue
                interrupted += 1
        requeued = 0
        for execution_id in requeue:
            try:
                self.dispatch(execution_id)
            except ExecutionQueueFullException:
                logger.warning(
                    "Recovery stopped re-queueing: queue full (%d left)",
                    len(requeue) - requeued,
                )
                break
            requeued += 1
        report = RecoveryReport(requeued=requeued, interrupted=interrupted, errors=errors)
        logger.info(
            "Recovery sweep: requeued=%d interrupted=%d errors=%d",
            report.requeued,
            report.interrupted,
            report.errors,
        )
        return report
