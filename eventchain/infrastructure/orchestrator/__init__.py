"""Chain orchestration: the saga walk and the worker pool that drives it."""

from eventchain.infrastructure.orchestrator.chain_orchestrator import ChainOrchestrator
from eventchain.infrastructure.orchestrator.execution_worker import ExecutionWorkerPool

__all__ = ["ChainOrchestrator", "ExecutionWorkerPool"]
