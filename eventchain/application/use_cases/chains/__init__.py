"""Chain use cases: authoring, execution start, queries and cancellation."""

from eventchain.application.use_cases.chains.definition_operations import (
    ChainDefinitionService,
)
from eventchain.application.use_cases.chains.execute_chain import (
    ExecuteChainUseCase,
    TriggerChainsUseCase,
)
from eventchain.application.use_cases.chains.execution_operations import (
    ChainExecutionService,
)

__all__ = [
    "ChainDefinitionService",
    "ChainExecutionService",
    "ExecuteChainUseCase",
    "TriggerChainsUseCase",
]
