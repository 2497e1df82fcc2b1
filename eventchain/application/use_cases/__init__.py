"""Application use cases: one entry point per workflow."""

from eventchain.application.use_cases.chains import (
    ChainDefinitionService,
    ChainExecutionService,
    ExecuteChainUseCase,
    TriggerChainsUseCase,
)

__all__ = [
    "ChainDefinitionService",
    "ChainExecutionService",
    "ExecuteChainUseCase",
    "TriggerChainsUseCase",
]
