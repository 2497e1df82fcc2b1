"""Application layer: interfaces, services, use cases.

Depends only on domain and protocol definitions (DIP).
Infrastructure implements the interfaces (repositories, action executor,
dispatcher, event publisher).
"""

from eventchain.application.interfaces import (
    ActionResult,
    ChainRepositories,
    IActionExecutor,
    IChainDefinitionRepository,
    IChainExecutionRepository,
    IDomainEventPublisher,
    IExecutionDispatcher,
    IRepositoryProvider,
)
from eventchain.application.services import (
    ExpressionEvaluator,
    PayloadValidator,
    RegistryBuilder,
)
from eventchain.application.use_cases import (
    ChainDefinitionService,
    ChainExecutionService,
    ExecuteChainUseCase,
    TriggerChainsUseCase,
)

__all__ = [
    "ActionResult",
    "ChainDefinitionService",
    "ChainExecutionService",
    "ChainRepositories",
    "ExecuteChainUseCase",
    "ExpressionEvaluator",
    "IActionExecutor",
    "IChainDefinitionRepository",
    "IChainExecutionRepository",
    "IDomainEventPublisher",
    "IExecutionDispatcher",
    "IRepositoryProvider",
    "PayloadValidator",
    "RegistryBuilder",
    "TriggerChainsUseCase",
]
