"""Application interfaces (ports): repository and service protocols.

Define contracts for infrastructure implementations (DIP).
No runtime imports from eventchain.infrastructure or eventchain.api.
"""

from eventchain.application.interfaces.repositories import (
    ChainRepositories,
    IChainDefinitionRepository,
    IChainExecutionRepository,
    IRepositoryProvider,
)
from eventchain.application.interfaces.services import (
    ActionResult,
    IActionExecutor,
    IDomainEventPublisher,
    IExecutionDispatcher,
)

__all__ = [
    "ActionResult",
    "ChainRepositories",
    "IActionExecutor",
    "IChainDefinitionRepository",
    "IChainExecutionRepository",
    "IDomainEventPublisher",
    "IExecutionDispatcher",
    "IRepositoryProvider",
]
