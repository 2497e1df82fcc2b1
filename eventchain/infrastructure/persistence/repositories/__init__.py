"""Persistence repositories. Re-exports for dependency injection."""

from eventchain.infrastructure.persistence.repositories.base import BaseRepository
from eventchain.infrastructure.persistence.repositories.chain_definition_repo import (
    ChainDefinitionRepository,
)
from eventchain.infrastructure.persistence.repositories.chain_execution_repo import (
    ChainExecutionRepository,
)

__all__ = [
    "BaseRepository",
    "ChainDefinitionRepository",
    "ChainExecutionRepository",
]
