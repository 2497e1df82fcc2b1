"""Domain entities and aggregates.

Pure domain models; no ORM or persistence concerns.
"""

from eventchain.domain.entities.chain_definition import (
    ChainDefinition,
    ChainDefinitionStep,
)
from eventchain.domain.entities.chain_execution import ChainExecution, StepExecution

__all__ = [
    "ChainDefinition",
    "ChainDefinitionStep",
    "ChainExecution",
    "StepExecution",
]
