"""Application DTOs (no ORM dependency)."""

from eventchain.application.dtos.chain import ChainDefinitionDetails, StepSpec

__all__ = [
    "ChainDefinitionDetails",
    "StepSpec",
]
