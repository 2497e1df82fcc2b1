"""Persistence models: ORM entities and mixins."""

from eventchain.infrastructure.persistence.models.chain import (
    ChainDefinitionModel,
    ChainDefinitionStepModel,
    ChainExecutionModel,
    StepExecutionModel,
)
from eventchain.infrastructure.persistence.models.mixins import (
    CuidMixin,
    FamilyMixin,
    FamilyScopedModel,
    TimestampMixin,
    VersionedMixin,
)

__all__ = [
    "ChainDefinitionModel",
    "ChainDefinitionStepModel",
    "ChainExecutionModel",
    "CuidMixin",
    "FamilyMixin",
    "FamilyScopedModel",
    "StepExecutionModel",
    "TimestampMixin",
    "VersionedMixin",
]
