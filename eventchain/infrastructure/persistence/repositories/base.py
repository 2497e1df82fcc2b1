"""Base repository: model lookups and version-checked updates."""

from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from eventchain.domain.exceptions import (
    ConcurrencyConflictException,
    ResourceNotFoundException,
)
from eventchain.infrastructure.persistence.database import Base


class BaseRepository[ModelType: Base]:
    """Base repository with model lookup and optimistic-locking update.

    Subclasses map between ORM models and domain aggregates; this class only
    knows about models. The model must have `id` and `version` columns.
    """

    resource_type: str = "resource"

    def __init__(self, db: AsyncSession, model: type[ModelType]) -> None:
        self.db = db
        self.model = model

    async def _get_model(self, entity_id: str, *criteria: Any) -> ModelType | None:
        """Return a single record by primary key (plus optional criteria), or None.

        populate_existing refreshes rows already in the identity map, since
        updates go through Core statements.
        """
        model: Any = self.model
        stmt = (
            select(self.model)
            .where(model.id == entity_id, *criteria)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def _versioned_update(
        self, entity_id: str, expected_version: int, values: dict[str, Any]
    ) -> int:
        """UPDATE ... WHERE id = :id AND version = :expected; return the new version.

        Raises:
            ConcurrencyConflictException: If the stored version differs.
            ResourceNotFoundException: If the row no longer exists.
        """
        model: Any = self.model
        new_version = expected_version + 1
        stmt = (
            update(self.model)
            .where(model.id == entity_id, model.version == expected_version)
            .values(**values, version=new_version)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        if result.rowcount == 0:
            exists = await self.db.execute(select(model.id).where(model.id == entity_id))
            if exists.scalar_one_or_none() is None:
                raise ResourceNotFoundException(self.resource_type, entity_id)
            raise ConcurrencyConflictException(
                self.resource_type, entity_id, expected_version
            )
        return new_version
