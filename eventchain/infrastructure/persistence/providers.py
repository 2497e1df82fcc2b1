"""SQL repository provider: one session per scope."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from eventchain.application.interfaces.repositories import ChainRepositories
from eventchain.infrastructure.persistence.database import session_scope
from eventchain.infrastructure.persistence.repositories import (
    ChainDefinitionRepository,
    ChainExecutionRepository,
)


class SqlAlchemyRepositoryProvider:
    """Opens a session per scope and builds the SQL repositories on it (implements IRepositoryProvider)."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def scope(self) -> AsyncIterator[ChainRepositories]:
        async with session_scope(self._session_factory) as session:
            yield ChainRepositories(
                definitions=ChainDefinitionRepository(session),
                executions=ChainExecutionRepository(session),
            )
