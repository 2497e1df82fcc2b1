"""Chain engine dependencies (composition root).

Infrastructure built by the lifespan lives on app.state; every request
opens one repository scope and builds its use cases on it. Tests swap
any of these with app.dependency_overrides.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends, Request

from eventchain.application.interfaces.repositories import ChainRepositories
from eventchain.application.interfaces.services import (
    IDomainEventPublisher,
    IExecutionDispatcher,
)
from eventchain.application.services import PayloadValidator
from eventchain.application.use_cases.chains import (
    ChainDefinitionService,
    ChainExecutionService,
    ExecuteChainUseCase,
)
from eventchain.domain.registry import ChainRegistry


async def get_repositories(request: Request) -> AsyncIterator[ChainRepositories]:
    """One repository scope (unit of work) per request."""
    async with request.app.state.repositories.scope() as repos:
        yield repos


def get_registry(request: Request) -> ChainRegistry:
    return request.app.state.registry


def get_dispatcher(request: Request) -> IExecutionDispatcher:
    return request.app.state.worker_pool


def get_event_publisher(request: Request) -> IDomainEventPublisher:
    return request.app.state.event_publisher


def get_payload_validator(request: Request) -> PayloadValidator:
    validator = getattr(request.app.state, "payload_validator", None)
    return validator or PayloadValidator()


async def get_chain_definition_service(
    repos: Annotated[ChainRepositories, Depends(get_repositories)],
    registry: Annotated[ChainRegistry, Depends(get_registry)],
    event_publisher: Annotated[IDomainEventPublisher, Depends(get_event_publisher)],
) -> ChainDefinitionService:
    return ChainDefinitionService(
        repos.definitions, repos.executions, registry, event_publisher
    )


async def get_execute_chain_use_case(
    repos: Annotated[ChainRepositories, Depends(get_repositories)],
    registry: Annotated[ChainRegistry, Depends(get_registry)],
    dispatcher: Annotated[IExecutionDispatcher, Depends(get_dispatcher)],
    event_publisher: Annotated[IDomainEventPublisher, Depends(get_event_publisher)],
    payload_validator: Annotated[PayloadValidator, Depends(get_payload_validator)],
) -> ExecuteChainUseCase:
    return ExecuteChainUseCase(
        repos.definitions,
        repos.executions,
        registry,
        dispatcher,
        event_publisher,
        payload_validator,
    )


async def get_chain_execution_service(
    repos: Annotated[ChainRepositories, Depends(get_repositories)],
    dispatcher: Annotated[IExecutionDispatcher, Depends(get_dispatcher)],
) -> ChainExecutionService:
    return ChainExecutionService(repos.executions, dispatcher)
