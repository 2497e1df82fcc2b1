"""API v1 router aggregation.

Includes all endpoint modules with consistent prefix and tags. All routes
use dependencies from eventchain.api.v1.dependencies.
"""

from fastapi import APIRouter

from eventchain.api.v1.endpoints import (
    catalog,
    chain_definitions,
    chain_executions,
    health,
)

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(
    chain_definitions.router, prefix="/chain-definitions", tags=["chain-definitions"]
)
api_router.include_router(
    chain_executions.router, prefix="/chain-executions", tags=["chain-executions"]
)
api_router.include_router(catalog.router, prefix="/catalog", tags=["catalog"])
