"""Health check endpoints: liveness and readiness probes."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from eventchain.core.config import get_settings
from eventchain.schemas.health import (
    HealthResponse,
    ReadinessErrorResponse,
    ReadinessResponse,
)

router = APIRouter()


@router.get("", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Return simple ok status for liveness."""
    return HealthResponse()


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={503: {"description": "Not ready", "model": ReadinessErrorResponse}},
)
async def readiness_check(request: Request) -> ReadinessResponse | JSONResponse:
    """Return 200 when the worker pool runs and (for postgres) the database answers."""
    settings = get_settings()
    pool = getattr(request.app.state, "worker_pool", None)
    message: str | None = None
    if pool is None or not pool.is_running:
        message = "Execution worker pool is not running"
    elif settings.database_backend == "postgres":
        from eventchain.infrastructure.persistence.database import check_database

        if not await check_database():
            message = "Database is unreachable"
    if message is not None:
        return JSONResponse(
            status_code=503,
            content=ReadinessErrorResponse(message=message).model_dump(),
        )
    return ReadinessResponse(
        database_backend=settings.database_backend,
        workers_running=True,
        queue_depth=pool.queue_depth,
        queue_capacity=pool.capacity,
    )
