"""Health check API schemas."""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response for GET /health (liveness)."""

    status: str = Field(default="ok", description="Service status")


class ReadinessResponse(BaseModel):
    """Response for GET /health/ready when ready."""

    status: str = Field(default="ok", description="Readiness status")
    database_backend: str = Field(..., description="Configured database backend")
    workers_running: bool = Field(..., description="Whether the execution worker pool is running")
    queue_depth: int = Field(default=0, description="Executions waiting for a worker")
    queue_capacity: int = Field(default=0, description="Execution queue capacity")


class ReadinessErrorResponse(BaseModel):
    """Response for GET /health/ready when not ready (503)."""

    status: str = Field(default="not_ready", description="Readiness status")
    message: str = Field(..., description="Reason (e.g. database unreachable)")
