"""Response DTOs for the plain HTTP endpoints."""

from pydantic import BaseModel, Field


class RootResponse(BaseModel):
    """Response DTO for the root liveness endpoint."""

    message: str = Field(..., description="Human-readable liveness message")


class HealthCheckResponse(BaseModel):
    """Response DTO for the health probe."""

    status: str = Field(..., description="Always 'ok' while the process serves requests")


class ReadinessResponse(BaseModel):
    """Response DTO for the readiness probe."""

    status: str = Field(..., description="'ready' or 'degraded'")
    store_healthy: bool = Field(..., description="Whether the backing store answered")
    scheduler_running: bool = Field(..., description="Whether the notification check is scheduled")
