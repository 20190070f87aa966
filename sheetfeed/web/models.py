"""Response models for the HTTP surface."""

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Body returned when no snapshot can be served."""

    error: str = Field(..., description="Error message")


class CacheStatus(BaseModel):
    """Snapshot cache state, reported without triggering a refresh."""

    has_snapshot: bool
    fresh: bool
    age_seconds: float | None = None
    captured_at: str | None = None
    ttl_seconds: float
    refreshing: bool = False


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    cache: CacheStatus
