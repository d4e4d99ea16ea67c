"""
Connection probe and health report schemas.
"""
from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field


class ConnectionTestResult(BaseModel):
    """Outcome of probing one database, including retries."""
    success: bool = Field(..., description="Whether any attempt succeeded")
    attempts: int = Field(..., description="Number of attempts made")
    response_time_ms: Optional[float] = Field(None, description="Latency of the successful attempt")
    error: Optional[str] = Field(None, description="Last error message when every attempt failed")


class PoolStats(BaseModel):
    """Connection counters for one pool."""
    total_connections: int = 0
    idle_connections: int = 0
    queued_requests: int = 0


class DatabaseHealthEntry(BaseModel):
    """Health of a single logical database."""
    status: Literal["connected", "disconnected"]
    response_time_ms: Optional[float] = None
    error: Optional[str] = None
    pool: PoolStats = Field(default_factory=PoolStats)


class DatabaseHealthReport(BaseModel):
    """Aggregate health across every logical database."""
    status: Literal["healthy", "degraded", "unhealthy"]
    databases: dict[str, DatabaseHealthEntry]
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def classify_health(up: int, total: int) -> str:
    """healthy when all are up, unhealthy when none are, degraded otherwise."""
    if total and up == total:
        return "healthy"
    if up > 0:
        return "degraded"
    return "unhealthy"
