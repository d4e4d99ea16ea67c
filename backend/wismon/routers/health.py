"""
Health check router for liveness and database readiness probes.
"""
import os
import platform
import time
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from wismon.config import Settings
from wismon.database.connections import ConnectionManager
from wismon.dependencies.auth import get_app_settings, get_connection_manager

router = APIRouter(tags=["Health"])

API_VERSION = "1.0.0"


def _uptime_seconds(request: Request) -> float:
    started_at = getattr(request.app.state, "started_at", None)
    if started_at is None:
        return 0.0
    return round(time.monotonic() - started_at, 3)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get(
    "/health",
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
)
async def health_check(
    request: Request,
    settings: Annotated[Settings, Depends(get_app_settings)],
):
    """
    Basic health check endpoint.
    Returns 200 if the API is running; never touches the databases.
    """
    return {
        "status": "healthy",
        "uptime": _uptime_seconds(request),
        "timestamp": _timestamp(),
        "environment": settings.environment,
        "version": API_VERSION,
    }


@router.get(
    "/health/database",
    summary="Database connectivity check",
    responses={503: {"description": "No database is reachable"}},
)
async def database_health(
    db: Annotated[ConnectionManager, Depends(get_connection_manager)],
):
    """
    Re-probe every logical database.
    Returns 503 when the report is unhealthy (nothing reachable).
    """
    start = time.perf_counter()
    report = await db.get_database_health()
    content = report.model_dump(mode="json")
    content["checkDuration"] = round((time.perf_counter() - start) * 1000)

    status_code = (
        status.HTTP_503_SERVICE_UNAVAILABLE
        if report.status == "unhealthy"
        else status.HTTP_200_OK
    )
    return JSONResponse(status_code=status_code, content=content)


@router.get(
    "/health/database/config",
    status_code=status.HTTP_200_OK,
    summary="Database pool configuration",
)
async def database_config(
    db: Annotated[ConnectionManager, Depends(get_connection_manager)],
):
    """Pool configuration per database, without credentials."""
    return {
        "status": "ok",
        "config": db.describe(),
        "timestamp": _timestamp(),
    }


@router.get(
    "/health/detailed",
    summary="Process and database health",
    responses={503: {"description": "No database is reachable"}},
)
async def detailed_health(
    request: Request,
    db: Annotated[ConnectionManager, Depends(get_connection_manager)],
    settings: Annotated[Settings, Depends(get_app_settings)],
):
    """Process information plus the full database report."""
    report = await db.get_database_health()
    content = {
        "status": report.status,
        "uptime": _uptime_seconds(request),
        "timestamp": _timestamp(),
        "environment": settings.environment,
        "version": API_VERSION,
        "system": {
            "python": platform.python_version(),
            "platform": platform.platform(),
            "pid": os.getpid(),
        },
        "databases": report.model_dump(mode="json")["databases"],
    }
    status_code = (
        status.HTTP_503_SERVICE_UNAVAILABLE
        if report.status == "unhealthy"
        else status.HTTP_200_OK
    )
    return JSONResponse(status_code=status_code, content=content)
