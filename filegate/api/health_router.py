"""
Health check endpoints for monitoring and orchestration.

Provides:
- Liveness probe: Is the app running?
- Readiness probe: Can the app reach the registry database?
- Detailed health check: Status of all dependencies
"""

import time
from pathlib import Path
from typing import Any

import structlog
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text

from filegate.config import settings
from filegate.core.database import db_manager

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Health"])


async def _check_database() -> dict[str, Any]:
    start = time.perf_counter()
    try:
        async with db_manager.session_scope() as db:
            await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("health_check_failed", dependency="database", error=str(e))
        return {"status": "unhealthy", "error": str(e)}

    return {
        "status": "healthy",
        "response_time_ms": round((time.perf_counter() - start) * 1000, 2),
    }


def _check_storage() -> dict[str, Any]:
    root = Path(settings.storage_root)
    if root.is_dir():
        return {"status": "healthy", "root": str(root.resolve())}
    return {"status": "unhealthy", "error": f"storage root missing: {root}"}


@router.get("/health/live")
async def liveness() -> dict:
    """
    Liveness probe.

    Returns:
        200: Application is running
    """
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness() -> JSONResponse:
    """
    Readiness probe.

    Returns:
        200: Ready to serve traffic
        503: Registry database unreachable
    """
    database = await _check_database()
    is_ready = database["status"] == "healthy"

    return JSONResponse(
        status_code=status.HTTP_200_OK if is_ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if is_ready else "not_ready",
            "checks": {"database": database},
        },
    )


@router.get("/health")
async def health() -> dict:
    """Detailed health check with dependency status."""
    checks: dict[str, Any] = {
        "database": await _check_database(),
        "storage": _check_storage(),
    }

    overall_status = "healthy"
    if any(check["status"] != "healthy" for check in checks.values()):
        overall_status = "degraded"

    return {
        "status": overall_status,
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks,
    }
