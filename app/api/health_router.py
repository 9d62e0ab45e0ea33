"""
Health check endpoints for monitoring and orchestration.

Provides:
- Liveness probe: Is the app running?
- Readiness probe: Can the app serve traffic?
- Detailed health check: database, Redis and background queue status
"""

import asyncio
from typing import Any

import structlog
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.config import settings
from app.core.background import background_queue
from app.core.cache import cache_manager
from app.core.database import db_manager

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Health"])


async def _check_database() -> dict[str, Any]:
    start = asyncio.get_running_loop().time()
    try:
        async with db_manager.session_factory() as db:
            await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError, RuntimeError) as e:
        logger.warning("database_health_check_failed", error=str(e))
        return {"status": "unhealthy", "error": str(e)}
    elapsed = (asyncio.get_running_loop().time() - start) * 1000
    return {"status": "healthy", "response_time_ms": round(elapsed, 2)}


async def _check_redis() -> dict[str, Any]:
    # Redis only backs token revocation, so its absence degrades rather than fails
    if not cache_manager.available:
        return {"status": "disabled"}
    try:
        await cache_manager.client.ping()
    except (RedisError, OSError) as e:
        return {"status": "unhealthy", "error": str(e)}
    return {"status": "healthy"}


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
        200: Database reachable
        503: Database unavailable
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
    """Dependency status with version information."""
    checks = {
        "database": await _check_database(),
        "redis": await _check_redis(),
        "background_queue": {"status": "running" if background_queue.is_running else "stopped"},
    }
    overall_status = "healthy"
    if checks["database"]["status"] != "healthy" or checks["redis"]["status"] == "unhealthy":
        overall_status = "degraded"

    return {
        "status": overall_status,
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks,
    }
