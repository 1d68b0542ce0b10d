"""
Health check router.

Liveness only looks at the process; health and readiness also run a
bounded database round trip.
"""
import asyncio
import logging
import time
from typing import Any, Dict

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import text

from travel_api.config import get_settings
from travel_api.database import engine
from travel_api.utils.prometheus_metrics import ready

logger = logging.getLogger("app.health")
router = APIRouter(prefix="/health", tags=["Health"])

settings = get_settings()

DB_CHECK_TIMEOUT = 1.0


async def _check_db() -> None:
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))


async def _require_db(reason: str) -> None:
    """Raise 503 when the database does not answer in time."""
    try:
        await asyncio.wait_for(_check_db(), timeout=DB_CHECK_TIMEOUT)
    except asyncio.TimeoutError:
        logger.warning(f"{reason}: DB timeout", extra={"event": "health"})
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database connection timeout",
        )
    except Exception as e:
        logger.warning(f"{reason}: DB", extra={"event": "health", "error": str(e)[:200]})
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database connection failed",
        )


def _require_ready(detail: str) -> None:
    if ready._value.get() == 0:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)


@router.get("", summary="Health check (fast)")
async def health_check() -> Dict[str, Any]:
    """
    Fast health check for load balancers.

    - 503 while shutting down
    - DB answered within one second
    """
    start_time = time.perf_counter()
    _require_ready("Application is shutting down")
    await _require_db("Health check failed")

    return {
        "status": "healthy",
        "duration_ms": round((time.perf_counter() - start_time) * 1000, 2),
        "instance": settings.instance_ip or "unknown",
    }


@router.get("/liveness", summary="Liveness probe")
async def liveness_probe() -> Dict[str, str]:
    """The process is up and not shutting down."""
    _require_ready("Application is shutting down")
    return {"status": "alive"}


@router.get("/readiness", summary="Readiness probe")
async def readiness_probe() -> Dict[str, str]:
    """The process can serve requests, database included."""
    _require_ready("Application is not ready")
    await _require_db("Readiness check failed")
    return {"status": "ready"}
