# marks/routers/health.py
# Health probes for the bookmarks API.
# The database is required; Redis only carries the live change feed,
# so losing it degrades the service instead of taking it down.

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from marks.db.base import select_one
from marks.services.change_feed import get_redis

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

CHECK_TIMEOUT_SECONDS = 2.0


class ComponentHealth(BaseModel):
    status: str  # "healthy" | "degraded" | "unhealthy"
    latency_ms: float = 0.0
    message: str = ""


class HealthStatus(BaseModel):
    status: str
    timestamp: float
    version: str = "1.0.0"
    checks: Dict[str, ComponentHealth] = {}


async def _probe(name: str, call: Callable[[], Awaitable[Any]], on_failure: str,
                 ok_message: str) -> ComponentHealth:
    """Run one dependency check bounded by CHECK_TIMEOUT_SECONDS."""
    start = time.perf_counter()

    def elapsed() -> float:
        return round((time.perf_counter() - start) * 1000, 2)

    try:
        await asyncio.wait_for(call(), timeout=CHECK_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        return ComponentHealth(status=on_failure, latency_ms=elapsed(), message=f"{name} timeout")
    except Exception as e:
        logger.error(f"{name} health check failed: {type(e).__name__}: {e}")
        return ComponentHealth(status=on_failure, latency_ms=elapsed(), message=f"{name} error: {type(e).__name__}")
    return ComponentHealth(status="healthy", latency_ms=elapsed(), message=ok_message)


async def check_database_health() -> ComponentHealth:
    return await _probe("Database", select_one, "unhealthy", "SELECT 1 ok")


async def check_feed_health() -> ComponentHealth:
    return await _probe("Redis", lambda: get_redis().ping(), "degraded", "PING ok")


@router.get("/health", response_model=HealthStatus)
async def health_check(response: Response):
    """All dependency checks; 503 only when a required one fails."""
    checks = {
        "database": await check_database_health(),
        "change_feed": await check_feed_health(),
    }

    statuses = {c.status for c in checks.values()}
    if "unhealthy" in statuses:
        overall = "unhealthy"
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif "degraded" in statuses:
        overall = "degraded"
    else:
        overall = "healthy"

    return HealthStatus(status=overall, timestamp=time.time(), checks=checks)


@router.get("/health/live")
async def liveness_probe():
    """Process is up; no dependency is contacted."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_probe(response: Response):
    """Ready once the database answers."""
    db = await check_database_health()
    if db.status != "healthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "not_ready", "reason": db.message}
    return {"status": "ready"}
