# app/routes/health.py
"""
Liveness and readiness endpoints.

The cache is reported but never required: the service answers from the
store alone while Redis is down.
"""

import time

from fastapi import APIRouter

from app.config import settings
from app.db.pool import db_health_check
from app.services.redis_client import cache_client

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "astro-booking"}


@router.get("/readyz")
async def readyz():
    """Readiness: database pool must be healthy, cache state is informational."""
    checks = {}

    # 1) Database pool
    t0 = time.time()
    db_health = await db_health_check()
    database_ok = bool(db_health.get("healthy", False))
    checks["database"] = {
        "ok": database_ok,
        "latency_ms": round((time.time() - t0) * 1000, 1),
    }
    if "pool_stats" in db_health:
        checks["database"]["pool_stats"] = db_health["pool_stats"]
    if not database_ok:
        checks["database"]["error"] = db_health.get("error", "Database unhealthy")

    # 2) Cache
    t0 = time.time()
    cache_ok = await cache_client.ping()
    checks["cache"] = {
        "ok": cache_ok,
        "required": False,
        "latency_ms": round((time.time() - t0) * 1000, 1),
    }
    if not cache_ok:
        checks["cache"]["mode"] = "store_only"

    return {
        "overall_ok": database_ok,
        "environment": settings.environment,
        "checks": checks,
        "timestamp": time.time(),
    }
