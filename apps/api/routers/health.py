"""
Liveness, readiness and dependency health checks.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config import settings
from database import engine
from services.rate_limit_store import RedisRateLimitStore

router = APIRouter()
logger = logging.getLogger(__name__)


async def _database_error() -> Optional[str]:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as exc:
        logger.warning("Database health check failed: %s", exc)
        return str(exc)
    return None


async def _rate_limit_store_error(store) -> Optional[str]:
    try:
        await store.get("healthcheck")
    except Exception as exc:
        logger.warning("Rate limit store health check failed: %s", exc)
        return str(exc)
    return None


@router.get("/health")
async def health_check(request: Request):
    """Database and (for the redis backend) rate-limit store reachability."""
    report = {
        "status": "healthy",
        "api": "up",
        "rate_limit_backend": settings.RATE_LIMIT_BACKEND,
    }

    db_error = await _database_error()
    report["database"] = "up" if db_error is None else f"down: {db_error}"

    store = getattr(request.app.state, "rate_limit_store", None)
    store_error = None
    if isinstance(store, RedisRateLimitStore):
        store_error = await _rate_limit_store_error(store)
        report["redis"] = "up" if store_error is None else f"down: {store_error}"

    if db_error or store_error:
        report["status"] = "degraded"
    return report


@router.get("/health/ready")
async def readiness_check():
    """Ready once owner login is configured."""
    if not settings.LOGIN_PASSWORD:
        return JSONResponse(status_code=503, content={"ready": False, "missing": ["LOGIN_PASSWORD"]})
    return {"ready": True}


@router.get("/health/live")
async def liveness_check():
    return {"alive": True}
