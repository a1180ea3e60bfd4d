"""Per-share-code, per-client throttling dependency for public writes."""

from __future__ import annotations

import logging
from typing import Callable

from fastapi import HTTPException, Request

from config import settings


logger = logging.getLogger(__name__)


def _client_identifier(request: Request) -> str:
    peer = request.client.host if request.client and request.client.host else None
    if peer and peer in settings.TRUSTED_PROXIES:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded and forwarded.split(",")[0].strip():
            return forwarded.split(",")[0].strip()
        real_ip = request.headers.get("x-real-ip")
        if real_ip and real_ip.strip():
            return real_ip.strip()
    return peer or "unknown"


def rate_limit(prefix: str, limit: int, window_seconds: int, message: str) -> Callable[..., None]:
    """Return a FastAPI dependency that throttles requests per share code and client."""

    async def _dependency(request: Request):
        if getattr(request.app.state, "disable_rate_limits", False):
            return

        code = request.path_params.get("code", "")
        key = f"{prefix}:{code}:{_client_identifier(request)}"

        try:
            decision = await request.app.state.rate_limit_store.hit(key, limit, window_seconds)
        except Exception as exc:
            logger.warning("Rate limit store unavailable, using local counters: %s", exc)
            decision = await request.app.state.rate_limit_fallback_store.hit(key, limit, window_seconds)

        if not decision.allowed:
            raise HTTPException(
                status_code=429,
                detail=message,
                headers={
                    "X-RateLimit-Remaining": str(decision.remaining),
                    "X-RateLimit-Reset": str(int(decision.reset_at * 1000)),
                },
            )

    return _dependency
