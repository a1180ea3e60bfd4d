"""Fixed-window request counters behind a swappable store interface.

The store is created once by the application lifespan and hung off
``app.state.rate_limit_store``; request handlers never touch module state.
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import redis.asyncio as redis


@dataclass
class RateLimitEntry:
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    reset_at: float


class RateLimitStore(ABC):
    """key -> RateLimitEntry store with fixed-window accounting."""

    @abstractmethod
    async def get(self, key: str) -> Optional[RateLimitEntry]:
        ...

    @abstractmethod
    async def set(self, key: str, entry: RateLimitEntry) -> None:
        ...

    @abstractmethod
    async def hit(self, key: str, limit: int, window_seconds: int) -> RateLimitDecision:
        """Count one request against *key* and report whether it fits in the window."""

    @abstractmethod
    async def sweep(self) -> int:
        """Drop expired entries; returns how many were removed."""

    async def clear(self) -> None:
        return None

    async def close(self) -> None:
        return None


class InMemoryRateLimitStore(RateLimitStore):
    def __init__(self, clock: Callable[[], float] = time.time):
        self._entries: Dict[str, RateLimitEntry] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    async def get(self, key: str) -> Optional[RateLimitEntry]:
        return self._entries.get(key)

    async def set(self, key: str, entry: RateLimitEntry) -> None:
        self._entries[key] = entry

    async def hit(self, key: str, limit: int, window_seconds: int) -> RateLimitDecision:
        now = self._clock()
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None or now >= entry.reset_at:
                entry = RateLimitEntry(count=0, reset_at=now + window_seconds)
            if entry.count >= limit:
                self._entries[key] = entry
                return RateLimitDecision(allowed=False, remaining=0, reset_at=entry.reset_at)
            entry.count += 1
            self._entries[key] = entry
            return RateLimitDecision(
                allowed=True,
                remaining=max(limit - entry.count, 0),
                reset_at=entry.reset_at,
            )

    async def sweep(self) -> int:
        now = self._clock()
        async with self._lock:
            expired = [key for key, entry in self._entries.items() if now >= entry.reset_at]
            for key in expired:
                del self._entries[key]
        return len(expired)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class RedisRateLimitStore(RateLimitStore):
    """Shared counters for multi-process deployments; Redis TTLs do the sweeping."""

    def __init__(self, url: str, key_prefix: str = "portfolio:rate"):
        self._client = redis.from_url(url, decode_responses=True)
        self._key_prefix = key_prefix

    def _key(self, key: str) -> str:
        return f"{self._key_prefix}:{key}"

    async def get(self, key: str) -> Optional[RateLimitEntry]:
        redis_key = self._key(key)
        count = await self._client.get(redis_key)
        if count is None:
            return None
        ttl = await self._client.ttl(redis_key)
        return RateLimitEntry(count=int(count), reset_at=time.time() + max(int(ttl), 0))

    async def set(self, key: str, entry: RateLimitEntry) -> None:
        ttl = max(int(entry.reset_at - time.time()), 1)
        await self._client.set(self._key(key), entry.count, ex=ttl)

    async def hit(self, key: str, limit: int, window_seconds: int) -> RateLimitDecision:
        redis_key = self._key(key)
        current = await self._client.incr(redis_key)
        if current == 1:
            await self._client.expire(redis_key, window_seconds)
        ttl = await self._client.ttl(redis_key)
        if ttl is None or int(ttl) < 0:
            await self._client.expire(redis_key, window_seconds)
            ttl = window_seconds
        reset_at = time.time() + int(ttl)
        return RateLimitDecision(
            allowed=current <= limit,
            remaining=max(limit - int(current), 0),
            reset_at=reset_at,
        )

    async def sweep(self) -> int:
        return 0

    async def close(self) -> None:
        await self._client.aclose()


def build_rate_limit_store(backend: str, redis_url: str) -> RateLimitStore:
    if (backend or "memory").strip().lower() == "redis":
        return RedisRateLimitStore(redis_url)
    return InMemoryRateLimitStore()
