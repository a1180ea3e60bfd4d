"""
App Portfolio Tracker - FastAPI Backend
Owners track apps and publish scoped share links to clients.
"""

import asyncio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from config import settings, validate_security_settings
from database import engine, Base, SessionLocal
import models  # noqa: F401
from routers import (
    health,
    auth,
    apps,
    share_links,
    public_share,
    tasks,
)
from services.bootstrap import ensure_owner_account
from services.rate_limit_store import InMemoryRateLimitStore, build_rate_limit_store


async def sweep_rate_limit_stores(app: FastAPI) -> int:
    """Evict expired counters from the configured store and its local fallback."""
    removed = 0
    for store in (app.state.rate_limit_store, app.state.rate_limit_fallback_store):
        removed += await store.sweep()
    return removed


async def _periodic_rate_limit_sweep(app: FastAPI) -> None:
    interval_seconds = max(int(settings.RATE_LIMIT_SWEEP_INTERVAL_SECONDS), 0)
    if interval_seconds <= 0:
        return
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            removed = await sweep_rate_limit_stores(app)
            if removed:
                print(f"🧹 Rate limit sweep removed {removed} expired entries.")
        except Exception as exc:
            print(f"⚠️ Rate limit sweep tick failed: {exc}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    print("🚀 Starting App Portfolio Tracker API...")
    validate_security_settings()
    if settings.AUTO_CREATE_DB_SCHEMA:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        print("🗄️ Database schema verified.")
    owner_id = await ensure_owner_account(SessionLocal)
    print(f"👤 Owner account ready ({owner_id}).")

    sweep_task = asyncio.create_task(_periodic_rate_limit_sweep(app))
    yield
    # Shutdown
    sweep_task.cancel()
    try:
        await sweep_task
    except asyncio.CancelledError:
        pass
    await app.state.rate_limit_store.close()
    await engine.dispose()
    print("👋 Shutting down API...")


app = FastAPI(
    title="App Portfolio Tracker API",
    description="Track app progress and share scoped views with clients",
    version="0.1.0",
    lifespan=lifespan,
)
app.state.rate_limit_store = build_rate_limit_store(settings.RATE_LIMIT_BACKEND, settings.REDIS_URL)
app.state.rate_limit_fallback_store = InMemoryRateLimitStore()

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-RateLimit-Remaining", "X-RateLimit-Reset"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(apps.router, prefix="/apps", tags=["Apps"])
app.include_router(share_links.router, tags=["Share Links"])
app.include_router(public_share.router, prefix="/public", tags=["Public"])
app.include_router(tasks.router, prefix="/tasks", tags=["Tasks"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "App Portfolio Tracker API",
        "version": "0.1.0",
        "status": "running"
    }
