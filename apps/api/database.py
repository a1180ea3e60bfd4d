"""Async database engine, session factory and declarative base."""

from datetime import datetime, timezone

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from config import settings


def enable_sqlite_foreign_keys(target: AsyncEngine) -> AsyncEngine:
    """Turn on FK enforcement for every new SQLite connection.

    SQLite ships with foreign keys disabled, which would silently skip the
    ON DELETE CASCADE rules on share-link children.
    """
    if target.dialect.name != "sqlite":
        return target

    @event.listens_for(target.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return target


engine = enable_sqlite_foreign_keys(create_async_engine(settings.DATABASE_URL))

SessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on round trip)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


async def get_db():
    async with SessionLocal() as session:
        yield session
