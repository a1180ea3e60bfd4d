import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from database import Base, enable_sqlite_foreign_keys, get_db
from main import app
from models.app import App
from models.user import User
from services.rate_limit_store import InMemoryRateLimitStore
from services.session_token import create_session_token


OWNER_ID = "owner-1"
OTHER_OWNER_ID = "owner-2"
APP_ID = "app-1"
APP_SLUG = "client-portal"
OTHER_APP_ID = "app-2"
OTHER_APP_SLUG = "someone-elses-app"

OWNER_AUTH_HEADER = {"Authorization": f"Bearer {create_session_token(OWNER_ID, 'owner@example.com').token}"}
OTHER_OWNER_AUTH_HEADER = {
    "Authorization": f"Bearer {create_session_token(OTHER_OWNER_ID, 'other@example.com').token}"
}


@pytest.fixture(autouse=True)
def reset_rate_limit_store():
    """Keep in-memory rate-limit state isolated between tests."""
    previous = getattr(app.state, "disable_rate_limits", False)
    app.state.disable_rate_limits = True
    previous_stores = (app.state.rate_limit_store, app.state.rate_limit_fallback_store)
    app.state.rate_limit_store = InMemoryRateLimitStore()
    app.state.rate_limit_fallback_store = InMemoryRateLimitStore()
    yield
    app.state.rate_limit_store, app.state.rate_limit_fallback_store = previous_stores
    app.state.disable_rate_limits = previous


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    db_path = tmp_path / "portfolio.db"
    engine = enable_sqlite_foreign_keys(create_async_engine(f"sqlite+aiosqlite:///{db_path}"))
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with maker() as session:
        session.add_all(
            [
                User(id=OWNER_ID, email="owner@example.com", name="Owner"),
                User(id=OTHER_OWNER_ID, email="other@example.com", name="Other Owner"),
            ]
        )
        await session.flush()
        session.add_all(
            [
                App(id=APP_ID, owner_id=OWNER_ID, name="Client Portal", slug=APP_SLUG, status="BUILDING"),
                App(id=OTHER_APP_ID, owner_id=OTHER_OWNER_ID, name="Someone Elses App", slug=OTHER_APP_SLUG),
            ]
        )
        await session.commit()

    yield maker
    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_maker):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client

    app.dependency_overrides.pop(get_db, None)


async def seed_share_link(
    session_maker,
    code,
    *,
    app_id=APP_ID,
    permissions=None,
    is_active=True,
    expires_at=None,
):
    """Insert a share link directly, bypassing code generation."""
    from models.share_link import ShareLink

    async with session_maker() as session:
        link = ShareLink(
            code=code,
            app_id=app_id,
            permissions=permissions or {"view": True, "comment": False, "create_tasks": False},
            is_active=is_active,
            expires_at=expires_at,
        )
        session.add(link)
        await session.commit()
        return link
