"""One-time process setup: the configured owner account."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.future import select

from config import settings
from models.user import User


logger = logging.getLogger(__name__)


async def ensure_owner_account(session_maker: async_sessionmaker[AsyncSession]) -> str:
    """Create the configured owner if missing and return its id."""
    email = settings.OWNER_EMAIL.strip().lower()
    async with session_maker() as session:
        result = await session.execute(select(User).where(User.email == email))
        owner = result.scalar_one_or_none()
        if owner:
            return owner.id

        owner = User(id=str(uuid.uuid4()), email=email, name=settings.OWNER_NAME or None)
        session.add(owner)
        await session.commit()
        logger.info("Created owner account %s", email)
        return owner.id


async def get_owner_by_email(email: str, db: AsyncSession) -> User | None:
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()
