"""Share link lifecycle: creation, resolution, access analytics and revocation."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from fastapi import HTTPException
from sqlalchemy import delete, func, or_, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from config import settings
from database import as_utc, utcnow
from models.app import App
from models.client_task import ClientTask
from models.feedback import Feedback
from models.share_link import ShareLink
from models.task_completion import TaskCompletion
from services.apps import get_owned_app
from services.share_codes import build_share_url, generate_share_code
from services.share_permissions import SharePermissions


logger = logging.getLogger(__name__)


class ShareCodeExhaustedError(RuntimeError):
    """Every generated code collided with an existing link."""


def _iso(value) -> Optional[str]:
    value = as_utc(value)
    return value.isoformat() if value else None


def serialize_share_link(
    link: ShareLink,
    *,
    feedback_count: Optional[int] = None,
    task_count: Optional[int] = None,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "id": link.id,
        "code": link.code,
        "app_id": link.app_id,
        "permissions": dict(link.permissions or {}),
        "is_active": bool(link.is_active),
        "expires_at": _iso(link.expires_at),
        "created_at": _iso(link.created_at),
        "last_accessed_at": _iso(link.last_accessed_at),
        "access_count": int(link.access_count or 0),
        "share_url": build_share_url(link.code),
    }
    if feedback_count is not None or task_count is not None:
        payload["counts"] = {
            "feedbacks": int(feedback_count or 0),
            "client_tasks": int(task_count or 0),
        }
    return payload


async def create_share_link(
    *,
    app_slug: str,
    owner_id: str,
    db: AsyncSession,
    permissions: SharePermissions,
    expires_at: Optional[datetime] = None,
    code_factory: Callable[[], str] = generate_share_code,
    max_attempts: Optional[int] = None,
) -> Dict[str, Any]:
    """Issue a new link for one of the owner's apps.

    Uniqueness is enforced by the ``share_links.code`` constraint: each
    attempt is its own insert, and a constraint violation rolls back and
    draws another code. Nothing is persisted when every attempt collides.
    """
    app = await get_owned_app(app_slug, owner_id, db)
    app_id, app_name, app_slug = app.id, app.name, app.slug
    attempts = max(int(max_attempts or settings.SHARE_CODE_MAX_ATTEMPTS), 1)
    expires_at = as_utc(expires_at)

    for attempt in range(1, attempts + 1):
        link = ShareLink(
            id=str(uuid.uuid4()),
            code=code_factory(),
            app_id=app_id,
            permissions=permissions.as_dict(),
            is_active=True,
            expires_at=expires_at,
            access_count=0,
        )
        db.add(link)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.info("Share code collision for app=%s (attempt %s/%s)", app_id, attempt, attempts)
            continue

        logger.info("Created share link for app=%s permissions=%s", app_id, link.permissions)
        payload = serialize_share_link(link)
        payload["app"] = {"name": app_name, "slug": app_slug}
        return payload

    raise ShareCodeExhaustedError(f"Failed to generate a unique share code after {attempts} attempts")


async def resolve_active_share_link(code: str, db: AsyncSession) -> Optional[ShareLink]:
    """Return the link for *code* if it exists, is active and has not expired.

    Absent, deactivated and expired links all come back as ``None``.
    """
    now = utcnow()
    result = await db.execute(
        select(ShareLink).where(
            ShareLink.code == code,
            ShareLink.is_active.is_(True),
            or_(ShareLink.expires_at.is_(None), ShareLink.expires_at > now),
        )
    )
    return result.scalar_one_or_none()


async def touch_share_link_access(link_id: str, db: AsyncSession) -> bool:
    """Bump access analytics; failures are logged and swallowed.

    Writes through a separate session on the caller's engine; rows the caller
    has loaded stay untouched when the write fails.
    """
    async with AsyncSession(db.bind, expire_on_commit=False) as session:
        try:
            await session.execute(
                update(ShareLink)
                .where(ShareLink.id == link_id)
                .values(
                    access_count=ShareLink.access_count + 1,
                    last_accessed_at=utcnow(),
                )
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            return True
        except SQLAlchemyError as exc:
            logger.warning("Share link access tracking failed for link=%s: %s", link_id, exc)
            await session.rollback()
            return False


async def _get_owned_share_link(code: str, owner_id: str, db: AsyncSession) -> tuple[ShareLink, App]:
    result = await db.execute(
        select(ShareLink, App).join(App, App.id == ShareLink.app_id).where(ShareLink.code == code)
    )
    row = result.first()
    if not row:
        raise HTTPException(status_code=404, detail="Share link not found")
    link, app = row
    if app.owner_id != owner_id:
        raise HTTPException(status_code=403, detail="You do not own this share link")
    return link, app


async def _child_counts(codes: List[str], db: AsyncSession) -> tuple[Dict[str, int], Dict[str, int]]:
    if not codes:
        return {}, {}
    feedback_rows = await db.execute(
        select(Feedback.share_code, func.count(Feedback.id))
        .where(Feedback.share_code.in_(codes))
        .group_by(Feedback.share_code)
    )
    task_rows = await db.execute(
        select(ClientTask.share_code, func.count(ClientTask.id))
        .where(ClientTask.share_code.in_(codes))
        .group_by(ClientTask.share_code)
    )
    return dict(feedback_rows.all()), dict(task_rows.all())


async def list_share_links(*, app_slug: str, owner_id: str, db: AsyncSession) -> List[Dict[str, Any]]:
    """All links of an app, active or not, newest first, with feedback/task counts."""
    app = await get_owned_app(app_slug, owner_id, db)
    result = await db.execute(
        select(ShareLink).where(ShareLink.app_id == app.id).order_by(ShareLink.created_at.desc())
    )
    links = list(result.scalars().all())
    feedback_counts, task_counts = await _child_counts([link.code for link in links], db)
    return [
        serialize_share_link(
            link,
            feedback_count=feedback_counts.get(link.code, 0),
            task_count=task_counts.get(link.code, 0),
        )
        for link in links
    ]


async def get_share_link_detail(*, code: str, owner_id: str, db: AsyncSession) -> Dict[str, Any]:
    link, app = await _get_owned_share_link(code, owner_id, db)
    feedback_counts, task_counts = await _child_counts([link.code], db)
    payload = serialize_share_link(
        link,
        feedback_count=feedback_counts.get(link.code, 0),
        task_count=task_counts.get(link.code, 0),
    )
    payload["app"] = {"id": app.id, "name": app.name, "slug": app.slug}
    return payload


async def revoke_share_link(*, code: str, owner_id: str, db: AsyncSession) -> Dict[str, Any]:
    """Delete a link together with every feedback, task and completion keyed by its code."""
    link, app = await _get_owned_share_link(code, owner_id, db)

    task_ids = select(ClientTask.id).where(ClientTask.share_code == code).scalar_subquery()
    await db.execute(
        delete(TaskCompletion)
        .where(TaskCompletion.task_id.in_(task_ids))
        .execution_options(synchronize_session=False)
    )
    tasks_deleted = await db.execute(
        delete(ClientTask).where(ClientTask.share_code == code).execution_options(synchronize_session=False)
    )
    feedback_deleted = await db.execute(
        delete(Feedback).where(Feedback.share_code == code).execution_options(synchronize_session=False)
    )
    await db.execute(
        delete(ShareLink).where(ShareLink.id == link.id).execution_options(synchronize_session=False)
    )
    await db.commit()

    logger.info(
        "Revoked share link for app=%s (removed %s tasks, %s feedback)",
        app.id,
        tasks_deleted.rowcount,
        feedback_deleted.rowcount,
    )
    return {
        "success": True,
        "code": code,
        "deleted": {
            "client_tasks": int(tasks_deleted.rowcount or 0),
            "feedbacks": int(feedback_deleted.rowcount or 0),
        },
    }
