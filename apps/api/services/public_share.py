"""Payload builders for operations reached through a share code.

Callers must already hold a successful ``ShareAuthorization``.
"""

from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from database import as_utc
from models.app import App
from models.feedback import Feedback
from services.apps import build_app_snapshot
from services.share_gate import ShareAuthorization


def _iso(value) -> Optional[str]:
    value = as_utc(value)
    return value.isoformat() if value else None


def serialize_feedback(feedback: Feedback) -> Dict[str, Any]:
    return {
        "id": feedback.id,
        "client_name": feedback.client_name,
        "message": feedback.message,
        "created_at": _iso(feedback.created_at),
    }


async def _app_for(authorization: ShareAuthorization, db: AsyncSession) -> App:
    result = await db.execute(select(App).where(App.id == authorization.link.app_id))
    return result.scalar_one()


async def get_public_app_view(authorization: ShareAuthorization, db: AsyncSession) -> Dict[str, Any]:
    link = authorization.link
    app = await _app_for(authorization, db)
    snapshot = await build_app_snapshot(app, db)
    # Owner-only fields stay out of the public payload.
    snapshot.pop("client", None)
    snapshot.pop("platform", None)
    return {
        "app": snapshot,
        "permissions": authorization.permissions.as_dict(),
        "share_info": {
            "created_at": _iso(link.created_at),
            "expires_at": _iso(link.expires_at),
        },
    }


async def list_feedback(share_code: str, db: AsyncSession) -> List[Dict[str, Any]]:
    result = await db.execute(
        select(Feedback).where(Feedback.share_code == share_code).order_by(Feedback.created_at.desc())
    )
    return [serialize_feedback(item) for item in result.scalars().all()]


async def post_feedback(
    authorization: ShareAuthorization,
    db: AsyncSession,
    *,
    message: str,
    client_name: Optional[str] = None,
) -> Dict[str, Any]:
    app = await _app_for(authorization, db)
    app_name = app.name
    feedback = Feedback(
        id=str(uuid.uuid4()),
        share_code=authorization.link.code,
        client_name=client_name or None,
        message=message,
    )
    db.add(feedback)
    await db.commit()
    payload = serialize_feedback(feedback)
    payload["app_name"] = app_name
    return payload
