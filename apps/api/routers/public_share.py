"""
Public router for share-code holders: app view, feedback and task requests.

Every route runs exactly one capability check through ``require_share_capability``;
write routes are throttled per code and client before the check.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import get_db
from routers.rate_limit import rate_limit
from services.client_tasks import create_client_task, list_share_tasks
from services.public_share import get_public_app_view, list_feedback, post_feedback
from services.share_gate import ShareAuthorization, require_share_capability
from services.share_permissions import SharePermission

router = APIRouter()
logger = logging.getLogger(__name__)


def _required_text(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


def _optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


class FeedbackRequest(BaseModel):
    client_name: Optional[str] = Field(default=None, alias="clientName", max_length=200)
    message: str = Field(min_length=1, max_length=2000)

    model_config = {"populate_by_name": True}

    check_message = field_validator("message")(_required_text)
    check_client_name = field_validator("client_name")(_optional_text)


class TaskRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1, max_length=2000)
    client_name: Optional[str] = Field(default=None, alias="clientName", max_length=200)

    model_config = {"populate_by_name": True}

    check_text = field_validator("title", "description")(_required_text)
    check_client_name = field_validator("client_name")(_optional_text)


feedback_rate_limit = rate_limit(
    "feedback",
    settings.FEEDBACK_RATE_LIMIT,
    settings.FEEDBACK_RATE_WINDOW_SECONDS,
    "Too many feedback submissions. Please try again later.",
)
task_rate_limit = rate_limit(
    "tasks",
    settings.TASK_RATE_LIMIT,
    settings.TASK_RATE_WINDOW_SECONDS,
    "Too many task submissions. Please try again later.",
)


@router.get("/{code}")
async def get_shared_app(
    code: str,
    authorization: ShareAuthorization = Depends(
        require_share_capability(SharePermission.VIEW, record_access=True)
    ),
    db: AsyncSession = Depends(get_db),
):
    """App status, update and deployment history for a share-code holder."""
    try:
        return await get_public_app_view(authorization, db)
    except HTTPException:
        raise
    except Exception:
        logger.exception("Failed to fetch public app data")
        raise HTTPException(status_code=500, detail="Failed to fetch app data")


@router.get("/{code}/feedback")
async def get_shared_feedback(
    code: str,
    authorization: ShareAuthorization = Depends(require_share_capability(SharePermission.COMMENT)),
    db: AsyncSession = Depends(get_db),
):
    return await list_feedback(authorization.link.code, db)


@router.post("/{code}/feedback", dependencies=[Depends(feedback_rate_limit)])
async def post_shared_feedback(
    code: str,
    request: FeedbackRequest,
    authorization: ShareAuthorization = Depends(require_share_capability(SharePermission.COMMENT)),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await post_feedback(
            authorization,
            db,
            message=request.message,
            client_name=request.client_name,
        )
    except HTTPException:
        raise
    except Exception:
        logger.exception("Failed to create feedback")
        raise HTTPException(status_code=500, detail="Failed to create feedback")


@router.get("/{code}/tasks")
async def get_shared_tasks(
    code: str,
    authorization: ShareAuthorization = Depends(require_share_capability(SharePermission.VIEW)),
    db: AsyncSession = Depends(get_db),
):
    return await list_share_tasks(authorization.link.code, db)


@router.post("/{code}/tasks", dependencies=[Depends(task_rate_limit)])
async def post_shared_task(
    code: str,
    request: TaskRequest,
    authorization: ShareAuthorization = Depends(require_share_capability(SharePermission.CREATE_TASKS)),
    db: AsyncSession = Depends(get_db),
):
    """Submit a task request; it starts out PENDING."""
    try:
        return await create_client_task(
            share_code=authorization.link.code,
            db=db,
            title=request.title,
            description=request.description,
            client_name=request.client_name,
        )
    except HTTPException:
        raise
    except Exception:
        logger.exception("Failed to create task")
        raise HTTPException(status_code=500, detail="Failed to create task")
