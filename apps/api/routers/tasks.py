"""
Owner router for client task transitions.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from routers.auth_scope import AuthContext, get_auth_context
from services.client_tasks import TaskStatus, complete_task, set_task_status

router = APIRouter()
logger = logging.getLogger(__name__)


class TaskStatusRequest(BaseModel):
    status: TaskStatus


class TaskCompletionRequest(BaseModel):
    completed_by: str = Field(alias="completedBy", min_length=1, max_length=200)
    feedback: str = Field(min_length=1, max_length=2000)
    notes: Optional[str] = Field(default=None, max_length=2000)

    model_config = {"populate_by_name": True}

    @field_validator("completed_by", "feedback")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


@router.put("/{task_id}/status")
async def put_task_status(
    task_id: str,
    request: TaskStatusRequest,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """Move a task to IN_PROGRESS or REJECTED. COMPLETED is refused here."""
    try:
        return await set_task_status(task_id=task_id, owner_id=auth.owner_id, status=request.status, db=db)
    except HTTPException:
        raise
    except Exception:
        logger.exception("Failed to update task status task=%s", task_id)
        raise HTTPException(status_code=500, detail="Failed to update task status")


@router.post("/{task_id}/complete")
async def post_task_completion(
    task_id: str,
    request: TaskCompletionRequest,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await complete_task(
            task_id=task_id,
            owner_id=auth.owner_id,
            completed_by=request.completed_by,
            feedback=request.feedback,
            notes=request.notes,
            db=db,
        )
    except HTTPException:
        raise
    except Exception:
        logger.exception("Failed to complete task=%s", task_id)
        raise HTTPException(status_code=500, detail="Failed to complete task")
