"""Client task state machine and owner-side task management.

PENDING -> IN_PROGRESS -> COMPLETED
PENDING -> REJECTED

COMPLETED is only reachable through ``complete_task``, which writes the
TaskCompletion row in the same transaction as the status flip.
"""

from __future__ import annotations

import logging
import uuid
from enum import Enum
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from database import as_utc, utcnow
from models.app import App
from models.client_task import ClientTask
from models.share_link import ShareLink
from models.task_completion import TaskCompletion
from services.apps import get_owned_app


logger = logging.getLogger(__name__)


class TaskStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"


# Transitions available through the status endpoint; COMPLETED goes through complete_task only.
STATUS_TRANSITIONS = {
    TaskStatus.PENDING: frozenset({TaskStatus.IN_PROGRESS, TaskStatus.REJECTED}),
    TaskStatus.IN_PROGRESS: frozenset(),
    TaskStatus.COMPLETED: frozenset(),
    TaskStatus.REJECTED: frozenset(),
}

COMPLETABLE_FROM = TaskStatus.IN_PROGRESS
TERMINAL_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.REJECTED})


def can_transition(current: TaskStatus, target: TaskStatus) -> bool:
    return TaskStatus(target) in STATUS_TRANSITIONS[TaskStatus(current)]


def _iso(value) -> Optional[str]:
    value = as_utc(value)
    return value.isoformat() if value else None


def serialize_completion(completion: Optional[TaskCompletion]) -> Optional[Dict[str, Any]]:
    if completion is None:
        return None
    return {
        "completed_by": completion.completed_by,
        "completed_at": _iso(completion.completed_at),
        "feedback": completion.feedback,
        "notes": completion.notes,
    }


def serialize_task(task: ClientTask, completion: Optional[TaskCompletion] = None) -> Dict[str, Any]:
    return {
        "id": task.id,
        "share_code": task.share_code,
        "title": task.title,
        "description": task.description,
        "client_name": task.client_name,
        "status": task.status,
        "created_at": _iso(task.created_at),
        "updated_at": _iso(task.updated_at),
        "completion": serialize_completion(completion),
    }


async def _get_owned_task(task_id: str, owner_id: str, db: AsyncSession) -> ClientTask:
    result = await db.execute(
        select(ClientTask, App.owner_id)
        .join(ShareLink, ShareLink.code == ClientTask.share_code)
        .join(App, App.id == ShareLink.app_id)
        .where(ClientTask.id == task_id)
    )
    row = result.first()
    if not row:
        raise HTTPException(status_code=404, detail="Task not found")
    task, task_owner_id = row
    if task_owner_id != owner_id:
        raise HTTPException(status_code=403, detail="You do not own this task")
    return task


async def _current_status(task_id: str, db: AsyncSession) -> Optional[str]:
    result = await db.execute(select(ClientTask.status).where(ClientTask.id == task_id))
    return result.scalar_one_or_none()


async def create_client_task(
    *,
    share_code: str,
    db: AsyncSession,
    title: str,
    description: str,
    client_name: Optional[str] = None,
) -> Dict[str, Any]:
    task = ClientTask(
        id=str(uuid.uuid4()),
        share_code=share_code,
        title=title,
        description=description,
        client_name=client_name or None,
        status=TaskStatus.PENDING.value,
    )
    db.add(task)
    await db.commit()
    return serialize_task(task)


async def list_share_tasks(share_code: str, db: AsyncSession) -> List[Dict[str, Any]]:
    result = await db.execute(
        select(ClientTask)
        .options(selectinload(ClientTask.completion))
        .where(ClientTask.share_code == share_code)
        .order_by(ClientTask.created_at.desc())
    )
    return [serialize_task(task, task.completion) for task in result.scalars().all()]


async def list_app_tasks(*, app_slug: str, owner_id: str, db: AsyncSession) -> Dict[str, Any]:
    """Every client task across the app's share links, with per-status counts."""
    app = await get_owned_app(app_slug, owner_id, db)
    result = await db.execute(
        select(ClientTask)
        .options(selectinload(ClientTask.completion))
        .join(ShareLink, ShareLink.code == ClientTask.share_code)
        .where(ShareLink.app_id == app.id)
        .order_by(ClientTask.created_at.desc())
    )
    tasks = list(result.scalars().all())
    stats = {
        "total": len(tasks),
        "pending": sum(1 for task in tasks if task.status == TaskStatus.PENDING.value),
        "in_progress": sum(1 for task in tasks if task.status == TaskStatus.IN_PROGRESS.value),
        "completed": sum(1 for task in tasks if task.status == TaskStatus.COMPLETED.value),
        "rejected": sum(1 for task in tasks if task.status == TaskStatus.REJECTED.value),
    }
    return {
        "tasks": [serialize_task(task, task.completion) for task in tasks],
        "stats": stats,
    }


async def set_task_status(
    *,
    task_id: str,
    owner_id: str,
    status: TaskStatus,
    db: AsyncSession,
) -> Dict[str, Any]:
    """Move a task along a non-completing transition."""
    target = TaskStatus(status)
    if target is TaskStatus.COMPLETED:
        raise HTTPException(
            status_code=400,
            detail="Use the /complete endpoint to mark tasks as completed with feedback",
        )

    task = await _get_owned_task(task_id, owner_id, db)
    current = TaskStatus(task.status)
    if not can_transition(current, target):
        raise HTTPException(
            status_code=409,
            detail=f"Invalid status transition {current.value} -> {target.value}",
        )

    result = await db.execute(
        update(ClientTask)
        .where(ClientTask.id == task_id, ClientTask.status == current.value)
        .values(status=target.value, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Task status changed concurrently; reload and retry")
    await db.commit()

    await db.refresh(task)
    logger.info("Task %s moved %s -> %s", task_id, current.value, target.value)
    return serialize_task(task)


async def complete_task(
    *,
    task_id: str,
    owner_id: str,
    completed_by: str,
    feedback: str,
    db: AsyncSession,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    """Flip an IN_PROGRESS task to COMPLETED and record its completion evidence atomically.

    The guarded UPDATE and the unique ``task_completions.task_id`` make
    concurrent completions race safely: one commits, the rest get 409.
    """
    completed_by = (completed_by or "").strip()
    feedback = (feedback or "").strip()
    if not completed_by or not feedback:
        raise HTTPException(status_code=422, detail="completed_by and feedback are required")

    await _get_owned_task(task_id, owner_id, db)

    try:
        flipped = await db.execute(
            update(ClientTask)
            .where(ClientTask.id == task_id, ClientTask.status == COMPLETABLE_FROM.value)
            .values(status=TaskStatus.COMPLETED.value, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if flipped.rowcount != 1:
            await db.rollback()
            current = await _current_status(task_id, db)
            if current is None:
                raise HTTPException(status_code=404, detail="Task not found")
            if current == TaskStatus.COMPLETED.value:
                raise HTTPException(status_code=409, detail="Task is already completed")
            raise HTTPException(
                status_code=409,
                detail=f"Invalid status transition {current} -> {TaskStatus.COMPLETED.value}",
            )

        completion = TaskCompletion(
            id=str(uuid.uuid4()),
            task_id=task_id,
            completed_by=completed_by,
            feedback=feedback,
            notes=(notes or "").strip() or None,
        )
        db.add(completion)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        if await _current_status(task_id, db) is None:
            raise HTTPException(status_code=404, detail="Task not found")
        raise HTTPException(status_code=409, detail="Task is already completed")

    result = await db.execute(
        select(ClientTask)
        .options(selectinload(ClientTask.completion))
        .where(ClientTask.id == task_id)
        .execution_options(populate_existing=True)
    )
    task = result.scalar_one()
    logger.info("Task %s completed by %s", task_id, completed_by)
    payload = serialize_task(task, task.completion)
    payload["message"] = "Task marked as completed successfully"
    return payload
