"""Owner-scoped app, progress update and deployment helpers."""

from __future__ import annotations

import re
import uuid
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from database import as_utc
from models.app import App
from models.app_update import AppUpdate
from models.deployment import Deployment


MAX_SLUG_LENGTH = 60
# Collection routes mounted beside /apps/{slug}.
RESERVED_SLUGS = frozenset({"stats", "roadmap"})
ROADMAP_RECENT_UPDATES = 5


def slugify(value: str) -> str:
    slug = value.lower().strip()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug[:MAX_SLUG_LENGTH]


async def _unique_slug(base: str, db: AsyncSession) -> str:
    result = await db.execute(
        select(App.slug).where((App.slug == base) | App.slug.like(f"{base}-%"))
    )
    taken = set(result.scalars().all()) | RESERVED_SLUGS
    slug = base
    suffix = 1
    while slug in taken:
        slug = f"{base}-{suffix}"
        suffix += 1
    return slug


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _iso(value) -> Optional[str]:
    value = as_utc(value)
    return value.isoformat() if value else None


def serialize_app(app: App) -> Dict[str, Any]:
    return {
        "id": app.id,
        "name": app.name,
        "slug": app.slug,
        "description": app.description,
        "proposed_domain": app.proposed_domain,
        "github_url": app.github_url,
        "status": app.status,
        "client": app.client,
        "platform": app.platform,
        "created_at": _iso(app.created_at),
        "updated_at": _iso(app.updated_at),
    }


def serialize_update(update: AppUpdate) -> Dict[str, Any]:
    return {
        "id": update.id,
        "app_id": update.app_id,
        "progress": update.progress,
        "summary": update.summary,
        "blockers": update.blockers,
        "tags": list(update.tags or []),
        "period": update.period,
        "date": _iso(update.date),
    }


def serialize_deployment(deployment: Deployment) -> Dict[str, Any]:
    return {
        "id": deployment.id,
        "app_id": deployment.app_id,
        "environment": deployment.environment,
        "version": deployment.version,
        "notes": deployment.notes,
        "deployed_at": _iso(deployment.deployed_at),
    }


async def get_owned_app(slug: str, owner_id: str, db: AsyncSession) -> App:
    """Return the owner's app by slug or raise 404; apps of other owners are not revealed."""
    result = await db.execute(select(App).where(App.slug == slug, App.owner_id == owner_id))
    app = result.scalar_one_or_none()
    if not app:
        raise HTTPException(status_code=404, detail="App not found")
    return app


async def list_apps(owner_id: str, db: AsyncSession) -> List[Dict[str, Any]]:
    result = await db.execute(
        select(App).where(App.owner_id == owner_id).order_by(App.updated_at.desc())
    )
    return [serialize_app(app) for app in result.scalars().all()]


async def create_app(
    *,
    owner_id: str,
    db: AsyncSession,
    name: str,
    status: str = "PLANNING",
    description: Optional[str] = None,
    proposed_domain: Optional[str] = None,
    github_url: Optional[str] = None,
    client: Optional[str] = None,
    platform: Optional[str] = None,
) -> Dict[str, Any]:
    slug = await _unique_slug(slugify(name) or "app", db)
    app = App(
        id=str(uuid.uuid4()),
        owner_id=owner_id,
        name=name.strip(),
        slug=slug,
        description=description,
        proposed_domain=_clean(proposed_domain),
        github_url=_clean(github_url),
        status=status,
        client=_clean(client),
        platform=_clean(platform),
    )
    db.add(app)
    await db.commit()
    return serialize_app(app)


async def update_app(
    *,
    slug: str,
    owner_id: str,
    db: AsyncSession,
    name: str,
    status: str,
    description: Optional[str] = None,
    proposed_domain: Optional[str] = None,
    github_url: Optional[str] = None,
) -> Dict[str, Any]:
    app = await get_owned_app(slug, owner_id, db)
    app.name = name.strip()
    app.status = status
    app.description = description
    app.proposed_domain = _clean(proposed_domain)
    app.github_url = _clean(github_url)
    await db.commit()
    return serialize_app(app)


async def list_app_updates(app_id: str, db: AsyncSession) -> List[AppUpdate]:
    result = await db.execute(
        select(AppUpdate).where(AppUpdate.app_id == app_id).order_by(AppUpdate.date.desc())
    )
    return list(result.scalars().all())


async def list_app_deployments(app_id: str, db: AsyncSession) -> List[Deployment]:
    result = await db.execute(
        select(Deployment).where(Deployment.app_id == app_id).order_by(Deployment.deployed_at.desc())
    )
    return list(result.scalars().all())


async def add_app_update(
    *,
    slug: str,
    owner_id: str,
    db: AsyncSession,
    progress: int,
    summary: str,
    blockers: Optional[str] = None,
    tags: Optional[Iterable[str]] = None,
    period: str = "WEEK",
) -> Dict[str, Any]:
    app = await get_owned_app(slug, owner_id, db)
    update = AppUpdate(
        id=str(uuid.uuid4()),
        app_id=app.id,
        author_id=owner_id,
        progress=progress,
        summary=summary,
        blockers=blockers,
        tags=[tag.strip() for tag in (tags or []) if tag and tag.strip()],
        period=period,
    )
    db.add(update)
    await db.commit()
    return serialize_update(update)


async def add_deployment(
    *,
    slug: str,
    owner_id: str,
    db: AsyncSession,
    environment: str,
    version: Optional[str] = None,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    app = await get_owned_app(slug, owner_id, db)
    deployment = Deployment(
        id=str(uuid.uuid4()),
        app_id=app.id,
        environment=environment,
        version=_clean(version),
        notes=notes,
    )
    db.add(deployment)
    await db.commit()
    return serialize_deployment(deployment)


async def build_app_snapshot(app: App, db: AsyncSession) -> Dict[str, Any]:
    """App payload with its full update and deployment history, newest first."""
    updates = await list_app_updates(app.id, db)
    deployments = await list_app_deployments(app.id, db)
    update_count = await db.scalar(select(func.count(AppUpdate.id)).where(AppUpdate.app_id == app.id))
    deployment_count = await db.scalar(select(func.count(Deployment.id)).where(Deployment.app_id == app.id))

    payload = serialize_app(app)
    payload["updates"] = [serialize_update(item) for item in updates]
    payload["deployments"] = [serialize_deployment(item) for item in deployments]
    payload["counts"] = {
        "updates": int(update_count or 0),
        "deployments": int(deployment_count or 0),
    }
    return payload


async def _get_app_update(slug: str, update_id: str, owner_id: str, db: AsyncSession) -> AppUpdate:
    app = await get_owned_app(slug, owner_id, db)
    result = await db.execute(
        select(AppUpdate).where(AppUpdate.id == update_id, AppUpdate.app_id == app.id)
    )
    update = result.scalar_one_or_none()
    if not update:
        raise HTTPException(status_code=404, detail="Update not found")
    return update


async def _get_deployment(slug: str, deployment_id: str, owner_id: str, db: AsyncSession) -> Deployment:
    app = await get_owned_app(slug, owner_id, db)
    result = await db.execute(
        select(Deployment).where(Deployment.id == deployment_id, Deployment.app_id == app.id)
    )
    deployment = result.scalar_one_or_none()
    if not deployment:
        raise HTTPException(status_code=404, detail="Deployment not found")
    return deployment


async def edit_app_update(
    *,
    slug: str,
    update_id: str,
    owner_id: str,
    db: AsyncSession,
    progress: int,
    summary: str,
    blockers: Optional[str] = None,
    tags: Optional[Iterable[str]] = None,
    period: str = "WEEK",
) -> Dict[str, Any]:
    update = await _get_app_update(slug, update_id, owner_id, db)
    update.progress = progress
    update.summary = summary
    update.blockers = blockers
    update.tags = [tag.strip() for tag in (tags or []) if tag and tag.strip()]
    update.period = period
    await db.commit()
    return serialize_update(update)


async def delete_app_update(*, slug: str, update_id: str, owner_id: str, db: AsyncSession) -> Dict[str, Any]:
    update = await _get_app_update(slug, update_id, owner_id, db)
    await db.delete(update)
    await db.commit()
    return {"success": True}


async def edit_deployment(
    *,
    slug: str,
    deployment_id: str,
    owner_id: str,
    db: AsyncSession,
    environment: str,
    version: Optional[str] = None,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    deployment = await _get_deployment(slug, deployment_id, owner_id, db)
    deployment.environment = environment
    deployment.version = _clean(version)
    deployment.notes = notes
    await db.commit()
    return serialize_deployment(deployment)


async def delete_deployment(*, slug: str, deployment_id: str, owner_id: str, db: AsyncSession) -> Dict[str, Any]:
    deployment = await _get_deployment(slug, deployment_id, owner_id, db)
    await db.delete(deployment)
    await db.commit()
    return {"success": True}


def _has_blocker(update: AppUpdate) -> bool:
    return bool((update.blockers or "").strip())


async def _owner_apps_with_updates(owner_id: str, db: AsyncSession, *filters) -> List[tuple]:
    apps = (
        await db.execute(select(App).where(App.owner_id == owner_id).order_by(App.updated_at.desc()))
    ).scalars().all()
    if not apps:
        return []
    updates = (
        await db.execute(
            select(AppUpdate)
            .where(AppUpdate.app_id.in_([app.id for app in apps]), *filters)
            .order_by(AppUpdate.date.desc())
        )
    ).scalars().all()
    by_app: Dict[str, List[AppUpdate]] = {app.id: [] for app in apps}
    for update in updates:
        by_app[update.app_id].append(update)
    return [(app, by_app[app.id]) for app in apps]


async def app_stats(
    *,
    owner_id: str,
    db: AsyncSession,
    period: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """Per-app progress figures over the updates inside the optional period/date filters.

    Completion is the progress of the newest matching update.
    """
    filters = []
    if period:
        filters.append(AppUpdate.period == period)
    if start_date:
        filters.append(AppUpdate.date >= as_utc(start_date))
    if end_date:
        filters.append(AppUpdate.date <= as_utc(end_date))

    stats = []
    for app, updates in await _owner_apps_with_updates(owner_id, db, *filters):
        latest = updates[0] if updates else None
        stats.append(
            {
                "id": app.id,
                "name": app.name,
                "slug": app.slug,
                "status": app.status,
                "completion_percentage": latest.progress if latest else 0,
                "blocker_count": sum(1 for update in updates if _has_blocker(update)),
                "last_update_date": _iso(latest.date) if latest else None,
                "update_count": len(updates),
            }
        )
    return stats


async def app_roadmap(*, owner_id: str, db: AsyncSession) -> List[Dict[str, Any]]:
    """Owner's apps, most recently touched first, each with its latest updates.

    Completion averages the progress of those recent updates.
    """
    roadmap = []
    for app, updates in await _owner_apps_with_updates(owner_id, db):
        recent = updates[:ROADMAP_RECENT_UPDATES]
        payload = serialize_app(app)
        payload.update(
            {
                "completion_percentage": round(sum(u.progress for u in recent) / len(recent)) if recent else 0,
                "update_count": len(updates),
                "blocker_count": sum(1 for update in recent if _has_blocker(update)),
                "last_update_date": _iso(recent[0].date) if recent else None,
                "recent_updates": [
                    {
                        "id": update.id,
                        "date": _iso(update.date),
                        "progress": update.progress,
                        "summary": update.summary,
                        "period": update.period,
                    }
                    for update in recent
                ],
            }
        )
        roadmap.append(payload)
    return roadmap
