"""
Owner router for apps, progress updates, deployments and client task overview.
"""

import logging
from datetime import datetime
from typing import List, Literal, Optional
from urllib.parse import urlparse

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from routers.auth_scope import AuthContext, get_auth_context
from services.apps import (
    add_app_update,
    add_deployment,
    app_roadmap,
    app_stats,
    create_app,
    delete_app_update,
    delete_deployment,
    edit_app_update,
    edit_deployment,
    get_owned_app,
    list_app_deployments,
    list_app_updates,
    list_apps,
    serialize_app,
    serialize_deployment,
    serialize_update,
    update_app,
)
from services.client_tasks import list_app_tasks

router = APIRouter()
logger = logging.getLogger(__name__)

AppStatusLiteral = Literal["IDEA", "PLANNING", "BUILDING", "TESTING", "DEPLOYING", "LIVE", "PAUSED", "ARCHIVED"]
PeriodLiteral = Literal["DAY", "WEEK", "MONTH"]
EnvironmentLiteral = Literal["DEVELOPMENT", "STAGING", "PRODUCTION"]


def _optional_url(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    parsed = urlparse(value.strip())
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError("Invalid URL")
    return value.strip()


class AppRequest(BaseModel):
    name: str = Field(min_length=2)
    description: Optional[str] = None
    proposed_domain: Optional[str] = None
    github_url: Optional[str] = None
    status: AppStatusLiteral = "PLANNING"

    check_urls = field_validator("proposed_domain", "github_url")(_optional_url)


class CreateAppRequest(AppRequest):
    client: Optional[str] = None
    platform: Optional[str] = None


class AppUpdateRequest(BaseModel):
    progress: int = Field(ge=0, le=100)
    summary: str = Field(min_length=1)
    blockers: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    period: PeriodLiteral = "WEEK"


class DeploymentRequest(BaseModel):
    environment: EnvironmentLiteral
    version: Optional[str] = None
    notes: Optional[str] = None


@router.get("")
async def get_apps(
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    return await list_apps(auth.owner_id, db)


@router.post("")
async def post_app(
    request: CreateAppRequest,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await create_app(
            owner_id=auth.owner_id,
            db=db,
            name=request.name,
            status=request.status,
            description=request.description,
            proposed_domain=request.proposed_domain,
            github_url=request.github_url,
            client=request.client,
            platform=request.platform,
        )
    except HTTPException:
        raise
    except Exception:
        logger.exception("Failed to create app for owner=%s", auth.owner_id)
        raise HTTPException(status_code=500, detail="Failed to create app")


@router.get("/stats")
async def get_app_stats(
    period: Optional[PeriodLiteral] = None,
    start_date: Optional[datetime] = Query(default=None, alias="startDate"),
    end_date: Optional[datetime] = Query(default=None, alias="endDate"),
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """Completion, blocker and update counts per app, optionally limited to a period or date range."""
    try:
        return await app_stats(
            owner_id=auth.owner_id,
            db=db,
            period=period,
            start_date=start_date,
            end_date=end_date,
        )
    except HTTPException:
        raise
    except Exception:
        logger.exception("Failed to fetch app stats for owner=%s", auth.owner_id)
        raise HTTPException(status_code=500, detail="Failed to fetch app statistics")


@router.get("/roadmap")
async def get_roadmap(
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await app_roadmap(owner_id=auth.owner_id, db=db)
    except HTTPException:
        raise
    except Exception:
        logger.exception("Failed to build roadmap for owner=%s", auth.owner_id)
        raise HTTPException(status_code=500, detail="Failed to fetch roadmap")


@router.get("/{slug}")
async def get_app(
    slug: str,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    return serialize_app(await get_owned_app(slug, auth.owner_id, db))


@router.put("/{slug}")
async def put_app(
    slug: str,
    request: AppRequest,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await update_app(
            slug=slug,
            owner_id=auth.owner_id,
            db=db,
            name=request.name,
            status=request.status,
            description=request.description,
            proposed_domain=request.proposed_domain,
            github_url=request.github_url,
        )
    except HTTPException:
        raise
    except Exception:
        logger.exception("Failed to update app slug=%s", slug)
        raise HTTPException(status_code=500, detail="Failed to update app")


@router.get("/{slug}/updates")
async def get_updates(
    slug: str,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    app = await get_owned_app(slug, auth.owner_id, db)
    return [serialize_update(item) for item in await list_app_updates(app.id, db)]


@router.post("/{slug}/updates")
async def post_update(
    slug: str,
    request: AppUpdateRequest,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    return await add_app_update(
        slug=slug,
        owner_id=auth.owner_id,
        db=db,
        progress=request.progress,
        summary=request.summary,
        blockers=request.blockers,
        tags=request.tags,
        period=request.period,
    )


@router.put("/{slug}/updates/{update_id}")
async def put_update(
    slug: str,
    update_id: str,
    request: AppUpdateRequest,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    return await edit_app_update(
        slug=slug,
        update_id=update_id,
        owner_id=auth.owner_id,
        db=db,
        progress=request.progress,
        summary=request.summary,
        blockers=request.blockers,
        tags=request.tags,
        period=request.period,
    )


@router.delete("/{slug}/updates/{update_id}")
async def remove_update(
    slug: str,
    update_id: str,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    return await delete_app_update(slug=slug, update_id=update_id, owner_id=auth.owner_id, db=db)


@router.get("/{slug}/deployments")
async def get_deployments(
    slug: str,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    app = await get_owned_app(slug, auth.owner_id, db)
    return [serialize_deployment(item) for item in await list_app_deployments(app.id, db)]


@router.post("/{slug}/deployments")
async def post_deployment(
    slug: str,
    request: DeploymentRequest,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    return await add_deployment(
        slug=slug,
        owner_id=auth.owner_id,
        db=db,
        environment=request.environment,
        version=request.version,
        notes=request.notes,
    )


@router.put("/{slug}/deployments/{deployment_id}")
async def put_deployment(
    slug: str,
    deployment_id: str,
    request: DeploymentRequest,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    return await edit_deployment(
        slug=slug,
        deployment_id=deployment_id,
        owner_id=auth.owner_id,
        db=db,
        environment=request.environment,
        version=request.version,
        notes=request.notes,
    )


@router.delete("/{slug}/deployments/{deployment_id}")
async def remove_deployment(
    slug: str,
    deployment_id: str,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    return await delete_deployment(slug=slug, deployment_id=deployment_id, owner_id=auth.owner_id, db=db)


@router.get("/{slug}/tasks")
async def get_app_tasks(
    slug: str,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """All client tasks submitted through this app's share links."""
    return await list_app_tasks(app_slug=slug, owner_id=auth.owner_id, db=db)
