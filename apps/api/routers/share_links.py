"""
Owner router for issuing, listing and revoking share links.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from routers.auth_scope import AuthContext, get_auth_context
from services.share_links import (
    ShareCodeExhaustedError,
    create_share_link,
    get_share_link_detail,
    list_share_links,
    revoke_share_link,
)
from services.share_permissions import SharePermissions, SharePreset, resolve_share_permissions

router = APIRouter()
logger = logging.getLogger(__name__)


class CreateShareLinkRequest(BaseModel):
    """Either a preset or explicit flags; explicit flags win when both are sent."""

    model_config = ConfigDict(populate_by_name=True)

    preset: Optional[SharePreset] = None
    custom_permissions: Optional[SharePermissions] = Field(default=None, alias="customPermissions")
    expires_at: Optional[datetime] = Field(default=None, alias="expiresAt")


@router.get("/apps/{slug}/share")
async def get_share_links(
    slug: str,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """List every share link of an app, including inactive ones."""
    try:
        return await list_share_links(app_slug=slug, owner_id=auth.owner_id, db=db)
    except HTTPException:
        raise
    except Exception:
        logger.exception("Failed to list share links for app=%s", slug)
        raise HTTPException(status_code=500, detail="Failed to fetch share links")


@router.post("/apps/{slug}/share")
async def post_share_link(
    slug: str,
    request: CreateShareLinkRequest,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """Create a share link for an app."""
    permissions = resolve_share_permissions(request.preset, request.custom_permissions)
    try:
        return await create_share_link(
            app_slug=slug,
            owner_id=auth.owner_id,
            db=db,
            permissions=permissions,
            expires_at=request.expires_at,
        )
    except ShareCodeExhaustedError:
        logger.error("Share code generation exhausted for app=%s", slug)
        raise HTTPException(status_code=503, detail="Failed to generate unique share code")
    except HTTPException:
        raise
    except Exception:
        logger.exception("Failed to create share link for app=%s", slug)
        raise HTTPException(status_code=500, detail="Failed to create share link")


@router.get("/share/{code}")
async def get_share_link(
    code: str,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await get_share_link_detail(code=code, owner_id=auth.owner_id, db=db)
    except HTTPException:
        raise
    except Exception:
        logger.exception("Failed to fetch share link")
        raise HTTPException(status_code=500, detail="Failed to fetch share link")


@router.delete("/share/{code}")
async def delete_share_link(
    code: str,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """Revoke a share link; its feedback and client tasks go with it."""
    try:
        return await revoke_share_link(code=code, owner_id=auth.owner_id, db=db)
    except HTTPException:
        raise
    except Exception:
        logger.exception("Failed to delete share link")
        raise HTTPException(status_code=500, detail="Failed to delete share link")
