"""
Authentication router for owner login and session inspection.
"""

import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from config import settings
from database import get_db
from models.user import User
from routers.auth_scope import (
    SESSION_COOKIE_NAME,
    AuthContext,
    get_auth_context,
    get_optional_auth_context,
)
from services.bootstrap import get_owner_by_email
from services.session_token import create_session_token

router = APIRouter()
logger = logging.getLogger(__name__)


class LoginRequest(BaseModel):
    username: str
    password: str


class LoginResponse(BaseModel):
    success: bool = True
    owner_id: str
    email: str
    session_token: str
    session_expires_at: int


class CurrentOwnerResponse(BaseModel):
    owner_id: str
    email: str
    name: Optional[str] = None


def _credentials_match(username: str, password: str) -> bool:
    expected_password = settings.LOGIN_PASSWORD or ""
    if not expected_password:
        return False
    username_ok = secrets.compare_digest(username.encode(), settings.LOGIN_USERNAME.encode())
    password_ok = secrets.compare_digest(password.encode(), expected_password.encode())
    return username_ok and password_ok


@router.post("/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    """Exchange owner credentials for a session token."""
    if not _credentials_match(request.username, request.password):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    owner = await get_owner_by_email(settings.OWNER_EMAIL, db)
    if not owner:
        logger.error("Login succeeded but owner account %s is missing", settings.OWNER_EMAIL)
        raise HTTPException(status_code=503, detail="Owner account is not initialised")

    session = create_session_token(owner.id, owner.email)
    response.set_cookie(
        SESSION_COOKIE_NAME,
        session.token,
        httponly=True,
        samesite="lax",
        max_age=max(int(settings.JWT_EXPIRATION_HOURS), 1) * 3600,
        path="/",
    )
    return LoginResponse(
        owner_id=owner.id,
        email=owner.email,
        session_token=session.token,
        session_expires_at=session.expires_at,
    )


@router.post("/logout")
async def logout(response: Response):
    response.delete_cookie(SESSION_COOKIE_NAME, path="/")
    return {"success": True}


@router.get("/check")
async def check_session(auth: Optional[AuthContext] = Depends(get_optional_auth_context)):
    return {"authenticated": auth is not None}


@router.get("/me", response_model=CurrentOwnerResponse)
async def get_current_owner(
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(User).where(User.id == auth.owner_id))
    owner = result.scalar_one_or_none()
    if not owner:
        raise HTTPException(status_code=404, detail="User not found")
    return CurrentOwnerResponse(owner_id=owner.id, email=owner.email, name=owner.name)
