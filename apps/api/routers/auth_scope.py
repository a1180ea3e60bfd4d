"""Owner session dependencies: a Bearer header or the ``auth_token`` cookie."""

from typing import Optional

from fastapi import Cookie, Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from services.session_token import InvalidSessionError, OwnerSession, decode_session_token


SESSION_COOKIE_NAME = "auth_token"

auth_scheme = HTTPBearer(auto_error=False)

# Route handlers only need the owner id and email off the decoded session.
AuthContext = OwnerSession


def _presented_token(
    credentials: Optional[HTTPAuthorizationCredentials],
    cookie_token: Optional[str],
) -> Optional[str]:
    if credentials and credentials.scheme.lower() == "bearer" and credentials.credentials:
        return credentials.credentials
    return cookie_token or None


async def get_optional_auth_context(
    credentials: HTTPAuthorizationCredentials = Depends(auth_scheme),
    auth_token: Optional[str] = Cookie(default=None, alias=SESSION_COOKIE_NAME),
) -> Optional[AuthContext]:
    token = _presented_token(credentials, auth_token)
    if not token:
        return None
    try:
        return decode_session_token(token)
    except InvalidSessionError:
        return None


async def get_auth_context(
    credentials: HTTPAuthorizationCredentials = Depends(auth_scheme),
    auth_token: Optional[str] = Cookie(default=None, alias=SESSION_COOKIE_NAME),
) -> AuthContext:
    """Resolve the signed-in owner or answer 401."""
    token = _presented_token(credentials, auth_token)
    if not token:
        raise HTTPException(status_code=401, detail="Missing session token.")
    try:
        return decode_session_token(token)
    except InvalidSessionError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
