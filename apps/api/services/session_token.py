"""Owner session tokens: HS256 JWTs carrying the owner id and email."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from config import settings


SESSION_TOKEN_TYPE = "portfolio_owner_session"


class InvalidSessionError(ValueError):
    """Token is unsigned, expired, of another type or has no owner."""


@dataclass(frozen=True)
class IssuedSession:
    token: str
    expires_at: int


@dataclass(frozen=True)
class OwnerSession:
    owner_id: str
    email: Optional[str]
    expires_at: int


def create_session_token(
    owner_id: str,
    email: Optional[str] = None,
    expires_hours: Optional[int] = None,
) -> IssuedSession:
    issued_at = datetime.now(timezone.utc)
    lifetime = timedelta(hours=max(int(expires_hours or settings.JWT_EXPIRATION_HOURS or 24), 1))
    expires_at = int((issued_at + lifetime).timestamp())

    claims = {
        "sub": owner_id,
        "type": SESSION_TOKEN_TYPE,
        "iat": int(issued_at.timestamp()),
        "exp": expires_at,
    }
    if email:
        claims["email"] = email

    return IssuedSession(
        token=jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM),
        expires_at=expires_at,
    )


def decode_session_token(token: str) -> OwnerSession:
    try:
        claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as exc:
        raise InvalidSessionError("Invalid or expired session token.") from exc

    if claims.get("type") != SESSION_TOKEN_TYPE:
        raise InvalidSessionError("Invalid session token type.")
    owner_id = str(claims.get("sub") or "").strip()
    if not owner_id:
        raise InvalidSessionError("Session token missing subject.")

    return OwnerSession(
        owner_id=owner_id,
        email=claims.get("email") or None,
        expires_at=int(claims.get("exp", 0)),
    )
