"""Capability checks for every operation reachable through a share code.

Each public request runs exactly one ``authorize_share_access`` call:
format check, then active-link resolution, then the permission bit the
operation needs. Nothing is cached between requests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from fastapi import Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from models.share_link import ShareLink
from services.share_codes import is_valid_share_code
from services.share_links import resolve_active_share_link, touch_share_link_access
from services.share_permissions import SharePermission, SharePermissions


logger = logging.getLogger(__name__)


class ShareDenial(str, Enum):
    MALFORMED_CODE = "MALFORMED_CODE"
    NOT_FOUND_OR_EXPIRED = "NOT_FOUND_OR_EXPIRED"
    PERMISSION_DENIED = "PERMISSION_DENIED"

    @property
    def status_code(self) -> int:
        return _DENIAL_STATUS[self]


_DENIAL_STATUS = {
    ShareDenial.MALFORMED_CODE: 400,
    ShareDenial.NOT_FOUND_OR_EXPIRED: 404,
    ShareDenial.PERMISSION_DENIED: 403,
}

_DENIAL_MESSAGES = {
    ShareDenial.MALFORMED_CODE: "Invalid share code format. Please check the link and try again.",
    ShareDenial.NOT_FOUND_OR_EXPIRED: "Share link not found or expired",
}

_PERMISSION_MESSAGES = {
    SharePermission.VIEW: "Viewing is not allowed for this share link",
    SharePermission.COMMENT: "Comments not allowed for this share link",
    SharePermission.CREATE_TASKS: "Task creation not allowed for this share link",
}


@dataclass(frozen=True)
class ShareAuthorization:
    """Outcome of a capability check: either a resolved link or a denial reason."""

    link: Optional[ShareLink] = None
    permissions: Optional[SharePermissions] = None
    denial: Optional[ShareDenial] = None

    @property
    def allowed(self) -> bool:
        return self.denial is None


async def authorize_share_access(
    code: str,
    permission: SharePermission,
    db: AsyncSession,
) -> ShareAuthorization:
    if not is_valid_share_code(code):
        return ShareAuthorization(denial=ShareDenial.MALFORMED_CODE)

    link = await resolve_active_share_link(code, db)
    if link is None:
        return ShareAuthorization(denial=ShareDenial.NOT_FOUND_OR_EXPIRED)

    try:
        permissions = SharePermissions.from_stored(link.permissions)
    except ValueError:
        logger.error("Share link %s has malformed stored permissions; denying access", link.id)
        return ShareAuthorization(link=link, denial=ShareDenial.PERMISSION_DENIED)

    if not permissions.allows(permission):
        return ShareAuthorization(link=link, permissions=permissions, denial=ShareDenial.PERMISSION_DENIED)

    return ShareAuthorization(link=link, permissions=permissions)


def denial_to_http(denial: ShareDenial, permission: SharePermission) -> HTTPException:
    if denial is ShareDenial.PERMISSION_DENIED:
        message = _PERMISSION_MESSAGES[SharePermission(permission)]
    else:
        message = _DENIAL_MESSAGES[denial]
    return HTTPException(
        status_code=denial.status_code,
        detail={"error": message, "reason": denial.value},
    )


def require_share_capability(
    permission: SharePermission,
    *,
    record_access: bool = False,
) -> Callable[..., ShareAuthorization]:
    """Return a FastAPI dependency that admits a request only if its share code grants *permission*."""

    async def _dependency(code: str, db: AsyncSession = Depends(get_db)) -> ShareAuthorization:
        authorization = await authorize_share_access(code, permission, db)
        if not authorization.allowed:
            raise denial_to_http(authorization.denial, permission)
        if record_access:
            await touch_share_link_access(authorization.link.id, db)
        return authorization

    return _dependency
