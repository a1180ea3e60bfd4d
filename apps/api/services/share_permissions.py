"""Permission sets attached to share links.

A link carries exactly three independent flags. Presets are fixed,
frozen instances; custom flags passed at creation win over a preset.
"""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict


class SharePermission(str, Enum):
    VIEW = "view"
    COMMENT = "comment"
    CREATE_TASKS = "create_tasks"


class SharePreset(str, Enum):
    VIEW_ONLY = "view_only"
    CAN_COMMENT = "can_comment"
    FULL_ACCESS = "full_access"


class SharePermissions(BaseModel):
    """Closed record of the three share-link flags."""

    model_config = ConfigDict(frozen=True, extra="forbid", strict=True)

    view: bool = True
    comment: bool = False
    create_tasks: bool = False

    def allows(self, permission: SharePermission) -> bool:
        return bool(getattr(self, SharePermission(permission).value))

    def as_dict(self) -> dict[str, bool]:
        return {
            "view": self.view,
            "comment": self.comment,
            "create_tasks": self.create_tasks,
        }

    @classmethod
    def from_stored(cls, raw: Any) -> "SharePermissions":
        """Validate a persisted permissions payload; anything but the exact three flags is rejected."""
        if not isinstance(raw, Mapping):
            raise ValueError("Stored share permissions must be an object.")
        expected = {permission.value for permission in SharePermission}
        if set(raw.keys()) != expected:
            raise ValueError(f"Stored share permissions must have exactly the keys {sorted(expected)}.")
        return cls.model_validate(dict(raw))


DEFAULT_SHARE_PERMISSIONS = SharePermissions()

SHARE_PRESETS: Mapping[SharePreset, SharePermissions] = MappingProxyType(
    {
        SharePreset.VIEW_ONLY: SharePermissions(view=True, comment=False, create_tasks=False),
        SharePreset.CAN_COMMENT: SharePermissions(view=True, comment=True, create_tasks=False),
        SharePreset.FULL_ACCESS: SharePermissions(view=True, comment=True, create_tasks=True),
    }
)


def resolve_share_permissions(
    preset: Optional[SharePreset] = None,
    custom: Optional[SharePermissions] = None,
) -> SharePermissions:
    """Pick the permissions for a new link: custom flags, then preset, then the view-only default."""
    if custom is not None:
        return custom
    if preset is not None:
        return SHARE_PRESETS[SharePreset(preset)]
    return DEFAULT_SHARE_PERMISSIONS
