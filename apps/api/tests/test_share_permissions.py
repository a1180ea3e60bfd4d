import pytest
from pydantic import ValidationError

from services.share_permissions import (
    DEFAULT_SHARE_PERMISSIONS,
    SHARE_PRESETS,
    SharePermission,
    SharePermissions,
    SharePreset,
    resolve_share_permissions,
)


def test_presets_are_fixed_combinations():
    assert SHARE_PRESETS[SharePreset.VIEW_ONLY].as_dict() == {"view": True, "comment": False, "create_tasks": False}
    assert SHARE_PRESETS[SharePreset.CAN_COMMENT].as_dict() == {"view": True, "comment": True, "create_tasks": False}
    assert SHARE_PRESETS[SharePreset.FULL_ACCESS].as_dict() == {"view": True, "comment": True, "create_tasks": True}


def test_presets_cannot_be_mutated():
    with pytest.raises(TypeError):
        SHARE_PRESETS[SharePreset.VIEW_ONLY] = SharePermissions(comment=True)
    with pytest.raises(ValidationError):
        SHARE_PRESETS[SharePreset.VIEW_ONLY].comment = True


def test_default_is_view_only():
    assert resolve_share_permissions() == DEFAULT_SHARE_PERMISSIONS
    assert DEFAULT_SHARE_PERMISSIONS.as_dict() == {"view": True, "comment": False, "create_tasks": False}


def test_preset_used_when_no_custom_flags():
    assert resolve_share_permissions(SharePreset.CAN_COMMENT) == SHARE_PRESETS[SharePreset.CAN_COMMENT]
    assert resolve_share_permissions("full_access") == SHARE_PRESETS[SharePreset.FULL_ACCESS]


def test_custom_flags_take_precedence_over_preset():
    custom = SharePermissions(view=True, comment=False, create_tasks=True)
    assert resolve_share_permissions(SharePreset.FULL_ACCESS, custom) is custom


def test_allows_checks_single_flag():
    permissions = SharePermissions(view=False, comment=True, create_tasks=False)
    assert permissions.allows(SharePermission.COMMENT)
    assert not permissions.allows(SharePermission.VIEW)
    assert not permissions.allows(SharePermission.CREATE_TASKS)


def test_from_stored_accepts_exact_shape():
    stored = {"view": True, "comment": True, "create_tasks": False}
    assert SharePermissions.from_stored(stored).as_dict() == stored


@pytest.mark.parametrize(
    "stored",
    [
        None,
        [],
        "view",
        {"view": True, "comment": True},
        {"view": True, "comment": True, "create_tasks": False, "admin": True},
        {"view": "yes", "comment": False, "create_tasks": False},
        {"view": 1, "comment": False, "create_tasks": False},
    ],
)
def test_from_stored_rejects_unknown_shapes(stored):
    with pytest.raises(ValueError):
        SharePermissions.from_stored(stored)


def test_request_payload_rejects_extra_keys():
    with pytest.raises(ValidationError):
        SharePermissions.model_validate({"view": True, "delete": True})
