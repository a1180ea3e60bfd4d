from datetime import datetime, timedelta, timezone

import pytest

from conftest import seed_share_link
from services.share_gate import ShareDenial, authorize_share_access, denial_to_http
from services.share_permissions import SharePermission


ALL_PERMISSIONS = (SharePermission.VIEW, SharePermission.COMMENT, SharePermission.CREATE_TASKS)


@pytest.mark.asyncio
async def test_malformed_code_is_rejected_before_any_lookup(db):
    for code in ("short", "Contains0", "has-dash", "", "ABCDEFGHJ"):
        authorization = await authorize_share_access(code, SharePermission.VIEW, db)
        assert authorization.denial is ShareDenial.MALFORMED_CODE
        assert authorization.link is None


@pytest.mark.asyncio
async def test_unknown_inactive_and_expired_codes_share_one_denial(session_maker, db):
    await seed_share_link(session_maker, "PausedAb", is_active=False)
    await seed_share_link(
        session_maker,
        "ExprdAbc",
        expires_at=datetime.now(timezone.utc) - timedelta(minutes=5),
    )

    for code in ("NeverMad", "PausedAb", "ExprdAbc"):
        authorization = await authorize_share_access(code, SharePermission.VIEW, db)
        assert authorization.denial is ShareDenial.NOT_FOUND_OR_EXPIRED
        assert authorization.link is None


@pytest.mark.asyncio
@pytest.mark.parametrize("granted", ALL_PERMISSIONS)
async def test_each_flag_is_checked_in_isolation(session_maker, db, granted):
    flags = {permission.value: permission is granted for permission in ALL_PERMISSIONS}
    await seed_share_link(session_maker, "FragAbcd", permissions=flags)

    for permission in ALL_PERMISSIONS:
        authorization = await authorize_share_access("FragAbcd", permission, db)
        if permission is granted:
            assert authorization.allowed
            assert authorization.link.code == "FragAbcd"
            assert authorization.permissions.allows(permission)
        else:
            assert authorization.denial is ShareDenial.PERMISSION_DENIED


@pytest.mark.asyncio
async def test_drop_box_link_denies_view_but_accepts_comments(session_maker, db):
    await seed_share_link(
        session_maker,
        "DrpBxAbc",
        permissions={"view": False, "comment": True, "create_tasks": True},
    )

    view = await authorize_share_access("DrpBxAbc", SharePermission.VIEW, db)
    comment = await authorize_share_access("DrpBxAbc", SharePermission.COMMENT, db)
    tasks = await authorize_share_access("DrpBxAbc", SharePermission.CREATE_TASKS, db)

    assert view.denial is ShareDenial.PERMISSION_DENIED
    assert comment.allowed
    assert tasks.allowed


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "stored",
    [
        {"view": True},
        {"view": "yes", "comment": True, "create_tasks": False},
        {"view": True, "comment": True, "create_tasks": True, "admin": True},
        ["view", "comment"],
    ],
)
async def test_malformed_stored_permissions_fail_closed(session_maker, db, stored):
    await seed_share_link(session_maker, "BrknAbcd", permissions=stored)

    authorization = await authorize_share_access("BrknAbcd", SharePermission.VIEW, db)

    assert authorization.denial is ShareDenial.PERMISSION_DENIED
    assert authorization.permissions is None


def test_denials_map_to_distinct_status_codes():
    assert ShareDenial.MALFORMED_CODE.status_code == 400
    assert ShareDenial.NOT_FOUND_OR_EXPIRED.status_code == 404
    assert ShareDenial.PERMISSION_DENIED.status_code == 403

    exc = denial_to_http(ShareDenial.PERMISSION_DENIED, SharePermission.COMMENT)
    assert exc.status_code == 403
    assert exc.detail == {
        "error": "Comments not allowed for this share link",
        "reason": "PERMISSION_DENIED",
    }
