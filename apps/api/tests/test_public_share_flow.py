from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from config import settings
from conftest import APP_SLUG, OTHER_APP_SLUG, OTHER_OWNER_AUTH_HEADER, OWNER_AUTH_HEADER, seed_share_link
from main import app
from models.share_link import ShareLink


async def _create_link(client, body):
    response = await client.post(f"/apps/{APP_SLUG}/share", json=body, headers=OWNER_AUTH_HEADER)
    assert response.status_code == 200, response.text
    return response.json()


@pytest.mark.asyncio
async def test_view_only_link_exposes_app_but_refuses_feedback_and_tasks(client):
    link = await _create_link(client, {"preset": "view_only"})
    code = link["code"]
    assert link["permissions"] == {"view": True, "comment": False, "create_tasks": False}

    view = await client.get(f"/public/{code}")
    assert view.status_code == 200
    payload = view.json()
    assert payload["app"]["name"] == "Client Portal"
    assert payload["app"]["status"] == "BUILDING"
    assert "client" not in payload["app"]
    assert payload["permissions"] == link["permissions"]

    feedback = await client.post(f"/public/{code}/feedback", json={"message": "Nice!"})
    assert feedback.status_code == 403
    assert feedback.json()["detail"]["reason"] == "PERMISSION_DENIED"

    task = await client.post(f"/public/{code}/tasks", json={"title": "T", "description": "D"})
    assert task.status_code == 403


@pytest.mark.asyncio
async def test_full_access_link_round_trip_through_task_completion(client):
    code = (await _create_link(client, {"preset": "full_access"}))["code"]

    feedback = await client.post(f"/public/{code}/feedback", json={"clientName": "Acme", "message": "Looks good"})
    assert feedback.status_code == 200
    assert feedback.json()["app_name"] == "Client Portal"
    listed_feedback = await client.get(f"/public/{code}/feedback")
    assert [item["message"] for item in listed_feedback.json()] == ["Looks good"]

    created = await client.post(
        f"/public/{code}/tasks",
        json={"title": "Add export", "description": "CSV export please", "clientName": "Acme"},
    )
    assert created.status_code == 200
    task = created.json()
    assert task["status"] == "PENDING"

    started = await client.put(f"/tasks/{task['id']}/status", json={"status": "IN_PROGRESS"}, headers=OWNER_AUTH_HEADER)
    assert started.status_code == 200
    assert started.json()["status"] == "IN_PROGRESS"

    completed = await client.post(
        f"/tasks/{task['id']}/complete",
        json={"completedBy": "Dana", "feedback": "Shipped in 1.2"},
        headers=OWNER_AUTH_HEADER,
    )
    assert completed.status_code == 200
    assert completed.json()["status"] == "COMPLETED"

    again = await client.post(
        f"/tasks/{task['id']}/complete",
        json={"completedBy": "Dana", "feedback": "Shipped twice"},
        headers=OWNER_AUTH_HEADER,
    )
    assert again.status_code == 409

    tasks = await client.get(f"/public/{code}/tasks")
    assert tasks.status_code == 200
    assert tasks.json()[0]["completion"]["feedback"] == "Shipped in 1.2"

    overview = await client.get(f"/apps/{APP_SLUG}/tasks", headers=OWNER_AUTH_HEADER)
    assert overview.json()["stats"]["completed"] == 1


@pytest.mark.asyncio
async def test_completing_a_pending_task_conflicts(client):
    code = (await _create_link(client, {"preset": "full_access"}))["code"]
    task = (await client.post(f"/public/{code}/tasks", json={"title": "T", "description": "D"})).json()

    direct = await client.put(f"/tasks/{task['id']}/status", json={"status": "COMPLETED"}, headers=OWNER_AUTH_HEADER)
    assert direct.status_code == 400

    skipped = await client.post(
        f"/tasks/{task['id']}/complete",
        json={"completedBy": "Dana", "feedback": "Done"},
        headers=OWNER_AUTH_HEADER,
    )
    assert skipped.status_code == 409

    foreign = await client.put(
        f"/tasks/{task['id']}/status",
        json={"status": "IN_PROGRESS"},
        headers=OTHER_OWNER_AUTH_HEADER,
    )
    assert foreign.status_code == 403


@pytest.mark.asyncio
async def test_public_denials_distinguish_malformed_from_unknown(client):
    malformed = await client.get("/public/not-a-code")
    assert malformed.status_code == 400
    assert malformed.json()["detail"]["reason"] == "MALFORMED_CODE"

    unknown = await client.get("/public/NeverMad")
    assert unknown.status_code == 404
    assert unknown.json()["detail"]["reason"] == "NOT_FOUND_OR_EXPIRED"


@pytest.mark.asyncio
async def test_public_view_records_access(client, session_maker):
    code = (await _create_link(client, {}))["code"]

    for _ in range(3):
        assert (await client.get(f"/public/{code}")).status_code == 200
    assert (await client.get(f"/public/{code}/tasks")).status_code == 200

    async with session_maker() as session:
        link = await session.scalar(select(ShareLink).where(ShareLink.code == code))
    assert link.access_count == 3
    assert link.last_accessed_at is not None


@pytest.mark.asyncio
async def test_custom_flags_take_precedence_over_preset(client):
    link = await _create_link(
        client,
        {"preset": "full_access", "customPermissions": {"view": False, "comment": True, "create_tasks": False}},
    )
    assert link["permissions"] == {"view": False, "comment": True, "create_tasks": False}

    code = link["code"]
    assert (await client.get(f"/public/{code}")).status_code == 403
    assert (await client.post(f"/public/{code}/feedback", json={"message": "Drop box"})).status_code == 200


@pytest.mark.asyncio
async def test_create_rejects_unknown_permission_keys_and_foreign_apps(client):
    bad_flags = await client.post(
        f"/apps/{APP_SLUG}/share",
        json={"customPermissions": {"view": True, "admin": True}},
        headers=OWNER_AUTH_HEADER,
    )
    assert bad_flags.status_code == 422

    foreign = await client.post(f"/apps/{OTHER_APP_SLUG}/share", json={}, headers=OWNER_AUTH_HEADER)
    assert foreign.status_code == 404

    anonymous = await client.post(f"/apps/{APP_SLUG}/share", json={})
    assert anonymous.status_code == 401


@pytest.mark.asyncio
async def test_revoked_link_stops_resolving(client):
    code = (await _create_link(client, {"preset": "full_access"}))["code"]
    await client.post(f"/public/{code}/feedback", json={"message": "Hi"})
    await client.post(f"/public/{code}/tasks", json={"title": "T", "description": "D"})

    listed = await client.get(f"/apps/{APP_SLUG}/share", headers=OWNER_AUTH_HEADER)
    assert listed.json()[0]["counts"] == {"feedbacks": 1, "client_tasks": 1}

    foreign = await client.delete(f"/share/{code}", headers=OTHER_OWNER_AUTH_HEADER)
    assert foreign.status_code == 403

    revoked = await client.delete(f"/share/{code}", headers=OWNER_AUTH_HEADER)
    assert revoked.status_code == 200
    assert revoked.json()["deleted"] == {"client_tasks": 1, "feedbacks": 1}

    assert (await client.get(f"/public/{code}")).status_code == 404
    assert (await client.get(f"/share/{code}", headers=OWNER_AUTH_HEADER)).status_code == 404


@pytest.mark.asyncio
async def test_feedback_is_throttled_per_code_and_client(client, session_maker, monkeypatch):
    await seed_share_link(
        session_maker,
        "ThrtAbcd",
        permissions={"view": True, "comment": True, "create_tasks": True},
    )
    monkeypatch.setattr(settings, "TRUSTED_PROXIES", ["127.0.0.1"])
    app.state.disable_rate_limits = False
    headers = {"X-Forwarded-For": "203.0.113.7"}

    statuses = []
    for index in range(6):
        response = await client.post("/public/ThrtAbcd/feedback", json={"message": f"note {index}"}, headers=headers)
        statuses.append(response.status_code)

    assert statuses == [200] * 5 + [429]
    assert response.headers["X-RateLimit-Remaining"] == "0"
    assert int(response.headers["X-RateLimit-Reset"]) > 0

    other_client = await client.post(
        "/public/ThrtAbcd/feedback",
        json={"message": "different client"},
        headers={"X-Forwarded-For": "198.51.100.2"},
    )
    assert other_client.status_code == 200


@pytest.mark.asyncio
async def test_task_requests_are_throttled_before_permission_checks(client, session_maker):
    await seed_share_link(session_maker, "ThrtTskA")
    app.state.disable_rate_limits = False
    headers = {"X-Forwarded-For": "203.0.113.9"}

    statuses = []
    for _ in range(4):
        response = await client.post(
            "/public/ThrtTskA/tasks",
            json={"title": "T", "description": "D"},
            headers=headers,
        )
        statuses.append(response.status_code)

    assert statuses == [403, 403, 403, 429]


@pytest.mark.asyncio
async def test_rotating_forwarded_for_does_not_reset_the_throttle(client, session_maker):
    await seed_share_link(session_maker, "RtateAbc", permissions={"view": True, "comment": True, "create_tasks": False})
    app.state.disable_rate_limits = False

    statuses = []
    for index in range(8):
        response = await client.post(
            "/public/RtateAbc/feedback",
            json={"message": f"note {index}"},
            headers={"X-Forwarded-For": f"10.0.0.{index}", "X-Real-IP": f"10.0.1.{index}"},
        )
        statuses.append(response.status_code)

    assert statuses == [200] * 5 + [429] * 3


@pytest.mark.asyncio
async def test_unreachable_rate_limit_store_falls_back_to_local_counters(client, session_maker):
    class UnreachableStore:
        async def hit(self, key, limit, window_seconds):
            raise ConnectionError("redis is down")

    await seed_share_link(session_maker, "FalbkAbc", permissions={"view": True, "comment": True, "create_tasks": False})
    app.state.disable_rate_limits = False
    app.state.rate_limit_store = UnreachableStore()

    statuses = [
        (await client.post("/public/FalbkAbc/feedback", json={"message": f"note {index}"})).status_code
        for index in range(6)
    ]

    assert statuses == [200] * 5 + [429]
    assert len(app.state.rate_limit_fallback_store) == 1


@pytest.mark.asyncio
async def test_public_view_survives_access_tracking_failure(client, session_maker, monkeypatch):
    from sqlalchemy.exc import OperationalError
    from sqlalchemy.ext.asyncio import AsyncSession

    code = (await _create_link(client, {"preset": "full_access"}))["code"]
    original_execute = AsyncSession.execute

    async def execute_with_locked_share_links(self, statement, *args, **kwargs):
        if getattr(statement, "is_update", False) and getattr(statement.table, "name", None) == "share_links":
            raise OperationalError("UPDATE share_links", {}, Exception("database is locked"))
        return await original_execute(self, statement, *args, **kwargs)

    monkeypatch.setattr(AsyncSession, "execute", execute_with_locked_share_links)

    view = await client.get(f"/public/{code}")
    assert view.status_code == 200
    assert view.json()["app"]["name"] == "Client Portal"
    assert view.json()["share_info"]["expires_at"] is None

    monkeypatch.undo()
    async with session_maker() as session:
        link = await session.scalar(select(ShareLink).where(ShareLink.code == code))
    assert link.access_count == 0


@pytest.mark.asyncio
async def test_expired_full_access_link_is_not_found_on_every_public_route(client, session_maker):
    await seed_share_link(
        session_maker,
        "ExpFullA",
        permissions={"view": True, "comment": True, "create_tasks": True},
        expires_at=datetime.now(timezone.utc) - timedelta(hours=1),
    )

    responses = [
        await client.get("/public/ExpFullA"),
        await client.get("/public/ExpFullA/feedback"),
        await client.post("/public/ExpFullA/feedback", json={"message": "Too late"}),
        await client.get("/public/ExpFullA/tasks"),
        await client.post("/public/ExpFullA/tasks", json={"title": "T", "description": "D"}),
    ]

    assert [response.status_code for response in responses] == [404] * 5
    assert {response.json()["detail"]["reason"] for response in responses} == {"NOT_FOUND_OR_EXPIRED"}


@pytest.mark.asyncio
async def test_share_link_detail_is_owner_scoped(client, monkeypatch):
    code = (await _create_link(client, {"preset": "view_only"}))["code"]

    owned = await client.get(f"/share/{code}", headers=OWNER_AUTH_HEADER)
    assert owned.status_code == 200
    assert owned.json()["code"] == code
    assert (await client.get(f"/share/{code}", headers=OTHER_OWNER_AUTH_HEADER)).status_code == 403
    assert (await client.get("/share/NeverMad", headers=OWNER_AUTH_HEADER)).status_code == 404

    async def broken_detail(**kwargs):
        raise RuntimeError("counts query failed")

    monkeypatch.setattr("routers.share_links.get_share_link_detail", broken_detail)
    failed = await client.get(f"/share/{code}", headers=OWNER_AUTH_HEADER)
    assert failed.status_code == 500
    assert failed.json()["detail"] == "Failed to fetch share link"
