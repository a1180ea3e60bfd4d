import pytest

from config import settings


@pytest.mark.asyncio
async def test_liveness(client):
    response = await client.get("/health/live")
    assert response.json() == {"alive": True}


@pytest.mark.asyncio
async def test_readiness_requires_login_password(client, monkeypatch):
    monkeypatch.setattr(settings, "LOGIN_PASSWORD", "")
    not_ready = await client.get("/health/ready")
    assert not_ready.status_code == 503
    assert not_ready.json()["missing"] == ["LOGIN_PASSWORD"]

    monkeypatch.setattr(settings, "LOGIN_PASSWORD", "correct-horse-battery")
    assert (await client.get("/health/ready")).json() == {"ready": True}
