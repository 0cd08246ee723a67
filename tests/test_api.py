import pytest

from tests.conftest import ADMIN_KEY, auth_header


@pytest.mark.asyncio
async def test_register(client):
    resp = await client.post(
        "/v1/register",
        json={"name": "ada", "avatar": "https://avatars.test/ada.png"},
        headers={"Accept": "application/json"},
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["user_id"].startswith("us_")
    assert data["api_key"].startswith("ck_")


@pytest.mark.asyncio
async def test_register_rejects_blank_name(client):
    resp = await client.post(
        "/v1/register", json={"name": ""}, headers={"Accept": "application/json"}
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_me(parties):
    c = parties["client"]
    owner = parties["owner"]
    resp = await c.get("/v1/me", headers=auth_header(owner["key"]))
    assert resp.status_code == 200
    data = resp.json()
    assert data["id"] == owner["id"]
    assert data["name"] == "owner"
    assert data["avatar"] == "https://avatars.test/owner.png"
    assert data["is_admin"] is False


@pytest.mark.asyncio
async def test_admin_key_resolves_to_admin(client):
    resp = await client.get("/v1/me", headers=auth_header(ADMIN_KEY))
    assert resp.status_code == 200
    assert resp.json()["is_admin"] is True


@pytest.mark.asyncio
async def test_unauthorized(client):
    resp = await client.get("/v1/me", headers={"Accept": "application/json"})
    assert resp.status_code == 401

    resp = await client.get(
        "/v1/me",
        headers={"Authorization": "Bearer invalid", "Accept": "application/json"},
    )
    assert resp.status_code == 401
    assert resp.json()["error"] == "Invalid API key"


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_query_validation_is_400(workroom):
    c = workroom["client"]
    eid = workroom["engagement_id"]
    resp = await c.get(
        f"/v1/workrooms/{eid}/messages?limit=0", headers=auth_header(workroom["owner"]["key"])
    )
    assert resp.status_code == 400
