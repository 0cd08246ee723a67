"""Test content negotiation: markdown and JSON parsing."""

from __future__ import annotations

import pytest

from tests.conftest import auth_header


@pytest.mark.asyncio
async def test_markdown_response(client):
    # Don't send Accept: application/json → get markdown
    resp = await client.post("/v1/register", json={"name": "md-test"})
    assert resp.status_code == 201
    assert resp.headers["content-type"].startswith("text/markdown")
    assert "api_key:" in resp.text


@pytest.mark.asyncio
async def test_register_markdown_body(client):
    body = "---\nname: frontmatter-user\n---\n"
    resp = await client.post(
        "/v1/register",
        content=body.encode(),
        headers={"Accept": "application/json", "Content-Type": "text/markdown"},
    )
    assert resp.status_code == 201
    assert resp.json()["user_id"].startswith("us_")


@pytest.mark.asyncio
async def test_task_markdown_body_becomes_description(parties):
    c = parties["client"]
    body = "---\ntitle: Landing page copy\ncapacity: 3\n---\nThree variants, under 50 words each."
    resp = await c.post(
        "/v1/tasks",
        content=body.encode(),
        headers={**auth_header(parties["owner"]["key"]), "Content-Type": "text/markdown"},
    )
    assert resp.status_code == 201
    data = resp.json()
    assert data["title"] == "Landing page copy"
    assert data["capacity"] == 3
    assert data["description"] == "Three variants, under 50 words each."


@pytest.mark.asyncio
async def test_message_markdown_body_is_text(workroom):
    c = workroom["client"]
    eid = workroom["engagement_id"]
    resp = await c.post(
        f"/v1/workrooms/{eid}/messages",
        content=b"First draft is up.",
        headers={**auth_header(workroom["worker"]["key"]), "Content-Type": "text/markdown"},
    )
    assert resp.status_code == 201
    assert resp.json()["text"] == "First draft is up."


@pytest.mark.asyncio
async def test_error_rendered_as_markdown(workroom):
    c = workroom["client"]
    eid = workroom["engagement_id"]
    resp = await c.get(
        f"/v1/workrooms/{eid}/meta",
        headers={"Authorization": f"Bearer {workroom['stranger']['key']}"},
    )
    assert resp.status_code == 403
    assert resp.headers["content-type"].startswith("text/markdown")
    assert "error:" in resp.text


@pytest.mark.asyncio
async def test_malformed_json_is_400(workroom):
    c = workroom["client"]
    eid = workroom["engagement_id"]
    resp = await c.post(
        f"/v1/workrooms/{eid}/messages",
        content=b"{not json",
        headers={**auth_header(workroom["owner"]["key"]), "Content-Type": "application/json"},
    )
    assert resp.status_code == 400
