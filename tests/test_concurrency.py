"""Finalise and post racing each other on a real file database (WAL, several connections)."""

import asyncio
from datetime import datetime

import pytest
from httpx import ASGITransport, AsyncClient

from cyphire.database import close_db, init_db
from cyphire.events import event_bus, workroom_channel
from cyphire.main import app
from cyphire.storage import get_blob_store
from tests.conftest import MemoryBlobStore, auth_header, open_workroom, register_user

ROUNDS = 3
CALLS_PER_KIND = 4


@pytest.fixture
async def file_client(tmp_path):
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'cyphire.db'}")
    store = MemoryBlobStore()
    app.dependency_overrides[get_blob_store] = lambda: store
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
    await close_db()


async def _race(c, owner, worker):
    eid = await open_workroom(c, owner, worker)
    url = f"/v1/workrooms/{eid}"
    owner_h, worker_h = auth_header(owner["key"]), auth_header(worker["key"])

    queue = event_bus.subscribe(workroom_channel(eid), "observer")
    try:
        calls = (
            [c.post(f"{url}/finalise", headers=owner_h) for _ in range(CALLS_PER_KIND)]
            + [c.post(f"{url}/finalise", headers=worker_h) for _ in range(CALLS_PER_KIND)]
            + [
                c.post(f"{url}/messages", json={"text": f"late {i}"}, headers=worker_h)
                for i in range(CALLS_PER_KIND)
            ]
        )
        responses = await asyncio.gather(*calls)

        events = []
        while not queue.empty():
            events.append(queue.get_nowait())
    finally:
        event_bus.unsubscribe_all(queue)

    finalises = responses[: 2 * CALLS_PER_KIND]
    posts = responses[2 * CALLS_PER_KIND :]
    assert all(r.status_code == 200 for r in finalises)
    assert all(r.status_code in (201, 409) for r in posts)

    meta = (await c.get(f"{url}/meta", headers=owner_h)).json()
    closed_at = meta["finalised_at"]
    assert closed_at is not None
    seen = {r.json()["finalised_at"] for r in finalises} - {None}
    assert seen == {closed_at}

    finalised_events = [e for e in events if e.type == "workroom:finalised"]
    assert len(finalised_events) == 1
    assert finalised_events[0].data["finalised_at"] == closed_at

    items = (await c.get(f"{url}/messages", headers=owner_h)).json()["items"]
    assert len(items) == sum(1 for r in posts if r.status_code == 201)
    cutoff = datetime.fromisoformat(closed_at)
    assert all(datetime.fromisoformat(m["created_at"]) <= cutoff for m in items)


@pytest.mark.asyncio
async def test_finalise_fires_once_under_contention(file_client):
    c = file_client
    for i in range(ROUNDS):
        owner = await register_user(c, f"owner-{i}")
        worker = await register_user(c, f"worker-{i}")
        await _race(
            c,
            {"id": owner["user_id"], "key": owner["api_key"]},
            {"id": worker["user_id"], "key": worker["api_key"]},
        )
