import pytest

from tests.conftest import auth_header, register_user


async def _post_task(c, key, **body):
    resp = await c.post(
        "/v1/tasks", json={"title": "Edit a podcast episode", **body}, headers=auth_header(key)
    )
    assert resp.status_code == 201
    return resp.json()


@pytest.mark.asyncio
async def test_post_and_read_task(parties):
    c = parties["client"]
    owner = parties["owner"]
    task = await _post_task(c, owner["key"], description="45 minutes of audio")
    assert task["task_id"].startswith("tk_")
    assert task["status"] == "open"
    assert task["owner_id"] == owner["id"]

    resp = await c.get(f"/v1/tasks/{task['task_id']}", headers=auth_header(owner["key"]))
    assert resp.status_code == 200
    assert resp.json()["description"] == "45 minutes of audio"


@pytest.mark.asyncio
async def test_read_missing_task(parties):
    c = parties["client"]
    resp = await c.get("/v1/tasks/tk_nope", headers=auth_header(parties["owner"]["key"]))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_owner_cannot_apply(parties):
    c = parties["client"]
    owner = parties["owner"]
    task = await _post_task(c, owner["key"])
    resp = await c.post(f"/v1/tasks/{task['task_id']}/apply", headers=auth_header(owner["key"]))
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_apply_twice_is_harmless(parties):
    c = parties["client"]
    task = await _post_task(c, parties["owner"]["key"])
    tid = task["task_id"]
    worker_h = auth_header(parties["worker"]["key"])

    resp = await c.post(f"/v1/tasks/{tid}/apply", headers=worker_h)
    assert resp.json()["applicant_count"] == 1

    resp = await c.post(f"/v1/tasks/{tid}/apply", headers=worker_h)
    assert resp.status_code == 200
    assert resp.json()["message"] == "Already applied"
    assert resp.json()["applicant_count"] == 1


@pytest.mark.asyncio
async def test_capacity_is_enforced(parties):
    c = parties["client"]
    task = await _post_task(c, parties["owner"]["key"], capacity=1)
    tid = task["task_id"]

    resp = await c.post(f"/v1/tasks/{tid}/apply", headers=auth_header(parties["worker"]["key"]))
    assert resp.status_code == 200
    resp = await c.post(f"/v1/tasks/{tid}/apply", headers=auth_header(parties["stranger"]["key"]))
    assert resp.status_code == 409
    assert resp.json()["error"] == "Applications are full"


@pytest.mark.asyncio
async def test_select_opens_engagement(parties):
    c = parties["client"]
    owner, worker = parties["owner"], parties["worker"]
    tid = (await _post_task(c, owner["key"]))["task_id"]
    await c.post(f"/v1/tasks/{tid}/apply", headers=auth_header(worker["key"]))

    resp = await c.post(
        f"/v1/tasks/{tid}/select",
        json={"applicant_id": worker["id"]},
        headers=auth_header(owner["key"]),
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "in_progress"
    assert data["selected_worker_id"] == worker["id"]
    assert data["engagement_id"] == f"wr_{tid}_{worker['id']}"

    resp = await c.get(
        f"/v1/workrooms/{data['engagement_id']}/meta", headers=auth_header(worker["key"])
    )
    assert resp.status_code == 200
    meta = resp.json()
    assert meta["role"] == "worker"
    assert meta["owner_finalised"] is False
    assert meta["worker_finalised"] is False
    assert meta["finalised_at"] is None


@pytest.mark.asyncio
async def test_select_only_once(parties):
    c = parties["client"]
    owner = parties["owner"]
    tid = (await _post_task(c, owner["key"]))["task_id"]
    for role in ("worker", "stranger"):
        await c.post(f"/v1/tasks/{tid}/apply", headers=auth_header(parties[role]["key"]))

    resp = await c.post(
        f"/v1/tasks/{tid}/select",
        json={"applicant_id": parties["worker"]["id"]},
        headers=auth_header(owner["key"]),
    )
    assert resp.status_code == 200

    resp = await c.post(
        f"/v1/tasks/{tid}/select",
        json={"applicant_id": parties["stranger"]["id"]},
        headers=auth_header(owner["key"]),
    )
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_select_requires_owner_and_applicant(parties):
    c = parties["client"]
    owner, worker = parties["owner"], parties["worker"]
    tid = (await _post_task(c, owner["key"]))["task_id"]

    resp = await c.post(
        f"/v1/tasks/{tid}/select",
        json={"applicant_id": worker["id"]},
        headers=auth_header(owner["key"]),
    )
    assert resp.status_code == 400

    await c.post(f"/v1/tasks/{tid}/apply", headers=auth_header(worker["key"]))
    resp = await c.post(
        f"/v1/tasks/{tid}/select",
        json={"applicant_id": worker["id"]},
        headers=auth_header(worker["key"]),
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_no_applications_after_selection(workroom):
    c = workroom["client"]
    resp = await c.get(
        f"/v1/workrooms/{workroom['engagement_id']}/meta",
        headers=auth_header(workroom["owner"]["key"]),
    )
    tid = resp.json()["task_id"]

    late = await register_user(c, "late")
    resp = await c.post(f"/v1/tasks/{tid}/apply", headers=auth_header(late["api_key"]))
    assert resp.status_code == 409
