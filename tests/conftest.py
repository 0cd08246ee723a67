"""Test fixtures with in-memory SQLite via SQLModel."""

from __future__ import annotations

import os

os.environ.setdefault("CYPHIRE_RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("CYPHIRE_ADMIN_KEY", "test-admin-key")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

from cyphire.database import get_db_session, get_session_factory  # noqa: E402
from cyphire.db_models import (  # noqa: E402, F401: register tables
    Application,
    Engagement,
    MessageLog,
    Task,
    User,
    WorkroomMessage,
)
from cyphire.ids import blob_id  # noqa: E402
from cyphire.main import app  # noqa: E402
from cyphire.storage import BlobStoreError, IncomingFile, StoredBlob, get_blob_store  # noqa: E402

ADMIN_KEY = "test-admin-key"


class MemoryBlobStore:
    """Keeps uploads in a list instead of on disk."""

    def __init__(self) -> None:
        self.uploads: list[tuple[str, IncomingFile]] = []
        self.deleted: list[str] = []

    async def upload(self, file: IncomingFile, folder: str) -> StoredBlob:
        self.uploads.append((folder, file))
        bid = blob_id()
        return StoredBlob(
            url=f"https://blobs.test/{folder}/{bid}",
            id=bid,
            content_type=file.content_type,
            size=file.size,
            name=file.name,
            key=f"{folder}/{bid}",
        )

    async def delete(self, blob: StoredBlob) -> None:
        self.deleted.append(blob.id)


class FailingBlobStore(MemoryBlobStore):
    """Accepts the first ``fail_after`` uploads, then fails every one after."""

    def __init__(self, fail_after: int = 0) -> None:
        super().__init__()
        self.fail_after = fail_after

    async def upload(self, file: IncomingFile, folder: str) -> StoredBlob:
        if len(self.uploads) >= self.fail_after:
            raise BlobStoreError("bucket unavailable")
        return await super().upload(file, folder)


@pytest.fixture
async def db():
    engine = create_async_engine(
        "sqlite+aiosqlite://", echo=False, connect_args={"check_same_thread": False}
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)  # type: ignore[call-overload]

    async def override_get_db_session():
        async with factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db_session
    app.dependency_overrides[get_session_factory] = lambda: factory

    yield factory

    app.dependency_overrides.clear()
    await engine.dispose()


@pytest.fixture
def blob_store(db):
    store = MemoryBlobStore()
    app.dependency_overrides[get_blob_store] = lambda: store
    return store


@pytest.fixture
async def client(db, blob_store):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def register_user(client: AsyncClient, name: str = "test-user") -> dict:
    """Helper: register a user, return {"user_id", "api_key"}."""
    resp = await client.post(
        "/v1/register",
        json={"name": name, "avatar": f"https://avatars.test/{name}.png"},
        headers={"Accept": "application/json"},
    )
    assert resp.status_code == 201
    return resp.json()


def auth_header(api_key: str) -> dict:
    return {"Authorization": f"Bearer {api_key}", "Accept": "application/json"}


async def open_workroom(client: AsyncClient, owner: dict, worker: dict) -> str:
    """Helper: owner posts a task, worker applies, owner selects. Returns engagement id."""
    resp = await client.post(
        "/v1/tasks",
        json={"title": "Design a logo"},
        headers=auth_header(owner["key"]),
    )
    assert resp.status_code == 201
    task_id = resp.json()["task_id"]

    resp = await client.post(f"/v1/tasks/{task_id}/apply", headers=auth_header(worker["key"]))
    assert resp.status_code == 200

    resp = await client.post(
        f"/v1/tasks/{task_id}/select",
        json={"applicant_id": worker["id"]},
        headers=auth_header(owner["key"]),
    )
    assert resp.status_code == 200
    return resp.json()["engagement_id"]


@pytest.fixture
async def parties(client):
    """Owner, worker and an unrelated stranger."""
    out = {"client": client}
    for role in ("owner", "worker", "stranger"):
        d = await register_user(client, role)
        out[role] = {"id": d["user_id"], "key": d["api_key"]}
    return out


@pytest.fixture
async def workroom(parties):
    """Parties plus an open engagement between owner and worker."""
    eid = await open_workroom(parties["client"], parties["owner"], parties["worker"])
    return {**parties, "engagement_id": eid}
