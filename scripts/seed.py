"""Seed a running Cyphire server with demo users, tasks and workrooms.

Usage:
    # Start server with relaxed rate limits for seeding:
    CYPHIRE_RATE_LIMIT_REGISTER="100/minute" uvicorn cyphire.main:app --port 8000

    # Then seed:
    python scripts/seed.py                          # localhost:8000
    python scripts/seed.py https://cyphire.example  # elsewhere
"""

from __future__ import annotations

import asyncio
import random
import sys

import httpx

BASE = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"

USERS = ["amara", "bruno", "chen", "dalia", "emeka", "farah"]

TASKS = [
    {"title": "Logo for a neighbourhood bakery", "description": "Warm colours, round shapes."},
    {"title": "Edit a 40 minute podcast episode", "description": "Remove ums, level audio."},
    {"title": "Translate product page to Portuguese", "capacity": 3},
    {"title": "Fix flaky checkout tests", "description": "Playwright suite, about 12 tests."},
    {"title": "Short explainer video for an app launch"},
]

CHAT = [
    "Hi! Thanks for picking me. When do you need this by?",
    "End of the week would be perfect.",
    "Works for me. I'll send a first draft on Wednesday.",
    "Draft is up, let me know what you think.",
    "Looks great, just a couple of small tweaks.",
]


def _auth(user: dict) -> dict:
    return {"Authorization": f"Bearer {user['api_key']}", "Accept": "application/json"}


async def seed() -> None:
    async with httpx.AsyncClient(base_url=BASE, timeout=30) as client:
        print(f"\n--- Registering users on {BASE} ---\n")
        users = []
        for name in USERS:
            resp = await client.post(
                "/v1/register",
                json={"name": name, "avatar": f"https://i.pravatar.cc/150?u={name}"},
                headers={"Accept": "application/json"},
            )
            if resp.status_code != 201:
                print(f"  FAILED registering {name}: {resp.status_code} {resp.text[:100]}")
                continue
            users.append({"name": name, **resp.json()})
            print(f"  {name:10s} {resp.json()['user_id']}")

        if len(users) < 2:
            print("Not enough users to continue.")
            return

        print("\n--- Posting tasks and hiring ---\n")
        workrooms = []
        for task in TASKS:
            owner = random.choice(users)
            resp = await client.post("/v1/tasks", json=task, headers=_auth(owner))
            if resp.status_code != 201:
                print(f"  FAILED posting: {resp.status_code} {resp.text[:100]}")
                continue
            tid = resp.json()["task_id"]
            print(f"  {owner['name']:10s} posted {tid}  {task['title'][:50]}")

            applicants = random.sample([u for u in users if u is not owner], k=2)
            for worker in applicants:
                await client.post(f"/v1/tasks/{tid}/apply", headers=_auth(worker))

            chosen = applicants[0]
            resp = await client.post(
                f"/v1/tasks/{tid}/select",
                json={"applicant_id": chosen["user_id"]},
                headers=_auth(owner),
            )
            if resp.status_code == 200:
                eid = resp.json()["engagement_id"]
                workrooms.append({"id": eid, "owner": owner, "worker": chosen})
                print(f"  {owner['name']:10s} hired {chosen['name']} -> {eid}")

        print("\n--- Chatting ---\n")
        for room in workrooms:
            speakers = [room["worker"], room["owner"]]
            for i, text in enumerate(CHAT[: random.randint(2, len(CHAT))]):
                speaker = speakers[i % 2]
                await client.post(
                    f"/v1/workrooms/{room['id']}/messages",
                    json={"text": text},
                    headers=_auth(speaker),
                )
            print(f"  {room['id']}  chat seeded")

        print("\n--- Finalising about half ---\n")
        done = workrooms[: len(workrooms) // 2]
        for room in done:
            for party in (room["owner"], room["worker"]):
                resp = await client.post(
                    f"/v1/workrooms/{room['id']}/finalise", headers=_auth(party)
                )
            print(f"  {room['id']}  finalised_at={resp.json().get('finalised_at')}")

        print("\n--- Done ---\n")
        print(f"  {len(users)} users registered")
        print(f"  {len(workrooms)} workrooms opened")
        print(f"  {len(done)} finalised, {len(workrooms) - len(done)} still chatting")


if __name__ == "__main__":
    asyncio.run(seed())
