"""Demo: seed the default catalog and walk one learner through evaluation.

Uses the in-memory stores, so no database is needed.  Run with:
    python scripts/demo_evaluation_flow.py
"""

from __future__ import annotations

import asyncio

from fastapi.testclient import TestClient

from achievement_service.api.dependencies import memory_activity_repo, memory_catalog_repo
from achievement_service.main import app
from achievement_service.services import token_service
from achievement_service.services.catalog_service import seed_default_catalog

LEARNER_ID = "demo-learner"


def _bearer(sub: str, roles: list[str]) -> dict[str, str]:
    token = token_service.create_access_token(sub=sub, roles=roles)
    return {"Authorization": f"Bearer {token}"}


def main() -> None:
    client = TestClient(app)
    learner = _bearer(LEARNER_ID, ["learner"])
    admin = _bearer("demo-admin", ["admin"])

    # ── Seed data ───────────────────────────────────────────────────
    seeded = asyncio.run(seed_default_catalog(memory_catalog_repo))
    print(f"0. seeded {seeded} default achievements")

    # ── Step 1: evaluate with no activity ───────────────────────────
    r = client.post("/v1/achievements/evaluate", json={}, headers=learner)
    print(f"1. POST /evaluate (no activity) → {r.status_code}  {r.json()['newly_awarded']}")

    # ── Step 2: complete a course, evaluate again ───────────────────
    enrollment = memory_activity_repo.record_enrollment(LEARNER_ID, "intro-101")
    memory_activity_repo.complete_enrollment(enrollment.id)
    r = client.post("/v1/achievements/evaluate", json={}, headers=learner)
    names = [a["name"] for a in r.json()["newly_awarded"]]
    print(f"2. POST /evaluate (1 course)    → {r.status_code}  awarded={names}")

    # ── Step 3: repeat is a no-op ───────────────────────────────────
    r = client.post("/v1/achievements/evaluate", json={}, headers=learner)
    print(f"3. POST /evaluate (repeat)      → {r.status_code}  {r.json()['newly_awarded']}")

    # ── Step 4: earn points, evaluate ───────────────────────────────
    r = client.post("/v1/points", json={"points": 1000, "reason": "demo"}, headers=learner)
    print(f"4. POST /points 1000            → {r.status_code}  level={r.json()['level']}")
    r = client.post("/v1/achievements/evaluate", json={}, headers=learner)
    names = [a["name"] for a in r.json()["newly_awarded"]]
    print(f"   POST /evaluate               → {r.status_code}  awarded={names}")

    # ── Step 5: learner tries to evaluate someone else ──────────────
    r = client.post(
        "/v1/achievements/evaluate", json={"learner_id": "someone-else"}, headers=learner
    )
    print(f"5. POST /evaluate (other)       → {r.status_code}  (forbidden)")

    # ── Step 6: admin grants Expert directly ────────────────────────
    catalog = client.get("/v1/achievements", headers=learner).json()
    expert = next(a for a in catalog if a["name"] == "Expert")
    r = client.post(
        "/v1/achievements/grants",
        json={"achievement_id": expert["id"], "learner_id": LEARNER_ID},
        headers=admin,
    )
    print(f"6. POST /grants Expert          → {r.status_code}")
    r = client.post(
        "/v1/achievements/grants",
        json={"achievement_id": expert["id"], "learner_id": LEARNER_ID},
        headers=admin,
    )
    print(f"   POST /grants Expert (again)  → {r.status_code}  (already held)")

    # ── Step 7: final standing ──────────────────────────────────────
    r = client.get("/v1/achievements", params={"include_status": "true"}, headers=learner)
    held = [a["name"] for a in r.json() if a["held"]]
    print(f"7. GET  /achievements           → held={held}")

    print("\nAll steps completed.")


if __name__ == "__main__":
    main()
