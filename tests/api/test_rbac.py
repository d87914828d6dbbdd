"""Table-driven access-control tests.

Each row: method, path, body or query, role of the caller, expected status.
The caller is always "self-user"; rows that name "other-user" exercise the
elevated-role rule, rows that create achievements exercise admin-only.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from tests.conftest import auth, mint_token

_NEW_ACHIEVEMENT = {"name": "RBAC", "criterion": {"type": "points", "value": 1}}

_RBAC_CASES = [
    # evaluate self: any authenticated caller
    ("POST", "/v1/achievements/evaluate", {}, "learner", 200),
    ("POST", "/v1/achievements/evaluate", {}, None, 401),
    # evaluate another learner: instructor or admin
    ("POST", "/v1/achievements/evaluate", {"learner_id": "other-user"}, "learner", 403),
    ("POST", "/v1/achievements/evaluate", {"learner_id": "other-user"}, "instructor", 200),
    ("POST", "/v1/achievements/evaluate", {"learner_id": "other-user"}, "admin", 200),
    # catalog listing
    ("GET", "/v1/achievements", {}, "learner", 200),
    ("GET", "/v1/achievements", {}, None, 401),
    # catalog creation: admin only
    ("POST", "/v1/achievements", _NEW_ACHIEVEMENT, "admin", 201),
    ("POST", "/v1/achievements", _NEW_ACHIEVEMENT, "instructor", 403),
    ("POST", "/v1/achievements", _NEW_ACHIEVEMENT, "learner", 403),
    ("POST", "/v1/achievements", _NEW_ACHIEVEMENT, None, 401),
    # awards listing
    ("GET", "/v1/achievements/awards", {}, "learner", 200),
    ("GET", "/v1/achievements/awards", {"learner_id": "other-user"}, "learner", 403),
    ("GET", "/v1/achievements/awards", {"learner_id": "other-user"}, "instructor", 200),
    # points
    ("GET", "/v1/points", {}, "learner", 200),
    ("GET", "/v1/points", {"learner_id": "other-user"}, "learner", 403),
    ("POST", "/v1/points", {"points": 5}, "learner", 200),
    ("POST", "/v1/points", {"points": 5, "learner_id": "other-user"}, "learner", 403),
    ("POST", "/v1/points", {"points": 5, "learner_id": "other-user"}, "admin", 200),
    ("POST", "/v1/points", {"points": 5}, None, 401),
]


@pytest.mark.parametrize("method, path, data, role, expected", _RBAC_CASES)
def test_rbac(
    client: TestClient,
    method: str,
    path: str,
    data: dict,
    role: str | None,
    expected: int,
) -> None:
    token = None if role is None else mint_token(username="self-user", roles=[role])
    if method == "GET":
        resp = client.get(path, params=data, headers=auth(token))
    else:
        resp = client.post(path, json=data, headers=auth(token))
    assert resp.status_code == expected, resp.text


def test_unknown_roles_grant_nothing(client: TestClient) -> None:
    token = mint_token(username="self-user", roles=["superuser"])
    resp = client.post(
        "/v1/achievements/evaluate",
        json={"learner_id": "other-user"},
        headers=auth(token),
    )
    assert resp.status_code == 403
