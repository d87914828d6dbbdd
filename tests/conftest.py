from __future__ import annotations

from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from achievement_service.api.dependencies import memory_activity_repo, memory_catalog_repo
from achievement_service.main import app
from achievement_service.models.achievement import AchievementDefinition
from achievement_service.models.criterion import parse_criterion
from achievement_service.repos.catalog_repo import InMemoryCatalogRepo
from achievement_service.services import token_service
from achievement_service.services.cache import cache_service


@pytest.fixture(autouse=True)
def reset_repos() -> None:
    """Clear the module-level activity and catalog stores between tests."""
    memory_activity_repo.clear()
    memory_catalog_repo.clear()


@pytest.fixture(autouse=True)
def reset_cache() -> None:
    """Clear cache between tests."""
    if hasattr(cache_service, "_store"):
        cache_service._store.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(
    username: str = "test-user",
    roles: list[str] | None = None,
) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username, roles=roles)


@pytest.fixture
def token() -> str:
    """Token with default role (learner)."""
    return mint_token()


@pytest.fixture
def admin_token() -> str:
    """Token with admin role."""
    return mint_token(username="test-admin", roles=["admin"])


def auth(token: str | None) -> dict[str, str]:
    if token is None:
        return {}
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Catalog helpers
# ---------------------------------------------------------------------------


def add_achievement(
    name: str,
    kind: str,
    value: int,
    repo: InMemoryCatalogRepo = memory_catalog_repo,
    *,
    created_at: int | None = None,
) -> AchievementDefinition:
    """Store a definition directly, bypassing the admin service."""
    a = AchievementDefinition.new(
        name=name, criterion=parse_criterion({"type": kind, "value": value})
    )
    if created_at is not None:
        a = replace(a, created_at=created_at)
    repo._by_id[a.id] = a
    return a


def complete_courses(learner_id: str, n: int) -> None:
    for i in range(n):
        e = memory_activity_repo.record_enrollment(learner_id, f"course-{i}")
        memory_activity_repo.complete_enrollment(e.id)
