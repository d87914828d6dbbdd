from __future__ import annotations

import asyncio

import pytest

from achievement_service.core.errors import (
    ConflictError,
    ForbiddenError,
    ValidationFailedError,
)
from achievement_service.models.criterion import CourseCountAtLeast
from achievement_service.models.principal import Principal
from achievement_service.repos.catalog_repo import InMemoryCatalogRepo
from achievement_service.services import catalog_service
from tests.conftest import add_achievement

ADMIN = Principal(user_id="admin-1", roles=frozenset({"admin"}))
INSTRUCTOR = Principal(user_id="teach-1", roles=frozenset({"instructor"}))
LEARNER = Principal(user_id="u1", roles=frozenset({"learner"}))


def _create(principal, repo, **fields):
    fields.setdefault("name", "First Steps")
    fields.setdefault("criterion", {"type": "course_count", "value": 1})
    return asyncio.run(
        catalog_service.create_achievement(principal, catalog_repo=repo, **fields)
    )


def test_admin_creates_achievement() -> None:
    repo = InMemoryCatalogRepo()
    created = _create(
        ADMIN,
        repo,
        name="  First Steps  ",
        description="Complete your first course",
        icon_ref="/badges/first-steps.svg",
    )

    assert created.name == "First Steps"
    assert created.criterion == CourseCountAtLeast(1)
    assert created.created_at > 0
    assert asyncio.run(repo.get(created.id)) == created


def test_blank_optional_fields_are_stored_as_none() -> None:
    created = _create(ADMIN, InMemoryCatalogRepo(), description="   ", icon_ref="")
    assert created.description is None
    assert created.icon_ref is None


@pytest.mark.parametrize("principal", [LEARNER, INSTRUCTOR])
def test_only_admin_may_create(principal: Principal) -> None:
    repo = InMemoryCatalogRepo()
    with pytest.raises(ForbiddenError):
        _create(principal, repo)
    assert asyncio.run(repo.list_all()) == []


@pytest.mark.parametrize("name", [None, "", "   "])
def test_name_is_required(name) -> None:
    with pytest.raises(ValidationFailedError) as exc_info:
        _create(ADMIN, InMemoryCatalogRepo(), name=name)
    assert exc_info.value.field == "name"


def test_malformed_criterion_names_the_field() -> None:
    with pytest.raises(ValidationFailedError) as exc_info:
        _create(ADMIN, InMemoryCatalogRepo(), criterion={"type": "course_count", "value": -1})
    assert exc_info.value.field == "criterion.value"


def test_name_at_column_width_is_accepted() -> None:
    created = _create(ADMIN, InMemoryCatalogRepo(), name="n" * 255)
    assert len(created.name) == 255


@pytest.mark.parametrize(
    "fields, field",
    [
        ({"name": "n" * 256}, "name"),
        ({"icon_ref": "i" * 501}, "icon_ref"),
    ],
)
def test_overlong_fields_are_rejected(fields: dict, field: str) -> None:
    repo = InMemoryCatalogRepo()
    with pytest.raises(ValidationFailedError) as exc_info:
        _create(ADMIN, repo, **fields)
    assert exc_info.value.field == field
    assert asyncio.run(repo.list_all()) == []


class _RejectingCatalogRepo(InMemoryCatalogRepo):
    async def add(self, achievement) -> None:
        raise ValidationFailedError("body", "value out of range for storage")


def test_store_rejection_is_not_reported_as_conflict() -> None:
    with pytest.raises(ValidationFailedError):
        _create(ADMIN, _RejectingCatalogRepo())


def test_duplicate_name_conflicts() -> None:
    repo = InMemoryCatalogRepo()
    _create(ADMIN, repo)
    with pytest.raises(ConflictError):
        _create(ADMIN, repo, criterion={"type": "points", "value": 5})
    assert len(asyncio.run(repo.list_all())) == 1


def test_list_catalog_is_ordered_by_creation() -> None:
    repo = InMemoryCatalogRepo()
    add_achievement("B", "points", 10, repo, created_at=200)
    add_achievement("A", "points", 5, repo, created_at=100)

    names = [a.name for a in asyncio.run(catalog_service.list_catalog(repo))]

    assert names == ["A", "B"]


def test_list_catalog_status_marks_held_entries() -> None:
    repo = InMemoryCatalogRepo()
    held = add_achievement("Held", "course_count", 1, repo, created_at=1)
    add_achievement("Open", "course_count", 5, repo, created_at=2)
    record = asyncio.run(repo.insert_award_if_absent("u1", held.id))

    statuses = asyncio.run(
        catalog_service.list_catalog_status(LEARNER, None, catalog_repo=repo)
    )

    assert [(s.achievement.name, s.held) for s in statuses] == [
        ("Held", True),
        ("Open", False),
    ]
    assert statuses[0].earned_at == record.earned_at
    assert statuses[1].earned_at is None


def test_list_catalog_status_for_another_learner_requires_elevated_role() -> None:
    repo = InMemoryCatalogRepo()
    with pytest.raises(ForbiddenError):
        asyncio.run(catalog_service.list_catalog_status(LEARNER, "u2", catalog_repo=repo))
    statuses = asyncio.run(
        catalog_service.list_catalog_status(INSTRUCTOR, "u2", catalog_repo=repo)
    )
    assert statuses == []


def test_seed_default_catalog_is_repeatable() -> None:
    repo = InMemoryCatalogRepo()

    first = asyncio.run(catalog_service.seed_default_catalog(repo))
    second = asyncio.run(catalog_service.seed_default_catalog(repo))

    assert first == len(catalog_service.DEFAULT_ACHIEVEMENTS) == 8
    assert second == 0
    names = {a.name for a in asyncio.run(repo.list_all())}
    assert {"First Steps", "Point Collector", "Champion"} <= names


def test_seed_skips_names_already_present() -> None:
    repo = InMemoryCatalogRepo()
    add_achievement("Scholar", "course_count", 3, repo)

    created = asyncio.run(catalog_service.seed_default_catalog(repo))

    assert created == 7
    scholar = asyncio.run(repo.get_by_name("Scholar"))
    assert scholar is not None
    assert scholar.criterion == CourseCountAtLeast(3)
