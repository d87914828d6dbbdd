from __future__ import annotations

import asyncio

import pytest

from achievement_service.core.errors import ForbiddenError, ValidationFailedError
from achievement_service.models.points import LevelPolicy, NextLevel
from achievement_service.models.principal import Principal
from achievement_service.repos.activity_repo import InMemoryActivityRepo
from achievement_service.services import points_service

POLICY = LevelPolicy(thresholds=(0, 100, 300, 600))
LEARNER = Principal(user_id="u1", roles=frozenset({"learner"}))
INSTRUCTOR = Principal(user_id="teach-1", roles=frozenset({"instructor"}))

# ---- LevelPolicy ----


@pytest.mark.parametrize(
    "points, level",
    [(0, 1), (99, 1), (100, 2), (299, 2), (300, 3), (600, 4), (10_000, 4), (-5, 1)],
)
def test_level_for(points: int, level: int) -> None:
    assert POLICY.level_for(points) == level


def test_next_level_progress() -> None:
    assert POLICY.next_level(150) == NextLevel(level=3, points_needed=300, progress=25)
    assert POLICY.next_level(0) == NextLevel(level=2, points_needed=100, progress=0)


def test_next_level_at_max_level() -> None:
    assert POLICY.next_level(900) == NextLevel(level=4, points_needed=600, progress=100)


# ---- award_points / get_points ----


def _award(principal, learner_id, points, repo, reason=None):
    return asyncio.run(
        points_service.award_points(
            principal, learner_id, points, reason, activity_repo=repo, policy=POLICY
        )
    )


def test_award_accumulates_and_levels_up() -> None:
    repo = InMemoryActivityRepo()

    first = _award(LEARNER, None, 60, repo, reason="quiz")
    second = _award(LEARNER, None, 60, repo)

    assert first.points.total_points == 60
    assert first.leveled_up is False
    assert first.reason == "quiz"
    assert second.points.total_points == 120
    assert second.points.level == 2
    assert second.leveled_up is True


@pytest.mark.parametrize("points", [0, -10, "50", 1.5, True, None])
def test_points_must_be_positive_int(points: object) -> None:
    repo = InMemoryActivityRepo()
    with pytest.raises(ValidationFailedError) as exc_info:
        _award(LEARNER, None, points, repo)
    assert exc_info.value.field == "points"
    assert asyncio.run(repo.get_points("u1")) is None


def test_learner_cannot_award_points_to_another_learner() -> None:
    repo = InMemoryActivityRepo()
    with pytest.raises(ForbiddenError):
        _award(LEARNER, "u2", 10, repo)
    assert asyncio.run(repo.get_points("u2")) is None


def test_instructor_can_award_points_to_a_learner() -> None:
    result = _award(INSTRUCTOR, "u2", 300, InMemoryActivityRepo())
    assert result.points.learner_id == "u2"
    assert result.points.level == 3


def test_get_points_baseline_for_new_learner() -> None:
    standing = asyncio.run(
        points_service.get_points(
            LEARNER, None, activity_repo=InMemoryActivityRepo(), policy=POLICY
        )
    )
    assert standing.points.total_points == 0
    assert standing.points.level == 1
    assert standing.next_level == NextLevel(level=2, points_needed=100, progress=0)


def test_default_policy_comes_from_settings() -> None:
    assert points_service.DEFAULT_POLICY.thresholds[0] == 0
    assert points_service.DEFAULT_POLICY.level_for(1000) == 5


def test_first_award_crossing_thresholds_is_not_a_level_up() -> None:
    result = _award(LEARNER, None, 300, InMemoryActivityRepo())
    assert result.points.level == 3
    assert result.leveled_up is False


def test_award_at_ceiling_is_accepted_and_above_is_rejected() -> None:
    repo = InMemoryActivityRepo()
    ceiling = points_service.MAX_POINTS_PER_AWARD

    assert _award(LEARNER, None, ceiling, repo).points.total_points == ceiling
    with pytest.raises(ValidationFailedError) as exc_info:
        _award(LEARNER, None, ceiling + 1, repo)
    assert exc_info.value.field == "points"
    assert asyncio.run(repo.get_points("u1")).total_points == ceiling


# ---- leaderboard ----


def _leaderboard(principal, repo, limit=10):
    return asyncio.run(
        points_service.get_leaderboard(principal, limit, activity_repo=repo)
    )


def test_leaderboard_orders_by_total_and_shares_tied_ranks() -> None:
    repo = InMemoryActivityRepo()
    repo.set_points("u1", total_points=300, level=3)
    repo.set_points("u2", total_points=500, level=3)
    repo.set_points("u3", total_points=300, level=3)
    repo.set_points("u4", total_points=50, level=1)

    board = _leaderboard(LEARNER, repo)

    assert [(e.rank, e.points.learner_id) for e in board.entries] == [
        (1, "u2"),
        (2, "u1"),
        (2, "u3"),
        (4, "u4"),
    ]
    assert board.caller_rank == 2


def test_leaderboard_limit_is_capped() -> None:
    repo = InMemoryActivityRepo()
    for i in range(120):
        repo.set_points(f"learner-{i:03d}", total_points=i + 1, level=1)

    assert len(_leaderboard(LEARNER, repo, limit=3).entries) == 3
    assert len(_leaderboard(LEARNER, repo, limit=500).entries) == 100


def test_caller_without_points_has_no_rank() -> None:
    repo = InMemoryActivityRepo()
    repo.set_points("u2", total_points=10, level=1)

    board = _leaderboard(LEARNER, repo)

    assert board.caller_rank is None
    assert [e.points.learner_id for e in board.entries] == ["u2"]


@pytest.mark.parametrize("limit", [0, -1, True, "10"])
def test_leaderboard_limit_must_be_positive_int(limit: object) -> None:
    with pytest.raises(ValidationFailedError) as exc_info:
        _leaderboard(LEARNER, InMemoryActivityRepo(), limit=limit)
    assert exc_info.value.field == "limit"
