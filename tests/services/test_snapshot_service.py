from __future__ import annotations

import asyncio

import pytest

from achievement_service.core.errors import DataUnavailableError
from achievement_service.models.points import LearnerPoints
from achievement_service.models.snapshot import LearnerSnapshot
from achievement_service.repos.activity_repo import InMemoryActivityRepo
from achievement_service.services.snapshot_service import build_snapshot


class _UnreachableActivityRepo(InMemoryActivityRepo):
    """Fails on the Nth read, after earlier reads succeeded."""

    def __init__(self, fail_on: str) -> None:
        super().__init__()
        self.fail_on = fail_on

    async def count_completed_courses(self, learner_id: str) -> int:
        if self.fail_on == "courses":
            raise ConnectionRefusedError("store down")
        return await super().count_completed_courses(learner_id)

    async def get_points(self, learner_id: str) -> LearnerPoints | None:
        if self.fail_on == "points":
            raise DataUnavailableError("store unavailable during get_points")
        return await super().get_points(learner_id)


class _CorruptActivityRepo(InMemoryActivityRepo):
    def __init__(self, perfect: object = 0, level: int = 1) -> None:
        super().__init__()
        self._perfect = perfect
        self._level = level

    async def count_perfect_quizzes(self, learner_id: str) -> int:
        return self._perfect  # type: ignore[return-value]

    async def get_points(self, learner_id: str) -> LearnerPoints | None:
        return LearnerPoints(learner_id=learner_id, total_points=0, level=self._level)


def test_learner_without_activity_gets_zero_snapshot() -> None:
    snap = asyncio.run(build_snapshot(InMemoryActivityRepo(), "nobody"))
    assert snap == LearnerSnapshot(learner_id="nobody")
    assert snap.total_points == 0
    assert snap.level == 1


def test_snapshot_counts_each_activity_kind() -> None:
    repo = InMemoryActivityRepo()
    done = repo.record_enrollment("u1", "c1")
    repo.complete_enrollment(done.id)
    repo.record_enrollment("u1", "c2")  # still in progress
    repo.record_enrollment("u1", "c3", status="dropped")
    repo.record_quiz_attempt("u1", score=100, passed=True)
    repo.record_quiz_attempt("u1", score=85, passed=True)
    repo.record_quiz_attempt("u1", score=40, passed=False)
    repo.set_points("u1", total_points=320, level=3)
    # Another learner's activity must not leak in.
    other = repo.record_enrollment("u2", "c1")
    repo.complete_enrollment(other.id)

    snap = asyncio.run(build_snapshot(repo, "u1"))

    assert snap.completed_course_count == 1
    assert snap.quiz_pass_count == 2
    assert snap.quiz_perfect_count == 1
    assert snap.total_points == 320
    assert snap.level == 3


def test_equal_state_gives_equal_snapshots() -> None:
    repo = InMemoryActivityRepo()
    repo.record_quiz_attempt("u1", score=100, passed=True)
    first = asyncio.run(build_snapshot(repo, "u1"))
    second = asyncio.run(build_snapshot(repo, "u1"))
    assert first == second


@pytest.mark.parametrize("fail_on", ["courses", "points"])
def test_store_failure_raises_data_unavailable(fail_on: str) -> None:
    with pytest.raises(DataUnavailableError):
        asyncio.run(build_snapshot(_UnreachableActivityRepo(fail_on), "u1"))


@pytest.mark.parametrize("perfect", [-1, "3", 2.0, True])
def test_inconsistent_count_is_rejected(perfect: object) -> None:
    with pytest.raises(DataUnavailableError):
        asyncio.run(build_snapshot(_CorruptActivityRepo(perfect=perfect), "u1"))


def test_level_below_one_is_rejected() -> None:
    with pytest.raises(DataUnavailableError):
        asyncio.run(build_snapshot(_CorruptActivityRepo(level=0), "u1"))
