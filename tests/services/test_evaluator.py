from __future__ import annotations

import pytest

from achievement_service.models.criterion import (
    CourseCountAtLeast,
    LevelAtLeast,
    PointsAtLeast,
    QuizPassCountAtLeast,
    QuizPerfectCountAtLeast,
    Unsatisfiable,
)
from achievement_service.models.snapshot import LearnerSnapshot
from achievement_service.services.evaluator import satisfies

_SNAPSHOT = LearnerSnapshot(
    learner_id="u1",
    completed_course_count=3,
    quiz_pass_count=4,
    quiz_perfect_count=2,
    total_points=250,
    level=2,
)


@pytest.mark.parametrize(
    "criterion, expected",
    [
        (CourseCountAtLeast(3), True),
        (CourseCountAtLeast(4), False),
        (QuizPassCountAtLeast(4), True),
        (QuizPassCountAtLeast(5), False),
        (QuizPerfectCountAtLeast(2), True),
        (QuizPerfectCountAtLeast(3), False),
        (PointsAtLeast(250), True),
        (PointsAtLeast(251), False),
        (LevelAtLeast(2), True),
        (LevelAtLeast(3), False),
        (CourseCountAtLeast(0), True),
    ],
)
def test_thresholds_are_inclusive(criterion, expected: bool) -> None:
    assert satisfies(_SNAPSHOT, criterion) is expected


def test_course_count_boundary() -> None:
    """Exactly three completed courses satisfies >=3; two does not."""
    three = LearnerSnapshot(learner_id="u1", completed_course_count=3)
    two = LearnerSnapshot(learner_id="u1", completed_course_count=2)
    assert satisfies(three, CourseCountAtLeast(3)) is True
    assert satisfies(two, CourseCountAtLeast(3)) is False


def test_unsatisfiable_is_never_satisfied() -> None:
    huge = LearnerSnapshot(
        learner_id="u1",
        completed_course_count=10_000,
        quiz_pass_count=10_000,
        quiz_perfect_count=10_000,
        total_points=10_000_000,
        level=100,
    )
    assert satisfies(huge, Unsatisfiable(reason="unknown type")) is False


def test_unknown_object_is_not_satisfied() -> None:
    assert satisfies(_SNAPSHOT, {"type": "course_count", "value": 0}) is False  # type: ignore[arg-type]
    assert satisfies(_SNAPSHOT, None) is False  # type: ignore[arg-type]


def test_evaluation_is_deterministic() -> None:
    a = LearnerSnapshot(learner_id="u1", completed_course_count=1, total_points=99)
    b = LearnerSnapshot(learner_id="u1", completed_course_count=1, total_points=99)
    assert a == b
    for criterion in (CourseCountAtLeast(1), PointsAtLeast(100)):
        assert satisfies(a, criterion) == satisfies(b, criterion)
