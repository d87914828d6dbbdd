"""Criterion evaluation: a pure function of (snapshot, criterion)."""

from __future__ import annotations

from achievement_service.models.criterion import (
    CourseCountAtLeast,
    Criterion,
    LevelAtLeast,
    PointsAtLeast,
    QuizPassCountAtLeast,
    QuizPerfectCountAtLeast,
)
from achievement_service.models.snapshot import LearnerSnapshot


def satisfies(snapshot: LearnerSnapshot, criterion: Criterion) -> bool:
    """Inclusive threshold check.  Unsatisfiable and unknown values are False."""
    if isinstance(criterion, CourseCountAtLeast):
        return snapshot.completed_course_count >= criterion.threshold
    if isinstance(criterion, QuizPassCountAtLeast):
        return snapshot.quiz_pass_count >= criterion.threshold
    if isinstance(criterion, QuizPerfectCountAtLeast):
        return snapshot.quiz_perfect_count >= criterion.threshold
    if isinstance(criterion, PointsAtLeast):
        return snapshot.total_points >= criterion.threshold
    if isinstance(criterion, LevelAtLeast):
        return snapshot.level >= criterion.threshold
    return False
