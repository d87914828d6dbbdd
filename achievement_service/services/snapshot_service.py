"""Builds a LearnerSnapshot from the activity store.

All four reads must succeed or the build fails as a whole: reporting a
spuriously low count would make the awarder skip an achievement the
learner has earned, and nothing later would notice.
"""

from __future__ import annotations

import logging

from achievement_service.core.errors import DataUnavailableError
from achievement_service.models.snapshot import LearnerSnapshot
from achievement_service.repos.activity_repo import ActivityRepo

logger = logging.getLogger(__name__)


def _checked_count(name: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise DataUnavailableError(f"inconsistent {name} read: {value!r}")
    return value


async def build_snapshot(activity_repo: ActivityRepo, learner_id: str) -> LearnerSnapshot:
    try:
        completed = await activity_repo.count_completed_courses(learner_id)
        passed = await activity_repo.count_passed_quizzes(learner_id)
        perfect = await activity_repo.count_perfect_quizzes(learner_id)
        points = await activity_repo.get_points(learner_id)
    except OSError as e:
        # Connection-level failures that escape the repo's own translation.
        raise DataUnavailableError(f"activity store unreachable: {e}") from e

    total_points = 0 if points is None else points.total_points
    level = 1 if points is None else points.level

    snapshot = LearnerSnapshot(
        learner_id=learner_id,
        completed_course_count=_checked_count("completed_course_count", completed),
        quiz_pass_count=_checked_count("quiz_pass_count", passed),
        quiz_perfect_count=_checked_count("quiz_perfect_count", perfect),
        total_points=_checked_count("total_points", total_points),
        level=_checked_count("level", level),
    )
    if snapshot.level < 1:
        raise DataUnavailableError(f"inconsistent level read: {snapshot.level}")

    logger.debug(
        "Snapshot built courses=%d passed=%d perfect=%d points=%d level=%d",
        snapshot.completed_course_count,
        snapshot.quiz_pass_count,
        snapshot.quiz_perfect_count,
        snapshot.total_points,
        snapshot.level,
        extra={"learner_id": learner_id},
    )
    return snapshot
