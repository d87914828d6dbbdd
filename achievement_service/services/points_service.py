"""Points ledger.

Point amounts are chosen by the caller and the level curve comes from
LEVEL_THRESHOLDS; this module only accumulates and reports.  Points
are never retracted, so total_points (and therefore level) only grows.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from achievement_service.core.config import SETTINGS
from achievement_service.core.errors import ValidationFailedError
from achievement_service.models.points import LearnerPoints, LevelPolicy, NextLevel
from achievement_service.models.principal import Principal
from achievement_service.repos.activity_repo import ActivityRepo
from achievement_service.services.award_service import resolve_target

logger = logging.getLogger(__name__)

DEFAULT_POLICY = LevelPolicy(thresholds=SETTINGS.level_thresholds)

# Largest single award; keeps one request inside a 32-bit integer.
MAX_POINTS_PER_AWARD = 2**31 - 1

LEADERBOARD_DEFAULT_LIMIT = 10
LEADERBOARD_MAX_LIMIT = 100


@dataclass(frozen=True, slots=True)
class PointsStanding:
    points: LearnerPoints
    next_level: NextLevel


@dataclass(frozen=True, slots=True)
class PointsAward:
    points_awarded: int
    reason: str | None
    points: LearnerPoints
    leveled_up: bool


@dataclass(frozen=True, slots=True)
class LeaderboardEntry:
    rank: int
    points: LearnerPoints


@dataclass(frozen=True, slots=True)
class Leaderboard:
    entries: list[LeaderboardEntry]
    caller_rank: int | None


async def get_points(
    principal: Principal,
    learner_id: str | None,
    *,
    activity_repo: ActivityRepo,
    policy: LevelPolicy = DEFAULT_POLICY,
) -> PointsStanding:
    target = resolve_target(principal, learner_id)
    points = await activity_repo.get_points(target) or LearnerPoints(learner_id=target)
    return PointsStanding(points=points, next_level=policy.next_level(points.total_points))


async def award_points(
    principal: Principal,
    learner_id: str | None,
    points: object,
    reason: str | None = None,
    *,
    activity_repo: ActivityRepo,
    policy: LevelPolicy = DEFAULT_POLICY,
) -> PointsAward:
    target = resolve_target(principal, learner_id)
    if isinstance(points, bool) or not isinstance(points, int) or points <= 0:
        raise ValidationFailedError("points", "must be a positive integer")
    if points > MAX_POINTS_PER_AWARD:
        raise ValidationFailedError(
            "points", f"must be at most {MAX_POINTS_PER_AWARD} per award"
        )

    updated = await activity_repo.add_points(target, points, policy)
    previous_total = updated.total_points - points
    # A learner's first award starts the ledger; it is never a level-up.
    leveled_up = previous_total > 0 and updated.level > policy.level_for(previous_total)

    logger.info(
        "Awarded %d point(s) total=%d level=%d%s",
        points,
        updated.total_points,
        updated.level,
        " (level up)" if leveled_up else "",
        extra={"learner_id": target},
    )
    return PointsAward(
        points_awarded=points,
        reason=reason,
        points=updated,
        leveled_up=leveled_up,
    )


async def get_leaderboard(
    principal: Principal,
    limit: object = LEADERBOARD_DEFAULT_LIMIT,
    *,
    activity_repo: ActivityRepo,
) -> Leaderboard:
    """Top learners by total points, plus the caller's own rank.

    Ties share a rank and the next rank skips past them (1, 2, 2, 4).
    ``limit`` is capped at LEADERBOARD_MAX_LIMIT.  caller_rank is None
    until the caller has been awarded points.
    """
    if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
        raise ValidationFailedError("limit", "must be a positive integer")

    top = await activity_repo.top_points(min(limit, LEADERBOARD_MAX_LIMIT))
    entries: list[LeaderboardEntry] = []
    for position, points in enumerate(top, start=1):
        if entries and entries[-1].points.total_points == points.total_points:
            rank = entries[-1].rank
        else:
            rank = position
        entries.append(LeaderboardEntry(rank=rank, points=points))

    return Leaderboard(
        entries=entries,
        caller_rank=await activity_repo.rank_of(principal.user_id),
    )
