from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from achievement_service.api.dependencies import get_activity_repo, require_user
from achievement_service.api.errors import to_http
from achievement_service.core.errors import AchievementServiceError
from achievement_service.models.points import LearnerPoints, NextLevel
from achievement_service.models.principal import Principal
from achievement_service.repos.activity_repo import ActivityRepo
from achievement_service.services import points_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/points", tags=["points"])


class NextLevelOut(BaseModel):
    level: int
    points_needed: int
    progress: int


class PointsOut(BaseModel):
    learner_id: str
    total_points: int
    level: int
    next_level: NextLevelOut


# points is left untyped so a bad amount surfaces as a 400 naming the field.
class PointsAwardIn(BaseModel):
    points: Any = None
    reason: str | None = None
    learner_id: str | None = None


class LeaderboardEntryOut(BaseModel):
    rank: int
    learner_id: str
    total_points: int
    level: int


class LeaderboardOut(BaseModel):
    entries: list[LeaderboardEntryOut]
    caller_rank: int | None = None


class PointsAwardOut(BaseModel):
    learner_id: str
    points_awarded: int
    reason: str | None = None
    total_points: int
    level: int
    leveled_up: bool


def _next_level_out(n: NextLevel) -> NextLevelOut:
    return NextLevelOut(level=n.level, points_needed=n.points_needed, progress=n.progress)


def _points_out(p: LearnerPoints, n: NextLevel) -> PointsOut:
    return PointsOut(
        learner_id=p.learner_id,
        total_points=p.total_points,
        level=p.level,
        next_level=_next_level_out(n),
    )


@router.get("", response_model=PointsOut)
async def get_points(
    principal: Annotated[Principal, Depends(require_user)],
    activity_repo: Annotated[ActivityRepo, Depends(get_activity_repo)],
    learner_id: Annotated[str | None, Query()] = None,
) -> PointsOut:
    try:
        standing = await points_service.get_points(
            principal, learner_id, activity_repo=activity_repo
        )
    except AchievementServiceError as e:
        raise to_http(e) from None
    return _points_out(standing.points, standing.next_level)


@router.get("/leaderboard", response_model=LeaderboardOut)
async def get_leaderboard(
    principal: Annotated[Principal, Depends(require_user)],
    activity_repo: Annotated[ActivityRepo, Depends(get_activity_repo)],
    limit: Annotated[int, Query()] = points_service.LEADERBOARD_DEFAULT_LIMIT,
) -> LeaderboardOut:
    try:
        board = await points_service.get_leaderboard(
            principal, limit, activity_repo=activity_repo
        )
    except AchievementServiceError as e:
        raise to_http(e) from None
    return LeaderboardOut(
        entries=[
            LeaderboardEntryOut(
                rank=entry.rank,
                learner_id=entry.points.learner_id,
                total_points=entry.points.total_points,
                level=entry.points.level,
            )
            for entry in board.entries
        ],
        caller_rank=board.caller_rank,
    )


@router.post("", response_model=PointsAwardOut)
async def award_points(
    payload: PointsAwardIn,
    principal: Annotated[Principal, Depends(require_user)],
    activity_repo: Annotated[ActivityRepo, Depends(get_activity_repo)],
) -> PointsAwardOut:
    try:
        result = await points_service.award_points(
            principal,
            payload.learner_id,
            payload.points,
            payload.reason,
            activity_repo=activity_repo,
        )
    except AchievementServiceError as e:
        logger.warning("Points award rejected for user=%s: %s", principal.user_id, e)
        raise to_http(e) from None

    return PointsAwardOut(
        learner_id=result.points.learner_id,
        points_awarded=result.points_awarded,
        reason=result.reason,
        total_points=result.points.total_points,
        level=result.points.level,
        leveled_up=result.leveled_up,
    )
