from __future__ import annotations

import json
import logging
from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from achievement_service.api.dependencies import (
    get_activity_repo,
    get_catalog_repo,
    require_user,
)
from achievement_service.api.errors import to_http
from achievement_service.core.config import SETTINGS
from achievement_service.core.errors import AchievementServiceError
from achievement_service.models.achievement import AchievementDefinition, AwardRecord
from achievement_service.models.criterion import encode_criterion
from achievement_service.models.principal import Principal
from achievement_service.repos.activity_repo import ActivityRepo
from achievement_service.repos.catalog_repo import CatalogRepo
from achievement_service.services import award_service, catalog_service
from achievement_service.services.cache import (
    cache_service,
    cached_get,
    catalog_key,
    invalidate_catalog,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/achievements", tags=["achievements"])


# --- Schemas ---


class AchievementOut(BaseModel):
    id: UUID
    name: str
    description: str | None = None
    icon_ref: str | None = None
    criterion: dict[str, Any]
    created_at: int
    held: bool | None = None
    earned_at: int | None = None


class SnapshotOut(BaseModel):
    learner_id: str
    completed_course_count: int
    quiz_pass_count: int
    quiz_perfect_count: int
    total_points: int
    level: int


class EvaluateIn(BaseModel):
    learner_id: str | None = None


class EvaluateOut(BaseModel):
    snapshot: SnapshotOut
    newly_awarded: list[AchievementOut]
    evaluated_count: int


# name and criterion stay loosely typed so a missing or malformed value
# reaches the service and comes back as a 400 naming the field.
class AchievementCreateIn(BaseModel):
    name: str | None = None
    description: str | None = None
    icon_ref: str | None = None
    criterion: Any = None


class GrantIn(BaseModel):
    achievement_id: UUID
    learner_id: str | None = None


class AwardOut(BaseModel):
    learner_id: str
    achievement_id: UUID
    earned_at: int
    source: str
    granted_by: str | None = None


class GrantOut(BaseModel):
    achievement: AchievementOut
    award: AwardOut


class AwardsOut(BaseModel):
    learner_id: str
    awards: list[AwardOut]


def _achievement_out(
    a: AchievementDefinition,
    *,
    held: bool | None = None,
    earned_at: int | None = None,
) -> AchievementOut:
    return AchievementOut(
        id=a.id,
        name=a.name,
        description=a.description,
        icon_ref=a.icon_ref,
        criterion=encode_criterion(a.criterion),
        created_at=a.created_at,
        held=held,
        earned_at=earned_at,
    )


def _award_out(r: AwardRecord) -> AwardOut:
    return AwardOut(
        learner_id=r.learner_id,
        achievement_id=r.achievement_id,
        earned_at=r.earned_at,
        source=r.source,
        granted_by=r.granted_by,
    )


async def _commit_then_invalidate(
    catalog_repo: CatalogRepo, learner_id: str | None = None
) -> None:
    # A listing rebuilt after the invalidation must see the committed award,
    # so the commit cannot wait for the session dependency to exit.
    try:
        await catalog_repo.commit()
    except AchievementServiceError as e:
        raise to_http(e) from None
    await invalidate_catalog(cache_service, learner_id)


# --- Endpoints ---


@router.post("/evaluate", response_model=EvaluateOut)
async def evaluate(
    payload: EvaluateIn,
    principal: Annotated[Principal, Depends(require_user)],
    activity_repo: Annotated[ActivityRepo, Depends(get_activity_repo)],
    catalog_repo: Annotated[CatalogRepo, Depends(get_catalog_repo)],
) -> EvaluateOut:
    try:
        result = await award_service.evaluate(
            principal,
            payload.learner_id,
            activity_repo=activity_repo,
            catalog_repo=catalog_repo,
        )
    except AchievementServiceError as e:
        logger.warning("Evaluation rejected for user=%s: %s", principal.user_id, e)
        raise to_http(e) from None

    if result.newly_awarded:
        await _commit_then_invalidate(catalog_repo, result.snapshot.learner_id)

    return EvaluateOut(
        snapshot=SnapshotOut(**result.snapshot.to_dict()),
        newly_awarded=[_achievement_out(a) for a in result.newly_awarded],
        evaluated_count=result.evaluated_count,
    )


@router.get("", response_model=list[AchievementOut])
async def list_achievements(
    principal: Annotated[Principal, Depends(require_user)],
    catalog_repo: Annotated[CatalogRepo, Depends(get_catalog_repo)],
    learner_id: Annotated[str | None, Query()] = None,
    include_status: Annotated[bool, Query()] = False,
) -> list[AchievementOut] | list[dict]:
    target: str | None = None
    if include_status:
        try:
            target = award_service.resolve_target(principal, learner_id)
        except AchievementServiceError as e:
            raise to_http(e) from None

    key = catalog_key(target, include_status)
    cached = await cached_get(cache_service, key)
    if cached is not None:
        return json.loads(cached)

    try:
        if include_status:
            statuses = await catalog_service.list_catalog_status(
                principal, target, catalog_repo=catalog_repo
            )
            out = [
                _achievement_out(s.achievement, held=s.held, earned_at=s.earned_at)
                for s in statuses
            ]
        else:
            out = [
                _achievement_out(a)
                for a in await catalog_service.list_catalog(catalog_repo)
            ]
    except AchievementServiceError as e:
        raise to_http(e) from None

    await cache_service.set(
        key,
        json.dumps([o.model_dump(mode="json") for o in out]),
        SETTINGS.catalog_cache_ttl,
    )
    return out


@router.post("", response_model=AchievementOut, status_code=status.HTTP_201_CREATED)
async def create_achievement(
    payload: AchievementCreateIn,
    principal: Annotated[Principal, Depends(require_user)],
    catalog_repo: Annotated[CatalogRepo, Depends(get_catalog_repo)],
) -> AchievementOut:
    try:
        achievement = await catalog_service.create_achievement(
            principal,
            name=payload.name,
            criterion=payload.criterion,
            description=payload.description,
            icon_ref=payload.icon_ref,
            catalog_repo=catalog_repo,
        )
    except AchievementServiceError as e:
        logger.warning("Achievement create rejected for user=%s: %s", principal.user_id, e)
        raise to_http(e) from None

    await _commit_then_invalidate(catalog_repo)
    return _achievement_out(achievement)


@router.post("/grants", response_model=GrantOut, status_code=status.HTTP_201_CREATED)
async def grant_achievement(
    payload: GrantIn,
    principal: Annotated[Principal, Depends(require_user)],
    catalog_repo: Annotated[CatalogRepo, Depends(get_catalog_repo)],
) -> GrantOut:
    try:
        achievement, record = await award_service.grant(
            principal,
            payload.achievement_id,
            payload.learner_id,
            catalog_repo=catalog_repo,
        )
    except AchievementServiceError as e:
        raise to_http(e) from None

    await _commit_then_invalidate(catalog_repo, record.learner_id)
    return GrantOut(achievement=_achievement_out(achievement), award=_award_out(record))


@router.get("/awards", response_model=AwardsOut)
async def list_awards(
    principal: Annotated[Principal, Depends(require_user)],
    catalog_repo: Annotated[CatalogRepo, Depends(get_catalog_repo)],
    learner_id: Annotated[str | None, Query()] = None,
) -> AwardsOut:
    try:
        target, records = await award_service.list_awards(
            principal, learner_id, catalog_repo=catalog_repo
        )
    except AchievementServiceError as e:
        raise to_http(e) from None
    return AwardsOut(learner_id=target, awards=[_award_out(r) for r in records])
