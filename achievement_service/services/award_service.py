"""Achievement awarding.

evaluate() is the routine path: snapshot -> unheld catalog -> criteria ->
conditional insert.  grant() is the administrative path that skips the
criteria.  Both write through CatalogRepo.insert_award_if_absent and
nothing else, so the uniqueness of (learner_id, achievement_id) in the
store is the only thing standing between concurrent requests and a
duplicate award.  No lock is taken here and no "is it held?" read
precedes a write.

The two paths treat a lost insert differently.  During evaluation it
means a concurrent evaluation got there first; the achievement is left
out of newly_awarded and nobody is told.  During a grant it means the
caller asked for something the learner already has, which is a
ConflictError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from achievement_service.core.errors import (
    ConflictError,
    DataUnavailableError,
    ForbiddenError,
    NotFoundError,
)
from achievement_service.core.metrics import (
    AWARD_CONFLICTS,
    AWARDS_GRANTED,
    CRITERION_DECODE_FAILURES,
    EVALUATIONS,
)
from achievement_service.models.achievement import AchievementDefinition, AwardRecord
from achievement_service.models.criterion import Unsatisfiable
from achievement_service.models.principal import Principal
from achievement_service.models.snapshot import LearnerSnapshot
from achievement_service.repos.activity_repo import ActivityRepo
from achievement_service.repos.catalog_repo import CatalogRepo
from achievement_service.services.evaluator import satisfies
from achievement_service.services.snapshot_service import build_snapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EvaluationResult:
    snapshot: LearnerSnapshot
    newly_awarded: list[AchievementDefinition]
    evaluated_count: int


def resolve_target(principal: Principal, learner_id: str | None) -> str:
    """Return the learner a request acts on, or raise ForbiddenError.

    Omitted means the caller.  Anyone may target themselves; another
    learner needs an elevated role.
    """
    target = learner_id or principal.user_id
    if not principal.can_act_for(target):
        logger.warning(
            "Access denied: user=%s roles=%s cannot act for another learner",
            principal.user_id,
            sorted(principal.roles),
            extra={"learner_id": target},
        )
        raise ForbiddenError("elevated role required to act for another learner")
    return target


async def evaluate(
    principal: Principal,
    learner_id: str | None,
    *,
    activity_repo: ActivityRepo,
    catalog_repo: CatalogRepo,
) -> EvaluationResult:
    try:
        target = resolve_target(principal, learner_id)
    except ForbiddenError:
        EVALUATIONS.labels(outcome="forbidden").inc()
        raise

    try:
        snapshot = await build_snapshot(activity_repo, target)
        candidates = await catalog_repo.list_unheld(target)
    except DataUnavailableError:
        EVALUATIONS.labels(outcome="unavailable").inc()
        raise

    newly_awarded: list[AchievementDefinition] = []
    for achievement in candidates:
        if isinstance(achievement.criterion, Unsatisfiable):
            CRITERION_DECODE_FAILURES.inc()
            logger.warning(
                "Skipping achievement %r with unusable criterion: %s",
                achievement.name,
                achievement.criterion.reason,
                extra={"achievement_id": str(achievement.id)},
            )
            continue
        if not satisfies(snapshot, achievement.criterion):
            continue

        try:
            record = await catalog_repo.insert_award_if_absent(target, achievement.id)
        except DataUnavailableError:
            EVALUATIONS.labels(outcome="unavailable").inc()
            raise
        if record is None:
            # A concurrent evaluation already wrote this one.
            AWARD_CONFLICTS.labels(source="evaluation").inc()
            continue

        AWARDS_GRANTED.labels(source="evaluation").inc()
        newly_awarded.append(achievement)
        logger.info(
            "Awarded %r",
            achievement.name,
            extra={"learner_id": target, "achievement_id": str(achievement.id)},
        )

    EVALUATIONS.labels(outcome="ok").inc()
    logger.info(
        "Evaluated %d candidate(s), %d newly awarded",
        len(candidates),
        len(newly_awarded),
        extra={"learner_id": target},
    )
    return EvaluationResult(
        snapshot=snapshot,
        newly_awarded=newly_awarded,
        evaluated_count=len(candidates),
    )


async def grant(
    principal: Principal,
    achievement_id: UUID,
    learner_id: str | None,
    *,
    catalog_repo: CatalogRepo,
) -> tuple[AchievementDefinition, AwardRecord]:
    target = resolve_target(principal, learner_id)

    achievement = await catalog_repo.get(achievement_id)
    if achievement is None:
        logger.warning("Grant of unknown achievement=%s", achievement_id)
        raise NotFoundError("achievement not found")

    record = await catalog_repo.insert_award_if_absent(
        target,
        achievement.id,
        source="grant",
        granted_by=principal.user_id,
    )
    if record is None:
        AWARD_CONFLICTS.labels(source="grant").inc()
        logger.warning(
            "Grant rejected, %r already held",
            achievement.name,
            extra={"learner_id": target, "achievement_id": str(achievement.id)},
        )
        raise ConflictError("achievement already held")

    AWARDS_GRANTED.labels(source="grant").inc()
    logger.info(
        "Granted %r by user=%s",
        achievement.name,
        principal.user_id,
        extra={"learner_id": target, "achievement_id": str(achievement.id)},
    )
    return achievement, record


async def list_awards(
    principal: Principal,
    learner_id: str | None,
    *,
    catalog_repo: CatalogRepo,
) -> tuple[str, list[AwardRecord]]:
    target = resolve_target(principal, learner_id)
    return target, await catalog_repo.list_awards(target)
