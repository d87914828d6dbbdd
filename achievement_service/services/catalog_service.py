"""Achievement catalog administration and listing."""

from __future__ import annotations

import logging

from achievement_service.core.errors import (
    ConflictError,
    ForbiddenError,
    ValidationFailedError,
)
from achievement_service.models.achievement import (
    AchievementDefinition,
    AchievementStatus,
)
from achievement_service.models.criterion import parse_criterion
from achievement_service.models.principal import Principal
from achievement_service.repos.catalog_repo import CatalogRepo
from achievement_service.services.award_service import resolve_target

logger = logging.getLogger(__name__)

# Column widths in db/tables.py.
NAME_MAX_LENGTH = 255
ICON_REF_MAX_LENGTH = 500

# Seed set carried over from the course platform.
DEFAULT_ACHIEVEMENTS: tuple[dict, ...] = (
    {
        "name": "First Steps",
        "description": "Complete your first course",
        "icon_ref": "/badges/first-steps.svg",
        "criterion": {"type": "course_count", "value": 1},
    },
    {
        "name": "Scholar",
        "description": "Complete 5 courses",
        "icon_ref": "/badges/scholar.svg",
        "criterion": {"type": "course_count", "value": 5},
    },
    {
        "name": "Expert",
        "description": "Complete 10 courses",
        "icon_ref": "/badges/expert.svg",
        "criterion": {"type": "course_count", "value": 10},
    },
    {
        "name": "Quiz Master",
        "description": "Pass 10 quizzes with 80% or higher",
        "icon_ref": "/badges/quiz-master.svg",
        "criterion": {"type": "quiz_pass_count", "value": 10},
    },
    {
        "name": "Perfectionist",
        "description": "Get 100% on 5 quizzes",
        "icon_ref": "/badges/perfectionist.svg",
        "criterion": {"type": "quiz_perfect_count", "value": 5},
    },
    {
        "name": "Rising Star",
        "description": "Reach Level 5",
        "icon_ref": "/badges/rising-star.svg",
        "criterion": {"type": "level", "value": 5},
    },
    {
        "name": "Champion",
        "description": "Reach Level 10",
        "icon_ref": "/badges/champion.svg",
        "criterion": {"type": "level", "value": 10},
    },
    {
        "name": "Point Collector",
        "description": "Earn 1000 points",
        "icon_ref": "/badges/point-collector.svg",
        "criterion": {"type": "points", "value": 1000},
    },
)


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


async def create_achievement(
    principal: Principal,
    *,
    name: str | None,
    criterion: object,
    description: str | None = None,
    icon_ref: str | None = None,
    catalog_repo: CatalogRepo,
) -> AchievementDefinition:
    """Validate and store a new definition.  Admin only; fails fast."""
    if not principal.is_admin():
        logger.warning(
            "Access denied: user=%s cannot create achievements", principal.user_id
        )
        raise ForbiddenError("admin role required")

    clean_name = _clean(name)
    if clean_name is None:
        raise ValidationFailedError("name", "is required")
    if len(clean_name) > NAME_MAX_LENGTH:
        raise ValidationFailedError(
            "name", f"must be at most {NAME_MAX_LENGTH} characters"
        )
    clean_icon = _clean(icon_ref)
    if clean_icon is not None and len(clean_icon) > ICON_REF_MAX_LENGTH:
        raise ValidationFailedError(
            "icon_ref", f"must be at most {ICON_REF_MAX_LENGTH} characters"
        )
    parsed = parse_criterion(criterion)

    if await catalog_repo.get_by_name(clean_name) is not None:
        raise ConflictError(f"achievement {clean_name!r} already exists")

    achievement = AchievementDefinition.new(
        name=clean_name,
        criterion=parsed,
        description=_clean(description),
        icon_ref=clean_icon,
    )
    try:
        await catalog_repo.add(achievement)
    except ValidationFailedError:
        raise
    except ValueError:
        # Lost a race with a concurrent create of the same name.
        raise ConflictError(f"achievement {clean_name!r} already exists") from None

    logger.info(
        "Achievement %r created by user=%s",
        achievement.name,
        principal.user_id,
        extra={"achievement_id": str(achievement.id)},
    )
    return achievement


async def list_catalog(catalog_repo: CatalogRepo) -> list[AchievementDefinition]:
    return await catalog_repo.list_all()


async def list_catalog_status(
    principal: Principal,
    learner_id: str | None,
    *,
    catalog_repo: CatalogRepo,
) -> list[AchievementStatus]:
    """Every achievement, annotated with whether the target learner holds it."""
    target = resolve_target(principal, learner_id)
    achievements = await catalog_repo.list_all()
    earned = {r.achievement_id: r for r in await catalog_repo.list_awards(target)}
    return [
        AchievementStatus(
            achievement=a,
            held=a.id in earned,
            earned_at=earned[a.id].earned_at if a.id in earned else None,
        )
        for a in achievements
    ]


async def seed_default_catalog(catalog_repo: CatalogRepo) -> int:
    """Insert any default achievement whose name is missing.  Returns the count."""
    created = 0
    for seed in DEFAULT_ACHIEVEMENTS:
        if await catalog_repo.get_by_name(seed["name"]) is not None:
            continue
        await catalog_repo.add(
            AchievementDefinition.new(
                name=seed["name"],
                criterion=parse_criterion(seed["criterion"]),
                description=seed["description"],
                icon_ref=seed["icon_ref"],
            )
        )
        created += 1
    if created:
        logger.info("Seeded %d default achievement(s)", created)
    return created
