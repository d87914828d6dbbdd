from __future__ import annotations

import time
from dataclasses import dataclass
from uuid import UUID, uuid4

from achievement_service.models.criterion import Criterion


@dataclass(frozen=True, slots=True)
class AchievementDefinition:
    """Administrator-authored unlockable.  Presentation fields are opaque."""

    id: UUID
    name: str
    criterion: Criterion
    description: str | None = None
    icon_ref: str | None = None
    created_at: int = 0

    @staticmethod
    def new(
        *,
        name: str,
        criterion: Criterion,
        description: str | None = None,
        icon_ref: str | None = None,
    ) -> AchievementDefinition:
        return AchievementDefinition(
            id=uuid4(),
            name=name,
            criterion=criterion,
            description=description,
            icon_ref=icon_ref,
            created_at=int(time.time()),
        )


@dataclass(frozen=True, slots=True)
class AwardRecord:
    """Durable proof that a learner holds an achievement.

    (learner_id, achievement_id) is unique; earned_at is set by the store
    when the row is inserted.
    """

    learner_id: str
    achievement_id: UUID
    earned_at: int
    source: str = "evaluation"  # evaluation|grant
    granted_by: str | None = None


@dataclass(frozen=True, slots=True)
class AchievementStatus:
    """Catalog entry annotated with one learner's holding state."""

    achievement: AchievementDefinition
    held: bool
    earned_at: int | None = None
