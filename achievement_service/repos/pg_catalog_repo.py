"""PostgreSQL implementation of CatalogRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from achievement_service.db.engine import store_errors
from achievement_service.db.tables import AchievementAwardRow, AchievementRow
from achievement_service.models.achievement import AchievementDefinition, AwardRecord
from achievement_service.models.criterion import (
    Unsatisfiable,
    criterion_to_json,
    decode_criterion,
)


class PgCatalogRepo:
    """Satisfies the CatalogRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_all(self) -> list[AchievementDefinition]:
        stmt = select(AchievementRow).order_by(
            AchievementRow.created_at, AchievementRow.name
        )
        with store_errors("list_all"):
            rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_achievement(r) for r in rows]

    async def list_unheld(self, learner_id: str) -> list[AchievementDefinition]:
        # One anti-join instead of probing each achievement.
        held = select(AchievementAwardRow.achievement_id).where(
            AchievementAwardRow.learner_id == learner_id,
            AchievementAwardRow.achievement_id == AchievementRow.id,
        )
        stmt = (
            select(AchievementRow)
            .where(~held.exists())
            .order_by(AchievementRow.created_at, AchievementRow.name)
        )
        with store_errors("list_unheld"):
            rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_achievement(r) for r in rows]

    async def get(self, achievement_id: UUID) -> AchievementDefinition | None:
        with store_errors("get_achievement"):
            row = await self._session.get(AchievementRow, achievement_id)
        return None if row is None else _row_to_achievement(row)

    async def get_by_name(self, name: str) -> AchievementDefinition | None:
        stmt = select(AchievementRow).where(AchievementRow.name == name)
        with store_errors("get_achievement_by_name"):
            row = (await self._session.execute(stmt)).scalar_one_or_none()
        return None if row is None else _row_to_achievement(row)

    async def add(self, achievement: AchievementDefinition) -> None:
        if isinstance(achievement.criterion, Unsatisfiable):
            raise ValueError("refusing to store an unsatisfiable criterion")
        row = AchievementRow(
            id=achievement.id,
            name=achievement.name,
            description=achievement.description,
            icon_ref=achievement.icon_ref,
            criteria_json=criterion_to_json(achievement.criterion),
            created_at=achievement.created_at,
        )
        with store_errors("add_achievement"):
            try:
                async with self._session.begin_nested():
                    self._session.add(row)
                    await self._session.flush()
            except IntegrityError:
                raise ValueError("achievement name already exists") from None

    async def commit(self) -> None:
        with store_errors("commit"):
            await self._session.commit()

    async def list_awards(self, learner_id: str) -> list[AwardRecord]:
        stmt = (
            select(AchievementAwardRow)
            .where(AchievementAwardRow.learner_id == learner_id)
            .order_by(AchievementAwardRow.earned_at.desc())
        )
        with store_errors("list_awards"):
            rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_award(r) for r in rows]

    async def insert_award_if_absent(
        self,
        learner_id: str,
        achievement_id: UUID,
        *,
        source: str = "evaluation",
        granted_by: str | None = None,
    ) -> AwardRecord | None:
        stmt = (
            pg_insert(AchievementAwardRow)
            .values(
                learner_id=learner_id,
                achievement_id=achievement_id,
                source=source,
                granted_by=granted_by,
            )
            .on_conflict_do_nothing(
                index_elements=[
                    AchievementAwardRow.learner_id,
                    AchievementAwardRow.achievement_id,
                ]
            )
            .returning(AchievementAwardRow.earned_at)
        )
        with store_errors("insert_award"):
            earned_at = (await self._session.execute(stmt)).scalar_one_or_none()
        if earned_at is None:
            return None
        return AwardRecord(
            learner_id=learner_id,
            achievement_id=achievement_id,
            earned_at=earned_at,
            source=source,
            granted_by=granted_by,
        )


def _row_to_achievement(row: AchievementRow) -> AchievementDefinition:
    return AchievementDefinition(
        id=row.id,
        name=row.name,
        criterion=decode_criterion(row.criteria_json),
        description=row.description,
        icon_ref=row.icon_ref,
        created_at=row.created_at,
    )


def _row_to_award(row: AchievementAwardRow) -> AwardRecord:
    return AwardRecord(
        learner_id=row.learner_id,
        achievement_id=row.achievement_id,
        earned_at=row.earned_at,
        source=row.source,
        granted_by=row.granted_by,
    )
