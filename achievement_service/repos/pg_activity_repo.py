"""PostgreSQL implementation of ActivityRepo."""

from __future__ import annotations

import time

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from achievement_service.db.engine import store_errors
from achievement_service.db.tables import (
    EnrollmentRow,
    LearnerPointsRow,
    QuizAttemptRow,
)
from achievement_service.models.points import LearnerPoints, LevelPolicy
from achievement_service.repos.activity_repo import PERFECT_SCORE


class PgActivityRepo:
    """Satisfies the ActivityRepo Protocol with COUNT(*) queries."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _count(self, stmt, operation: str) -> int:
        with store_errors(operation):
            return int((await self._session.execute(stmt)).scalar_one())

    async def count_completed_courses(self, learner_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(EnrollmentRow)
            .where(
                EnrollmentRow.learner_id == learner_id,
                EnrollmentRow.status == "completed",
            )
        )
        return await self._count(stmt, "count_completed_courses")

    async def count_passed_quizzes(self, learner_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(QuizAttemptRow)
            .where(
                QuizAttemptRow.learner_id == learner_id,
                QuizAttemptRow.passed.is_(True),
            )
        )
        return await self._count(stmt, "count_passed_quizzes")

    async def count_perfect_quizzes(self, learner_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(QuizAttemptRow)
            .where(
                QuizAttemptRow.learner_id == learner_id,
                QuizAttemptRow.score == PERFECT_SCORE,
            )
        )
        return await self._count(stmt, "count_perfect_quizzes")

    async def get_points(self, learner_id: str) -> LearnerPoints | None:
        stmt = select(LearnerPointsRow).where(LearnerPointsRow.learner_id == learner_id)
        with store_errors("get_points"):
            row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_points(row)

    async def add_points(
        self, learner_id: str, points: int, policy: LevelPolicy
    ) -> LearnerPoints:
        now = int(time.time())
        upsert = pg_insert(LearnerPointsRow).values(
            learner_id=learner_id,
            total_points=points,
            level=policy.level_for(points),
            updated_at=now,
        )
        # The increment happens in SQL so concurrent awards never lose points.
        upsert = upsert.on_conflict_do_update(
            index_elements=[LearnerPointsRow.learner_id],
            set_={
                "total_points": LearnerPointsRow.total_points
                + upsert.excluded.total_points,
                "updated_at": now,
            },
        ).returning(LearnerPointsRow.total_points)

        with store_errors("add_points", field="points"):
            total = int((await self._session.execute(upsert)).scalar_one())
            level = policy.level_for(total)
            # The upsert holds the row lock until commit.
            await self._session.execute(
                update(LearnerPointsRow)
                .where(LearnerPointsRow.learner_id == learner_id)
                .values(level=level)
            )

        return LearnerPoints(
            learner_id=learner_id, total_points=total, level=level, updated_at=now
        )

    async def top_points(self, limit: int) -> list[LearnerPoints]:
        stmt = (
            select(LearnerPointsRow)
            .order_by(LearnerPointsRow.total_points.desc(), LearnerPointsRow.learner_id)
            .limit(limit)
        )
        with store_errors("top_points"):
            rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_points(r) for r in rows]

    async def rank_of(self, learner_id: str) -> int | None:
        own = await self.get_points(learner_id)
        if own is None:
            return None
        stmt = (
            select(func.count())
            .select_from(LearnerPointsRow)
            .where(LearnerPointsRow.total_points > own.total_points)
        )
        return 1 + await self._count(stmt, "rank_of")


def _row_to_points(row: LearnerPointsRow) -> LearnerPoints:
    return LearnerPoints(
        learner_id=row.learner_id,
        total_points=row.total_points,
        level=row.level,
        updated_at=row.updated_at,
    )
