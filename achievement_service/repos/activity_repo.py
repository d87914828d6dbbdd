from __future__ import annotations

import threading
import time
from dataclasses import dataclass, replace
from typing import Protocol
from uuid import UUID, uuid4

from achievement_service.models.points import LearnerPoints, LevelPolicy

PERFECT_SCORE = 100


class ActivityRepo(Protocol):
    """Read side of the learning-activity store, plus the points ledger."""

    async def count_completed_courses(self, learner_id: str) -> int: ...
    async def count_passed_quizzes(self, learner_id: str) -> int: ...
    async def count_perfect_quizzes(self, learner_id: str) -> int: ...
    async def get_points(self, learner_id: str) -> LearnerPoints | None: ...
    async def add_points(
        self, learner_id: str, points: int, policy: LevelPolicy
    ) -> LearnerPoints: ...
    async def top_points(self, limit: int) -> list[LearnerPoints]: ...
    async def rank_of(self, learner_id: str) -> int | None: ...


@dataclass(frozen=True, slots=True)
class Enrollment:
    id: UUID
    learner_id: str
    course_id: str
    status: str = "in_progress"  # in_progress|completed|dropped


@dataclass(frozen=True, slots=True)
class QuizAttempt:
    id: UUID
    learner_id: str
    enrollment_id: UUID | None
    score: int
    passed: bool


class InMemoryActivityRepo:
    """Activity store for tests and local runs without DATABASE_URL.

    The record_* helpers stand in for the course platform writing
    enrollments and quiz attempts.
    """

    def __init__(self) -> None:
        self._enrollments: dict[UUID, Enrollment] = {}
        self._attempts: list[QuizAttempt] = []
        self._points: dict[str, LearnerPoints] = {}
        self._lock = threading.Lock()

    def clear(self) -> None:
        with self._lock:
            self._enrollments.clear()
            self._attempts.clear()
            self._points.clear()

    # --- recorders ---

    def record_enrollment(
        self, learner_id: str, course_id: str, status: str = "in_progress"
    ) -> Enrollment:
        enrollment = Enrollment(
            id=uuid4(), learner_id=learner_id, course_id=course_id, status=status
        )
        self._enrollments[enrollment.id] = enrollment
        return enrollment

    def complete_enrollment(self, enrollment_id: UUID) -> Enrollment:
        existing = self._enrollments.get(enrollment_id)
        if existing is None:
            raise KeyError("enrollment not found")
        updated = replace(existing, status="completed")
        self._enrollments[enrollment_id] = updated
        return updated

    def record_quiz_attempt(
        self,
        learner_id: str,
        score: int,
        passed: bool,
        enrollment_id: UUID | None = None,
    ) -> QuizAttempt:
        attempt = QuizAttempt(
            id=uuid4(),
            learner_id=learner_id,
            enrollment_id=enrollment_id,
            score=score,
            passed=passed,
        )
        self._attempts.append(attempt)
        return attempt

    def set_points(self, learner_id: str, total_points: int, level: int) -> None:
        self._points[learner_id] = LearnerPoints(
            learner_id=learner_id,
            total_points=total_points,
            level=level,
            updated_at=int(time.time()),
        )

    # --- ActivityRepo ---

    async def count_completed_courses(self, learner_id: str) -> int:
        return sum(
            1
            for e in self._enrollments.values()
            if e.learner_id == learner_id and e.status == "completed"
        )

    async def count_passed_quizzes(self, learner_id: str) -> int:
        return sum(1 for a in self._attempts if a.learner_id == learner_id and a.passed)

    async def count_perfect_quizzes(self, learner_id: str) -> int:
        return sum(
            1
            for a in self._attempts
            if a.learner_id == learner_id and a.score == PERFECT_SCORE
        )

    async def get_points(self, learner_id: str) -> LearnerPoints | None:
        return self._points.get(learner_id)

    async def add_points(
        self, learner_id: str, points: int, policy: LevelPolicy
    ) -> LearnerPoints:
        with self._lock:
            current = self._points.get(learner_id) or LearnerPoints(
                learner_id=learner_id
            )
            total = current.total_points + points
            updated = LearnerPoints(
                learner_id=learner_id,
                total_points=total,
                level=policy.level_for(total),
                updated_at=int(time.time()),
            )
            self._points[learner_id] = updated
            return updated

    async def top_points(self, limit: int) -> list[LearnerPoints]:
        with self._lock:
            ledger = list(self._points.values())
        return sorted(ledger, key=lambda p: (-p.total_points, p.learner_id))[:limit]

    async def rank_of(self, learner_id: str) -> int | None:
        """1 + the number of learners strictly ahead; None without a ledger entry."""
        with self._lock:
            own = self._points.get(learner_id)
            if own is None:
                return None
            return 1 + sum(
                1 for p in self._points.values() if p.total_points > own.total_points
            )
