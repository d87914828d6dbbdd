"""SQLAlchemy table definitions.

These map to the frozen dataclass domain models in achievement_service/models/.
Repos convert between rows and dataclasses.

enrollments, quiz_attempts and learner_points belong to the course
platform; this service only reads the first two and maintains the points
ledger.  achievements and achievement_awards are owned here.
"""

from __future__ import annotations

import uuid

from sqlalchemy import (
    BigInteger,
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from achievement_service.db.engine import Base

_EPOCH_NOW = text("extract(epoch from clock_timestamp())::bigint")

# --- Activity (read-only here) ---


class EnrollmentRow(Base):
    __tablename__ = "enrollments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    learner_id: Mapped[str] = mapped_column(String(320), nullable=False)
    course_id: Mapped[str] = mapped_column(String(320), nullable=False)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default="in_progress"
    )  # in_progress|completed|dropped
    enrolled_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    completed_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    __table_args__ = (
        UniqueConstraint("learner_id", "course_id"),
        Index("ix_enrollments_learner_status", "learner_id", "status"),
    )


class QuizAttemptRow(Base):
    __tablename__ = "quiz_attempts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    learner_id: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    enrollment_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("enrollments.id"), nullable=True
    )
    score: Mapped[int] = mapped_column(Integer, nullable=False)  # percent, 0-100
    passed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    submitted_at: Mapped[int] = mapped_column(BigInteger, nullable=False)


class LearnerPointsRow(Base):
    __tablename__ = "learner_points"

    learner_id: Mapped[str] = mapped_column(String(320), primary_key=True)
    total_points: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    updated_at: Mapped[int] = mapped_column(BigInteger, nullable=False)


# --- Achievements ---


class AchievementRow(Base):
    __tablename__ = "achievements"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    icon_ref: Mapped[str | None] = mapped_column(String(500), nullable=True)
    # Kept as text: a malformed value must still load so it can decode to
    # the unsatisfiable criterion.
    criteria_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)


class AchievementAwardRow(Base):
    __tablename__ = "achievement_awards"

    learner_id: Mapped[str] = mapped_column(String(320), primary_key=True)
    achievement_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("achievements.id"), primary_key=True
    )
    # Stamped by the database at insert time, not at request time.
    earned_at: Mapped[int] = mapped_column(
        BigInteger, nullable=False, server_default=_EPOCH_NOW
    )
    source: Mapped[str] = mapped_column(
        String(32), nullable=False, default="evaluation"
    )  # evaluation|grant
    granted_by: Mapped[str | None] = mapped_column(String(320), nullable=True)
