"""create activity, points and achievement tables

Revision ID: 3b9e1c7d42a0
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b9e1c7d42a0"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "enrollments",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("learner_id", sa.String(length=320), nullable=False),
        sa.Column("course_id", sa.String(length=320), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("enrolled_at", sa.BigInteger(), nullable=False),
        sa.Column("completed_at", sa.BigInteger(), nullable=True),
        sa.UniqueConstraint("learner_id", "course_id"),
    )
    op.create_index(
        "ix_enrollments_learner_status", "enrollments", ["learner_id", "status"]
    )

    op.create_table(
        "quiz_attempts",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("learner_id", sa.String(length=320), nullable=False),
        sa.Column(
            "enrollment_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("enrollments.id"),
            nullable=True,
        ),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("passed", sa.Boolean(), nullable=False),
        sa.Column("submitted_at", sa.BigInteger(), nullable=False),
    )
    op.create_index("ix_quiz_attempts_learner_id", "quiz_attempts", ["learner_id"])

    op.create_table(
        "learner_points",
        sa.Column("learner_id", sa.String(length=320), primary_key=True),
        sa.Column("total_points", sa.BigInteger(), nullable=False),
        sa.Column("level", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.BigInteger(), nullable=False),
    )

    op.create_table(
        "achievements",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("icon_ref", sa.String(length=500), nullable=True),
        sa.Column("criteria_json", sa.Text(), nullable=True),
        sa.Column("created_at", sa.BigInteger(), nullable=False),
    )

    op.create_table(
        "achievement_awards",
        sa.Column("learner_id", sa.String(length=320), nullable=False),
        sa.Column(
            "achievement_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("achievements.id"),
            nullable=False,
        ),
        sa.Column(
            "earned_at",
            sa.BigInteger(),
            nullable=False,
            server_default=sa.text("extract(epoch from clock_timestamp())::bigint"),
        ),
        sa.Column("source", sa.String(length=32), nullable=False),
        sa.Column("granted_by", sa.String(length=320), nullable=True),
        sa.PrimaryKeyConstraint("learner_id", "achievement_id"),
    )


def downgrade() -> None:
    op.drop_table("achievement_awards")
    op.drop_table("achievements")
    op.drop_table("learner_points")
    op.drop_index("ix_quiz_attempts_learner_id", table_name="quiz_attempts")
    op.drop_table("quiz_attempts")
    op.drop_index("ix_enrollments_learner_status", table_name="enrollments")
    op.drop_table("enrollments")
