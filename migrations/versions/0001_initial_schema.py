"""initial schema: health logs and education tables

Revision ID: 0001
Revises:
Create Date: 2026-10-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )


def _daily_table(name: str, unique_name: str, *columns: sa.Column) -> None:
    """A one-row-per-(user, date) health table."""
    op.create_table(
        name,
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        *columns,
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "date", name=unique_name),
    )
    op.create_index(f"ix_{name}_id", name, ["id"])
    op.create_index(f"ix_{name}_user_id", name, ["user_id"])
    op.create_index(f"ix_{name}_date", name, ["date"])


def upgrade() -> None:
    # --- health logs ---
    _daily_table(
        "water_intake", "uq_water_intake_user_date",
        sa.Column("amount_ml", sa.Integer(), nullable=False),
    )
    _daily_table(
        "exercise_tracker", "uq_exercise_user_date",
        sa.Column("activity_type", sa.String(100), nullable=False),
        sa.Column("footsteps", sa.Integer(), nullable=False, server_default="0"),
    )
    _daily_table(
        "constipation_tracker", "uq_constipation_user_date",
        sa.Column("status", sa.Boolean(), nullable=False),
    )
    _daily_table(
        "shambhavi_kriya", "uq_kriya_user_date",
        sa.Column("notes", sa.Text(), nullable=True),
    )
    _daily_table(
        "typing_practice", "uq_typing_user_date",
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
    )

    op.create_table(
        "period_tracker",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("pain_start_date", sa.Date(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_period_tracker_id", "period_tracker", ["id"])
    op.create_index("ix_period_tracker_user_id", "period_tracker", ["user_id"])
    op.create_index("ix_period_tracker_pain_start_date", "period_tracker", ["pain_start_date"])

    # --- education catalogue ---
    op.create_table(
        "subjects",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(20), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
    )
    op.create_index("ix_subjects_id", "subjects", ["id"])

    op.create_table(
        "units",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("subject_id", sa.Integer(), nullable=False),
        sa.Column("unit_number", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(300), nullable=False),
        sa.ForeignKeyConstraint(["subject_id"], ["subjects.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_units_id", "units", ["id"])
    op.create_index("ix_units_subject_id", "units", ["subject_id"])

    # --- per-user education ---
    op.create_table(
        "tasks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("unit_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["unit_id"], ["units.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tasks_id", "tasks", ["id"])
    op.create_index("ix_tasks_user_id", "tasks", ["user_id"])
    op.create_index("ix_tasks_unit_id", "tasks", ["unit_id"])

    op.create_table(
        "nptel_tasks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("subject_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["subject_id"], ["subjects.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_nptel_tasks_id", "nptel_tasks", ["id"])
    op.create_index("ix_nptel_tasks_user_id", "nptel_tasks", ["user_id"])
    op.create_index("ix_nptel_tasks_subject_id", "nptel_tasks", ["subject_id"])

    op.create_table(
        "research_projects",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("subject_id", sa.Integer(), nullable=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default="planning"),
        sa.ForeignKeyConstraint(["subject_id"], ["subjects.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_research_projects_id", "research_projects", ["id"])
    op.create_index("ix_research_projects_user_id", "research_projects", ["user_id"])
    op.create_index("ix_research_projects_subject_id", "research_projects", ["subject_id"])

    _daily_table(
        "study_logs", "uq_study_log_user_date",
        sa.Column("hours", sa.Numeric(4, 2), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("study_logs")
    op.drop_table("research_projects")
    op.drop_table("nptel_tasks")
    op.drop_table("tasks")
    op.drop_table("units")
    op.drop_table("subjects")
    op.drop_table("period_tracker")
    op.drop_table("typing_practice")
    op.drop_table("shambhavi_kriya")
    op.drop_table("constipation_tracker")
    op.drop_table("exercise_tracker")
    op.drop_table("water_intake")
