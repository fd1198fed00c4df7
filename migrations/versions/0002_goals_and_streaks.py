"""add user_goals, goal_achievements and user_streaks

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-02

goal_achievements is append-only; user_streaks holds one row per
(user_id, activity_type).
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0002"
down_revision: Union[str, None] = "0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

goal_type_enum = sa.Enum("health", "education", name="goal_type_enum")
goal_status_enum = sa.Enum("active", "completed", "paused", name="goal_status_enum")


def upgrade() -> None:
    bind = op.get_bind()
    goal_type_enum.create(bind, checkfirst=True)
    goal_status_enum.create(bind, checkfirst=True)

    op.create_table(
        "user_goals",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("type", goal_type_enum, nullable=False),
        sa.Column("metric", sa.String(100), nullable=False),
        sa.Column("target", sa.Numeric(10, 2), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", goal_status_enum, nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_goals_id", "user_goals", ["id"])
    op.create_index("ix_user_goals_user_id", "user_goals", ["user_id"])
    op.create_index("ix_user_goals_metric", "user_goals", ["metric"])
    op.create_index("ix_user_goals_status", "user_goals", ["status"])

    op.create_table(
        "goal_achievements",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("goal_id", sa.Integer(), nullable=False),
        sa.Column("achieved_value", sa.Numeric(10, 2), nullable=False),
        sa.Column("achieved_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["goal_id"], ["user_goals.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_goal_achievements_id", "goal_achievements", ["id"])
    op.create_index("ix_goal_achievements_user_id", "goal_achievements", ["user_id"])
    op.create_index("ix_goal_achievements_goal_id", "goal_achievements", ["goal_id"])

    op.create_table(
        "user_streaks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("activity_type", sa.String(32), nullable=False),
        sa.Column("current_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("longest_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_activity_date", sa.Date(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "activity_type", name="uq_user_streak_activity"),
    )
    op.create_index("ix_user_streaks_id", "user_streaks", ["id"])
    op.create_index("ix_user_streaks_user_id", "user_streaks", ["user_id"])


def downgrade() -> None:
    op.drop_table("user_streaks")
    op.drop_table("goal_achievements")
    op.drop_table("user_goals")
    op.execute("DROP TYPE IF EXISTS goal_status_enum")
    op.execute("DROP TYPE IF EXISTS goal_type_enum")
