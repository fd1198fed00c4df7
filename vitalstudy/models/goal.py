"""
User goals and their achievement log.

Lifecycle of Goal.status:
  active    -> completed   (goal tracker, once current value >= target)
  active   <-> paused      (user action)
  completed -> active      (manual reset only)

GoalAchievement is append-only: one row per crossing of the target while
the goal was active.
"""
from datetime import datetime
from decimal import Decimal
import enum

from sqlalchemy import Integer, String, Text, DateTime, Numeric, Enum, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column

from vitalstudy.db.base import Base


class GoalType(str, enum.Enum):
    health = "health"
    education = "education"


class GoalStatus(str, enum.Enum):
    active = "active"
    completed = "completed"
    paused = "paused"


class Goal(Base):
    __tablename__ = "user_goals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    type: Mapped[str] = mapped_column(
        Enum(GoalType, name="goal_type_enum"), nullable=False
    )
    metric: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    target: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        Enum(GoalStatus, name="goal_status_enum"),
        nullable=False,
        default=GoalStatus.active,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class GoalAchievement(Base):
    __tablename__ = "goal_achievements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    goal_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_goals.id", ondelete="CASCADE"), nullable=False, index=True
    )
    achieved_value: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    achieved_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
