"""
Health log tables written by the per-domain logging layer.

The analytics engine only reads these. Every daily table carries
UNIQUE(user_id, date): one row per user per calendar day.
"""
from datetime import datetime, date
from sqlalchemy import Integer, String, Text, Boolean, DateTime, Date, func, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from vitalstudy.db.base import Base


class WaterIntake(Base):
    __tablename__ = "water_intake"
    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_water_intake_user_date"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    amount_ml: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class ExerciseLog(Base):
    __tablename__ = "exercise_tracker"
    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_exercise_user_date"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    activity_type: Mapped[str] = mapped_column(String(100), nullable=False)
    footsteps: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class PeriodLog(Base):
    """Pain-start events; several per month are allowed."""

    __tablename__ = "period_tracker"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    pain_start_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class ConstipationLog(Base):
    __tablename__ = "constipation_tracker"
    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_constipation_user_date"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    # True = a good (non-constipated) day
    status: Mapped[bool] = mapped_column(Boolean, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class KriyaSession(Base):
    __tablename__ = "shambhavi_kriya"
    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_kriya_user_date"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class TypingPractice(Base):
    __tablename__ = "typing_practice"
    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_typing_user_date"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
