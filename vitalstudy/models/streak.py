from datetime import datetime, date
from sqlalchemy import Integer, String, DateTime, Date, func, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from vitalstudy.db.base import Base


class UserStreak(Base):
    """
    Running activity streak per (user, activity_type).

    longest_streak is monotonic; the unique constraint is the final guard
    against two concurrent first writes creating duplicate rows.
    """

    __tablename__ = "user_streaks"
    __table_args__ = (
        UniqueConstraint("user_id", "activity_type", name="uq_user_streak_activity"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    activity_type: Mapped[str] = mapped_column(String(32), nullable=False)
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_activity_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
