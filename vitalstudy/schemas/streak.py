from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class StreakUpdateRequest(BaseModel):
    day: Optional[date] = Field(
        default=None,
        description="ISO date (YYYY-MM-DD). Defaults to today UTC.",
    )
    completed: bool = True


class StreakResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    activity_type: str
    current_streak: int
    longest_streak: int
    last_activity_date: Optional[date]
