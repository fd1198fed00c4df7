"""
Goal request/response schemas.

POST  /analytics/goals        GoalCreate  -> GoalResponse
PATCH /analytics/goals/{id}   GoalUpdate  -> GoalResponse
"""
from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from vitalstudy.services.metric_registry import SUPPORTED_GOAL_METRICS


class GoalCreate(BaseModel):
    type: Literal["health", "education"]
    metric: str = Field(
        description="One of: " + ", ".join(SUPPORTED_GOAL_METRICS),
        examples=["water_intake"],
    )
    target: Decimal = Field(gt=0, max_digits=10, decimal_places=2, examples=[2000])
    description: Optional[str] = Field(default=None, max_length=500)


class GoalUpdate(BaseModel):
    """Every field is optional; omitted fields are left unchanged."""
    target: Optional[Decimal] = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    description: Optional[str] = Field(default=None, max_length=500)
    status: Optional[Literal["active", "completed", "paused"]] = None

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v is not None else v


class GoalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: str
    metric: str
    target: float
    description: Optional[str]
    status: str
    created_at: datetime
    updated_at: datetime
