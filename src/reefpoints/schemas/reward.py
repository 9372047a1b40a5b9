"""Pydantic schemas for the reward catalog."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RewardSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    reward_id: UUID
    name: str
    points_cost: int


class RewardRead(RewardSummary):
    """Catalog entry; a null stock means unlimited."""

    description: Optional[str]
    stock_quantity: Optional[int]
    is_active: bool
    updated_at: datetime


class RewardCreate(BaseModel):
    """Request body for adding a reward to the catalog."""

    name: str = Field(..., min_length=1, max_length=120)
    description: Optional[str] = Field(None, max_length=500)
    points_cost: int = Field(..., gt=0)
    stock_quantity: Optional[int] = Field(None, ge=0, description="Omit for unlimited stock.")
    is_active: bool = True


class RewardUpdate(BaseModel):
    """Partial update; only supplied fields change.

    ``description`` and ``stock_quantity`` may be cleared with ``null`` (a
    null stock means unlimited); the other fields cannot.
    """

    name: Optional[str] = Field(None, min_length=1, max_length=120)
    description: Optional[str] = Field(None, max_length=500)
    points_cost: Optional[int] = Field(None, gt=0)
    stock_quantity: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None

    @field_validator("name", "points_cost", "is_active")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not set to null")
        return value
