"""Pydantic schemas for users, balances and the points ledger."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..models import PointsEventType, UserRole


class UserSummary(BaseModel):
    """Lightweight projection of user details."""

    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    display_name: str
    role: UserRole


class UserRead(UserSummary):
    """User profile with current balance, used to refresh the client after a redemption."""

    email: str
    points: int = Field(..., ge=0)
    updated_at: datetime


class PointsAward(BaseModel):
    """Request body for crediting points."""

    reason: PointsEventType
    points: Optional[int] = Field(None, gt=0, description="Overrides the default amount for the reason.")
    recorded_by: Optional[UUID] = None
    note: Optional[str] = Field(None, max_length=280)


class LedgerEntryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    entry_id: int
    event_type: PointsEventType
    points_delta: int
    related_redemption: Optional[UUID]
    recorded_by: Optional[UUID]
    note: Optional[str]
    created_at: datetime


class LeaderboardUser(BaseModel):
    """Leaderboard entry."""

    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    display_name: str
    points: int = Field(..., ge=0)
