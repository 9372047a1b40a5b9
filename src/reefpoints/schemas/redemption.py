"""Pydantic schemas for redemption workflows."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from ..models import RedemptionStatus
from .reward import RewardSummary


class RedemptionCreate(BaseModel):
    """Incoming payload for redeeming a reward."""

    user_id: UUID
    reward_id: UUID


class RedemptionRead(BaseModel):
    """Represents a redemption; ``status`` is the effective, expiry-aware status."""

    redemption_id: UUID
    user_id: UUID
    reward: RewardSummary
    points_spent: int
    voucher_code: str
    status: RedemptionStatus
    is_expired: bool
    created_at: datetime
    expires_at: datetime
    claimed_by: Optional[UUID]
    claimed_at: Optional[datetime]
    used_at: Optional[datetime]


class RedemptionReceipt(BaseModel):
    """Response returned after processing a redemption."""

    redemption: RedemptionRead
    available_balance: int = Field(..., description="User's points after this redemption.")


class StatusTransition(BaseModel):
    """Request body for moving a voucher through its lifecycle."""

    status: str = Field(..., description="Target status: claimed, used, cancelled or expired.")
    actor_id: UUID
