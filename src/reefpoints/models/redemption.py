"""Redemption domain model."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, Enum as SAEnum, ForeignKey, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from ..core.database import Base


class RedemptionStatus(str, enum.Enum):
    """Voucher lifecycle states."""

    PENDING = "pending"
    CLAIMED = "claimed"
    USED = "used"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


ALLOWED_TRANSITIONS: dict[RedemptionStatus, frozenset[RedemptionStatus]] = {
    RedemptionStatus.PENDING: frozenset(
        {RedemptionStatus.CLAIMED, RedemptionStatus.EXPIRED, RedemptionStatus.CANCELLED}
    ),
    RedemptionStatus.CLAIMED: frozenset(
        {RedemptionStatus.USED, RedemptionStatus.EXPIRED, RedemptionStatus.CANCELLED}
    ),
    RedemptionStatus.USED: frozenset(),
    RedemptionStatus.EXPIRED: frozenset(),
    RedemptionStatus.CANCELLED: frozenset(),
}

OPEN_STATUSES = (RedemptionStatus.PENDING, RedemptionStatus.CLAIMED)


def can_transition(current: RedemptionStatus, target: RedemptionStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


class Redemption(Base):
    """One user exchanging points for one reward, identified by its voucher code."""

    __tablename__ = "redemptions"
    __table_args__ = (
        UniqueConstraint("voucher_code", name="redemptions_voucher_code_unique"),
        CheckConstraint("points_spent > 0", name="redemptions_points_spent_positive"),
    )

    redemption_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.user_id", ondelete="RESTRICT"), nullable=False, index=True)
    reward_id = Column(Uuid, ForeignKey("rewards.reward_id", ondelete="RESTRICT"), nullable=False)
    points_spent = Column(Integer, nullable=False)
    voucher_code = Column(String, nullable=False)
    status = Column(
        SAEnum(
            RedemptionStatus,
            name="redemption_status",
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        nullable=False,
        default=RedemptionStatus.PENDING,
    )
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    claimed_by = Column(Uuid, ForeignKey("users.user_id", ondelete="SET NULL"))
    claimed_at = Column(DateTime)
    used_at = Column(DateTime)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", foreign_keys=[user_id], back_populates="redemptions")
    claimer = relationship("User", foreign_keys=[claimed_by])
    reward = relationship("Reward", back_populates="redemptions")
    ledger_entries = relationship("PointsLedger", back_populates="redemption")
