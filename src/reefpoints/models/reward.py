"""Reward catalog model."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, String, Uuid
from sqlalchemy.orm import relationship

from ..core.database import Base


class Reward(Base):
    """Redeemable reward; a null stock means unlimited."""

    __tablename__ = "rewards"
    __table_args__ = (
        CheckConstraint("points_cost > 0", name="rewards_points_cost_positive"),
        CheckConstraint(
            "stock_quantity IS NULL OR stock_quantity >= 0",
            name="rewards_stock_non_negative",
        ),
    )

    reward_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    description = Column(String)
    points_cost = Column(Integer, nullable=False)
    stock_quantity = Column(Integer)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    redemptions = relationship("Redemption", back_populates="reward")
