"""Points ledger model capturing balance movements."""

import enum
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, Enum, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import relationship

from ..core.database import Base


class PointsEventType(str, enum.Enum):
    """Ledger event classification."""

    REDEMPTION = "redemption"
    ECO_ACTION_VERIFIED = "eco_action_verified"
    EVENT_ATTENDED = "event_attended"
    ADJUSTMENT = "adjustment"


class PointsLedger(Base):
    """Append-only ledger of point deltas for each user."""

    __tablename__ = "points_ledger"
    __table_args__ = (
        CheckConstraint(
            "((event_type = 'redemption' AND points_delta < 0) "
            "OR (event_type IN ('eco_action_verified', 'event_attended', 'adjustment') AND points_delta > 0))",
            name="points_ledger_delta_sign",
        ),
    )

    entry_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Uuid, ForeignKey("users.user_id", ondelete="RESTRICT"), nullable=False, index=True)
    related_redemption = Column(Uuid, ForeignKey("redemptions.redemption_id", ondelete="SET NULL"))
    event_type = Column(
        Enum(PointsEventType, name="points_event_type", values_callable=lambda types: [t.value for t in types]),
        nullable=False,
    )
    points_delta = Column(Integer, nullable=False)
    recorded_by = Column(Uuid, ForeignKey("users.user_id", ondelete="SET NULL"))
    note = Column(String)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", foreign_keys=[user_id], back_populates="ledger_entries")
    redemption = relationship("Redemption", back_populates="ledger_entries")
