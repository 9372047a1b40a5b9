"""SQLAlchemy models for ReefPoints."""

from .points_ledger import PointsEventType, PointsLedger
from .redemption import ALLOWED_TRANSITIONS, OPEN_STATUSES, Redemption, RedemptionStatus, can_transition
from .reward import Reward
from .user import User, UserRole

__all__ = [
    "ALLOWED_TRANSITIONS",
    "OPEN_STATUSES",
    "PointsEventType",
    "PointsLedger",
    "Redemption",
    "RedemptionStatus",
    "Reward",
    "User",
    "UserRole",
    "can_transition",
]
