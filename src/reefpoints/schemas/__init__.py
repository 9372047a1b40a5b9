"""Public schema exports."""

from .redemption import RedemptionCreate, RedemptionRead, RedemptionReceipt, StatusTransition
from .reward import RewardCreate, RewardRead, RewardSummary, RewardUpdate
from .user import LeaderboardUser, LedgerEntryRead, PointsAward, UserRead, UserSummary

__all__ = [
	"LeaderboardUser",
	"LedgerEntryRead",
	"PointsAward",
	"RedemptionCreate",
	"RedemptionRead",
	"RedemptionReceipt",
	"RewardCreate",
	"RewardRead",
	"RewardSummary",
	"RewardUpdate",
	"StatusTransition",
	"UserRead",
	"UserSummary",
]
