"""Service layer exports."""

from . import (
	leaderboard_service,
	points_service,
	redemption_service,
	reward_service,
)

__all__ = [
	"leaderboard_service",
	"points_service",
	"redemption_service",
	"reward_service",
]
