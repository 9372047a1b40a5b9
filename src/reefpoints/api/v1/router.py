"""Primary API router definition."""

from fastapi import APIRouter

from . import leaderboard, redemptions, rewards, users

api_router = APIRouter()

api_router.include_router(rewards.router)
api_router.include_router(redemptions.router)
api_router.include_router(users.router)
api_router.include_router(leaderboard.router)


@api_router.get("/health", tags=["health"])
async def healthcheck() -> dict[str, str]:
    """Basic health check endpoint."""
    return {"status": "ok"}
