"""Leaderboard endpoint."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...schemas import LeaderboardUser
from ...services import leaderboard_service

router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])


@router.get(
    "",
    response_model=List[LeaderboardUser],
    summary="Top point holders",
    responses={
        200: {
            "description": "Tourists ordered by current points",
            "content": {
                "application/json": {
                    "example": [
                        {
                            "user_id": "bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb",
                            "display_name": "Bianca Liu",
                            "points": 420
                        }
                    ]
                }
            },
        }
    },
)
def get_leaderboard(
    limit: int = Query(10, ge=1, le=100, description="Number of top users to return"),
    db: Session = Depends(get_db),
) -> List[LeaderboardUser]:
    """Return ranked list of tourists by points balance."""

    return list(leaderboard_service.top_users(db, limit=limit))
