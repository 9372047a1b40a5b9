"""User balance and points endpoints."""

from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...schemas import LedgerEntryRead, PointsAward, UserRead
from ...services import points_service
from ...services.concurrency import commit
from ...services.errors import RewardsError
from .errors import to_http_exception

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/{user_id}", response_model=UserRead, summary="Fetch a user's balance")
def get_user(user_id: UUID, db: Session = Depends(get_db)) -> UserRead:
    """Re-fetch the user after a redemption instead of reloading the page."""

    try:
        return points_service.get_user(db, user_id)
    except RewardsError as exc:
        raise to_http_exception(exc) from exc


@router.get("/{user_id}/ledger", response_model=List[LedgerEntryRead], summary="List balance movements")
def list_ledger(
    user_id: UUID,
    limit: int = Query(50, ge=1, le=100, description="Maximum items to return"),
    offset: int = Query(0, ge=0, description="Items to skip for pagination"),
    db: Session = Depends(get_db),
) -> List[LedgerEntryRead]:
    try:
        return list(points_service.list_ledger(db, user_id=user_id, limit=limit, offset=offset))
    except RewardsError as exc:
        raise to_http_exception(exc) from exc


@router.post(
    "/{user_id}/points",
    response_model=UserRead,
    summary="Award points",
    responses={
        400: {"description": "Missing or invalid point amount"},
        404: {"description": "User or recorder not found"},
    },
)
def award_points(user_id: UUID, payload: PointsAward, db: Session = Depends(get_db)) -> UserRead:
    """Credit a verified eco-action, event attendance or adjustment.

    Example request body::

        {
            "reason": "eco_action_verified",
            "recorded_by": "cccccccc-cccc-cccc-cccc-cccccccccccc",
            "note": "Beach clean-up photo approved"
        }
    """

    try:
        user = points_service.award_points(
            db,
            user_id=user_id,
            reason=payload.reason,
            points=payload.points,
            recorded_by=payload.recorded_by,
            note=payload.note,
        )
        commit(db)
    except RewardsError as exc:
        db.rollback()
        raise to_http_exception(exc) from exc
    db.refresh(user)
    return user
