"""Reward catalog endpoints."""

from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...schemas import RewardCreate, RewardRead, RewardUpdate
from ...services import reward_service
from ...services.concurrency import commit
from ...services.errors import RewardsError
from .errors import to_http_exception

router = APIRouter(prefix="/rewards", tags=["rewards"])


@router.get("", response_model=List[RewardRead], summary="List rewards")
def list_rewards(
    include_inactive: bool = Query(False, description="Include retired rewards (admin views)"),
    db: Session = Depends(get_db),
) -> List[RewardRead]:
    """Return the catalog ordered by cost."""

    try:
        return list(reward_service.list_rewards(db, include_inactive=include_inactive))
    except RewardsError as exc:
        raise to_http_exception(exc) from exc


@router.post(
    "",
    response_model=RewardRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a reward",
)
def create_reward(payload: RewardCreate, db: Session = Depends(get_db)) -> RewardRead:
    """Add a reward to the catalog.

    Example request body::

        {
            "name": "Reef-safe sunscreen",
            "points_cost": 100,
            "stock_quantity": 25
        }
    """

    try:
        reward = reward_service.create_reward(db, **payload.model_dump())
        commit(db)
    except RewardsError as exc:
        db.rollback()
        raise to_http_exception(exc) from exc
    db.refresh(reward)
    return reward


@router.patch(
    "/{reward_id}",
    response_model=RewardRead,
    summary="Update a reward",
    responses={404: {"description": "Reward not found"}},
)
def update_reward(
    reward_id: UUID,
    payload: RewardUpdate,
    db: Session = Depends(get_db),
) -> RewardRead:
    """Edit a reward; vouchers already issued keep the price they were bought at."""

    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update.")
    try:
        reward = reward_service.update_reward(db, reward_id, **changes)
        commit(db)
    except RewardsError as exc:
        db.rollback()
        raise to_http_exception(exc) from exc
    db.refresh(reward)
    return reward
