"""Endpoints for reward redemptions and voucher lifecycle."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ...core.config import Settings, get_settings
from ...core.database import get_db
from ...models import Redemption
from ...schemas import RedemptionCreate, RedemptionRead, RedemptionReceipt, RewardSummary, StatusTransition
from ...services import points_service, redemption_service
from ...services.concurrency import commit, run_with_retry
from ...services.errors import RewardsError
from ...utils.datetime import utcnow
from .errors import to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/redemptions", tags=["redemptions"])


def present_redemption(redemption: Redemption, now: Optional[datetime] = None) -> RedemptionRead:
    """Project a redemption with its expiry-aware status."""

    now = now or utcnow()
    return RedemptionRead(
        redemption_id=redemption.redemption_id,
        user_id=redemption.user_id,
        reward=RewardSummary.model_validate(redemption.reward),
        points_spent=redemption.points_spent,
        voucher_code=redemption.voucher_code,
        status=redemption_service.effective_status(redemption, now),
        is_expired=redemption_service.is_effectively_expired(redemption, now),
        created_at=redemption.created_at,
        expires_at=redemption.expires_at,
        claimed_by=redemption.claimed_by,
        claimed_at=redemption.claimed_at,
        used_at=redemption.used_at,
    )


def _reject(db: Session, exc: RewardsError, context: str) -> HTTPException:
    db.rollback()
    logger.info("%s rejected: %s (%s)", context, exc.code, exc.detail)
    return to_http_exception(exc)


@router.post(
    "",
    response_model=RedemptionReceipt,
    status_code=status.HTTP_201_CREATED,
    summary="Redeem a reward",
    responses={
        201: {
            "description": "Voucher issued",
            "content": {
                "application/json": {
                    "example": {
                        "redemption": {
                            "redemption_id": "88888888-8888-8888-8888-888888888888",
                            "user_id": "bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb",
                            "reward": {
                                "reward_id": "11111111-1111-1111-1111-111111111111",
                                "name": "Glass-bottom boat tour",
                                "points_cost": 100
                            },
                            "points_spent": 100,
                            "voucher_code": "RWD-1762957800000-7QK2M9XZA",
                            "status": "pending",
                            "is_expired": False,
                            "created_at": "2025-11-12T14:30:00",
                            "expires_at": "2025-12-12T14:30:00",
                            "claimed_by": None,
                            "claimed_at": None,
                            "used_at": None
                        },
                        "available_balance": 50
                    }
                }
            },
        },
        400: {"description": "Insufficient points"},
        404: {"description": "User or reward not found, or reward inactive"},
        409: {"description": "Reward out of stock"},
        503: {"description": "Storage unavailable after retries"},
    },
)
def redeem_reward(
    payload: RedemptionCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> RedemptionReceipt:
    """Exchange points for a reward and return the voucher.

    Example request body::

        {
            "user_id": "bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb",
            "reward_id": "11111111-1111-1111-1111-111111111111"
        }
    """

    def _unit_of_work() -> Redemption:
        redemption = redemption_service.redeem(
            db,
            user_id=payload.user_id,
            reward_id=payload.reward_id,
            settings=settings,
        )
        commit(db)
        return redemption

    try:
        redemption = run_with_retry(
            db,
            _unit_of_work,
            attempts=settings.storage_retry_attempts,
            backoff_base=settings.storage_retry_backoff_seconds,
        )
        user = points_service.get_user(db, payload.user_id)
    except RewardsError as exc:
        raise _reject(db, exc, f"redemption for user {payload.user_id}") from exc

    return RedemptionReceipt(redemption=present_redemption(redemption), available_balance=user.points)


@router.get(
    "",
    response_model=List[RedemptionRead],
    summary="List a user's redemptions",
)
def list_redemptions(
    *,
    user_id: UUID = Query(..., description="User whose vouchers to list"),
    limit: int = Query(50, ge=1, le=100, description="Maximum items to return"),
    offset: int = Query(0, ge=0, description="Items to skip for pagination"),
    db: Session = Depends(get_db),
) -> List[RedemptionRead]:
    """Return vouchers newest first, with expiry applied at read time."""

    try:
        redemptions = redemption_service.list_user_redemptions(db, user_id=user_id, limit=limit, offset=offset)
    except RewardsError as exc:
        raise to_http_exception(exc) from exc
    now = utcnow()
    return [present_redemption(redemption, now) for redemption in redemptions]


@router.get("/voucher/{voucher_code}", response_model=RedemptionRead, summary="Look up a voucher code")
def get_voucher(voucher_code: str, db: Session = Depends(get_db)) -> RedemptionRead:
    """Resolve a scanned voucher code for a ranger."""

    try:
        redemption = redemption_service.get_by_voucher_code(db, voucher_code)
    except RewardsError as exc:
        raise to_http_exception(exc) from exc
    return present_redemption(redemption)


@router.get("/{redemption_id}", response_model=RedemptionRead, summary="Fetch a redemption")
def get_redemption(redemption_id: UUID, db: Session = Depends(get_db)) -> RedemptionRead:
    try:
        redemption = redemption_service.get_redemption(db, redemption_id)
    except RewardsError as exc:
        raise to_http_exception(exc) from exc
    return present_redemption(redemption)


@router.post(
    "/{redemption_id}/status",
    response_model=RedemptionRead,
    summary="Change a voucher's status",
    responses={
        403: {"description": "Actor's role cannot perform this change"},
        404: {"description": "Redemption or actor not found"},
        409: {"description": "Transition not allowed"},
    },
)
def change_status(
    redemption_id: UUID,
    payload: StatusTransition,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> RedemptionRead:
    """Claim, use, cancel or expire a voucher.

    Example request body::

        {
            "status": "claimed",
            "actor_id": "cccccccc-cccc-cccc-cccc-cccccccccccc"
        }
    """

    def _unit_of_work() -> Redemption:
        redemption = redemption_service.transition_status(
            db,
            redemption_id=redemption_id,
            new_status=payload.status,
            actor_id=payload.actor_id,
        )
        commit(db)
        return redemption

    try:
        redemption = run_with_retry(
            db,
            _unit_of_work,
            attempts=settings.storage_retry_attempts,
            backoff_base=settings.storage_retry_backoff_seconds,
        )
    except RewardsError as exc:
        raise _reject(db, exc, f"status change on {redemption_id}") from exc
    return present_redemption(redemption)
