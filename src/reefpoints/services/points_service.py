"""Points balance, earning and ledger queries."""

from __future__ import annotations

import logging
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..models import PointsEventType, PointsLedger, User
from ..utils.datetime import utcnow
from .concurrency import storage_guard
from .errors import InvalidAward, NotFound

logger = logging.getLogger(__name__)

POINT_VALUES = {
    PointsEventType.ECO_ACTION_VERIFIED: 20,
    PointsEventType.EVENT_ATTENDED: 50,
}


def get_user(session: Session, user_id: UUID) -> User:
    with storage_guard():
        user = session.get(User, user_id)
    if user is None:
        raise NotFound(f"User {user_id} not found.")
    return user


def award_points(
    session: Session,
    *,
    user_id: UUID,
    reason: PointsEventType,
    points: Optional[int] = None,
    recorded_by: Optional[UUID] = None,
    note: Optional[str] = None,
) -> User:
    """Credit a user for a verified eco-action, attended event or manual adjustment."""

    if reason is PointsEventType.REDEMPTION:
        raise InvalidAward("Redemptions debit points through the redemption service.")
    amount = points if points is not None else POINT_VALUES.get(reason)
    if amount is None or amount <= 0:
        raise InvalidAward(f"A positive point amount is required for {reason.value}.")

    user = get_user(session, user_id)
    if recorded_by is not None:
        get_user(session, recorded_by)

    now = utcnow()
    with storage_guard():
        session.execute(
            update(User)
            .where(User.user_id == user.user_id)
            .values(points=User.points + amount, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        session.add(
            PointsLedger(
                user_id=user.user_id,
                event_type=reason,
                points_delta=amount,
                recorded_by=recorded_by,
                note=note,
                created_at=now,
            )
        )
        session.flush()
        session.refresh(user)

    logger.info("awarded %d points to %s for %s", amount, user.user_id, reason.value)
    return user


def list_ledger(
    session: Session,
    *,
    user_id: UUID,
    limit: int = 50,
    offset: int = 0,
) -> Sequence[PointsLedger]:
    """Return a user's balance movements, newest first."""

    get_user(session, user_id)
    stmt = (
        select(PointsLedger)
        .where(PointsLedger.user_id == user_id)
        .order_by(PointsLedger.created_at.desc(), PointsLedger.entry_id.desc())
        .offset(offset)
        .limit(limit)
    )
    with storage_guard():
        return session.execute(stmt).scalars().all()
