"""Domain logic for reward redemptions and the voucher lifecycle."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session, joinedload

from ..core.config import Settings, get_settings
from ..models import (
    OPEN_STATUSES,
    PointsEventType,
    PointsLedger,
    Redemption,
    RedemptionStatus,
    Reward,
    User,
    UserRole,
    can_transition,
)
from ..utils.datetime import as_naive_utc, utcnow
from ..utils.voucher import generate_voucher_code, normalize_voucher_code
from .concurrency import lock_for_update, storage_guard
from .errors import Forbidden, InsufficientBalance, InvalidTransition, NotFound, OutOfStock, StorageUnavailable

logger = logging.getLogger(__name__)

_VOUCHER_ATTEMPTS = 5
_STAFF_ROLES = {UserRole.RANGER, UserRole.ADMIN}


def _lock_active_reward(session: Session, reward_id: UUID) -> Reward:
    stmt = lock_for_update(select(Reward).where(Reward.reward_id == reward_id)).execution_options(
        populate_existing=True
    )
    reward = session.execute(stmt).scalar_one_or_none()
    if reward is None or not reward.is_active:
        raise NotFound(f"Reward {reward_id} not found or no longer available.")
    return reward


def _lock_user(session: Session, user_id: UUID) -> User:
    stmt = lock_for_update(select(User).where(User.user_id == user_id)).execution_options(
        populate_existing=True
    )
    user = session.execute(stmt).scalar_one_or_none()
    if user is None:
        raise NotFound(f"User {user_id} not found.")
    return user


def _ensure_user(session: Session, user_id: UUID) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise NotFound(f"User {user_id} not found.")
    return user


def _lock_redemption(session: Session, redemption_id: UUID) -> Redemption:
    stmt = lock_for_update(select(Redemption).where(Redemption.redemption_id == redemption_id)).execution_options(
        populate_existing=True
    )
    redemption = session.execute(stmt).scalar_one_or_none()
    if redemption is None:
        raise NotFound(f"Redemption {redemption_id} not found.")
    return redemption


def _take_stock(session: Session, reward_id: UUID, now: datetime) -> bool:
    """Decrement tracked stock only while it is positive; untracked stock is left alone."""

    stmt = (
        update(Reward)
        .where(
            Reward.reward_id == reward_id,
            Reward.is_active.is_(True),
            (Reward.stock_quantity.is_(None)) | (Reward.stock_quantity > 0),
        )
        .values(
            stock_quantity=Reward.stock_quantity - 1,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    # NULL - 1 stays NULL, so unlimited rewards match and remain unlimited.
    return session.execute(stmt).rowcount == 1


def _debit_points(session: Session, user_id: UUID, cost: int, now: datetime) -> bool:
    stmt = (
        update(User)
        .where(User.user_id == user_id, User.points >= cost)
        .values(points=User.points - cost, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    return session.execute(stmt).rowcount == 1


def _issue_voucher_code(session: Session, now: datetime, settings: Settings) -> str:
    for _ in range(_VOUCHER_ATTEMPTS):
        code = generate_voucher_code(settings.voucher_prefix, now, settings.voucher_random_length)
        clash = session.execute(
            select(Redemption.redemption_id).where(Redemption.voucher_code == code).limit(1)
        ).scalar_one_or_none()
        if clash is None:
            return code
        logger.warning("voucher code collision on %s, regenerating", code)
    raise StorageUnavailable("Could not allocate a unique voucher code, please retry.")


def redeem(
    session: Session,
    *,
    user_id: UUID,
    reward_id: UUID,
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None,
) -> Redemption:
    """Exchange a user's points for one unit of a reward.

    Checks run in a fixed order: the reward must exist and be active, the
    user must exist, tracked stock must be positive, and the balance must
    cover the cost. Reward-level failures win so a sold-out reward reads as
    out of stock for everyone.

    Rows are read under ``FOR UPDATE`` and both counters are mutated with
    conditional updates, so a concurrent spend of the same stock or balance
    surfaces as ``OutOfStock`` or ``InsufficientBalance`` instead of
    a negative value.

    Nothing is committed here. On any raised error the caller must roll the
    session back; on success the caller commits.
    """

    settings = settings or get_settings()
    now = as_naive_utc(now) if now else utcnow()

    with storage_guard():
        reward = _lock_active_reward(session, reward_id)
        user = _lock_user(session, user_id)
        cost = reward.points_cost

        if reward.stock_quantity is not None and reward.stock_quantity <= 0:
            raise OutOfStock(f"{reward.name} is out of stock.")
        if user.points < cost:
            raise InsufficientBalance(
                f"Insufficient points: {reward.name} costs {cost} points and you have {user.points}."
            )

        if not _take_stock(session, reward.reward_id, now):
            raise OutOfStock(f"{reward.name} is out of stock.")
        if not _debit_points(session, user.user_id, cost, now):
            raise InsufficientBalance(f"Insufficient points: {reward.name} costs {cost} points.")

        redemption = Redemption(
            user_id=user.user_id,
            reward_id=reward.reward_id,
            points_spent=cost,
            voucher_code=_issue_voucher_code(session, now, settings),
            status=RedemptionStatus.PENDING,
            created_at=now,
            expires_at=now + timedelta(days=settings.redemption_ttl_days),
            updated_at=now,
        )
        session.add(redemption)
        session.flush()  # Assign redemption_id before the ledger entry

        session.add(
            PointsLedger(
                user_id=user.user_id,
                related_redemption=redemption.redemption_id,
                event_type=PointsEventType.REDEMPTION,
                points_delta=-cost,
                created_at=now,
            )
        )
        session.flush()

        session.refresh(user)
        session.refresh(reward)

    logger.info(
        "redemption %s issued voucher %s: user=%s reward=%s points=%d remaining=%d",
        redemption.redemption_id,
        redemption.voucher_code,
        user.user_id,
        reward.reward_id,
        cost,
        user.points,
    )
    return redemption


def is_effectively_expired(redemption: Redemption, now: datetime) -> bool:
    """True once ``now`` is past the voucher's expiry, whatever the stored status."""

    return as_naive_utc(now) > as_naive_utc(redemption.expires_at)


def effective_status(redemption: Redemption, now: datetime) -> RedemptionStatus:
    """Status to present: open vouchers past their expiry read as expired."""

    if redemption.status in OPEN_STATUSES and is_effectively_expired(redemption, now):
        return RedemptionStatus.EXPIRED
    return redemption.status


def _coerce_status(value) -> RedemptionStatus:
    if isinstance(value, RedemptionStatus):
        return value
    try:
        return RedemptionStatus(str(value).strip().lower())
    except ValueError as exc:
        raise InvalidTransition(f"Unknown redemption status {value!r}.") from exc


def _authorize(actor: User, redemption: Redemption, target: RedemptionStatus) -> None:
    if target in (RedemptionStatus.CLAIMED, RedemptionStatus.USED):
        allowed = actor.role in _STAFF_ROLES
    elif target is RedemptionStatus.CANCELLED:
        allowed = actor.role is UserRole.ADMIN or actor.user_id == redemption.user_id
    else:
        allowed = actor.role is UserRole.ADMIN
    if not allowed:
        raise Forbidden(f"A {actor.role.value} cannot mark vouchers as {target.value}.")


def transition_status(
    session: Session,
    *,
    redemption_id: UUID,
    new_status,
    actor_id: UUID,
    now: Optional[datetime] = None,
) -> Redemption:
    """Move a redemption along the voucher lifecycle.

    Only transitions listed in ``ALLOWED_TRANSITIONS`` are accepted. A voucher
    already past its expiry may only be marked expired. Claiming records the
    actor and time; no transition touches points or stock.
    """

    target = _coerce_status(new_status)
    now = as_naive_utc(now) if now else utcnow()

    with storage_guard():
        redemption = _lock_redemption(session, redemption_id)
        actor = _ensure_user(session, actor_id)
        current = redemption.status

        if not can_transition(current, target):
            raise InvalidTransition(f"Cannot change a {current.value} voucher to {target.value}.")
        if target is not RedemptionStatus.EXPIRED and is_effectively_expired(redemption, now):
            raise InvalidTransition(
                f"Voucher {redemption.voucher_code} expired on {redemption.expires_at:%Y-%m-%d}."
            )
        _authorize(actor, redemption, target)

        redemption.status = target
        redemption.updated_at = now
        if target is RedemptionStatus.CLAIMED:
            redemption.claimed_by = actor.user_id
            redemption.claimed_at = now
        elif target is RedemptionStatus.USED:
            redemption.used_at = now
        session.flush()

    logger.info(
        "redemption %s moved %s -> %s by %s",
        redemption.redemption_id,
        current.value,
        target.value,
        actor.user_id,
    )
    return redemption


def get_redemption(session: Session, redemption_id: UUID) -> Redemption:
    stmt = (
        select(Redemption)
        .options(joinedload(Redemption.reward))
        .where(Redemption.redemption_id == redemption_id)
    )
    with storage_guard():
        redemption = session.execute(stmt).scalar_one_or_none()
    if redemption is None:
        raise NotFound(f"Redemption {redemption_id} not found.")
    return redemption


def get_by_voucher_code(session: Session, voucher_code: str) -> Redemption:
    """Look up the redemption behind a scanned or typed voucher code."""

    code = normalize_voucher_code(voucher_code)
    stmt = select(Redemption).options(joinedload(Redemption.reward)).where(Redemption.voucher_code == code)
    with storage_guard():
        redemption = session.execute(stmt).scalar_one_or_none()
    if redemption is None:
        raise NotFound(f"Voucher {code} not found.")
    return redemption


def list_user_redemptions(
    session: Session,
    *,
    user_id: UUID,
    limit: int = 50,
    offset: int = 0,
) -> Sequence[Redemption]:
    """Return a user's redemptions, newest first."""

    with storage_guard():
        _ensure_user(session, user_id)
        stmt = (
            select(Redemption)
            .options(joinedload(Redemption.reward))
            .where(Redemption.user_id == user_id)
            .order_by(Redemption.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return session.execute(stmt).scalars().all()


def expire_overdue(session: Session, *, now: Optional[datetime] = None) -> int:
    """Persist ``expired`` on open vouchers past their expiry; returns rows changed."""

    now = as_naive_utc(now) if now else utcnow()
    stmt = (
        update(Redemption)
        .where(Redemption.status.in_(OPEN_STATUSES), Redemption.expires_at < now)
        .values(status=RedemptionStatus.EXPIRED, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    with storage_guard():
        return session.execute(stmt).rowcount
