"""Reward catalog management."""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import Reward
from ..utils.datetime import utcnow
from .concurrency import storage_guard
from .errors import NotFound

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = {"name", "description", "points_cost", "stock_quantity", "is_active"}
_NOT_NULL_FIELDS = {"name", "points_cost", "is_active"}


def list_rewards(session: Session, *, include_inactive: bool = False) -> Sequence[Reward]:
    """Return the catalog ordered by cost, then name."""

    stmt = select(Reward).order_by(Reward.points_cost.asc(), Reward.name.asc())
    if not include_inactive:
        stmt = stmt.where(Reward.is_active.is_(True))
    with storage_guard():
        return session.execute(stmt).scalars().all()


def get_reward(session: Session, reward_id: UUID) -> Reward:
    with storage_guard():
        reward = session.get(Reward, reward_id)
    if reward is None:
        raise NotFound(f"Reward {reward_id} not found.")
    return reward


def create_reward(
    session: Session,
    *,
    name: str,
    points_cost: int,
    stock_quantity: Optional[int] = None,
    description: Optional[str] = None,
    is_active: bool = True,
) -> Reward:
    now = utcnow()
    reward = Reward(
        name=name,
        description=description,
        points_cost=points_cost,
        stock_quantity=stock_quantity,
        is_active=is_active,
        created_at=now,
        updated_at=now,
    )
    with storage_guard():
        session.add(reward)
        session.flush()
    logger.info("reward %s created: cost=%d stock=%s", reward.reward_id, points_cost, stock_quantity)
    return reward


def update_reward(session: Session, reward_id: UUID, **changes: Any) -> Reward:
    """Apply catalog edits.

    Issued redemptions keep their ``points_spent`` snapshot, so price changes
    only affect future redemptions.
    """

    unknown = set(changes) - _EDITABLE_FIELDS
    if unknown:
        raise ValueError(f"Unsupported reward fields: {', '.join(sorted(unknown))}")
    cleared = sorted(field for field in _NOT_NULL_FIELDS if field in changes and changes[field] is None)
    if cleared:
        raise ValueError(f"Reward fields cannot be null: {', '.join(cleared)}")

    reward = get_reward(session, reward_id)
    for field, value in changes.items():
        setattr(reward, field, value)
    reward.updated_at = utcnow()
    with storage_guard():
        session.flush()
    logger.info("reward %s updated: %s", reward.reward_id, sorted(changes))
    return reward
