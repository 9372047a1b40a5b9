"""Leaderboard aggregation services."""

from __future__ import annotations

from typing import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import User, UserRole
from .concurrency import storage_guard


def top_users(session: Session, *, limit: int = 10) -> Sequence[User]:
    """Return tourists ordered by current points and display name."""

    limit = max(1, min(limit, 100))

    stmt = (
        select(User)
        .where(User.role == UserRole.TOURIST)
        .order_by(User.points.desc(), User.display_name.asc())
        .limit(limit)
    )
    with storage_guard():
        return session.execute(stmt).scalars().all()
