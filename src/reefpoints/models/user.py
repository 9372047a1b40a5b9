"""User domain model."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, Enum as SAEnum, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from ..core.database import Base


class UserRole(str, enum.Enum):
    """Program roles."""

    TOURIST = "tourist"
    RANGER = "ranger"
    ADMIN = "admin"


class User(Base):
    """Represents a program participant holding a points balance."""

    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("email", name="users_email_unique"),
        CheckConstraint("points >= 0", name="users_points_non_negative"),
    )

    user_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String, nullable=False)
    display_name = Column(String, nullable=False)
    role = Column(
        SAEnum(UserRole, name="user_role", values_callable=lambda roles: [r.value for r in roles]),
        nullable=False,
        default=UserRole.TOURIST,
    )
    points = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    redemptions = relationship(
        "Redemption",
        foreign_keys="Redemption.user_id",
        back_populates="user",
    )
    ledger_entries = relationship("PointsLedger", foreign_keys="PointsLedger.user_id", back_populates="user")
