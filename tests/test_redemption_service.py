import re
from datetime import datetime, timedelta
from uuid import uuid4

import pytest
from sqlalchemy import select, update

from reefpoints.core.config import Settings
from reefpoints.models import PointsEventType, PointsLedger, Redemption, RedemptionStatus, Reward, User
from reefpoints.services import redemption_service, reward_service
from reefpoints.services.errors import InsufficientBalance, NotFound, OutOfStock, StorageUnavailable


def test_redeem_last_unit_then_out_of_stock(db, make_user, make_reward):
    reward = make_reward(points_cost=100, stock_quantity=1)
    user = make_user(points=150)

    redemption = redemption_service.redeem(db, user_id=user.user_id, reward_id=reward.reward_id)
    db.commit()

    assert redemption.points_spent == 100
    assert redemption.status is RedemptionStatus.PENDING
    assert re.fullmatch(r"[A-Z0-9-]+", redemption.voucher_code)
    db.refresh(user)
    db.refresh(reward)
    assert user.points == 50
    assert reward.stock_quantity == 0

    with pytest.raises(OutOfStock):
        redemption_service.redeem(db, user_id=user.user_id, reward_id=reward.reward_id)
    db.rollback()


def test_successful_redemption_deducts_exact_cost(db, make_user, make_reward):
    reward = make_reward(points_cost=35)
    user = make_user(points=120)

    redemption_service.redeem(db, user_id=user.user_id, reward_id=reward.reward_id)
    db.commit()

    assert db.get(User, user.user_id).points == 85
    assert db.get(Reward, reward.reward_id).stock_quantity is None


def test_insufficient_balance_changes_nothing(db, make_user, make_reward):
    reward = make_reward(points_cost=200, stock_quantity=3)
    user = make_user(points=199)
    user_id, reward_id = user.user_id, reward.reward_id

    with pytest.raises(InsufficientBalance) as excinfo:
        redemption_service.redeem(db, user_id=user_id, reward_id=reward_id)
    db.rollback()

    assert "Insufficient points" in excinfo.value.detail
    assert db.get(User, user_id).points == 199
    assert db.get(Reward, reward_id).stock_quantity == 3
    assert db.execute(select(Redemption)).scalars().all() == []


def test_inactive_reward_is_not_found(db, make_user, make_reward):
    reward = make_reward(points_cost=10, is_active=False)
    user = make_user(points=50)

    with pytest.raises(NotFound):
        redemption_service.redeem(db, user_id=user.user_id, reward_id=reward.reward_id)


def test_unknown_reward_and_user_are_not_found(db, make_user, make_reward):
    reward = make_reward(points_cost=10)
    user = make_user(points=50)

    with pytest.raises(NotFound):
        redemption_service.redeem(db, user_id=user.user_id, reward_id=uuid4())
    with pytest.raises(NotFound):
        redemption_service.redeem(db, user_id=uuid4(), reward_id=reward.reward_id)


def test_voucher_codes_are_unique_across_redemptions(db, make_user, make_reward):
    unlimited = make_reward(points_cost=1)
    stocked = make_reward(points_cost=1, stock_quantity=10)
    user = make_user(points=100)
    fixed_now = datetime(2025, 11, 12, 14, 30)

    codes = []
    for reward in (unlimited, stocked) * 10:
        redemption = redemption_service.redeem(
            db, user_id=user.user_id, reward_id=reward.reward_id, now=fixed_now
        )
        codes.append(redemption.voucher_code)
    db.commit()

    assert len(set(codes)) == len(codes) == 20


def test_points_spent_is_a_snapshot(db, make_user, make_reward):
    reward = make_reward(points_cost=40)
    user = make_user(points=100)

    redemption = redemption_service.redeem(db, user_id=user.user_id, reward_id=reward.reward_id)
    db.commit()
    reward_service.update_reward(db, reward.reward_id, points_cost=90)
    db.commit()

    db.refresh(redemption)
    assert redemption.points_spent == 40
    assert db.get(Reward, reward.reward_id).points_cost == 90


def test_expiry_uses_configured_ttl(db, make_user, make_reward):
    reward = make_reward(points_cost=10)
    user = make_user(points=10)
    now = datetime(2025, 1, 1, 9, 0)

    redemption = redemption_service.redeem(
        db,
        user_id=user.user_id,
        reward_id=reward.reward_id,
        now=now,
        settings=Settings(redemption_ttl_days=7, voucher_prefix="REEF"),
    )

    assert redemption.created_at == now
    assert redemption.expires_at == now + timedelta(days=7)
    assert redemption.voucher_code.startswith("REEF-1735722000000-")


def test_redemption_is_recorded_in_ledger(db, make_user, make_reward):
    reward = make_reward(points_cost=25)
    user = make_user(points=30)

    redemption = redemption_service.redeem(db, user_id=user.user_id, reward_id=reward.reward_id)
    db.commit()

    entry = db.execute(select(PointsLedger).where(PointsLedger.user_id == user.user_id)).scalar_one()
    assert entry.event_type is PointsEventType.REDEMPTION
    assert entry.points_delta == -25
    assert entry.related_redemption == redemption.redemption_id


def test_conditional_stock_update_rejects_stale_read(db, make_user, make_reward):
    reward = make_reward(points_cost=10, stock_quantity=1)
    user = make_user(points=10)
    now = datetime(2025, 1, 1)

    # Another transaction took the last unit after our read.
    db.execute(update(Reward).where(Reward.reward_id == reward.reward_id).values(stock_quantity=0))

    assert redemption_service._take_stock(db, reward.reward_id, now) is False
    assert redemption_service._debit_points(db, user.user_id, 11, now) is False
    assert redemption_service._debit_points(db, user.user_id, 10, now) is True
    db.rollback()


def test_sold_out_reward_reads_out_of_stock_even_when_unaffordable(db, make_user, make_reward):
    reward = make_reward(points_cost=100, stock_quantity=0)
    user = make_user(points=10)
    user_id, reward_id = user.user_id, reward.reward_id

    with pytest.raises(OutOfStock):
        redemption_service.redeem(db, user_id=user_id, reward_id=reward_id)
    db.rollback()

    assert db.get(User, user_id).points == 10
    assert db.get(Reward, reward_id).stock_quantity == 0
    assert db.execute(select(Redemption)).scalars().all() == []


def test_voucher_code_taken_at_insert_is_retryable(db, make_user, make_reward, monkeypatch):
    reward = make_reward(points_cost=50)
    user = make_user(points=200)
    user_id = user.user_id

    first = redemption_service.redeem(db, user_id=user_id, reward_id=reward.reward_id)
    db.commit()
    taken = first.voucher_code

    # Simulates a concurrent transaction committing the same code after the uniqueness check.
    monkeypatch.setattr(redemption_service, "_issue_voucher_code", lambda session, now, settings: taken)
    with pytest.raises(StorageUnavailable):
        redemption_service.redeem(db, user_id=user_id, reward_id=reward.reward_id)
    db.rollback()

    assert db.get(User, user_id).points == 150
    assert len(db.execute(select(Redemption)).scalars().all()) == 1


def test_update_reward_refuses_to_null_required_fields(db, make_reward):
    reward = make_reward(points_cost=40, stock_quantity=5)

    with pytest.raises(ValueError):
        reward_service.update_reward(db, reward.reward_id, points_cost=None)

    updated = reward_service.update_reward(db, reward.reward_id, stock_quantity=None)
    assert updated.stock_quantity is None
    assert updated.points_cost == 40
