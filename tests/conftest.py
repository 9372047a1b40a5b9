import os
from uuid import uuid4

os.environ.setdefault("REEFPOINTS_DATABASE_URL", "sqlite://")
os.environ.setdefault("REEFPOINTS_EXPIRY_SWEEP_ENABLED", "false")
os.environ.setdefault("REEFPOINTS_STORAGE_RETRY_BACKOFF_SECONDS", "0")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from reefpoints.core.database import Base, get_db
from reefpoints.main import create_app
from reefpoints.models import Reward, User, UserRole


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def file_engine(tmp_path):
    """File-backed SQLite whose transactions take the write lock up front.

    pysqlite defers BEGIN until the first write, which lets two readers
    deadlock on upgrade; BEGIN IMMEDIATE serialises writers instead.
    """

    engine = create_engine(
        f"sqlite:///{tmp_path / 'reefpoints.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
        future=True,
    )

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def make_user(db):
    def _make(*, points: int = 0, role: UserRole = UserRole.TOURIST, display_name: str | None = None) -> User:
        user = User(
            email=f"{uuid4().hex[:12]}@reef.example",
            display_name=display_name or f"Diver {uuid4().hex[:6]}",
            role=role,
            points=points,
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def make_reward(db):
    def _make(
        *,
        points_cost: int = 100,
        stock_quantity: int | None = None,
        is_active: bool = True,
        name: str | None = None,
    ) -> Reward:
        reward = Reward(
            name=name or f"Reward {uuid4().hex[:6]}",
            points_cost=points_cost,
            stock_quantity=stock_quantity,
            is_active=is_active,
        )
        db.add(reward)
        db.commit()
        return reward

    return _make


@pytest.fixture
def client(session_factory):
    app = create_app()

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
