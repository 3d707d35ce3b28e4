from __future__ import annotations

import os
import time
from typing import Callable

os.environ["APP_ENV"] = "test"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["LOG_FILE"] = ""
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from socialhub.api.deps import get_session_factory
from socialhub.core.auth import create_auth_header
from socialhub.core.db import Base, get_db
from socialhub.core.init_db import init_db
from socialhub.main import app
from socialhub.models.user import User
from socialhub.services.broker import NotificationBroker
from socialhub.services.users import register_user

DEFAULT_PASSWORD = "password1"

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db_session() -> Session:
    init_db(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def broker() -> NotificationBroker:
    return NotificationBroker(timeout=0.2, max_subscriptions_per_user=4)


@pytest.fixture()
def client(db_session: Session, broker: NotificationBroker) -> TestClient:
    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_session_factory] = lambda: TestingSessionLocal
    app.state.broker = broker
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    counter = {"n": 0}

    def _make_user(email: str | None = None, full_name: str | None = None, password: str = DEFAULT_PASSWORD) -> User:
        counter["n"] += 1
        return register_user(
            db_session,
            email or f"user{counter['n']}@example.com",
            full_name or f"User {counter['n']}",
            password,
        )

    return _make_user


def auth(user: User) -> dict[str, str]:
    return {"Authorization": create_auth_header(user.id)}


def wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()
