import os

# Settings are read at import time; configure before importing auth_service.
os.environ.setdefault("JWT_SECRET", "test_jwt_secret")
os.environ.setdefault("ENV", "dev")
# Minimum bcrypt cost keeps the suite fast; production default is 12.
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from auth_service.core.base import Base
from auth_service.core.database import Database
from auth_service.main import create_app
from auth_service.services.rate_limiter import NoopRateLimiter
from auth_service.services.users import create_user

# Import models so they register with SQLAlchemy metadata.
from auth_service.models.user import User  # noqa: F401

TEST_PASSWORD = "test_password_123"


@pytest.fixture()
def database():
    # In-memory SQLite shared through StaticPool: one fresh schema per test.
    db = Database(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    db.init()
    Base.metadata.create_all(bind=db.engine)
    try:
        yield db
    finally:
        db.dispose()


@pytest.fixture()
def db_session(database):
    db = database.session()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def app(database):
    # Rate limiting off for the general suite; test_rate_limiting injects a real limiter.
    return create_app(database=database, rate_limiter=NoopRateLimiter())


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def users(db_session):
    """
    Two distinct users: a regular user and an admin.
    """
    user_a = create_user(db_session, email="test@example.com", password=TEST_PASSWORD, name="Test User")
    user_b = create_user(
        db_session,
        email="admin@example.com",
        password=TEST_PASSWORD,
        name="Admin User",
        role="admin",
    )
    return user_a, user_b


@pytest.fixture()
def auth_header():
    def _auth_header(token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    return _auth_header
