"""Pytest configuration and fixtures."""

import os

# Settings are read at import time; keep tests off the real database and fast on hashing
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("STATIC_DIR", "tests/_no_static")

from datetime import datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from buscabusca.database import Base, get_db  # noqa: E402
from buscabusca.models.merchant import Merchant  # noqa: E402, F401
from buscabusca.models.user import User  # noqa: E402, F401
from buscabusca.services.auth import AuthService  # noqa: E402
from buscabusca.services.password_reset import PasswordResetService  # noqa: E402


class FrozenClock:
    """Manually advanced clock for expiry and lockout tests."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(name="db_session")
def db_session_fixture():
    """Create an in-memory SQLite database for tests."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="clock")
def clock_fixture() -> FrozenClock:
    return FrozenClock(datetime(2026, 3, 2, 12, 0, 0))


@pytest.fixture(name="auth_service")
def auth_service_fixture(clock: FrozenClock) -> AuthService:
    return AuthService(clock=clock)


@pytest.fixture(name="reset_service")
def reset_service_fixture(clock: FrozenClock) -> PasswordResetService:
    return PasswordResetService(clock=clock)


@pytest.fixture(name="client")
def client_fixture(db_session: Session):
    """Create a test client with overridden DB dependency and disabled rate limiting."""
    from buscabusca.rate_limit import limiter
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    limiter.enabled = False
    with TestClient(app) as c:
        yield c
    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture(name="test_user")
def test_user_fixture(db_session: Session):
    """Register a test user on the real clock and return its data and session token."""
    result = AuthService().register(db_session, "Test User", "test@example.com", "password123")
    assert result.success

    return {
        "user_id": result.session.user.id,
        "email": result.session.user.email,
        "display_name": result.session.user.display_name,
        "password": "password123",
        "token": result.session.token,
    }
