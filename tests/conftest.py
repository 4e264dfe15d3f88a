"""
Pytest configuration and fixtures for testing.

This file provides reusable test fixtures for:
- Database setup/teardown
- FastAPI test client
- Users, 2FA credentials and auth headers
- Captured Celery queueing (no Redis needed)
"""

import uuid
import pyotp
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.core.database import Base, get_db
from app.core.security import create_access_token
from app.crud import two_factor as two_factor_crud
from app.models.user import User
from app.models.user_preferences import UserPreferences
from main import app


# Use in-memory SQLite for testing (fast, isolated)
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

SERVICE_ROLE_KEY = "test-service-role-key"
BACKUP_CODES = ["ABCD-EFGH-JKLM", "NPQR-STUV-WXYZ", "2345-6789-ABCD"]


@pytest.fixture
def db_session():
    """
    Create a fresh database session for each test.
    Tables are dropped after the test completes.
    """
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory(db_session):
    """
    Session maker bound to the test engine, for tests that need more than
    one session open at the same time (e.g. two concurrent requests).
    """
    return TestingSessionLocal


@pytest.fixture
def client(db_session):
    """
    FastAPI test client with overridden database dependency.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def no_rate_limit(monkeypatch):
    """Disable the Redis-backed limiter on the verification endpoint."""
    monkeypatch.setattr("app.api.endpoints.two_factor.check_verify_2fa_limit", lambda ip_address: None)


@pytest.fixture(autouse=True)
def queued_tasks(monkeypatch):
    """
    Capture Celery tasks instead of sending them to the broker.

    Each entry is (task_name, kwargs).
    """
    queued = []

    def fake_queue_task_safely(task, *args, **kwargs):
        queued.append((task.name, kwargs))
        return True

    monkeypatch.setattr("app.core.account_deletion.queue_task_safely", fake_queue_task_safely)
    return queued


@pytest.fixture
def service_role_key(monkeypatch):
    monkeypatch.setattr(settings, "SERVICE_ROLE_KEY", SERVICE_ROLE_KEY)
    return SERVICE_ROLE_KEY


def _make_user(db, email=None, language=None):
    user = User(id=uuid.uuid4(), email=email or f"user_{uuid.uuid4().hex[:8]}@example.com", is_active=True)
    db.add(user)
    if language:
        db.add(UserPreferences(user_id=user.id, language=language))
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def make_user(db_session):
    """Factory inserting a user (and optionally their language preference)."""
    def factory(email=None, language=None):
        return _make_user(db_session, email=email, language=language)
    return factory


@pytest.fixture
def user(db_session):
    return _make_user(db_session, email="jane@example.com")


@pytest.fixture
def auth_headers(user):
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def totp_secret():
    return pyotp.random_base32()


@pytest.fixture
def backup_codes():
    return list(BACKUP_CODES)


@pytest.fixture
def credential(db_session, user, totp_secret, backup_codes):
    """Enabled 2FA setup for `user` with a few backup codes."""
    return two_factor_crud.create_credential(db_session, user.id, totp_secret, backup_codes)
