"""
Pytest configuration and shared fixtures.

Test environment variables are set here before any app import, then the
settings cache is cleared so the app reads them.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_sms_dashboard.db")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("SESSION_SECRET", "test-session-secret")
os.environ.setdefault("TWILIO_ACCOUNT_SID", "ACtest00000000000000000000000000")
os.environ.setdefault("TWILIO_AUTH_TOKEN", "test-auth-token")
os.environ.setdefault("TWILIO_FROM_NUMBER", "+15550000000")

import pytest
from fastapi.testclient import TestClient

# Clear settings cache before any app imports to ensure test env vars are used
from app.config import get_settings
get_settings.cache_clear()

from app.auth import hash_password, issue_session_token
from app.main import app, get_sms_gateway
from app.sms_gateway import DeliveryReceipt
from app.storage import SessionLocal, Base, engine


class FakeSmsGateway:
    """In-memory SMS gateway recording every send attempt."""

    def __init__(self, error: Exception = None):
        self.error = error
        self.sent = []

    def send(self, recipient: str, body: str) -> DeliveryReceipt:
        self.sent.append((recipient, body))
        if self.error is not None:
            raise self.error
        return DeliveryReceipt(sid=f"SM{len(self.sent):032d}", status="queued", to=recipient)


@pytest.fixture
def gateway():
    return FakeSmsGateway()


@pytest.fixture(scope="function")
def client(gateway):
    """Create test client with fresh database and a fake SMS gateway."""
    Base.metadata.create_all(bind=engine)
    app.dependency_overrides[get_sms_gateway] = lambda: gateway

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(client):
    with SessionLocal() as session:
        yield session


@pytest.fixture
def make_user(client):
    """Factory inserting a user directly and returning its id."""
    from app.storage import create_user

    def _make_user(email: str, password: str = "correct-horse") -> str:
        with SessionLocal() as session:
            user = create_user(session, email=email, password_hash=hash_password(password, iterations=1000))
            return user.id

    return _make_user


@pytest.fixture
def auth_headers():
    def _auth_headers(user_id: str) -> dict:
        return {"Authorization": f"Bearer {issue_session_token(user_id)}"}

    return _auth_headers


@pytest.fixture
def message_count(client):
    """Callable returning the number of stored message rows."""
    from app.models import Message

    def _count() -> int:
        with SessionLocal() as session:
            return session.query(Message).count()

    return _count
