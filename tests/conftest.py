"""
Shared pytest fixtures available to every test file automatically.

The app runs against an in-memory SQLite database shared through StaticPool;
the Stripe gateway and outgoing email are replaced with mocks.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CSRF_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_ouiimi"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_ouiimi"
os.environ.pop("REDIS_URL", None)
os.environ.pop("RESEND_API_KEY", None)

from unittest.mock import AsyncMock, MagicMock, patch  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from ouiimi import rate_limiter  # noqa: E402
from ouiimi.cache import cache  # noqa: E402
from ouiimi.database import Base, get_db  # noqa: E402
from ouiimi.domain.payments.stripe_service import get_stripe_gateway  # noqa: E402
from ouiimi.main import app  # noqa: E402

engine = create_engine(
    "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def _fresh_state():
    """Empty tables, rate limit counters and listing cache for every test"""
    Base.metadata.create_all(bind=engine)
    rate_limiter.memory_cache.clear()
    cache.clear()
    yield
    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture()
def gateway():
    """Stripe gateway mock; tests set return values per call they exercise"""
    mock = MagicMock()
    mock.is_available.return_value = True
    return mock


@pytest.fixture()
def sent_emails():
    """Every outgoing email, captured instead of reaching Resend"""
    with patch("ouiimi.email_service.send_email", new_callable=AsyncMock) as mock_send:
        mock_send.return_value = {"id": "email_test"}
        yield mock_send


@pytest.fixture()
def client(gateway, sent_emails):
    def _get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_stripe_gateway] = lambda: gateway
    return TestClient(app)
