import json
import os
import sys
import uuid
from datetime import UTC, datetime, timedelta
from types import ModuleType

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

# Create a test engine BEFORE any app imports
_test_engine = create_engine(
    "sqlite+pysqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# Create a mock for the app.db module that uses our test engine
class TestBase(DeclarativeBase):
    pass


_TestSessionLocal = sessionmaker(bind=_test_engine, autoflush=False, autocommit=False)

# Create a mock db module
mock_db_module = ModuleType('app.db')
mock_db_module.Base = TestBase
mock_db_module.SessionLocal = _TestSessionLocal
mock_db_module.get_engine = lambda: _test_engine

# Also mock app.config to prevent .env loading
mock_config_module = ModuleType('app.config')

TEST_PLANS = [
    {
        "id": "starter",
        "name": "Starter",
        "slug": "starter",
        "description": "For small teams",
        "price": 1000,
        "currency": "USD",
        "interval": "month",
        "productId": "prod_starter",
        "features": [{"name": "5 Projects", "included": True}],
        "buttonText": "Get Started",
    },
    {
        "id": "pro",
        "name": "Pro",
        "slug": "pro",
        "price": 250000,
        "currency": "USD",
        "interval": "year",
        "productId": "prod_pro",
        "features": [
            {"name": "Unlimited Projects", "included": True},
            {"name": "Team Members", "included": True, "limit": 10},
        ],
        "popular": True,
    },
]


class MockSettings:
    database_url = "sqlite+pysqlite:///:memory:"
    db_pool_size = 5
    db_max_overflow = 10
    db_pool_timeout = 30
    db_pool_recycle = 1800
    app_url = "http://testserver"
    jwt_secret = "test-secret"
    jwt_algorithm = "HS256"
    session_cookie_name = "session_token"
    polar_access_token = ""
    polar_webhook_secret = "whsec_test"
    polar_server = "sandbox"
    polar_success_url = "success"
    subscription_plans = json.dumps(TEST_PLANS)
    starter_tier = ""
    starter_slug = ""
    cors_origins = ""


mock_config_module.settings = MockSettings()
mock_config_module.Settings = MockSettings
mock_config_module.validate_settings = lambda s: []
mock_config_module.config_warnings = lambda s: []

# Insert mocks before any app imports
sys.modules['app.config'] = mock_config_module
sys.modules['app.db'] = mock_db_module

# Set environment variables
os.environ["JWT_SECRET"] = "test-secret"
os.environ["JWT_ALGORITHM"] = "HS256"

# Now import the models - they'll use our mocked db module
from app.models.auth import Session as AuthSession  # noqa: E402
from app.models.auth import SessionStatus  # noqa: E402
from app.models.subscription import Subscription  # noqa: E402
from app.models.user import User, UserRole  # noqa: E402
from app.services.plans import (  # noqa: E402
    PlanRegistry,
    reset_plan_registry,
    set_plan_registry,
)
from app.services.session import hash_session_token  # noqa: E402

# Create all tables
TestBase.metadata.create_all(_test_engine)

# Re-export Base for compatibility
Base = TestBase


@pytest.fixture(scope="session")
def engine():
    return _test_engine


@pytest.fixture()
def db_session(engine):
    """Create a database session for testing.

    Uses the same connection as the StaticPool engine to ensure
    all operations see the same data. Rows are cleared afterwards so
    user counts and subscription lookups start from an empty database.
    """
    Session = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session = Session()
    try:
        yield session
    finally:
        session.rollback()
        for table in reversed(TestBase.metadata.sorted_tables):
            session.execute(table.delete())
        session.commit()
        session.close()


@pytest.fixture(autouse=True)
def plan_registry():
    """Install the test catalog as the process-wide plan registry."""
    registry = PlanRegistry.from_raw(TEST_PLANS)
    set_plan_registry(registry)
    yield registry
    reset_plan_registry()


def _unique_email() -> str:
    return f"test-{uuid.uuid4().hex}@example.com"


def _create_user(db_session, role: str | None = UserRole.user.value) -> User:
    user = User(name="Test User", email=_unique_email(), role=role)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture()
def user(db_session):
    return _create_user(db_session)


@pytest.fixture()
def admin_user(db_session):
    return _create_user(db_session, role=UserRole.super_admin.value)


def _create_session(db_session, user: User, token: str) -> AuthSession:
    session = AuthSession(
        user_id=user.id,
        token_hash=hash_session_token(token),
        status=SessionStatus.active,
        ip_address="127.0.0.1",
        user_agent="pytest",
        expires_at=datetime.now(UTC) + timedelta(days=30),
    )
    db_session.add(session)
    db_session.commit()
    db_session.refresh(session)
    return session


def _create_access_token(user_id: str, session_id: str) -> str:
    """Create a JWT access token for testing."""
    secret = os.getenv("JWT_SECRET", "test-secret")
    algorithm = os.getenv("JWT_ALGORITHM", "HS256")
    now = datetime.now(UTC)
    expire = now + timedelta(minutes=15)
    payload = {
        "sub": user_id,
        "session_id": session_id,
        "typ": "access",
        "exp": int(expire.timestamp()),
        "iat": int(now.timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


@pytest.fixture()
def session_token():
    return f"opaque-{uuid.uuid4().hex}"


@pytest.fixture()
def auth_session(db_session, user, session_token):
    """Create an authenticated session for a user."""
    return _create_session(db_session, user, session_token)


@pytest.fixture()
def auth_token(user, auth_session):
    """Create a valid JWT token for authenticated requests."""
    return _create_access_token(user.id, auth_session.id)


@pytest.fixture()
def auth_headers(auth_token):
    """Return authorization headers for authenticated requests."""
    return {"Authorization": f"Bearer {auth_token}"}


@pytest.fixture()
def admin_headers(db_session, admin_user):
    session = _create_session(db_session, admin_user, f"admin-{uuid.uuid4().hex}")
    token = _create_access_token(admin_user.id, session.id)
    return {"Authorization": f"Bearer {token}"}


def _subscription_values(**overrides) -> dict:
    now = datetime.now(UTC)
    values = {
        "id": f"sub_{uuid.uuid4().hex[:12]}",
        "created_at": now,
        "modified_at": None,
        "amount": 1000,
        "currency": "usd",
        "recurring_interval": "month",
        "status": "active",
        "current_period_start": now - timedelta(days=1),
        "current_period_end": now + timedelta(days=29),
        "cancel_at_period_end": False,
        "canceled_at": None,
        "started_at": now - timedelta(days=1),
        "ends_at": None,
        "ended_at": None,
        "customer_id": "cus_123",
        "product_id": "prod_starter",
        "discount_id": None,
        "checkout_id": "",
        "customer_cancellation_reason": None,
        "customer_cancellation_comment": None,
        "metadata_": None,
        "custom_field_data": None,
        "user_id": None,
    }
    values.update(overrides)
    return values


@pytest.fixture()
def subscription_values():
    """Factory for normalized subscription column values."""
    return _subscription_values


@pytest.fixture()
def make_subscription(db_session):
    """Factory that inserts a subscription row directly."""

    def _make(**overrides) -> Subscription:
        subscription = Subscription(**_subscription_values(**overrides))
        db_session.add(subscription)
        db_session.commit()
        db_session.refresh(subscription)
        return subscription

    return _make


# ============ FastAPI Test Client Fixtures ============


@pytest.fixture()
def client(db_session):
    """Create a test client with database dependency override."""
    from app.api.deps import get_db as api_get_db
    from app.main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[api_get_db] = override_get_db

    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client

    app.dependency_overrides.clear()
