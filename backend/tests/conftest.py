"""
Shared test fixtures and utilities.

This module provides common test infrastructure used across all test modules.
Environment variables are set before any application module reads settings,
so the app under test always runs on in-memory storage and the local lease
token contract double.
"""

import os

# Test JWT secret (only for testing)
TEST_JWT_SECRET = "test-secret-key-for-testing-only"

os.environ["JWT_SECRET"] = TEST_JWT_SECRET
os.environ["USE_IN_MEMORY_STORE"] = "true"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["BLOCKCHAIN_RPC_URL"] = ""

import pytest
from datetime import datetime, timezone, timedelta
from decimal import Decimal
import jwt  # PyJWT

from api.dependencies import ServiceContainer, reset_container
from shared.config import Settings, get_settings
from shared.models import Actor
from modules.auth.models import User
from modules.auth.service import reset_auth_service
from modules.ledger.service import reset_ledger_service
from modules.listings.models import DomainType, PublishListingRequest
from modules.listings.service import reset_listing_service

# A throwaway account for signing wallet-login messages in tests
TEST_WALLET_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
LESSOR_WALLET = "0x1111111111111111111111111111111111111111"
LESSEE_WALLET = "0x2222222222222222222222222222222222222222"


def create_test_token(
    user_id: str = "test-user-123",
    role: str = "user",
    expired: bool = False,
) -> str:
    """
    Create a test JWT token for authentication.

    Args:
        user_id: User ID to include in the token
        role: 'user' or 'admin'
        expired: If True, creates an expired token

    Returns:
        JWT token string
    """
    now = datetime.now(timezone.utc)
    exp = now - timedelta(hours=1) if expired else now + timedelta(hours=1)

    payload = {
        "sub": user_id,
        "role": role,
        "exp": int(exp.timestamp()),
        "iat": int(now.timestamp()),
    }
    return jwt.encode(payload, TEST_JWT_SECRET, algorithm="HS256")


def make_test_settings(**overrides) -> Settings:
    """Settings for in-memory wiring, independent of the environment."""
    values = {
        "jwt_secret": TEST_JWT_SECRET,
        "use_in_memory_store": True,
        "bcrypt_rounds": 4,
        "blockchain_rpc_url": "",
    }
    values.update(overrides)
    return Settings(**values)


def make_user(user_id: str, wallet_address: str | None = None, is_admin: bool = False) -> User:
    return User(
        id=user_id,
        email=f"{user_id}@example.com",
        password_hash="not-a-real-hash",
        name=user_id.title(),
        wallet_address=wallet_address,
        is_admin=is_admin,
    )


def publish_request(domain_name: str = "example.com", **overrides) -> PublishListingRequest:
    values = {
        "domain_name": domain_name,
        "domain_type": DomainType.WEB2,
        "price_amount": Decimal("100"),
        "duration_days": 30,
        "tags": ["Tech", "startup"],
    }
    values.update(overrides)
    return PublishListingRequest(**values)


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset service singletons and the container before and after each test."""
    get_settings.cache_clear()
    reset_container()
    reset_auth_service()
    reset_ledger_service()
    reset_listing_service()
    yield
    reset_container()
    reset_auth_service()
    reset_ledger_service()
    reset_listing_service()


@pytest.fixture
def settings() -> Settings:
    return make_test_settings()


@pytest.fixture
def container(settings: Settings) -> ServiceContainer:
    """
    A fully wired in-memory marketplace with two wallet-holding users.

    The lessor is `lessor-1`, the lessee `lessee-1`, and `admin-1` is an
    administrator.
    """
    container = ServiceContainer(settings)
    users = container.auth._repo
    users.create(make_user("lessor-1", LESSOR_WALLET))
    users.create(make_user("lessee-1", LESSEE_WALLET))
    users.create(make_user("admin-1", is_admin=True))
    return container


@pytest.fixture
def lessor() -> Actor:
    return Actor(user_id="lessor-1")


@pytest.fixture
def lessee() -> Actor:
    return Actor(user_id="lessee-1")


@pytest.fixture
def admin() -> Actor:
    return Actor(user_id="admin-1", is_admin=True)


@pytest.fixture
def test_user_id() -> str:
    """Provide a consistent test user ID."""
    return "test-user-123"


@pytest.fixture
def auth_token(test_user_id: str) -> str:
    """Create a valid auth token for testing."""
    return create_test_token(user_id=test_user_id)


@pytest.fixture
def auth_headers(auth_token: str) -> dict[str, str]:
    """Create authorization headers with a valid token."""
    return {"Authorization": f"Bearer {auth_token}"}


@pytest.fixture
def client(container: ServiceContainer):
    """
    TestClient whose routes use the `container` fixture's services.
    """
    from fastapi.testclient import TestClient

    from api import app
    from api import dependencies

    app.dependency_overrides[dependencies.get_auth_service] = lambda: container.auth
    app.dependency_overrides[dependencies.get_ledger_service] = lambda: container.ledger
    app.dependency_overrides[dependencies.get_listing_service] = lambda: container.listings
    app.dependency_overrides[dependencies.get_token_binding_service] = lambda: container.tokens
    app.dependency_overrides[dependencies.get_lease_service] = lambda: container.leases
    yield TestClient(app)
    app.dependency_overrides.clear()


def bearer(user_id: str, role: str = "user") -> dict[str, str]:
    """Authorization header for a user."""
    return {"Authorization": f"Bearer {create_test_token(user_id=user_id, role=role)}"}
