"""Pytest configuration and fixtures."""

import os
import time
from collections.abc import Generator
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing application modules
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SECRET_KEY", "test-secret-key")
os.environ.setdefault("SUPABASE_SIGNING_KEY_JWK", "test-signing-key-jwk")
os.environ.setdefault("ADMIN_EMAILS", "")
os.environ.setdefault("RESEND_API_KEY", "")

from fakes import FakeSupabase  # noqa: E402

BUYER_ID = "11111111-1111-4111-8111-111111111111"
OTHER_BUYER_ID = "22222222-2222-4222-8222-222222222222"
OPERATOR_ID = "33333333-3333-4333-8333-333333333333"

TOKENS = {
    "buyer-token": (BUYER_ID, "ada@example.com"),
    "other-token": (OTHER_BUYER_ID, "bola@example.com"),
    "operator-token": (OPERATOR_ID, "ops@poshchoice.example"),
}


@pytest.fixture(scope="session")
def test_settings() -> Generator[Any, None, None]:
    """Provide test settings with cleared cache.

    Yields:
        Settings: Test configuration settings.
    """
    from src.core.config import get_settings

    # Clear the cache to ensure fresh settings
    get_settings.cache_clear()

    settings = get_settings()
    yield settings

    # Clean up cache after tests
    get_settings.cache_clear()


@pytest.fixture
def mock_supabase_client() -> Generator[MagicMock, None, None]:
    """Provide a mocked Supabase client.

    Yields:
        MagicMock: Mocked Supabase client for testing.
    """
    mock_client = MagicMock()

    # Configure default mock responses
    mock_response = MagicMock()
    mock_response.data = []
    mock_client.table.return_value.select.return_value.limit.return_value.execute.return_value = (
        mock_response
    )

    with patch("src.core.supabase.get_supabase_client", return_value=mock_client):
        yield mock_client


@pytest.fixture
def fake_db() -> FakeSupabase:
    """Provide an in-memory database seeded with buyer and operator profiles."""
    db = FakeSupabase()
    db.add_profile(BUYER_ID, "Ada Obi", "ada@example.com", role="user")
    db.add_profile(OTHER_BUYER_ID, "Bola Ade", "bola@example.com", role="user")
    db.add_profile(OPERATOR_ID, "Store Ops", "ops@poshchoice.example", role="Admin")
    return db


@pytest.fixture
def buyer() -> Any:
    """Authenticated buyer context matching the seeded buyer profile."""
    from src.schemas.auth import UserContext

    return UserContext(user_id=BUYER_ID, email="ada@example.com", role="authenticated")


@pytest.fixture
def operator() -> Any:
    """Authenticated operator context matching the seeded admin profile."""
    from src.schemas.auth import UserContext

    return UserContext(user_id=OPERATOR_ID, email="ops@poshchoice.example", role="authenticated")


@pytest.fixture
def auth_tokens() -> Generator[MagicMock, None, None]:
    """Map the fixed bearer tokens in TOKENS to users without real JWTs."""
    from src.api.middleware.auth import AuthError, AuthErrorCode
    from src.schemas.auth import TokenPayload

    def decode(token: str) -> TokenPayload:
        if token not in TOKENS:
            raise AuthError("Invalid token: Not enough segments", AuthErrorCode.INVALID_TOKEN)
        user_id, email = TOKENS[token]
        now = int(time.time())
        return TokenPayload(sub=user_id, email=email, role="authenticated", exp=now + 3600, iat=now)

    with patch("src.api.deps.decode_jwt", side_effect=decode) as mock_decode:
        yield mock_decode


@pytest.fixture
def notifier() -> MagicMock:
    """Provide a NotificationService double that records dispatched notifications."""
    from src.services.notification_service import NotificationService

    return MagicMock(spec=NotificationService)


@pytest.fixture
def client(
    fake_db: FakeSupabase,
    notifier: MagicMock,
    auth_tokens: MagicMock,
) -> Generator[TestClient, None, None]:
    """Provide a test client wired to the in-memory database.

    Args:
        fake_db: In-memory database fixture.
        notifier: Notification double fixture.
        auth_tokens: Token decoding patch fixture.

    Yields:
        TestClient: FastAPI test client.
    """
    from src.main import app
    from src.services.notification_service import get_notification_service
    from src.services.order_lifecycle_service import OrderLifecycleService, get_order_lifecycle_service
    from src.services.order_service import OrderService, get_order_service
    from src.services.user_service import UserService, get_user_service

    app.dependency_overrides[get_order_service] = lambda: OrderService(fake_db)
    app.dependency_overrides[get_order_lifecycle_service] = lambda: OrderLifecycleService(fake_db)
    app.dependency_overrides[get_user_service] = lambda: UserService(fake_db)
    app.dependency_overrides[get_notification_service] = lambda: notifier

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def guest_checkout(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Enable guest checkout for the duration of a test."""
    from src.core.config import get_settings

    monkeypatch.setenv("ALLOW_GUEST_CHECKOUT", "true")
    get_settings.cache_clear()
    yield
    monkeypatch.delenv("ALLOW_GUEST_CHECKOUT")
    get_settings.cache_clear()
