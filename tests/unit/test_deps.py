"""Unit tests for FastAPI dependency injection functions."""

import time
import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.api.deps import (
    check_public_status_rate_limit,
    get_current_user,
    get_operator_user,
    get_optional_user,
)
from src.api.middleware.auth import AuthError, AuthErrorCode
from src.api.middleware.error_handler import AuthenticationError, AuthorizationError, RateLimitError
from src.core.rate_limiter import InMemoryRateLimitStorage
from src.schemas.auth import TokenPayload, UserContext


def make_payload() -> TokenPayload:
    now = int(time.time())
    return TokenPayload(
        sub="550e8400-e29b-41d4-a716-446655440000",
        email="test@example.com",
        role="authenticated",
        exp=now + 3600,
        iat=now,
    )


class TestGetCurrentUser:
    """Tests for get_current_user dependency."""

    @pytest.mark.asyncio
    @patch("src.api.deps.decode_jwt")
    async def test_extracts_user_context_correctly(self, mock_decode: MagicMock) -> None:
        mock_decode.return_value = make_payload()

        user = await get_current_user("Bearer valid-token")

        assert isinstance(user, UserContext)
        assert str(user.user_id) == "550e8400-e29b-41d4-a716-446655440000"
        mock_decode.assert_called_once_with("valid-token")

    @pytest.mark.asyncio
    async def test_missing_header(self) -> None:
        with pytest.raises(AuthenticationError) as exc_info:
            await get_current_user("")

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    @pytest.mark.parametrize("header", ["Token abc", "Bearer", "Bearer a b"])
    async def test_malformed_header(self, header: str) -> None:
        with pytest.raises(AuthenticationError) as exc_info:
            await get_current_user(header)

        assert "Bearer <token>" in exc_info.value.message

    @pytest.mark.asyncio
    @patch("src.api.deps.decode_jwt")
    async def test_expired_token(self, mock_decode: MagicMock) -> None:
        mock_decode.side_effect = AuthError("Token has expired", AuthErrorCode.TOKEN_EXPIRED)

        with pytest.raises(AuthenticationError) as exc_info:
            await get_current_user("Bearer expired")

        assert exc_info.value.message == "Token has expired"

    @pytest.mark.asyncio
    @patch("src.api.deps.decode_jwt")
    async def test_invalid_token(self, mock_decode: MagicMock) -> None:
        mock_decode.side_effect = AuthError("Invalid token signature", AuthErrorCode.INVALID_SIGNATURE)

        with pytest.raises(AuthenticationError) as exc_info:
            await get_current_user("Bearer forged")

        assert exc_info.value.message == "Invalid token signature"


class TestGetOptionalUser:
    """Tests for get_optional_user dependency."""

    @pytest.mark.asyncio
    async def test_no_header_is_anonymous(self) -> None:
        assert await get_optional_user(None) is None

    @pytest.mark.asyncio
    @patch("src.api.deps.decode_jwt")
    async def test_valid_token(self, mock_decode: MagicMock) -> None:
        mock_decode.return_value = make_payload()

        user = await get_optional_user("Bearer valid-token")

        assert user is not None
        assert user.email == "test@example.com"

    @pytest.mark.asyncio
    @patch("src.api.deps.decode_jwt")
    async def test_invalid_token_still_rejected(self, mock_decode: MagicMock) -> None:
        mock_decode.side_effect = AuthError("Invalid token", AuthErrorCode.INVALID_TOKEN)

        with pytest.raises(AuthenticationError):
            await get_optional_user("Bearer junk")


class TestGetOperatorUser:
    """Tests for get_operator_user dependency."""

    @pytest.mark.asyncio
    async def test_operator_allowed(self) -> None:
        user = UserContext(user_id=uuid.uuid4())
        users = MagicMock()
        users.is_operator = AsyncMock(return_value=True)

        assert await get_operator_user(user, users) is user
        users.is_operator.assert_awaited_once_with(user.user_id)

    @pytest.mark.asyncio
    async def test_non_operator_forbidden(self) -> None:
        users = MagicMock()
        users.is_operator = AsyncMock(return_value=False)

        with pytest.raises(AuthorizationError) as exc_info:
            await get_operator_user(UserContext(user_id=uuid.uuid4()), users)

        assert exc_info.value.status_code == 403


class TestPublicStatusRateLimit:
    """Tests for check_public_status_rate_limit."""

    @pytest.mark.asyncio
    async def test_limits_per_client_address(self) -> None:
        limiter = InMemoryRateLimitStorage()
        settings = MagicMock()
        settings.public_status_rate_limit_requests = 2
        settings.public_status_rate_limit_window_seconds = 60

        first_client = MagicMock()
        first_client.client.host = "203.0.113.7"
        second_client = MagicMock()
        second_client.client.host = "203.0.113.8"

        with (
            patch("src.api.deps.get_rate_limiter", return_value=limiter),
            patch("src.api.deps.get_settings", return_value=settings),
        ):
            await check_public_status_rate_limit(first_client)
            await check_public_status_rate_limit(first_client)

            with pytest.raises(RateLimitError) as exc_info:
                await check_public_status_rate_limit(first_client)

            await check_public_status_rate_limit(second_client)

        assert exc_info.value.retry_after > 0
        assert exc_info.value.limit == 2
