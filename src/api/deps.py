"""FastAPI dependency injection functions."""

import logging
from typing import Annotated

from fastapi import Depends, Header, Request

from src.api.middleware.auth import AuthError, AuthErrorCode, decode_jwt
from src.api.middleware.error_handler import AuthenticationError, AuthorizationError, RateLimitError
from src.core.config import get_settings
from src.core.rate_limiter import get_rate_limiter
from src.schemas.auth import UserContext
from src.services.user_service import UserService, get_user_service

logger = logging.getLogger(__name__)


async def get_current_user(
    authorization: Annotated[str, Header(description="Bearer token")] = "",
) -> UserContext:
    """Extract and validate the current user from the Authorization header.

    This dependency requires a valid JWT token in the Authorization header.
    Use this for endpoints that require authentication.

    Args:
        authorization: The Authorization header value (Bearer token).

    Returns:
        UserContext: The authenticated user's context.

    Raises:
        AuthenticationError: 401 if token is missing, invalid, or expired.
    """
    if not authorization:
        raise AuthenticationError("Authorization header required")

    # Extract the token from "Bearer <token>" format
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AuthenticationError("Invalid authorization header format. Expected: Bearer <token>")

    token = parts[1]

    try:
        payload = decode_jwt(token)
        return payload.to_user_context()

    except AuthError as e:
        if e.code == AuthErrorCode.TOKEN_EXPIRED:
            raise AuthenticationError("Token has expired") from e

        raise AuthenticationError(e.message) from e


async def get_optional_user(
    authorization: Annotated[str | None, Header()] = None,
) -> UserContext | None:
    """Extract the current user if an Authorization header is present.

    Returns None if no token is provided. A token that is present but
    invalid is still rejected.

    Args:
        authorization: Optional Authorization header value.

    Returns:
        UserContext | None: The user context if authenticated, None otherwise.
    """
    if not authorization:
        return None

    return await get_current_user(authorization)


async def get_operator_user(
    user: Annotated[UserContext, Depends(get_current_user)],
    user_service: Annotated[UserService, Depends(get_user_service)],
) -> UserContext:
    """Require an authenticated caller whose profile role is an operator role.

    Raises:
        AuthorizationError: 403 if the caller is not an operator.
    """
    if not await user_service.is_operator(user.user_id):
        logger.warning("Operator access denied for user %s", user.user_id)
        raise AuthorizationError("Admin access required")

    return user


# Type aliases for cleaner dependency injection
CurrentUser = Annotated[UserContext, Depends(get_current_user)]
OptionalUser = Annotated[UserContext | None, Depends(get_optional_user)]
OperatorUser = Annotated[UserContext, Depends(get_operator_user)]


# Rate limiting dependency


async def check_public_status_rate_limit(request: Request) -> None:
    """Rate limit the unauthenticated tracking lookup per client address.

    Raises:
        RateLimitError: If the client has exceeded the limit.
    """
    settings = get_settings()
    limiter = get_rate_limiter()

    client_host = request.client.host if request.client else "unknown"
    allowed, _, retry_after = await limiter.check_and_increment(
        f"public-status:{client_host}",
        max_requests=settings.public_status_rate_limit_requests,
        window_seconds=settings.public_status_rate_limit_window_seconds,
    )

    if not allowed:
        raise RateLimitError(
            message="Too many order lookups. Please wait before trying again.",
            retry_after=retry_after,
            limit=settings.public_status_rate_limit_requests,
        )


# Type alias for rate limit dependency
PublicStatusRateLimit = Annotated[None, Depends(check_public_status_rate_limit)]
