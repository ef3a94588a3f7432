"""Unit tests for JWT decoding and authentication utilities."""

import json
import time
from collections.abc import Generator
from unittest.mock import MagicMock, patch

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import ec
from jwt.algorithms import ECAlgorithm

from src.api.middleware.auth import AuthError, AuthErrorCode, decode_jwt, get_signing_key

SIGNING_KEY = ec.generate_private_key(ec.SECP256R1())
OTHER_KEY = ec.generate_private_key(ec.SECP256R1())


def public_jwk(private_key: ec.EllipticCurvePrivateKey) -> str:
    jwk = json.loads(ECAlgorithm.to_jwk(private_key.public_key()))
    jwk["alg"] = "ES256"
    return json.dumps(jwk)


def create_test_token(
    sub: str = "550e8400-e29b-41d4-a716-446655440000",
    email: str | None = "test@example.com",
    exp_offset: int = 3600,
    key: ec.EllipticCurvePrivateKey = SIGNING_KEY,
    **extra: object,
) -> str:
    """Create an ES256 token the way Supabase Auth issues them."""
    now = int(time.time())
    payload = {
        "sub": sub,
        "email": email,
        "role": "authenticated",
        "exp": now + exp_offset,
        "iat": now,
        "aud": "authenticated",
        "iss": "https://test.supabase.co/auth/v1",
    }
    payload.update(extra)
    return jwt.encode(payload, key, algorithm="ES256")


@pytest.fixture(autouse=True)
def signing_key_setting() -> Generator[MagicMock, None, None]:
    get_signing_key.cache_clear()
    with patch("src.api.middleware.auth.get_settings") as mock_settings:
        mock_settings.return_value.supabase_signing_key_jwk = public_jwk(SIGNING_KEY)
        yield mock_settings
    get_signing_key.cache_clear()


class TestDecodeJWT:
    """Tests for decode_jwt function."""

    def test_decode_jwt_with_valid_token(self) -> None:
        payload = decode_jwt(create_test_token())

        assert payload.sub == "550e8400-e29b-41d4-a716-446655440000"
        assert payload.email == "test@example.com"
        assert payload.aud == "authenticated"

    def test_user_context_from_token(self) -> None:
        user = decode_jwt(create_test_token()).to_user_context()

        assert str(user.user_id) == "550e8400-e29b-41d4-a716-446655440000"
        assert user.role == "authenticated"

    def test_list_audience_joined(self) -> None:
        payload = decode_jwt(create_test_token(aud=["authenticated", "storefront"]))

        assert payload.aud == "authenticated,storefront"

    def test_decode_jwt_with_expired_token(self) -> None:
        with pytest.raises(AuthError) as exc_info:
            decode_jwt(create_test_token(exp_offset=-3600))

        assert exc_info.value.code == AuthErrorCode.TOKEN_EXPIRED

    def test_decode_jwt_with_invalid_signature(self) -> None:
        with pytest.raises(AuthError) as exc_info:
            decode_jwt(create_test_token(key=OTHER_KEY))

        assert exc_info.value.code == AuthErrorCode.INVALID_SIGNATURE

    def test_decode_jwt_with_malformed_token(self) -> None:
        with pytest.raises(AuthError) as exc_info:
            decode_jwt("not-a-jwt")

        assert exc_info.value.code == AuthErrorCode.INVALID_TOKEN

    def test_decode_jwt_rejects_other_algorithms(self) -> None:
        now = int(time.time())
        token = jwt.encode(
            {"sub": "550e8400-e29b-41d4-a716-446655440000", "exp": now + 60, "iat": now},
            "shared-secret-long-enough-for-hs256-checks",
            algorithm="HS256",
        )

        with pytest.raises(AuthError) as exc_info:
            decode_jwt(token)

        assert exc_info.value.code == AuthErrorCode.INVALID_TOKEN

    def test_decode_jwt_requires_subject(self) -> None:
        now = int(time.time())
        token = jwt.encode({"exp": now + 60, "iat": now}, SIGNING_KEY, algorithm="ES256")

        with pytest.raises(AuthError) as exc_info:
            decode_jwt(token)

        assert exc_info.value.code == AuthErrorCode.INVALID_TOKEN
        assert "sub" in exc_info.value.message


class TestGetSigningKey:
    """Tests for get_signing_key."""

    def test_loads_es256_key(self) -> None:
        assert get_signing_key().algorithm_name == "ES256"

    def test_missing_key_rejected(self, signing_key_setting: MagicMock) -> None:
        signing_key_setting.return_value.supabase_signing_key_jwk = ""

        with pytest.raises(AuthError):
            get_signing_key()

    def test_malformed_key_rejected(self, signing_key_setting: MagicMock) -> None:
        signing_key_setting.return_value.supabase_signing_key_jwk = '{"kty": "nope"}'

        with pytest.raises(AuthError) as exc_info:
            get_signing_key()

        assert "Invalid signing key JWK" in exc_info.value.message
