"""Unit tests for JWTAuthProvider."""

from uuid import uuid4

import pytest
from jose import jwt as jose_jwt

from infrastructure.auth.jwt_provider import JWTAuthProvider
from infrastructure.auth.provider import TokenUser


def _make_hs256_token(payload: dict, secret: str = "test-secret") -> str:
    """Create an HS256-signed JWT with a given payload."""
    return jose_jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def hs256_provider() -> JWTAuthProvider:
    return JWTAuthProvider(secret_key="test-secret", algorithm="HS256", expire_minutes=30)


class TestValidateToken:
    async def test_round_trips_account_claims(self, hs256_provider: JWTAuthProvider):
        account = TokenUser(
            id=uuid4(), email="aiko@dojo.test", display_name="Aiko Tanaka", role="coach"
        )

        result = await hs256_provider.validate_token(hs256_provider.create_token(account))

        assert result == account

    async def test_defaults_role_to_member(self, hs256_provider: JWTAuthProvider):
        account = TokenUser(id=uuid4(), email="bruno@dojo.test")

        result = await hs256_provider.validate_token(hs256_provider.create_token(account))

        assert result is not None
        assert result.role == "member"

    async def test_rejects_wrong_secret(self, hs256_provider: JWTAuthProvider):
        token = _make_hs256_token(
            {"sub": str(uuid4()), "email": "x@dojo.test", "exp": 9999999999},
            secret="someone-else",
        )

        assert await hs256_provider.validate_token(token) is None

    async def test_rejects_garbage(self, hs256_provider: JWTAuthProvider):
        assert await hs256_provider.validate_token("not.a.jwt") is None

    async def test_rejects_expired_token(self):
        issuer = JWTAuthProvider(secret_key="test-secret", algorithm="HS256", expire_minutes=-1)
        validator = JWTAuthProvider(secret_key="test-secret", algorithm="HS256", expire_minutes=30)
        token = issuer.create_token(TokenUser(id=uuid4(), email="x@dojo.test"))

        assert await validator.validate_token(token) is None


class TestValidateTokenMissingClaims:
    """validate_token returns None when required claims are missing or malformed."""

    @pytest.mark.parametrize(
        "payload",
        [
            {"email": "user@example.com"},
            {"sub": str(uuid4())},
            {"sub": "", "email": "user@example.com"},
            {"sub": str(uuid4()), "email": ""},
        ],
        ids=["no-sub", "no-email", "empty-sub", "empty-email"],
    )
    async def test_returns_none(self, hs256_provider: JWTAuthProvider, payload: dict):
        token = _make_hs256_token({**payload, "exp": 9999999999})

        assert await hs256_provider.validate_token(token) is None

    async def test_returns_none_when_sub_is_not_a_uuid(self, hs256_provider: JWTAuthProvider):
        token = _make_hs256_token(
            {"sub": "account-42", "email": "user@example.com", "exp": 9999999999}
        )

        assert await hs256_provider.validate_token(token) is None


class TestJWTAuthProviderInit:
    def test_stores_configuration(self):
        provider = JWTAuthProvider(secret_key="my-secret", algorithm="HS256", expire_minutes=15)

        assert provider._algorithm == "HS256"
        assert provider._secret_key == "my-secret"
        assert provider._expire_minutes == 15
