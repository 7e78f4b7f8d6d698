"""JWT authentication provider implementation.

Session tokens are issued by the club's account service and signed with a
shared secret (HS256). Payload structure:
    {
        "sub": "account-uuid",
        "email": "judoka@example.com",
        "name": "Aiko Tanaka",
        "role": "member",
        "exp": 1234567890
    }

``sub`` is the account id; it maps to ``members.user_id`` in the club
directory.
"""

from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

import structlog
from jose import JWTError, jwt

from core.config import settings
from infrastructure.auth.provider import TokenUser

logger = structlog.get_logger()


class JWTAuthProvider:
    """JWT-based authentication provider."""

    def __init__(
        self,
        secret_key: str = settings.jwt_secret_key,
        algorithm: str = settings.jwt_algorithm,
        expire_minutes: int = settings.jwt_expire_minutes,
    ) -> None:
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._expire_minutes = expire_minutes

    async def validate_token(self, token: str) -> Optional[TokenUser]:
        """
        Validate a JWT token and extract the account info.

        Args:
            token: The JWT to validate

        Returns:
            TokenUser if valid, None if invalid, expired or missing claims
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options={"verify_aud": False},
            )
        except JWTError as exc:
            logger.debug("token_rejected", error=str(exc))
            return None

        user_id = payload.get("sub")
        email = payload.get("email")

        if not user_id or not email:
            return None

        try:
            account_id = UUID(user_id)
        except ValueError:
            return None

        return TokenUser(
            id=account_id,
            email=email,
            display_name=payload.get("name"),
            role=payload.get("role"),
        )

    def create_token(self, user: TokenUser) -> str:
        """
        Create a JWT token for an account (used by tests and local tooling).

        Args:
            user: The account to create a token for

        Returns:
            The generated JWT string
        """
        expire = datetime.utcnow() + timedelta(minutes=self._expire_minutes)

        payload: dict = {
            "sub": str(user.id),
            "email": user.email,
            "name": user.display_name,
            "role": user.role or "member",
            "exp": expire,
        }

        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)
