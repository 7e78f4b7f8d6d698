"""Authentication dependencies for FastAPI."""

from typing import Annotated, Callable

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from api.dependencies.database import get_uow_factory
from core.exceptions import AuthenticationError, AuthorizationError, ErrorCode
from domain.entities.member import Member
from domain.repositories.unit_of_work import IUnitOfWork
from infrastructure.auth.jwt_provider import JWTAuthProvider
from infrastructure.auth.provider import TokenUser

# Security scheme for OpenAPI docs
security = HTTPBearer(auto_error=False)

# Singleton auth provider
_auth_provider: JWTAuthProvider | None = None


def get_auth_provider() -> JWTAuthProvider:
    """Get or create the auth provider singleton."""
    global _auth_provider
    if _auth_provider is None:
        _auth_provider = JWTAuthProvider()
    return _auth_provider


async def get_current_user(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None,
        Depends(security),
    ],
    auth_provider: JWTAuthProvider = Depends(get_auth_provider),
) -> TokenUser:
    """
    Dependency to get the current authenticated account.

    Raises:
        AuthenticationError: If no token provided or token is invalid
    """
    if not credentials:
        raise AuthenticationError(
            message="Authorization header required",
            error_code=ErrorCode.UNAUTHORIZED,
        )

    token = credentials.credentials
    user = await auth_provider.validate_token(token)

    if not user:
        raise AuthenticationError(
            message="Invalid or expired token",
            error_code=ErrorCode.INVALID_TOKEN,
        )

    return user


# Type alias for convenience in route handlers
CurrentUser = Annotated[TokenUser, Depends(get_current_user)]


async def get_current_member(
    user: CurrentUser,
    uow_factory: Callable[[], IUnitOfWork] = Depends(get_uow_factory),
) -> Member:
    """
    Dependency resolving the authenticated account to its club member.

    Raises:
        AuthorizationError: If the account has no member record
    """
    async with uow_factory() as uow:
        member = await uow.members.get_by_user_id(user.id)

    if not member:
        raise AuthorizationError("No club member is linked to this account")

    return member


CurrentMember = Annotated[Member, Depends(get_current_member)]
