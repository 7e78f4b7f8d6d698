"""Pytest configuration and fixtures."""

import os
import sys
from collections.abc import AsyncGenerator, Awaitable, Callable
from pathlib import Path
from typing import Any
from uuid import UUID, uuid4

# Disable rate limiting in tests
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.pool import StaticPool

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from domain.entities.member import Member, SubscriptionStatus
from infrastructure.auth.jwt_provider import JWTAuthProvider
from infrastructure.auth.provider import TokenUser
from infrastructure.database.models import AdminModel, Base, MemberModel
from infrastructure.database.sqlalchemy_uow import SQLAlchemyUnitOfWork


# Compile JSONB as JSON for SQLite (used in tests)
@compiles(JSONB, "sqlite")
def _compile_jsonb_sqlite(type_: Any, compiler: Any, **kw: Any) -> str:
    return "JSON"


# Test database URL (SQLite in memory)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

MakeMember = Callable[..., Awaitable[Member]]


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh in-memory database per test.

    StaticPool keeps a single connection so every session sees the same
    in-memory database.
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create session factory."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
def uow_factory(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[[], SQLAlchemyUnitOfWork]:
    """Unit of Work factory bound to the test database."""

    def factory() -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(session_factory)

    return factory


@pytest.fixture
def make_member(session_factory: async_sessionmaker[AsyncSession]) -> MakeMember:
    """Insert a club member (optionally a club admin) and return the entity."""

    async def _make(
        name: str,
        *,
        status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
        admin: bool = False,
        user_id: UUID | None = None,
    ) -> Member:
        member = Member(
            user_id=user_id or uuid4(),
            name=name,
            email=f"{name.lower().replace(' ', '.')}@dojo.test",
            subscription_status=status,
        )
        async with session_factory() as session:
            session.add(
                MemberModel(
                    id=member.id,
                    user_id=member.user_id,
                    name=member.name,
                    email=member.email,
                    subscription_status=member.subscription_status.value,
                    created_at=member.created_at,
                )
            )
            if admin:
                session.add(AdminModel(user_id=member.user_id, role="coach"))
            await session.commit()
        return member

    return _make


@pytest.fixture
def auth_provider() -> JWTAuthProvider:
    """Create auth provider for testing."""
    return JWTAuthProvider(
        secret_key="test-secret-key",
        algorithm="HS256",
        expire_minutes=30,
    )


@pytest.fixture
def headers_for(auth_provider: JWTAuthProvider) -> Callable[[Member], dict[str, str]]:
    """Build authorization headers for a seeded member's account."""

    def _headers(member: Member) -> dict[str, str]:
        token = auth_provider.create_token(
            TokenUser(id=member.user_id, email=member.email, display_name=member.name)
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create async test client (no auth, no database)."""
    from main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
async def api_client(
    uow_factory: Callable[[], SQLAlchemyUnitOfWork],
    auth_provider: JWTAuthProvider,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create a test client wired to the in-memory database.

    Requests authenticate with real tokens from ``headers_for``; the
    services and the member lookup use the test Unit of Work factory.
    """
    from api.dependencies.auth import get_auth_provider
    from api.dependencies.database import get_uow_factory
    from api.v1.dependencies import get_group_service, get_message_service
    from domain.services.group_service import GroupService
    from domain.services.message_service import MessageService
    from main import create_app

    app = create_app()

    app.dependency_overrides[get_auth_provider] = lambda: auth_provider
    app.dependency_overrides[get_uow_factory] = lambda: uow_factory
    app.dependency_overrides[get_group_service] = lambda: GroupService(uow_factory)
    app.dependency_overrides[get_message_service] = lambda: MessageService(uow_factory)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
