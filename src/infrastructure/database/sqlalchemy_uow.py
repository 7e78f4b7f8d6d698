"""SQLAlchemy Unit of Work implementation."""

from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from infrastructure.database.repositories.sqlalchemy_group_repo import SQLAlchemyGroupRepository
from infrastructure.database.repositories.sqlalchemy_member_repo import (
    SQLAlchemyAdminRegistry,
    SQLAlchemyMemberDirectory,
)
from infrastructure.database.repositories.sqlalchemy_message_repo import SQLAlchemyMessageRepository


class SQLAlchemyUnitOfWork:
    """Unit of Work implementation using SQLAlchemy.

    One instance wraps one session, so every repository handed out inside
    the ``async with`` block writes to the same transaction.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._session: Optional[AsyncSession] = None

    def _require_session(self) -> AsyncSession:
        if not self._session:
            raise RuntimeError("UnitOfWork not initialized. Use as context manager.")
        return self._session

    @property
    def groups(self) -> SQLAlchemyGroupRepository:
        """Get group repository."""
        return SQLAlchemyGroupRepository(self._require_session())

    @property
    def messages(self) -> SQLAlchemyMessageRepository:
        """Get message repository."""
        return SQLAlchemyMessageRepository(self._require_session())

    @property
    def members(self) -> SQLAlchemyMemberDirectory:
        """Get member directory."""
        return SQLAlchemyMemberDirectory(self._require_session())

    @property
    def admins(self) -> SQLAlchemyAdminRegistry:
        """Get admin registry."""
        return SQLAlchemyAdminRegistry(self._require_session())

    async def commit(self) -> None:
        """Commit the current transaction."""
        if self._session:
            await self._session.commit()

    async def rollback(self) -> None:
        """Rollback the current transaction."""
        if self._session:
            await self._session.rollback()

    async def __aenter__(self) -> "SQLAlchemyUnitOfWork":
        """Enter the context manager and create session."""
        self._session = self._session_factory()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[Exception],
        exc_tb: Any,
    ) -> None:
        """Exit the context manager, rolling back on error."""
        if self._session:
            if exc_type:
                await self.rollback()
            await self._session.close()
            self._session = None
