"""Unit of Work protocol."""

from typing import Protocol

from domain.repositories.group_repository import IGroupRepository
from domain.repositories.member_repository import IAdminRegistry, IMemberDirectory
from domain.repositories.message_repository import IMessageRepository


class IUnitOfWork(Protocol):
    """Unit of Work interface for managing transactions.

    Everything written through one instance commits or rolls back together.
    """

    groups: IGroupRepository
    messages: IMessageRepository
    members: IMemberDirectory
    admins: IAdminRegistry

    async def commit(self) -> None:
        """Commit the current transaction."""
        ...

    async def rollback(self) -> None:
        """Rollback the current transaction."""
        ...

    async def __aenter__(self) -> "IUnitOfWork":
        """Enter the context manager."""
        ...

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore
        """Exit the context manager."""
        ...
