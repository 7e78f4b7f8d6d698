"""Club directory protocols (members and admins).

Both are read-only from this service's point of view.
"""

from typing import Protocol
from uuid import UUID

from domain.entities.member import Member


class IMemberDirectory(Protocol):
    """Read access to club members."""

    async def get(self, id: UUID) -> Member | None:
        """Get a member by ID."""
        ...

    async def get_by_user_id(self, user_id: UUID) -> Member | None:
        """Get the member record linked to an auth account."""
        ...

    async def get_many(self, ids: list[UUID]) -> list[Member]:
        """Get several members by ID; missing IDs are skipped."""
        ...

    async def get_active(self) -> list[Member]:
        """Get every member with an active subscription."""
        ...

    async def get_display_name(self, id: UUID) -> str:
        """Get a member's name, or a placeholder if the member is gone."""
        ...


class IAdminRegistry(Protocol):
    """Read access to club administrators."""

    async def is_admin(self, user_id: UUID) -> bool:
        """Check whether an auth account is a club admin."""
        ...
