"""Group repository protocol."""

from typing import Protocol
from uuid import UUID

from domain.entities.group import Group, GroupMembership, GroupType


class IGroupRepository(Protocol):
    """Repository interface for Group and GroupMembership entities."""

    async def get(self, id: UUID) -> Group | None:
        """Get a group by ID (active or not)."""
        ...

    async def get_all_active(self) -> list[Group]:
        """Get every active group."""
        ...

    async def get_by_type(self, group_type: GroupType) -> list[Group]:
        """Get active groups of one type."""
        ...

    async def count_created_by(self, member_id: UUID, group_type: GroupType) -> int:
        """Count groups of a type created by a member."""
        ...

    async def create(self, group: Group) -> Group:
        """Create a new group."""
        ...

    async def update(self, group: Group) -> Group:
        """Persist the mutable fields of an existing group."""
        ...

    async def get_membership(
        self, group_id: UUID, member_id: UUID
    ) -> GroupMembership | None:
        """Get a member's membership in a group."""
        ...

    async def get_memberships(self, group_id: UUID) -> list[GroupMembership]:
        """Get all memberships of a group."""
        ...

    async def get_memberships_for_member(self, member_id: UUID) -> list[GroupMembership]:
        """Get all memberships held by a member."""
        ...

    async def add_membership(self, membership: GroupMembership) -> GroupMembership:
        """Add a membership."""
        ...

    async def add_memberships(
        self, memberships: list[GroupMembership]
    ) -> list[GroupMembership]:
        """Batch-add memberships."""
        ...

    async def update_membership(self, membership: GroupMembership) -> GroupMembership:
        """Persist role, read cursor and preferences of a membership."""
        ...

    async def remove_membership(self, group_id: UUID, member_id: UUID) -> bool:
        """Hard-delete a membership."""
        ...

    async def count_members(self, group_id: UUID) -> int:
        """Count memberships in a group."""
        ...
