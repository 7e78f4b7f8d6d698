"""SQLAlchemy implementation of Group repository."""

from dataclasses import asdict
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from domain.entities.group import (
    Group,
    GroupMembership,
    GroupRole,
    GroupSettings,
    GroupType,
)
from infrastructure.database.models import GroupMembershipModel, GroupModel


class SQLAlchemyGroupRepository:
    """SQLAlchemy implementation of IGroupRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, id: UUID) -> Group | None:
        """Get a group by ID."""
        stmt = select(GroupModel).where(GroupModel.id == id)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def get_all_active(self) -> list[Group]:
        """Get every active group, oldest first."""
        stmt = (
            select(GroupModel)
            .where(GroupModel.active.is_(True))
            .order_by(GroupModel.created_at)
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars()]

    async def get_by_type(self, group_type: GroupType) -> list[Group]:
        """Get active groups of one type, oldest first."""
        stmt = (
            select(GroupModel)
            .where(
                GroupModel.type == group_type.value,
                GroupModel.active.is_(True),
            )
            .order_by(GroupModel.created_at)
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars()]

    async def count_created_by(self, member_id: UUID, group_type: GroupType) -> int:
        """Count groups of a type created by a member, deactivated ones included."""
        stmt = (
            select(func.count())
            .select_from(GroupModel)
            .where(
                GroupModel.created_by == member_id,
                GroupModel.type == group_type.value,
            )
        )
        result = await self._session.execute(stmt)
        return result.scalar_one()

    async def create(self, group: Group) -> Group:
        """Create a new group."""
        model = self._to_model(group)
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_entity(model)

    async def update(self, group: Group) -> Group:
        """Update an existing group."""
        stmt = select(GroupModel).where(GroupModel.id == group.id)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()

        if not model:
            raise ValueError(f"Group {group.id} not found")

        model.name = group.name
        model.description = group.description
        model.is_private = group.is_private
        model.auto_join = group.auto_join
        model.settings = self._settings_to_json(group.settings)
        model.active = group.active
        model.updated_at = group.updated_at

        await self._session.flush()
        return self._to_entity(model)

    async def get_membership(
        self, group_id: UUID, member_id: UUID
    ) -> GroupMembership | None:
        """Get a specific group membership."""
        stmt = select(GroupMembershipModel).where(
            GroupMembershipModel.group_id == group_id,
            GroupMembershipModel.member_id == member_id,
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._membership_to_entity(model) if model else None

    async def get_memberships(self, group_id: UUID) -> list[GroupMembership]:
        """Get all memberships of a group, in join order."""
        stmt = (
            select(GroupMembershipModel)
            .where(GroupMembershipModel.group_id == group_id)
            .order_by(GroupMembershipModel.joined_at)
        )
        result = await self._session.execute(stmt)
        return [self._membership_to_entity(model) for model in result.scalars()]

    async def get_memberships_for_member(self, member_id: UUID) -> list[GroupMembership]:
        """Get all memberships held by a member, in join order."""
        stmt = (
            select(GroupMembershipModel)
            .where(GroupMembershipModel.member_id == member_id)
            .order_by(GroupMembershipModel.joined_at)
        )
        result = await self._session.execute(stmt)
        return [self._membership_to_entity(model) for model in result.scalars()]

    async def add_membership(self, membership: GroupMembership) -> GroupMembership:
        """Add a member to a group."""
        model = self._membership_to_model(membership)
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._membership_to_entity(model)

    async def add_memberships(
        self, memberships: list[GroupMembership]
    ) -> list[GroupMembership]:
        """Add several members in one flush."""
        if not memberships:
            return []

        models = [self._membership_to_model(m) for m in memberships]
        self._session.add_all(models)
        await self._session.flush()
        return [self._membership_to_entity(model) for model in models]

    async def update_membership(self, membership: GroupMembership) -> GroupMembership:
        """Update role, read cursor and preferences of a membership."""
        stmt = select(GroupMembershipModel).where(
            GroupMembershipModel.group_id == membership.group_id,
            GroupMembershipModel.member_id == membership.member_id,
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()

        if not model:
            raise ValueError("Group membership not found")

        model.role = membership.role.label
        model.last_read_at = membership.last_read_at
        model.notifications_enabled = membership.notifications_enabled
        model.is_muted = membership.is_muted
        model.is_pinned = membership.is_pinned

        await self._session.flush()
        return self._membership_to_entity(model)

    async def remove_membership(self, group_id: UUID, member_id: UUID) -> bool:
        """Remove a member from a group."""
        stmt = delete(GroupMembershipModel).where(
            GroupMembershipModel.group_id == group_id,
            GroupMembershipModel.member_id == member_id,
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def count_members(self, group_id: UUID) -> int:
        """Count members in a group."""
        stmt = (
            select(func.count())
            .select_from(GroupMembershipModel)
            .where(GroupMembershipModel.group_id == group_id)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one()

    @staticmethod
    def _settings_to_json(value: GroupSettings | None) -> dict | None:
        return asdict(value) if value else None

    @staticmethod
    def _settings_from_json(value: dict | None) -> GroupSettings | None:
        if value is None:
            return None
        return GroupSettings(
            allow_member_invites=bool(value.get("allow_member_invites", False)),
            allow_file_sharing=bool(value.get("allow_file_sharing", False)),
            max_members=value.get("max_members"),
        )

    def _to_entity(self, model: GroupModel) -> Group:
        """Convert ORM model to domain entity."""
        return Group(
            id=model.id,
            name=model.name,
            description=model.description,
            type=GroupType(model.type),
            created_by=model.created_by,
            is_private=model.is_private,
            auto_join=model.auto_join,
            class_id=model.class_id,
            settings=self._settings_from_json(model.settings),
            active=model.active,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _to_model(self, entity: Group) -> GroupModel:
        """Convert domain entity to ORM model."""
        return GroupModel(
            id=entity.id,
            name=entity.name,
            description=entity.description,
            type=entity.type.value,
            created_by=entity.created_by,
            is_private=entity.is_private,
            auto_join=entity.auto_join,
            class_id=entity.class_id,
            settings=self._settings_to_json(entity.settings),
            active=entity.active,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )

    def _membership_to_entity(self, model: GroupMembershipModel) -> GroupMembership:
        """Convert membership ORM model to domain entity."""
        return GroupMembership(
            id=model.id,
            group_id=model.group_id,
            member_id=model.member_id,
            role=GroupRole.from_label(model.role),
            joined_at=model.joined_at,
            last_read_at=model.last_read_at,
            notifications_enabled=model.notifications_enabled,
            is_muted=model.is_muted,
            is_pinned=model.is_pinned,
        )

    def _membership_to_model(self, entity: GroupMembership) -> GroupMembershipModel:
        """Convert membership domain entity to ORM model."""
        return GroupMembershipModel(
            id=entity.id,
            group_id=entity.group_id,
            member_id=entity.member_id,
            role=entity.role.label,
            joined_at=entity.joined_at,
            last_read_at=entity.last_read_at,
            notifications_enabled=entity.notifications_enabled,
            is_muted=entity.is_muted,
            is_pinned=entity.is_pinned,
        )
