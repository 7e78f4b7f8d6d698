"""Group service layer with business logic."""

from datetime import datetime
from typing import Callable, List, Optional
from uuid import UUID

import structlog

from core.exceptions import (
    AlreadyAGroupMemberError,
    GroupNotFoundError,
    InvariantViolationError,
    MemberNotFoundError,
    MembershipNotFoundError,
    OwnerProtectedError,
    PermissionDeniedError,
)
from domain.entities.group import (
    Group,
    GroupMembership,
    GroupRole,
    GroupSettings,
    GroupSummary,
    GroupType,
    MessagePreview,
    UserGroupView,
)
from domain.entities.member import GroupMemberView
from domain.entities.message import Message
from domain.repositories.unit_of_work import IUnitOfWork
from domain.services import permissions
from domain.services.permissions import ALREADY_A_MEMBER_REASON, PermissionResult

logger = structlog.get_logger()


class GroupService:
    """Service layer for group lifecycle and membership management."""

    def __init__(self, uow_factory: Callable[[], IUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    # --- Queries ---

    async def get_all(self) -> List[Group]:
        """Get every active group."""
        async with self._uow_factory() as uow:
            return await uow.groups.get_all_active()

    async def get_by_id(self, group_id: UUID) -> GroupSummary:
        """Get a group with its member count and latest message."""
        async with self._uow_factory() as uow:
            group = await uow.groups.get(group_id)
            if not group:
                raise GroupNotFoundError(str(group_id))

            return GroupSummary(
                group=group,
                member_count=await uow.groups.count_members(group_id),
                latest_message=await self._latest_preview(uow, group_id),
            )

    async def get_by_type(self, group_type: GroupType) -> List[GroupSummary]:
        """Get active groups of one type with member counts."""
        async with self._uow_factory() as uow:
            groups = await uow.groups.get_by_type(group_type)
            return [
                GroupSummary(
                    group=group,
                    member_count=await uow.groups.count_members(group.id),
                )
                for group in groups
            ]

    async def get_user_groups(self, member_id: UUID) -> List[UserGroupView]:
        """Get the groups a member belongs to, ready for a chat sidebar.

        Pinned groups come first; within each block, groups with the most
        recent activity (latest message, else creation time) come first.
        """
        async with self._uow_factory() as uow:
            memberships = await uow.groups.get_memberships_for_member(member_id)

            views: list[UserGroupView] = []
            for membership in memberships:
                group = await uow.groups.get(membership.group_id)
                if not group or not group.active:
                    continue

                views.append(
                    UserGroupView(
                        group=group,
                        membership=membership,
                        unread_count=await uow.messages.count_after(
                            group.id, membership.last_read_at
                        ),
                        member_count=await uow.groups.count_members(group.id),
                        latest_message=await self._latest_preview(uow, group.id),
                    )
                )

        views.sort(key=lambda v: v.last_activity_at, reverse=True)
        views.sort(key=lambda v: not v.membership.is_pinned)
        return views

    async def get_members(self, group_id: UUID) -> List[GroupMemberView]:
        """Get the members of a group with their roles."""
        async with self._uow_factory() as uow:
            memberships = await uow.groups.get_memberships(group_id)
            members = await uow.members.get_many([m.member_id for m in memberships])
            by_id = {member.id: member for member in members}

            return [
                GroupMemberView(
                    member=by_id[m.member_id],
                    group_role=m.role,
                    joined_at=m.joined_at,
                )
                for m in memberships
                if m.member_id in by_id
            ]

    async def check_can_create_group(
        self, member_id: UUID, group_type: GroupType
    ) -> PermissionResult:
        """Tell a client up front whether a create would be allowed."""
        async with self._uow_factory() as uow:
            return await permissions.can_create_group(uow, member_id, group_type)

    # --- Group lifecycle ---

    async def create_group(
        self,
        member_id: UUID,
        name: str,
        group_type: GroupType,
        is_private: bool,
        description: Optional[str] = None,
        auto_join: bool = False,
        class_id: Optional[UUID] = None,
        settings: Optional[GroupSettings] = None,
    ) -> Group:
        """Create a group owned by the caller.

        The group, the owner membership, the auto-joined memberships and the
        announcement are written in one transaction.
        """
        async with self._uow_factory() as uow:
            permissions.require(
                await permissions.can_create_group(uow, member_id, group_type),
                "Cannot create group",
            )

            now = datetime.utcnow()
            group = Group(
                name=name,
                type=group_type,
                created_by=member_id,
                description=description,
                is_private=is_private,
                auto_join=auto_join,
                class_id=class_id,
                settings=settings,
                created_at=now,
                updated_at=now,
            )
            created = await uow.groups.create(group)

            await uow.groups.add_membership(
                GroupMembership(
                    group_id=created.id,
                    member_id=member_id,
                    role=GroupRole.OWNER,
                    joined_at=now,
                )
            )

            auto_joined = 0
            if auto_join:
                active_members = await uow.members.get_active()
                added = await uow.groups.add_memberships(
                    [
                        GroupMembership(
                            group_id=created.id,
                            member_id=member.id,
                            role=GroupRole.MEMBER,
                            joined_at=now,
                        )
                        for member in active_members
                        if member.id != member_id
                    ]
                )
                auto_joined = len(added)

            creator_name = await uow.members.get_display_name(member_id)
            await uow.messages.create(
                Message.system(
                    group_id=created.id,
                    actor_id=member_id,
                    actor_name=creator_name,
                    content=f"{creator_name} created this group",
                    created_at=now,
                )
            )

            await uow.commit()

        logger.info(
            "group_created",
            group_id=str(created.id),
            group_type=group_type.value,
            created_by=str(member_id),
            auto_joined=auto_joined,
        )
        return created

    async def update_group(
        self,
        group_id: UUID,
        member_id: UUID,
        name: Optional[str] = None,
        description: Optional[str] = None,
        is_private: Optional[bool] = None,
        settings: Optional[GroupSettings] = None,
    ) -> Group:
        """Update group details. Requires group Owner or Admin."""
        async with self._uow_factory() as uow:
            group = await uow.groups.get(group_id)
            if not group:
                raise GroupNotFoundError(str(group_id))

            permissions.require(
                await permissions.can_manage_group(uow, member_id, group_id),
                "Cannot update group",
            )

            if name is not None:
                group.name = name
            if description is not None:
                group.description = description
            if is_private is not None:
                group.is_private = is_private
            if settings is not None:
                group.settings = settings
            group.updated_at = datetime.utcnow()

            updated = await uow.groups.update(group)
            await uow.commit()
            return updated

    async def delete_group(self, group_id: UUID, member_id: UUID) -> bool:
        """Deactivate a group. Only the owner may do this."""
        async with self._uow_factory() as uow:
            group = await uow.groups.get(group_id)
            if not group:
                raise GroupNotFoundError(str(group_id))

            role = await permissions.get_member_role(uow, member_id, group_id)
            if role != GroupRole.OWNER:
                raise PermissionDeniedError("Only group owners can delete groups")

            group.active = False
            group.updated_at = datetime.utcnow()
            await uow.groups.update(group)
            await uow.commit()

        logger.info("group_deactivated", group_id=str(group_id), deleted_by=str(member_id))
        return True

    # --- Membership ---

    async def add_member(
        self,
        group_id: UUID,
        member_id: UUID,
        added_by: UUID,
        role: GroupRole = GroupRole.MEMBER,
    ) -> GroupMembership:
        """Add a member to a group. Requires group Owner or Admin.

        The new member must still satisfy the join rules (active member,
        active group, public, below capacity).
        """
        if role == GroupRole.OWNER:
            raise InvariantViolationError("A group can only have one owner")

        async with self._uow_factory() as uow:
            group = await uow.groups.get(group_id)
            if not group:
                raise GroupNotFoundError(str(group_id))

            permissions.require(
                await permissions.can_manage_group(uow, added_by, group_id),
                "Cannot add members to this group",
            )

            if not await uow.members.get(member_id):
                raise MemberNotFoundError(str(member_id))

            join = await permissions.can_join_group(uow, member_id, group_id)
            if not join.allowed and join.reason != ALREADY_A_MEMBER_REASON:
                permissions.require(join, "Member cannot join this group")

            if await uow.groups.get_membership(group_id, member_id):
                raise AlreadyAGroupMemberError(str(member_id))

            now = datetime.utcnow()
            added = await uow.groups.add_membership(
                GroupMembership(
                    group_id=group_id,
                    member_id=member_id,
                    role=role,
                    joined_at=now,
                )
            )

            adder_name = await uow.members.get_display_name(added_by)
            new_member_name = await uow.members.get_display_name(member_id)
            await uow.messages.create(
                Message.system(
                    group_id=group_id,
                    actor_id=added_by,
                    actor_name=adder_name,
                    content=f"{adder_name} added {new_member_name} to the group",
                    created_at=now,
                )
            )

            await uow.commit()

        logger.info(
            "member_added",
            group_id=str(group_id),
            member_id=str(member_id),
            added_by=str(added_by),
            role=role.label,
        )
        return added

    async def join_group(self, group_id: UUID, member_id: UUID) -> GroupMembership:
        """Join a public group as a regular member."""
        async with self._uow_factory() as uow:
            group = await uow.groups.get(group_id)
            if not group:
                raise GroupNotFoundError(str(group_id))

            join = await permissions.can_join_group(uow, member_id, group_id)
            if join.reason == ALREADY_A_MEMBER_REASON:
                raise AlreadyAGroupMemberError(str(member_id))
            permissions.require(join, "Cannot join this group")

            now = datetime.utcnow()
            joined = await uow.groups.add_membership(
                GroupMembership(group_id=group_id, member_id=member_id, joined_at=now)
            )

            name = await uow.members.get_display_name(member_id)
            await uow.messages.create(
                Message.system(
                    group_id=group_id,
                    actor_id=member_id,
                    actor_name=name,
                    content=f"{name} joined the group",
                    created_at=now,
                )
            )

            await uow.commit()

        logger.info("member_joined", group_id=str(group_id), member_id=str(member_id))
        return joined

    async def remove_member(
        self, group_id: UUID, member_id: UUID, removed_by: UUID
    ) -> bool:
        """Remove a member from a group. Requires group Owner or Admin."""
        async with self._uow_factory() as uow:
            permissions.require(
                await permissions.can_manage_group(uow, removed_by, group_id),
                "Cannot remove members from this group",
            )

            target = await uow.groups.get_membership(group_id, member_id)
            if target and target.role == GroupRole.OWNER:
                raise OwnerProtectedError("Cannot remove the group owner")
            if not target:
                raise MembershipNotFoundError(str(member_id))

            await uow.groups.remove_membership(group_id, member_id)

            remover_name = await uow.members.get_display_name(removed_by)
            removed_name = await uow.members.get_display_name(member_id)
            await uow.messages.create(
                Message.system(
                    group_id=group_id,
                    actor_id=removed_by,
                    actor_name=remover_name,
                    content=f"{remover_name} removed {removed_name} from the group",
                )
            )

            await uow.commit()

        logger.info(
            "member_removed",
            group_id=str(group_id),
            member_id=str(member_id),
            removed_by=str(removed_by),
        )
        return True

    async def update_member_role(
        self,
        group_id: UUID,
        member_id: UUID,
        new_role: GroupRole,
        updated_by: UUID,
    ) -> GroupMembership:
        """Promote or demote a member. Only the owner may do this."""
        async with self._uow_factory() as uow:
            updater_role = await permissions.get_member_role(uow, updated_by, group_id)
            if updater_role != GroupRole.OWNER:
                raise PermissionDeniedError("Only group owners can change member roles")

            if new_role == GroupRole.OWNER:
                raise InvariantViolationError("A group can only have one owner")

            membership = await uow.groups.get_membership(group_id, member_id)
            if not membership:
                raise MembershipNotFoundError(str(member_id))

            if membership.role == GroupRole.OWNER:
                raise OwnerProtectedError("Cannot change the owner's role")

            membership.role = new_role
            updated = await uow.groups.update_membership(membership)
            await uow.commit()

        logger.info(
            "member_role_changed",
            group_id=str(group_id),
            member_id=str(member_id),
            role=new_role.label,
        )
        return updated

    async def leave_group(self, group_id: UUID, member_id: UUID) -> bool:
        """Leave a group. The owner cannot leave."""
        async with self._uow_factory() as uow:
            membership = await uow.groups.get_membership(group_id, member_id)
            if membership and membership.role == GroupRole.OWNER:
                raise OwnerProtectedError(
                    "Group owners cannot leave. Transfer ownership or delete the group."
                )
            if not membership:
                raise MembershipNotFoundError(
                    str(member_id), message="You are not a member of this group"
                )

            await uow.groups.remove_membership(group_id, member_id)

            name = await uow.members.get_display_name(member_id)
            await uow.messages.create(
                Message.system(
                    group_id=group_id,
                    actor_id=member_id,
                    actor_name=name,
                    content=f"{name} left the group",
                )
            )

            await uow.commit()

        logger.info("member_left", group_id=str(group_id), member_id=str(member_id))
        return True

    async def update_membership_settings(
        self,
        group_id: UUID,
        member_id: UUID,
        notifications_enabled: Optional[bool] = None,
        is_muted: Optional[bool] = None,
        is_pinned: Optional[bool] = None,
    ) -> GroupMembership:
        """Update the caller's own notification, mute and pin preferences."""
        async with self._uow_factory() as uow:
            membership = await uow.groups.get_membership(group_id, member_id)
            if not membership:
                raise MembershipNotFoundError(
                    str(member_id), message="You are not a member of this group"
                )

            if notifications_enabled is not None:
                membership.notifications_enabled = notifications_enabled
            if is_muted is not None:
                membership.is_muted = is_muted
            if is_pinned is not None:
                membership.is_pinned = is_pinned

            updated = await uow.groups.update_membership(membership)
            await uow.commit()
            return updated

    # --- Internal helpers ---

    async def _latest_preview(
        self, uow: IUnitOfWork, group_id: UUID
    ) -> MessagePreview | None:
        latest = await uow.messages.get_latest(group_id)
        if not latest:
            return None
        return MessagePreview(
            content=latest.content,
            sender_name=latest.sender_name,
            created_at=latest.created_at,
        )
