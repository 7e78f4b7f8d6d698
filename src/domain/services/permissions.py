"""Permission checks for groups and messages.

Every check is a read-only decision made inside the caller's unit of work.
Checks return a ``PermissionResult`` instead of raising, so callers can show
the reason, ignore specific denials, or turn the result into an error with
``require()``.
"""

from dataclasses import dataclass
from uuid import UUID

import structlog

from core.config import settings
from core.exceptions import PermissionDeniedError
from domain.entities.group import GroupRole, GroupType, has_permission
from domain.repositories.unit_of_work import IUnitOfWork

logger = structlog.get_logger()

MAX_SUBGROUPS_PER_MEMBER = settings.max_subgroups_per_member

ALREADY_A_MEMBER_REASON = "Already a member of this group"


@dataclass(frozen=True, slots=True)
class PermissionResult:
    """Outcome of a permission check."""

    allowed: bool
    reason: str | None = None

    @classmethod
    def allow(cls) -> "PermissionResult":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> "PermissionResult":
        return cls(allowed=False, reason=reason)


def require(result: PermissionResult, fallback: str = "Permission denied") -> None:
    """Raise PermissionDeniedError unless the check passed."""
    if result.allowed:
        return
    reason = result.reason or fallback
    logger.info("permission_denied", reason=reason)
    raise PermissionDeniedError(reason)


async def get_member_role(
    uow: IUnitOfWork, member_id: UUID, group_id: UUID
) -> GroupRole | None:
    """Get a member's role in a group, or None if not a member."""
    membership = await uow.groups.get_membership(group_id, member_id)
    return membership.role if membership else None


async def can_create_group(
    uow: IUnitOfWork, member_id: UUID, group_type: GroupType
) -> PermissionResult:
    """Check whether a member may create a group of the given type.

    Club-wide, competition and class-based groups are reserved for club
    admins. Any active member may create sub-groups, up to a quota.
    """
    member = await uow.members.get(member_id)
    if not member:
        return PermissionResult.deny("Member not found")

    if not member.is_active:
        return PermissionResult.deny("Only active members can create groups")

    if group_type.requires_admin:
        if not await uow.admins.is_admin(member.user_id):
            return PermissionResult.deny(f"Only admins can create {group_type.value} groups")
        return PermissionResult.allow()

    owned = await uow.groups.count_created_by(member_id, GroupType.SUB_GROUP)
    if owned >= MAX_SUBGROUPS_PER_MEMBER:
        return PermissionResult.deny(
            f"You can only create up to {MAX_SUBGROUPS_PER_MEMBER} sub-groups"
        )

    return PermissionResult.allow()


async def can_join_group(
    uow: IUnitOfWork, member_id: UUID, group_id: UUID
) -> PermissionResult:
    """Check whether a member may join a group on their own."""
    member = await uow.members.get(member_id)
    if not member:
        return PermissionResult.deny("Member not found")

    if not member.is_active:
        return PermissionResult.deny("Only active members can join groups")

    group = await uow.groups.get(group_id)
    if not group:
        return PermissionResult.deny("Group not found")

    if not group.active:
        return PermissionResult.deny("Group is not active")

    if await uow.groups.get_membership(group_id, member_id):
        return PermissionResult.deny(ALREADY_A_MEMBER_REASON)

    if group.is_private:
        return PermissionResult.deny(
            "This is a private group. You need an invitation to join."
        )

    if group.settings and group.settings.max_members:
        count = await uow.groups.count_members(group_id)
        if count >= group.settings.max_members:
            return PermissionResult.deny("Group has reached maximum capacity")

    return PermissionResult.allow()


async def can_send_message(
    uow: IUnitOfWork, member_id: UUID, group_id: UUID
) -> PermissionResult:
    """Check whether a member may post in a group."""
    member = await uow.members.get(member_id)
    if not member:
        return PermissionResult.deny("Member not found")

    if not member.is_active:
        return PermissionResult.deny("Only active members can send messages")

    if not await uow.groups.get_membership(group_id, member_id):
        return PermissionResult.deny("You must be a member of this group to send messages")

    return PermissionResult.allow()


async def can_modify_message(
    uow: IUnitOfWork, member_id: UUID, message_id: UUID
) -> PermissionResult:
    """Check whether a member may edit or delete a message.

    Authors may always modify their own messages; group owners and admins
    may moderate anyone's. System messages are never modifiable.
    """
    message = await uow.messages.get(message_id)
    if not message:
        return PermissionResult.deny("Message not found")

    if message.is_system:
        return PermissionResult.deny("System messages cannot be modified")

    if message.sender_id == member_id:
        return PermissionResult.allow()

    role = await get_member_role(uow, member_id, message.group_id)
    if has_permission(role, GroupRole.ADMIN):
        return PermissionResult.allow()

    return PermissionResult.deny("You can only modify your own messages")


async def can_manage_group(
    uow: IUnitOfWork, member_id: UUID, group_id: UUID
) -> PermissionResult:
    """Check whether a member may change group details and membership."""
    role = await get_member_role(uow, member_id, group_id)
    if has_permission(role, GroupRole.ADMIN):
        return PermissionResult.allow()

    return PermissionResult.deny("Only group owners and admins can manage the group")


async def can_invite_to_group(
    uow: IUnitOfWork, member_id: UUID, group_id: UUID
) -> PermissionResult:
    """Check whether a member may invite others to a group."""
    group = await uow.groups.get(group_id)
    if not group:
        return PermissionResult.deny("Group not found")

    role = await get_member_role(uow, member_id, group_id)
    if role is None:
        return PermissionResult.deny("You must be a member of this group to invite others")

    if has_permission(role, GroupRole.ADMIN):
        return PermissionResult.allow()

    if group.settings and group.settings.allow_member_invites:
        return PermissionResult.allow()

    return PermissionResult.deny("Only group admins can invite members to this group")
