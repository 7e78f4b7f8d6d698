"""Group API routes."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from api.dependencies.auth import CurrentMember
from api.v1.dependencies import get_group_service
from api.v1.schemas.group import (
    AddGroupMemberRequest,
    CanCreateGroupResponse,
    GroupCreate,
    GroupDetailResponse,
    GroupListResponse,
    GroupMemberListResponse,
    GroupMemberResponse,
    GroupResponse,
    GroupSettingsSchema,
    GroupUpdate,
    MembershipDetailResponse,
    MembershipResponse,
    MembershipSettingsUpdate,
    MessagePreviewResponse,
    UpdateMemberRoleRequest,
    UserGroupListResponse,
    UserGroupResponse,
)
from core.rate_limit import READ_LIMIT, WRITE_LIMIT, limiter
from domain.entities.group import (
    Group,
    GroupMembership,
    GroupRole,
    GroupSettings,
    GroupType,
    MessagePreview,
)
from domain.services.group_service import GroupService

router = APIRouter(
    prefix="/groups",
    tags=["groups"],
)


@router.get(
    "",
    response_model=GroupListResponse,
    summary="List groups",
    responses={
        200: {"description": "Active groups, optionally filtered by type"},
    },
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def list_groups(
    request: Request,
    member: CurrentMember,
    group_type: GroupType | None = Query(None, alias="type"),
    service: GroupService = Depends(get_group_service),
) -> GroupListResponse:
    """Get every active group, or only those of one type."""
    if group_type is None:
        groups = await service.get_all()
        data = [_build_group_response(g) for g in groups]
    else:
        summaries = await service.get_by_type(group_type)
        data = [
            _build_group_response(s.group, member_count=s.member_count)
            for s in summaries
        ]
    return GroupListResponse(data=data, meta={"total": len(data)})


@router.get(
    "/mine",
    response_model=UserGroupListResponse,
    summary="List my groups",
    responses={
        200: {"description": "Joined groups, pinned first, then by recent activity"},
    },
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def list_my_groups(
    request: Request,
    member: CurrentMember,
    service: GroupService = Depends(get_group_service),
) -> UserGroupListResponse:
    """Get the caller's groups with unread counts and latest messages."""
    views = await service.get_user_groups(member.id)
    data = [
        UserGroupResponse(
            **_build_group_response(
                v.group,
                member_count=v.member_count,
                latest_message=v.latest_message,
            ).model_dump(),
            membership=_build_membership_response(v.membership),
            unread_count=v.unread_count,
        )
        for v in views
    ]
    return UserGroupListResponse(data=data, meta={"total": len(data)})


@router.get(
    "/can-create",
    response_model=CanCreateGroupResponse,
    summary="Check group creation permission",
    responses={
        200: {"description": "Whether the caller may create a group of this type"},
    },
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def can_create_group(
    request: Request,
    member: CurrentMember,
    group_type: GroupType = Query(..., alias="type"),
    service: GroupService = Depends(get_group_service),
) -> CanCreateGroupResponse:
    """Tell the client whether a create would be allowed, and why not."""
    result = await service.check_can_create_group(member.id, group_type)
    return CanCreateGroupResponse(allowed=result.allowed, reason=result.reason)


@router.post(
    "",
    response_model=GroupDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a group",
    responses={
        201: {"description": "Group created; caller is the owner"},
        403: {"description": "Admin-only group type or sub-group quota reached"},
    },
)
@limiter.limit(WRITE_LIMIT)  # type: ignore[untyped-decorator]
async def create_group(
    request: Request,
    body: GroupCreate,
    member: CurrentMember,
    service: GroupService = Depends(get_group_service),
) -> GroupDetailResponse:
    """Create a new group owned by the caller."""
    group = await service.create_group(
        member_id=member.id,
        name=body.name,
        group_type=body.type,
        is_private=body.is_private,
        description=body.description,
        auto_join=body.auto_join,
        class_id=body.class_id,
        settings=_to_settings(body.settings),
    )
    return GroupDetailResponse(data=_build_group_response(group))


@router.get(
    "/{group_id}",
    response_model=GroupDetailResponse,
    summary="Get a group",
    responses={
        200: {"description": "Group with member count and latest message"},
        404: {"description": "Group not found"},
    },
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def get_group(
    request: Request,
    group_id: UUID,
    member: CurrentMember,
    service: GroupService = Depends(get_group_service),
) -> GroupDetailResponse:
    """Get a single group."""
    summary = await service.get_by_id(group_id)
    return GroupDetailResponse(
        data=_build_group_response(
            summary.group,
            member_count=summary.member_count,
            latest_message=summary.latest_message,
        )
    )


@router.patch(
    "/{group_id}",
    response_model=GroupDetailResponse,
    summary="Update a group",
    responses={
        200: {"description": "Group updated"},
        403: {"description": "Only group owners and admins can manage the group"},
        404: {"description": "Group not found"},
    },
)
@limiter.limit(WRITE_LIMIT)  # type: ignore[untyped-decorator]
async def update_group(
    request: Request,
    group_id: UUID,
    body: GroupUpdate,
    member: CurrentMember,
    service: GroupService = Depends(get_group_service),
) -> GroupDetailResponse:
    """Update group details. Requires group Owner or Admin."""
    group = await service.update_group(
        group_id=group_id,
        member_id=member.id,
        name=body.name,
        description=body.description,
        is_private=body.is_private,
        settings=_to_settings(body.settings),
    )
    return GroupDetailResponse(data=_build_group_response(group))


@router.delete(
    "/{group_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a group",
    responses={
        204: {"description": "Group deactivated"},
        403: {"description": "Only group owners can delete groups"},
        404: {"description": "Group not found"},
    },
)
@limiter.limit(WRITE_LIMIT)  # type: ignore[untyped-decorator]
async def delete_group(
    request: Request,
    group_id: UUID,
    member: CurrentMember,
    service: GroupService = Depends(get_group_service),
) -> None:
    """Deactivate a group. Requires group Owner."""
    await service.delete_group(group_id, member.id)
    return None


# --- Group Member Management ---


@router.get(
    "/{group_id}/members",
    response_model=GroupMemberListResponse,
    summary="List group members",
    responses={
        200: {"description": "Members with their group roles"},
    },
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def list_group_members(
    request: Request,
    group_id: UUID,
    member: CurrentMember,
    service: GroupService = Depends(get_group_service),
) -> GroupMemberListResponse:
    """Get all members of a group."""
    members = await service.get_members(group_id)
    data = [
        GroupMemberResponse(
            member_id=m.member.id,
            name=m.member.name,
            email=m.member.email,
            subscription_status=m.member.subscription_status.value,
            group_role=m.group_role.label,
            joined_at=m.joined_at,
        )
        for m in members
    ]
    return GroupMemberListResponse(data=data, meta={"total": len(data)})


@router.post(
    "/{group_id}/members",
    response_model=MembershipDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add group member",
    responses={
        201: {"description": "Member added to group"},
        403: {"description": "Insufficient permissions or member cannot join"},
        404: {"description": "Group or member not found"},
        409: {"description": "Already a group member"},
    },
)
@limiter.limit(WRITE_LIMIT)  # type: ignore[untyped-decorator]
async def add_group_member(
    request: Request,
    group_id: UUID,
    body: AddGroupMemberRequest,
    member: CurrentMember,
    service: GroupService = Depends(get_group_service),
) -> MembershipDetailResponse:
    """Add a member to a group. Requires group Owner or Admin."""
    membership = await service.add_member(
        group_id=group_id,
        member_id=body.member_id,
        added_by=member.id,
        role=GroupRole.from_label(body.role),
    )
    return MembershipDetailResponse(data=_build_membership_response(membership))


@router.delete(
    "/{group_id}/members/{member_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove group member",
    responses={
        204: {"description": "Member removed from group"},
        403: {"description": "Insufficient permissions"},
        404: {"description": "Member is not in this group"},
        409: {"description": "Cannot remove the group owner"},
    },
)
@limiter.limit(WRITE_LIMIT)  # type: ignore[untyped-decorator]
async def remove_group_member(
    request: Request,
    group_id: UUID,
    member_id: UUID,
    member: CurrentMember,
    service: GroupService = Depends(get_group_service),
) -> None:
    """Remove a member from a group. Requires group Owner or Admin."""
    await service.remove_member(
        group_id=group_id,
        member_id=member_id,
        removed_by=member.id,
    )
    return None


@router.patch(
    "/{group_id}/members/{member_id}/role",
    response_model=MembershipDetailResponse,
    summary="Change a member's role",
    responses={
        200: {"description": "Role changed"},
        403: {"description": "Only group owners can change member roles"},
        404: {"description": "Member is not in this group"},
        409: {"description": "Cannot change the owner's role"},
    },
)
@limiter.limit(WRITE_LIMIT)  # type: ignore[untyped-decorator]
async def update_member_role(
    request: Request,
    group_id: UUID,
    member_id: UUID,
    body: UpdateMemberRoleRequest,
    member: CurrentMember,
    service: GroupService = Depends(get_group_service),
) -> MembershipDetailResponse:
    """Promote or demote a member. Requires group Owner."""
    membership = await service.update_member_role(
        group_id=group_id,
        member_id=member_id,
        new_role=GroupRole.from_label(body.role),
        updated_by=member.id,
    )
    return MembershipDetailResponse(data=_build_membership_response(membership))


@router.post(
    "/{group_id}/join",
    response_model=MembershipDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Join a group",
    responses={
        201: {"description": "Joined the group"},
        403: {"description": "Private group, full group or inactive member"},
        404: {"description": "Group not found"},
        409: {"description": "Already a group member"},
    },
)
@limiter.limit(WRITE_LIMIT)  # type: ignore[untyped-decorator]
async def join_group(
    request: Request,
    group_id: UUID,
    member: CurrentMember,
    service: GroupService = Depends(get_group_service),
) -> MembershipDetailResponse:
    """Join a public group as a regular member."""
    membership = await service.join_group(group_id, member.id)
    return MembershipDetailResponse(data=_build_membership_response(membership))


@router.post(
    "/{group_id}/leave",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Leave a group",
    responses={
        204: {"description": "Left the group"},
        404: {"description": "Not a member of this group"},
        409: {"description": "Group owners cannot leave"},
    },
)
@limiter.limit(WRITE_LIMIT)  # type: ignore[untyped-decorator]
async def leave_group(
    request: Request,
    group_id: UUID,
    member: CurrentMember,
    service: GroupService = Depends(get_group_service),
) -> None:
    """Leave a group."""
    await service.leave_group(group_id, member.id)
    return None


@router.patch(
    "/{group_id}/settings",
    response_model=MembershipDetailResponse,
    summary="Update my membership preferences",
    responses={
        200: {"description": "Preferences updated"},
        404: {"description": "Not a member of this group"},
    },
)
@limiter.limit(WRITE_LIMIT)  # type: ignore[untyped-decorator]
async def update_membership_settings(
    request: Request,
    group_id: UUID,
    body: MembershipSettingsUpdate,
    member: CurrentMember,
    service: GroupService = Depends(get_group_service),
) -> MembershipDetailResponse:
    """Update the caller's notification, mute and pin preferences."""
    membership = await service.update_membership_settings(
        group_id=group_id,
        member_id=member.id,
        notifications_enabled=body.notifications_enabled,
        is_muted=body.is_muted,
        is_pinned=body.is_pinned,
    )
    return MembershipDetailResponse(data=_build_membership_response(membership))


def _to_settings(schema: GroupSettingsSchema | None) -> GroupSettings | None:
    """Convert request settings to the domain value."""
    if schema is None:
        return None
    return GroupSettings(
        allow_member_invites=schema.allow_member_invites,
        allow_file_sharing=schema.allow_file_sharing,
        max_members=schema.max_members,
    )


def _build_group_response(
    group: Group,
    member_count: int | None = None,
    latest_message: MessagePreview | None = None,
) -> GroupResponse:
    """Convert domain entity to response schema."""
    return GroupResponse(
        id=group.id,
        name=group.name,
        description=group.description,
        type=group.type,
        created_by=group.created_by,
        is_private=group.is_private,
        auto_join=group.auto_join,
        class_id=group.class_id,
        settings=(
            GroupSettingsSchema.model_validate(group.settings)
            if group.settings
            else None
        ),
        active=group.active,
        created_at=group.created_at,
        updated_at=group.updated_at,
        member_count=member_count,
        latest_message=(
            MessagePreviewResponse.model_validate(latest_message)
            if latest_message
            else None
        ),
    )


def _build_membership_response(membership: GroupMembership) -> MembershipResponse:
    """Convert membership entity to response schema."""
    return MembershipResponse(
        group_id=membership.group_id,
        member_id=membership.member_id,
        role=membership.role.label,
        joined_at=membership.joined_at,
        last_read_at=membership.last_read_at,
        notifications_enabled=membership.notifications_enabled,
        is_muted=membership.is_muted,
        is_pinned=membership.is_pinned,
    )
