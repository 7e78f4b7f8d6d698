"""Pydantic schemas for Group API."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from domain.entities.group import GroupType

_ASSIGNABLE_ROLE_PATTERN = "^(admin|member)$"


class GroupSettingsSchema(BaseModel):
    """Per-group behaviour switches."""

    model_config = ConfigDict(from_attributes=True)

    allow_member_invites: bool = False
    allow_file_sharing: bool = False
    max_members: int | None = Field(None, ge=1)


class GroupCreate(BaseModel):
    """Schema for creating a group."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Weekend Randori",
                "description": "Saturday open mat",
                "type": "sub-group",
                "is_private": False,
                "auto_join": False,
            }
        },
    )

    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    type: GroupType
    is_private: bool = False
    auto_join: bool = False
    class_id: UUID | None = None
    settings: GroupSettingsSchema | None = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        """Reject names that are only whitespace."""
        v = v.strip()
        if not v:
            raise ValueError("Group name cannot be blank")
        return v


class GroupUpdate(BaseModel):
    """Schema for updating a group. Omitted fields are left unchanged."""

    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    is_private: bool | None = None
    settings: GroupSettingsSchema | None = None


class MessagePreviewResponse(BaseModel):
    """Newest message of a group."""

    model_config = ConfigDict(from_attributes=True)

    content: str
    sender_name: str
    created_at: datetime


class GroupResponse(BaseModel):
    """Schema for Group response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None
    type: GroupType
    created_by: UUID
    is_private: bool
    auto_join: bool
    class_id: UUID | None = None
    settings: GroupSettingsSchema | None = None
    active: bool
    created_at: datetime
    updated_at: datetime
    member_count: int | None = None
    latest_message: MessagePreviewResponse | None = None


class GroupListResponse(BaseModel):
    """Schema for list of Groups response."""

    data: list[GroupResponse]
    meta: dict[str, Any] = Field(default_factory=dict)


class GroupDetailResponse(BaseModel):
    """Schema for single Group response."""

    data: GroupResponse


class MembershipResponse(BaseModel):
    """Schema for a member's place in a group."""

    model_config = ConfigDict(from_attributes=True)

    group_id: UUID
    member_id: UUID
    role: str
    joined_at: datetime
    last_read_at: datetime | None = None
    notifications_enabled: bool
    is_muted: bool
    is_pinned: bool


class MembershipDetailResponse(BaseModel):
    """Schema for single membership response."""

    data: MembershipResponse


class UserGroupResponse(GroupResponse):
    """A joined group as seen by the caller."""

    membership: MembershipResponse
    unread_count: int


class UserGroupListResponse(BaseModel):
    """Schema for the caller's groups."""

    data: list[UserGroupResponse]
    meta: dict[str, Any] = Field(default_factory=dict)


class GroupMemberResponse(BaseModel):
    """Schema for Group Member response."""

    member_id: UUID
    name: str
    email: str
    subscription_status: str
    group_role: str
    joined_at: datetime


class GroupMemberListResponse(BaseModel):
    """Schema for list of Group Members response."""

    data: list[GroupMemberResponse]
    meta: dict[str, Any] = Field(default_factory=dict)


class AddGroupMemberRequest(BaseModel):
    """Schema for adding a member to a group."""

    member_id: UUID
    role: str = Field("member", pattern=_ASSIGNABLE_ROLE_PATTERN)


class UpdateMemberRoleRequest(BaseModel):
    """Schema for promoting or demoting a member."""

    role: str = Field(..., pattern=_ASSIGNABLE_ROLE_PATTERN)


class MembershipSettingsUpdate(BaseModel):
    """Schema for the caller's own membership preferences."""

    notifications_enabled: bool | None = None
    is_muted: bool | None = None
    is_pinned: bool | None = None


class CanCreateGroupResponse(BaseModel):
    """Whether the caller may create a group of a given type."""

    allowed: bool
    reason: str | None = None
