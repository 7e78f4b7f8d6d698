"""Group domain entities."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum, StrEnum
from uuid import UUID, uuid4


class GroupType(StrEnum):
    """Kind of group. Everything except sub-groups is admin-created."""

    CLUB_WIDE = "club-wide"
    SUB_GROUP = "sub-group"
    COMPETITION = "competition"
    CLASS_BASED = "class-based"

    @property
    def requires_admin(self) -> bool:
        return self is not GroupType.SUB_GROUP


class GroupRole(IntEnum):
    """Group role hierarchy. Higher value = more permissions.

    Use >= comparison for permission checks:
        role >= GroupRole.ADMIN  # True if Admin or Owner
    """

    MEMBER = 10
    ADMIN = 20
    OWNER = 30

    @property
    def label(self) -> str:
        """Lowercase wire/storage name ("owner", "admin", "member")."""
        return self.name.lower()

    @classmethod
    def from_label(cls, label: str) -> "GroupRole":
        return cls[label.upper()]


def has_permission(role: GroupRole | None, required_role: GroupRole) -> bool:
    """Check if a role meets the required level. Non-members never do."""
    return role is not None and role >= required_role


@dataclass
class GroupSettings:
    """Per-group behaviour switches."""

    allow_member_invites: bool = False
    allow_file_sharing: bool = False
    max_members: int | None = None


@dataclass
class Group:
    """Domain entity for a chat group."""

    name: str
    type: GroupType
    created_by: UUID
    id: UUID = field(default_factory=uuid4)
    description: str | None = None
    is_private: bool = False
    auto_join: bool = False
    class_id: UUID | None = None
    settings: GroupSettings | None = None
    active: bool = True
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self) -> None:
        """Ensure updated_at is always at least as recent as created_at."""
        if self.updated_at < self.created_at:
            self.updated_at = self.created_at


@dataclass
class GroupMembership:
    """Domain entity for a member's place in a group."""

    group_id: UUID
    member_id: UUID
    role: GroupRole = GroupRole.MEMBER
    id: UUID = field(default_factory=uuid4)
    joined_at: datetime = field(default_factory=datetime.utcnow)
    last_read_at: datetime | None = None
    notifications_enabled: bool = True
    is_muted: bool = False
    is_pinned: bool = False


@dataclass(frozen=True, slots=True)
class MessagePreview:
    """Read-only value object: the newest message of a group."""

    content: str
    sender_name: str
    created_at: datetime


@dataclass(frozen=True, slots=True)
class GroupSummary:
    """Read-only value object: a group with its counters."""

    group: Group
    member_count: int
    latest_message: MessagePreview | None = None


@dataclass(frozen=True, slots=True)
class UserGroupView:
    """Read-only value object: a joined group as seen by one member."""

    group: Group
    membership: GroupMembership
    unread_count: int
    member_count: int
    latest_message: MessagePreview | None = None

    @property
    def last_activity_at(self) -> datetime:
        if self.latest_message:
            return self.latest_message.created_at
        return self.group.created_at
