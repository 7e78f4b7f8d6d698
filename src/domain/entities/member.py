"""Club member directory entities.

Members and admins are owned by the club directory; this service only reads
them.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from uuid import UUID, uuid4

from domain.entities.group import GroupRole

UNKNOWN_MEMBER_NAME = "Unknown member"


class SubscriptionStatus(StrEnum):
    """Billing state of a club member."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    PAUSED = "paused"


@dataclass
class Member:
    """Domain entity for a club member."""

    user_id: UUID
    name: str
    email: str
    id: UUID = field(default_factory=uuid4)
    subscription_status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    created_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def is_active(self) -> bool:
        return self.subscription_status == SubscriptionStatus.ACTIVE


@dataclass(frozen=True, slots=True)
class GroupMemberView:
    """Read-only value object: a member listed with their group role."""

    member: Member
    group_role: GroupRole
    joined_at: datetime
