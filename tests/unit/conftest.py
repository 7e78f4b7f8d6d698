"""Shared fixtures for unit tests."""

from typing import Any
from unittest.mock import AsyncMock
from uuid import UUID, uuid4

import pytest

from domain.entities.group import Group, GroupMembership, GroupRole, GroupType
from domain.entities.member import Member, SubscriptionStatus


class FakeUnitOfWork:
    """Fake Unit of Work with repository mocks for unit testing."""

    def __init__(self) -> None:
        self.groups = AsyncMock()
        self.messages = AsyncMock()
        self.members = AsyncMock()
        self.admins = AsyncMock()
        self.committed = False
        self.rolled_back = False

        # Neutral answers; tests override what they care about.
        self.admins.is_admin.return_value = False
        self.members.get_display_name.return_value = "Test Member"
        self.members.get_active.return_value = []
        self.groups.count_members.return_value = 0
        self.groups.count_created_by.return_value = 0
        self.messages.get_latest.return_value = None
        self.messages.count_after.return_value = 0
        self.messages.get_many.return_value = []

    async def commit(self) -> None:
        self.committed = True

    async def rollback(self) -> None:
        self.rolled_back = True

    async def __aenter__(self) -> "FakeUnitOfWork":
        return self

    async def __aexit__(self, *args: Any) -> None:
        pass


def build_member(
    name: str = "Aiko",
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
) -> Member:
    """Build a club member entity."""
    return Member(
        user_id=uuid4(),
        name=name,
        email=f"{name.lower()}@dojo.test",
        subscription_status=status,
    )


def build_group(
    created_by: UUID,
    group_type: GroupType = GroupType.SUB_GROUP,
    **kwargs: Any,
) -> Group:
    """Build a group entity."""
    return Group(name="Weekend Randori", type=group_type, created_by=created_by, **kwargs)


def build_membership(group: Group, member_id: UUID, role: GroupRole = GroupRole.MEMBER) -> GroupMembership:
    """Build a membership of a member in a group."""
    return GroupMembership(group_id=group.id, member_id=member_id, role=role)


@pytest.fixture
def uow() -> FakeUnitOfWork:
    """Create a fresh FakeUnitOfWork."""
    return FakeUnitOfWork()


@pytest.fixture
def member() -> Member:
    """An active club member."""
    return build_member("Aiko")


@pytest.fixture
def other_member() -> Member:
    """A second active club member."""
    return build_member("Bruno")


@pytest.fixture
def group(member: Member) -> Group:
    """A public sub-group created by ``member``."""
    return build_group(member.id)
