"""End-to-end club chat flow through the services and the real database."""

from collections.abc import Awaitable, Callable

import pytest

from core.exceptions import OwnerProtectedError, PermissionDeniedError
from domain.entities.group import GroupRole, GroupType
from domain.entities.member import Member, SubscriptionStatus
from domain.entities.message import DELETED_MESSAGE_PLACEHOLDER
from domain.services.group_service import GroupService
from domain.services.message_service import MessageService
from infrastructure.database.repositories.sqlalchemy_message_repo import SQLAlchemyMessageRepository
from infrastructure.database.sqlalchemy_uow import SQLAlchemyUnitOfWork

UowFactory = Callable[[], SQLAlchemyUnitOfWork]
MakeMember = Callable[..., Awaitable[Member]]


@pytest.fixture
def groups(uow_factory: UowFactory) -> GroupService:
    return GroupService(uow_factory)


@pytest.fixture
def messages(uow_factory: UowFactory) -> MessageService:
    return MessageService(uow_factory)


@pytest.mark.asyncio
async def test_announcement_channel_auto_joins_active_members(
    groups: GroupService, make_member: MakeMember
):
    sensei = await make_member("Sensei Kano", admin=True)
    aiko = await make_member("Aiko")
    pat = await make_member("Pat", status=SubscriptionStatus.PAUSED)

    channel = await groups.create_group(
        sensei.id, "Dojo Announcements", GroupType.CLUB_WIDE, is_private=True, auto_join=True
    )
    members = await groups.get_members(channel.id)

    roles = {view.member.name: view.group_role for view in members}
    assert roles == {"Sensei Kano": GroupRole.OWNER, "Aiko": GroupRole.MEMBER}
    assert pat.id not in {view.member.id for view in members}

    with pytest.raises(PermissionDeniedError):
        await groups.create_group(aiko.id, "Aiko's Channel", GroupType.CLUB_WIDE, is_private=False)


@pytest.mark.asyncio
async def test_weekend_randori(
    groups: GroupService, messages: MessageService, make_member: MakeMember
):
    aiko = await make_member("Aiko")
    bruno = await make_member("Bruno")
    pat = await make_member("Pat", status=SubscriptionStatus.PAUSED)

    randori = await groups.create_group(aiko.id, "Weekend Randori", GroupType.SUB_GROUP, False)
    await groups.join_group(randori.id, bruno.id)

    with pytest.raises(PermissionDeniedError):
        await groups.join_group(randori.id, pat.id)

    question = await messages.send(randori.id, bruno.id, "Who is in for Saturday?")
    answer = await messages.send(randori.id, aiko.id, "Me, 10am", reply_to=question.id)
    await messages.add_reaction(answer.id, bruno.id, "👍")
    await messages.edit(answer.id, aiko.id, "Me, 10am sharp")
    await messages.delete_message(question.id, bruno.id)

    history = await messages.get_by_group(randori.id)
    assert [m.content for m in history] == [
        "Aiko created this group",
        "Bruno joined the group",
        DELETED_MESSAGE_PLACEHOLDER,
        "Me, 10am sharp",
    ]
    reply = history[-1]
    assert reply.edited is True
    assert [r.emoji for r in reply.reactions] == ["👍"]
    assert reply.reply_to_message.content == DELETED_MESSAGE_PLACEHOLDER

    # Aiko has never marked the group read: everything counts.
    assert await messages.get_unread_count(aiko.id) == 4
    await messages.mark_as_read(randori.id, aiko.id)
    assert await messages.get_unread_count(aiko.id) == 0

    await messages.send(randori.id, bruno.id, "See you there")
    assert await messages.get_unread_count(aiko.id) == 1

    # Promoted admins moderate, but the owner stays protected.
    await groups.update_member_role(randori.id, bruno.id, GroupRole.ADMIN, aiko.id)
    with pytest.raises(OwnerProtectedError):
        await groups.remove_member(randori.id, aiko.id, bruno.id)

    await groups.leave_group(randori.id, bruno.id)
    with pytest.raises(PermissionDeniedError):
        await messages.send(randori.id, bruno.id, "One more thing")

    summary = await groups.get_by_id(randori.id)
    assert summary.member_count == 1
    assert summary.latest_message.content == "Bruno left the group"


@pytest.mark.asyncio
async def test_owner_adds_member_who_then_posts(
    groups: GroupService,
    messages: MessageService,
    make_member: MakeMember,
    uow_factory: UowFactory,
):
    aiko = await make_member("Aiko")
    bruno = await make_member("Bruno")
    randori = await groups.create_group(
        aiko.id, "Weekend Randori", GroupType.SUB_GROUP, False, auto_join=False
    )

    with pytest.raises(
        PermissionDeniedError, match="You must be a member of this group to send messages"
    ):
        await messages.send(randori.id, bruno.id, "hello")

    await groups.add_member(randori.id, bruno.id, aiko.id)
    hello = await messages.send(randori.id, bruno.id, "hello")
    assert hello.read_by == {bruno.id}

    history = await messages.get_by_group(randori.id)
    assert [m.content for m in history][:2] == [
        "Aiko created this group",
        "Aiko added Bruno to the group",
    ]

    await messages.mark_as_read(randori.id, aiko.id)

    async with uow_factory() as uow:
        stored = await uow.messages.get(hello.id)
    assert stored.read_by == {aiko.id, bruno.id}


@pytest.fixture
def failing_announcements(monkeypatch: pytest.MonkeyPatch) -> None:
    """Make every message insert fail after the earlier writes were flushed."""

    async def fail(self: SQLAlchemyMessageRepository, message: object) -> None:
        raise RuntimeError("message store unavailable")

    monkeypatch.setattr(SQLAlchemyMessageRepository, "create", fail)


@pytest.mark.asyncio
async def test_failed_announcement_rolls_back_group_creation(
    groups: GroupService,
    make_member: MakeMember,
    uow_factory: UowFactory,
    failing_announcements: None,
):
    sensei = await make_member("Sensei Kano", admin=True)
    aiko = await make_member("Aiko")

    with pytest.raises(RuntimeError, match="message store unavailable"):
        await groups.create_group(
            sensei.id, "Dojo Announcements", GroupType.CLUB_WIDE, False, auto_join=True
        )

    async with uow_factory() as uow:
        assert await uow.groups.get_all_active() == []
        assert await uow.groups.get_memberships_for_member(sensei.id) == []
        assert await uow.groups.get_memberships_for_member(aiko.id) == []
        assert await uow.groups.count_created_by(sensei.id, GroupType.CLUB_WIDE) == 0


@pytest.mark.asyncio
async def test_failed_announcement_rolls_back_added_member(
    groups: GroupService,
    make_member: MakeMember,
    uow_factory: UowFactory,
    monkeypatch: pytest.MonkeyPatch,
):
    aiko = await make_member("Aiko")
    bruno = await make_member("Bruno")
    randori = await groups.create_group(aiko.id, "Weekend Randori", GroupType.SUB_GROUP, False)

    async def fail(self: SQLAlchemyMessageRepository, message: object) -> None:
        raise RuntimeError("message store unavailable")

    monkeypatch.setattr(SQLAlchemyMessageRepository, "create", fail)

    with pytest.raises(RuntimeError):
        await groups.add_member(randori.id, bruno.id, aiko.id)

    async with uow_factory() as uow:
        assert await uow.groups.get_membership(randori.id, bruno.id) is None
        assert await uow.groups.count_members(randori.id) == 1
