"""Message service layer: sending, moderation, reactions and read tracking."""

from collections.abc import Callable
from datetime import datetime, timezone
from uuid import UUID

import structlog

from core.config import settings
from core.exceptions import (
    DuplicateReactionError,
    MessageDeletedError,
    MessageNotFoundError,
    MembershipNotFoundError,
    PermissionDeniedError,
    ReactionNotFoundError,
    ValidationError,
)
from domain.entities.message import (
    DELETED_MESSAGE_PLACEHOLDER,
    Attachment,
    Message,
    MessageType,
    Reaction,
)
from domain.repositories.unit_of_work import IUnitOfWork
from domain.services import permissions

logger = structlog.get_logger()


def _to_naive_utc(value: datetime | None) -> datetime | None:
    """Stored timestamps are naive UTC; bring client-supplied ones in line."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class MessageService:
    """Service layer for group messages."""

    def __init__(self, uow_factory: Callable[[], IUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    # --- Writes ---

    async def send(
        self,
        group_id: UUID,
        sender_id: UUID,
        content: str,
        message_type: MessageType = MessageType.TEXT,
        reply_to: UUID | None = None,
        attachments: list[Attachment] | None = None,
        client_message_id: str | None = None,
    ) -> Message:
        """Post a message to a group.

        The sender counts as having read their own message. When
        ``client_message_id`` is given, a retried send returns the message
        stored by the first attempt instead of posting a duplicate.
        """
        if message_type == MessageType.SYSTEM:
            raise ValidationError("System messages cannot be sent directly")

        async with self._uow_factory() as uow:
            permissions.require(
                await permissions.can_send_message(uow, sender_id, group_id),
                "Cannot send message",
            )

            if client_message_id:
                existing = await uow.messages.get_by_client_id(
                    group_id, sender_id, client_message_id
                )
                if existing:
                    logger.debug(
                        "message_send_deduplicated",
                        message_id=str(existing.id),
                        client_message_id=client_message_id,
                    )
                    return existing

            message = Message(
                group_id=group_id,
                sender_id=sender_id,
                sender_name=await uow.members.get_display_name(sender_id),
                content=content,
                type=message_type,
                reply_to=reply_to,
                attachments=list(attachments or []),
                read_by={sender_id},
                client_message_id=client_message_id,
            )
            created = await uow.messages.create(message)
            await uow.commit()
            return created

    async def edit(self, message_id: UUID, member_id: UUID, new_content: str) -> Message:
        """Replace a message's content. Author, group Owner or Admin only."""
        async with self._uow_factory() as uow:
            message = await uow.messages.get(message_id)
            if not message:
                raise MessageNotFoundError(str(message_id))

            permissions.require(
                await permissions.can_modify_message(uow, member_id, message_id),
                "Cannot edit message",
            )

            if message.deleted:
                raise MessageDeletedError()

            message.content = new_content
            message.edited = True
            message.edited_at = datetime.utcnow()

            updated = await uow.messages.update(message)
            await uow.commit()
            return updated

    async def delete_message(self, message_id: UUID, member_id: UUID) -> Message:
        """Soft-delete a message, keeping it as a reply target."""
        async with self._uow_factory() as uow:
            message = await uow.messages.get(message_id)
            if not message:
                raise MessageNotFoundError(str(message_id))

            permissions.require(
                await permissions.can_modify_message(uow, member_id, message_id),
                "Cannot delete message",
            )

            if message.deleted:
                return message

            message.content = DELETED_MESSAGE_PLACEHOLDER
            message.deleted = True
            message.deleted_at = datetime.utcnow()

            updated = await uow.messages.update(message)
            await uow.commit()

        logger.info(
            "message_deleted",
            message_id=str(message_id),
            deleted_by=str(member_id),
        )
        return updated

    async def mark_as_read(
        self,
        group_id: UUID,
        member_id: UUID,
        up_to: datetime | None = None,
    ) -> int:
        """Mark a group as read up to a timestamp (default: now).

        Moves the membership read cursor forward (never back) and adds the
        member to the readers of every message created at or before
        ``up_to``. Safe to repeat. Returns the number of messages scanned.
        """
        async with self._uow_factory() as uow:
            membership = await uow.groups.get_membership(group_id, member_id)
            if not membership:
                raise MembershipNotFoundError(
                    str(member_id), message="You are not a member of this group"
                )

            timestamp = _to_naive_utc(up_to) or datetime.utcnow()
            if membership.last_read_at is None or timestamp > membership.last_read_at:
                membership.last_read_at = timestamp
                await uow.groups.update_membership(membership)

            marked = await uow.messages.mark_read_up_to(group_id, member_id, timestamp)
            await uow.commit()
            return marked

    async def add_reaction(self, message_id: UUID, member_id: UUID, emoji: str) -> Message:
        """React to a message. One reaction per member per emoji."""
        async with self._uow_factory() as uow:
            message = await uow.messages.get(message_id)
            if not message:
                raise MessageNotFoundError(str(message_id))

            if message.deleted:
                raise MessageDeletedError("Cannot react to a deleted message")

            if not await uow.groups.get_membership(message.group_id, member_id):
                raise PermissionDeniedError(
                    "You must be a member of this group to react to messages"
                )

            reaction = Reaction(
                emoji=emoji,
                member_id=member_id,
                member_name=await uow.members.get_display_name(member_id),
            )
            if not await uow.messages.add_reaction(message_id, reaction):
                raise DuplicateReactionError(emoji)

            await uow.commit()
            message.reactions.append(reaction)
            return message

    async def remove_reaction(self, message_id: UUID, member_id: UUID, emoji: str) -> Message:
        """Take back one of the caller's reactions."""
        async with self._uow_factory() as uow:
            message = await uow.messages.get(message_id)
            if not message:
                raise MessageNotFoundError(str(message_id))

            if not await uow.messages.remove_reaction(message_id, member_id, emoji):
                raise ReactionNotFoundError(emoji)

            await uow.commit()
            message.reactions = [
                r for r in message.reactions
                if not (r.member_id == member_id and r.emoji == emoji)
            ]
            return message

    # --- Reads ---

    async def get_by_group(
        self,
        group_id: UUID,
        limit: int | None = None,
        before: datetime | None = None,
    ) -> list[Message]:
        """Get one page of a group's history, oldest first.

        The page holds the newest ``limit`` messages created strictly before
        ``before`` (or overall), each carrying a preview of the message it
        replies to.
        """
        limit = self._clamp_limit(limit)
        async with self._uow_factory() as uow:
            newest_first = await uow.messages.get_for_group(
                group_id, limit, _to_naive_utc(before)
            )
            page = list(reversed(newest_first))
            await self._attach_reply_previews(uow, page)
            return page

    async def search(
        self, group_id: UUID, search_term: str, limit: int | None = None
    ) -> list[Message]:
        """Search a group's live messages by content or sender name."""
        limit = self._clamp_limit(limit)
        async with self._uow_factory() as uow:
            return await uow.messages.search(group_id, search_term, limit)

    async def get_unread_count(self, member_id: UUID) -> int:
        """Total unread messages across all of a member's groups."""
        async with self._uow_factory() as uow:
            memberships = await uow.groups.get_memberships_for_member(member_id)
            total = 0
            for membership in memberships:
                total += await uow.messages.count_after(
                    membership.group_id, membership.last_read_at
                )
            return total

    async def get_by_id(self, message_id: UUID) -> Message:
        """Get a message with its reply preview."""
        async with self._uow_factory() as uow:
            message = await uow.messages.get(message_id)
            if not message:
                raise MessageNotFoundError(str(message_id))

            await self._attach_reply_previews(uow, [message])
            return message

    # --- Internal helpers ---

    @staticmethod
    def _clamp_limit(limit: int | None) -> int:
        if limit is None:
            return settings.default_page_size
        return max(1, min(limit, settings.max_page_size))

    @staticmethod
    async def _attach_reply_previews(uow: IUnitOfWork, messages: list[Message]) -> None:
        reply_ids = list({m.reply_to for m in messages if m.reply_to})
        if not reply_ids:
            return

        targets = {m.id: m for m in await uow.messages.get_many(reply_ids)}
        for message in messages:
            if message.reply_to:
                target = targets.get(message.reply_to)
                message.reply_to_message = target.preview() if target else None
