"""SQLAlchemy implementation of Message repository.

Reactions and read receipts live in their own tables, one row each, so
concurrent writers never overwrite each other's collections. Both are
written with ``INSERT ... ON CONFLICT DO NOTHING``.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import Table, delete, func, or_, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from domain.entities.message import Attachment, Message, MessageType, Reaction
from infrastructure.database.models import (
    MessageModel,
    MessageReactionModel,
    MessageReadModel,
)


def _insert_ignoring_conflicts(session: AsyncSession, table: Table, rows: list[dict[str, Any]]):
    """Build a multi-row INSERT that skips rows hitting a unique constraint."""
    if session.get_bind().dialect.name == "postgresql":
        stmt = postgresql.insert(table)
    else:
        stmt = sqlite.insert(table)
    return stmt.values(rows).on_conflict_do_nothing()


class SQLAlchemyMessageRepository:
    """SQLAlchemy implementation of IMessageRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    def _select(self):
        return (
            select(MessageModel)
            .options(
                selectinload(MessageModel.reactions),
                selectinload(MessageModel.reads),
            )
            .execution_options(populate_existing=True)
        )

    async def get(self, id: UUID) -> Message | None:
        """Get a message by ID."""
        stmt = self._select().where(MessageModel.id == id)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def get_many(self, ids: list[UUID]) -> list[Message]:
        """Get several messages by ID."""
        if not ids:
            return []

        stmt = self._select().where(MessageModel.id.in_(ids))
        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars()]

    async def get_by_client_id(
        self, group_id: UUID, sender_id: UUID, client_message_id: str
    ) -> Message | None:
        """Find a message by the sender's deduplication key."""
        stmt = self._select().where(
            MessageModel.group_id == group_id,
            MessageModel.sender_id == sender_id,
            MessageModel.client_message_id == client_message_id,
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def create(self, message: Message) -> Message:
        """Create a new message with its initial read receipts."""
        model = self._to_model(message)
        self._session.add(model)
        await self._session.flush()
        return self._to_entity(model)

    async def update(self, message: Message) -> Message:
        """Update content and edit/delete state of a message."""
        stmt = (
            update(MessageModel)
            .where(MessageModel.id == message.id)
            .values(
                content=message.content,
                edited=message.edited,
                edited_at=message.edited_at,
                deleted=message.deleted,
                deleted_at=message.deleted_at,
            )
        )
        result = await self._session.execute(stmt)

        if result.rowcount == 0:
            raise ValueError(f"Message {message.id} not found")

        return message

    async def get_for_group(
        self, group_id: UUID, limit: int, before: datetime | None = None
    ) -> list[Message]:
        """Get the newest messages of a group, newest first."""
        stmt = self._select().where(MessageModel.group_id == group_id)
        if before is not None:
            stmt = stmt.where(MessageModel.created_at < before)
        stmt = stmt.order_by(MessageModel.created_at.desc()).limit(limit)

        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars()]

    async def search(self, group_id: UUID, term: str, limit: int) -> list[Message]:
        """Case-insensitive substring search over live messages."""
        needle = term.lower()
        stmt = (
            self._select()
            .where(
                MessageModel.group_id == group_id,
                MessageModel.deleted.is_(False),
                or_(
                    func.lower(MessageModel.content).contains(needle, autoescape=True),
                    func.lower(MessageModel.sender_name).contains(needle, autoescape=True),
                ),
            )
            .order_by(MessageModel.created_at.desc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars()]

    async def get_latest(self, group_id: UUID) -> Message | None:
        """Get the newest message of a group."""
        stmt = (
            self._select()
            .where(MessageModel.group_id == group_id)
            .order_by(MessageModel.created_at.desc())
            .limit(1)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def count_after(self, group_id: UUID, after: datetime | None) -> int:
        """Count messages in a group created after a timestamp."""
        stmt = (
            select(func.count())
            .select_from(MessageModel)
            .where(MessageModel.group_id == group_id)
        )
        if after is not None:
            stmt = stmt.where(MessageModel.created_at > after)

        result = await self._session.execute(stmt)
        return result.scalar_one()

    async def mark_read_up_to(
        self, group_id: UUID, member_id: UUID, up_to: datetime
    ) -> int:
        """Record a read receipt on every message up to a timestamp."""
        stmt = select(MessageModel.id).where(
            MessageModel.group_id == group_id,
            MessageModel.created_at <= up_to,
        )
        result = await self._session.execute(stmt)
        message_ids = list(result.scalars())

        if message_ids:
            read_at = datetime.utcnow()
            rows = [
                {"message_id": message_id, "member_id": member_id, "read_at": read_at}
                for message_id in message_ids
            ]
            await self._session.execute(
                _insert_ignoring_conflicts(
                    self._session, MessageReadModel.__table__, rows
                )
            )

        return len(message_ids)

    async def add_reaction(self, message_id: UUID, reaction: Reaction) -> bool:
        """Add a reaction unless the member already used that emoji."""
        row = {
            "message_id": message_id,
            "member_id": reaction.member_id,
            "member_name": reaction.member_name,
            "emoji": reaction.emoji,
        }
        result = await self._session.execute(
            _insert_ignoring_conflicts(
                self._session, MessageReactionModel.__table__, [row]
            )
        )
        return result.rowcount > 0

    async def remove_reaction(self, message_id: UUID, member_id: UUID, emoji: str) -> bool:
        """Remove one reaction."""
        stmt = delete(MessageReactionModel).where(
            MessageReactionModel.message_id == message_id,
            MessageReactionModel.member_id == member_id,
            MessageReactionModel.emoji == emoji,
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    def _to_entity(self, model: MessageModel) -> Message:
        """Convert ORM model to domain entity."""
        return Message(
            id=model.id,
            group_id=model.group_id,
            sender_id=model.sender_id,
            sender_name=model.sender_name,
            content=model.content,
            type=MessageType(model.type),
            reply_to=model.reply_to,
            attachments=[Attachment(**item) for item in model.attachments or []],
            reactions=[
                Reaction(
                    emoji=reaction.emoji,
                    member_id=reaction.member_id,
                    member_name=reaction.member_name,
                )
                for reaction in model.reactions
            ],
            read_by={read.member_id for read in model.reads},
            client_message_id=model.client_message_id,
            edited=model.edited,
            edited_at=model.edited_at,
            deleted=model.deleted,
            deleted_at=model.deleted_at,
            created_at=model.created_at,
        )

    def _to_model(self, entity: Message) -> MessageModel:
        """Convert domain entity to ORM model."""
        return MessageModel(
            id=entity.id,
            group_id=entity.group_id,
            sender_id=entity.sender_id,
            sender_name=entity.sender_name,
            content=entity.content,
            type=entity.type.value,
            reply_to=entity.reply_to,
            attachments=[
                {
                    "name": a.name,
                    "url": a.url,
                    "size": a.size,
                    "mime_type": a.mime_type,
                }
                for a in entity.attachments
            ]
            or None,
            client_message_id=entity.client_message_id,
            edited=entity.edited,
            edited_at=entity.edited_at,
            deleted=entity.deleted,
            deleted_at=entity.deleted_at,
            created_at=entity.created_at,
            reactions=[
                MessageReactionModel(
                    member_id=r.member_id,
                    member_name=r.member_name,
                    emoji=r.emoji,
                )
                for r in entity.reactions
            ],
            reads=[
                MessageReadModel(member_id=member_id, read_at=entity.created_at)
                for member_id in entity.read_by
            ],
        )
