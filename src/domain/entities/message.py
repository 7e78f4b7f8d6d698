"""Message domain entities."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from uuid import UUID, uuid4

DELETED_MESSAGE_PLACEHOLDER = "This message has been deleted"


class MessageType(StrEnum):
    """Kind of message. System messages are generated, never user-sent."""

    TEXT = "text"
    IMAGE = "image"
    FILE = "file"
    SYSTEM = "system"


@dataclass(frozen=True)
class Attachment:
    """File attached to a message (stored elsewhere, referenced by URL)."""

    name: str
    url: str
    size: int
    mime_type: str


@dataclass(frozen=True)
class Reaction:
    """A member's emoji on a message. Unique per (member_id, emoji)."""

    emoji: str
    member_id: UUID
    member_name: str


@dataclass(frozen=True, slots=True)
class ReplyPreview:
    """Read-only value object: compact view of the message being replied to."""

    id: UUID
    content: str
    sender_name: str
    created_at: datetime


@dataclass
class Message:
    """Domain entity for a group message."""

    group_id: UUID
    sender_id: UUID
    sender_name: str
    content: str
    type: MessageType = MessageType.TEXT
    id: UUID = field(default_factory=uuid4)
    reply_to: UUID | None = None
    attachments: list[Attachment] = field(default_factory=list)
    reactions: list[Reaction] = field(default_factory=list)
    read_by: set[UUID] = field(default_factory=set)
    client_message_id: str | None = None
    edited: bool = False
    edited_at: datetime | None = None
    deleted: bool = False
    deleted_at: datetime | None = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    # Populated on read paths only, never persisted.
    reply_to_message: ReplyPreview | None = None

    @classmethod
    def system(
        cls,
        group_id: UUID,
        actor_id: UUID,
        actor_name: str,
        content: str,
        created_at: datetime | None = None,
    ) -> "Message":
        """Build a system announcement attributed to the acting member."""
        return cls(
            group_id=group_id,
            sender_id=actor_id,
            sender_name=actor_name,
            content=content,
            type=MessageType.SYSTEM,
            created_at=created_at or datetime.utcnow(),
        )

    @property
    def is_system(self) -> bool:
        return self.type == MessageType.SYSTEM

    def preview(self) -> ReplyPreview:
        return ReplyPreview(
            id=self.id,
            content=self.content,
            sender_name=self.sender_name,
            created_at=self.created_at,
        )
