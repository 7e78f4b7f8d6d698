"""Message repository protocol."""

from datetime import datetime
from typing import Protocol
from uuid import UUID

from domain.entities.message import Message, Reaction


class IMessageRepository(Protocol):
    """Repository interface for Message entities, reactions and read receipts."""

    async def get(self, id: UUID) -> Message | None:
        """Get a message with its reactions and readers."""
        ...

    async def get_many(self, ids: list[UUID]) -> list[Message]:
        """Get several messages by ID; missing IDs are skipped."""
        ...

    async def get_by_client_id(
        self, group_id: UUID, sender_id: UUID, client_message_id: str
    ) -> Message | None:
        """Find a message previously sent with the same client-side key."""
        ...

    async def create(self, message: Message) -> Message:
        """Create a new message (and its initial read receipts)."""
        ...

    async def update(self, message: Message) -> Message:
        """Persist content and edit/delete state of a message."""
        ...

    async def get_for_group(
        self, group_id: UUID, limit: int, before: datetime | None = None
    ) -> list[Message]:
        """Get the newest messages of a group, newest first."""
        ...

    async def search(self, group_id: UUID, term: str, limit: int) -> list[Message]:
        """Case-insensitive search on content and sender name, newest first.

        Deleted messages are never returned.
        """
        ...

    async def get_latest(self, group_id: UUID) -> Message | None:
        """Get the newest message of a group."""
        ...

    async def count_after(self, group_id: UUID, after: datetime | None) -> int:
        """Count messages created strictly after a timestamp (all if None)."""
        ...

    async def mark_read_up_to(
        self, group_id: UUID, member_id: UUID, up_to: datetime
    ) -> int:
        """Add a reader to every message created at or before ``up_to``.

        Must be an idempotent add-if-absent per message. Returns the number
        of messages scanned.
        """
        ...

    async def add_reaction(self, message_id: UUID, reaction: Reaction) -> bool:
        """Atomically add a reaction. Returns False if it already existed."""
        ...

    async def remove_reaction(self, message_id: UUID, member_id: UUID, emoji: str) -> bool:
        """Atomically remove a reaction. Returns False if it did not exist."""
        ...
