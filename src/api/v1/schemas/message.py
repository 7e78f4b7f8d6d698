"""Pydantic schemas for Message API."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from domain.entities.message import MessageType


class AttachmentSchema(BaseModel):
    """File attached to a message."""

    model_config = ConfigDict(from_attributes=True)

    name: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., min_length=1, max_length=2048)
    size: int = Field(..., ge=0)
    mime_type: str = Field(..., min_length=1, max_length=255)


class SendMessageRequest(BaseModel):
    """Schema for posting a message."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "content": "Mats are out at 9, see you there",
                "type": "text",
                "client_message_id": "c0a8012e-7f3b-4d1a-9c2e-5b6d7e8f9a0b",
            }
        },
    )

    content: str = Field(..., min_length=1, max_length=5000)
    type: MessageType = MessageType.TEXT
    reply_to: UUID | None = None
    attachments: list[AttachmentSchema] = Field(default_factory=list, max_length=10)
    client_message_id: str | None = Field(None, min_length=1, max_length=100)

    @field_validator("type")
    @classmethod
    def reject_system(cls, v: MessageType) -> MessageType:
        """System messages are generated by the server only."""
        if v == MessageType.SYSTEM:
            raise ValueError("System messages cannot be sent directly")
        return v


class EditMessageRequest(BaseModel):
    """Schema for editing a message."""

    content: str = Field(..., min_length=1, max_length=5000)


class MarkReadRequest(BaseModel):
    """Schema for marking a group as read."""

    up_to: datetime | None = None


class ReactionRequest(BaseModel):
    """Schema for adding a reaction."""

    emoji: str = Field(..., min_length=1, max_length=64)


class ReactionResponse(BaseModel):
    """Schema for a reaction."""

    model_config = ConfigDict(from_attributes=True)

    emoji: str
    member_id: UUID
    member_name: str


class ReplyPreviewResponse(BaseModel):
    """Compact view of the message being replied to."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    content: str
    sender_name: str
    created_at: datetime


class MessageResponse(BaseModel):
    """Schema for Message response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    group_id: UUID
    sender_id: UUID
    sender_name: str
    content: str
    type: MessageType
    reply_to: UUID | None = None
    reply_to_message: ReplyPreviewResponse | None = None
    attachments: list[AttachmentSchema] = Field(default_factory=list)
    reactions: list[ReactionResponse] = Field(default_factory=list)
    read_by: list[UUID] = Field(default_factory=list)
    edited: bool
    edited_at: datetime | None = None
    deleted: bool
    deleted_at: datetime | None = None
    created_at: datetime


class MessageListResponse(BaseModel):
    """Schema for list of Messages response."""

    data: list[MessageResponse]
    meta: dict[str, Any] = Field(default_factory=dict)


class MessageDetailResponse(BaseModel):
    """Schema for single Message response."""

    data: MessageResponse


class MarkReadResponse(BaseModel):
    """Result of marking a group as read."""

    success: bool = True
    marked_count: int


class UnreadCountResponse(BaseModel):
    """Total unread messages across the caller's groups."""

    unread_count: int
