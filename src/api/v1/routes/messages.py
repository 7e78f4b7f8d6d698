"""Message API routes."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from api.dependencies.auth import CurrentMember
from api.v1.dependencies import get_message_service
from api.v1.schemas.message import (
    AttachmentSchema,
    EditMessageRequest,
    MarkReadRequest,
    MarkReadResponse,
    MessageDetailResponse,
    MessageListResponse,
    MessageResponse,
    ReactionRequest,
    ReactionResponse,
    ReplyPreviewResponse,
    SendMessageRequest,
    UnreadCountResponse,
)
from core.config import settings
from core.rate_limit import CHAT_LIMIT, READ_LIMIT, WRITE_LIMIT, limiter
from domain.entities.message import Attachment, Message
from domain.services.message_service import MessageService

# Group-scoped message routes (history, send, search, read receipts)
group_messages_router = APIRouter(
    prefix="/groups/{group_id}/messages",
    tags=["messages"],
)

# Message-scoped routes (edit, delete, reactions)
messages_router = APIRouter(
    prefix="/messages",
    tags=["messages"],
)


@group_messages_router.get(
    "",
    response_model=MessageListResponse,
    summary="Get message history",
    responses={
        200: {"description": "One page of messages, oldest first"},
    },
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def list_messages(
    request: Request,
    group_id: UUID,
    member: CurrentMember,
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    before: datetime | None = Query(None, description="Only messages created before this"),
    service: MessageService = Depends(get_message_service),
) -> MessageListResponse:
    """Get the newest page of a group's messages, in reading order."""
    messages = await service.get_by_group(group_id, limit=limit, before=before)
    data = [_build_message_response(m) for m in messages]
    meta: dict = {"total": len(data), "limit": limit}
    if data:
        meta["oldest"] = data[0].created_at.isoformat()
    return MessageListResponse(data=data, meta=meta)


@group_messages_router.post(
    "",
    response_model=MessageDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send a message",
    responses={
        201: {"description": "Message sent (or the earlier copy of a retried send)"},
        403: {"description": "You must be a member of this group to send messages"},
    },
)
@limiter.limit(CHAT_LIMIT)  # type: ignore[untyped-decorator]
async def send_message(
    request: Request,
    group_id: UUID,
    body: SendMessageRequest,
    member: CurrentMember,
    service: MessageService = Depends(get_message_service),
) -> MessageDetailResponse:
    """Post a message to a group. Requires membership."""
    message = await service.send(
        group_id=group_id,
        sender_id=member.id,
        content=body.content,
        message_type=body.type,
        reply_to=body.reply_to,
        attachments=[
            Attachment(name=a.name, url=a.url, size=a.size, mime_type=a.mime_type)
            for a in body.attachments
        ],
        client_message_id=body.client_message_id,
    )
    return MessageDetailResponse(data=_build_message_response(message))


@group_messages_router.get(
    "/search",
    response_model=MessageListResponse,
    summary="Search messages",
    responses={
        200: {"description": "Matching live messages, newest first"},
    },
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def search_messages(
    request: Request,
    group_id: UUID,
    member: CurrentMember,
    q: str = Query(..., min_length=1, max_length=200),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    service: MessageService = Depends(get_message_service),
) -> MessageListResponse:
    """Case-insensitive search on message content and sender name."""
    messages = await service.search(group_id, q, limit=limit)
    data = [_build_message_response(m) for m in messages]
    return MessageListResponse(data=data, meta={"total": len(data), "query": q})


@group_messages_router.post(
    "/read",
    response_model=MarkReadResponse,
    summary="Mark messages as read",
    responses={
        200: {"description": "Read cursor moved; receipts recorded"},
        404: {"description": "Not a member of this group"},
    },
)
@limiter.limit(CHAT_LIMIT)  # type: ignore[untyped-decorator]
async def mark_as_read(
    request: Request,
    group_id: UUID,
    member: CurrentMember,
    body: MarkReadRequest | None = None,
    service: MessageService = Depends(get_message_service),
) -> MarkReadResponse:
    """Mark a group as read up to a timestamp (default: now)."""
    up_to = body.up_to if body else None
    marked = await service.mark_as_read(group_id, member.id, up_to=up_to)
    return MarkReadResponse(marked_count=marked)


@messages_router.get(
    "/unread-count",
    response_model=UnreadCountResponse,
    summary="Get unread count",
    responses={
        200: {"description": "Unread messages across all of the caller's groups"},
    },
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def get_unread_count(
    request: Request,
    member: CurrentMember,
    service: MessageService = Depends(get_message_service),
) -> UnreadCountResponse:
    """Get the caller's total unread message count."""
    count = await service.get_unread_count(member.id)
    return UnreadCountResponse(unread_count=count)


@messages_router.get(
    "/{message_id}",
    response_model=MessageDetailResponse,
    summary="Get a message",
    responses={
        200: {"description": "Message with its reply preview"},
        404: {"description": "Message not found"},
    },
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def get_message(
    request: Request,
    message_id: UUID,
    member: CurrentMember,
    service: MessageService = Depends(get_message_service),
) -> MessageDetailResponse:
    """Get a single message."""
    message = await service.get_by_id(message_id)
    return MessageDetailResponse(data=_build_message_response(message))


@messages_router.patch(
    "/{message_id}",
    response_model=MessageDetailResponse,
    summary="Edit a message",
    responses={
        200: {"description": "Message edited"},
        400: {"description": "Cannot edit a deleted message"},
        403: {"description": "Not the author or a group moderator"},
        404: {"description": "Message not found"},
    },
)
@limiter.limit(WRITE_LIMIT)  # type: ignore[untyped-decorator]
async def edit_message(
    request: Request,
    message_id: UUID,
    body: EditMessageRequest,
    member: CurrentMember,
    service: MessageService = Depends(get_message_service),
) -> MessageDetailResponse:
    """Edit a message. Author, group Owner or Admin only."""
    message = await service.edit(message_id, member.id, body.content)
    return MessageDetailResponse(data=_build_message_response(message))


@messages_router.delete(
    "/{message_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a message",
    responses={
        204: {"description": "Message soft-deleted"},
        403: {"description": "Not the author or a group moderator"},
        404: {"description": "Message not found"},
    },
)
@limiter.limit(WRITE_LIMIT)  # type: ignore[untyped-decorator]
async def delete_message(
    request: Request,
    message_id: UUID,
    member: CurrentMember,
    service: MessageService = Depends(get_message_service),
) -> None:
    """Soft-delete a message. Author, group Owner or Admin only."""
    await service.delete_message(message_id, member.id)
    return None


@messages_router.post(
    "/{message_id}/reactions",
    response_model=MessageDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="React to a message",
    responses={
        201: {"description": "Reaction added"},
        400: {"description": "Cannot react to a deleted message"},
        403: {"description": "Not a member of the message's group"},
        404: {"description": "Message not found"},
        409: {"description": "Already reacted with this emoji"},
    },
)
@limiter.limit(CHAT_LIMIT)  # type: ignore[untyped-decorator]
async def add_reaction(
    request: Request,
    message_id: UUID,
    body: ReactionRequest,
    member: CurrentMember,
    service: MessageService = Depends(get_message_service),
) -> MessageDetailResponse:
    """Add the caller's reaction to a message."""
    message = await service.add_reaction(message_id, member.id, body.emoji)
    return MessageDetailResponse(data=_build_message_response(message))


@messages_router.delete(
    "/{message_id}/reactions/{emoji}",
    response_model=MessageDetailResponse,
    summary="Remove a reaction",
    responses={
        200: {"description": "Reaction removed"},
        404: {"description": "Message or reaction not found"},
    },
)
@limiter.limit(CHAT_LIMIT)  # type: ignore[untyped-decorator]
async def remove_reaction(
    request: Request,
    message_id: UUID,
    emoji: str,
    member: CurrentMember,
    service: MessageService = Depends(get_message_service),
) -> MessageDetailResponse:
    """Take back one of the caller's reactions."""
    message = await service.remove_reaction(message_id, member.id, emoji)
    return MessageDetailResponse(data=_build_message_response(message))


def _build_message_response(message: Message) -> MessageResponse:
    """Convert domain entity to response schema."""
    return MessageResponse(
        id=message.id,
        group_id=message.group_id,
        sender_id=message.sender_id,
        sender_name=message.sender_name,
        content=message.content,
        type=message.type,
        reply_to=message.reply_to,
        reply_to_message=(
            ReplyPreviewResponse.model_validate(message.reply_to_message)
            if message.reply_to_message
            else None
        ),
        attachments=[AttachmentSchema.model_validate(a) for a in message.attachments],
        reactions=[ReactionResponse.model_validate(r) for r in message.reactions],
        read_by=sorted(message.read_by, key=str),
        edited=message.edited,
        edited_at=message.edited_at,
        deleted=message.deleted,
        deleted_at=message.deleted_at,
        created_at=message.created_at,
    )
