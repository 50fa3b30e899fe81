"""
Message API routes.
Provides endpoints for sending, retrieving, editing, and managing direct messages.

Writes are committed before any realtime fan-out so socket clients only
ever hear about persisted state.
"""

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.database import get_db
from app.core.rate_limit import limiter, message_rate_limit
from app.core.websocket import ConnectionManager
from app.dependencies import get_connection_manager, get_current_user, get_pagination_params
from app.models.user import User
from app.schemas.message import (
    ConversationListResponse,
    ConversationMessagesResponse,
    MarkReadResponse,
    MessageCreate,
    MessageDeleteResponse,
    MessageEnvelope,
    MessageForward,
    MessageSearchRequest,
    MessageSearchResponse,
    MessageStatsResponse,
    MessageUpdate,
    PaginationMeta,
    UnreadCountResponse,
)
from app.services.conversation_service import ConversationService
from app.services.message_service import MessageService
from app.utils.validators import validate_uuid

router = APIRouter()


@router.post(
    "/",
    response_model=MessageEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Send a new message",
    description="Send a direct message to another user."
)
@limiter.limit(message_rate_limit)
async def send_message(
    request: Request,
    message_data: MessageCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    manager: ConnectionManager = Depends(get_connection_manager)
):
    """
    Send a new message.

    - **receiverId**: UUID of the receiving user
    - **content**: Message text, 1-1000 characters after trimming
    - **messageType**: Optional; emoji-only short messages are detected automatically
    - **replyTo**: Optional UUID of the message being replied to
    """
    service = MessageService(db)
    message = await service.create(
        sender_id=current_user.id,
        receiver_id=message_data.receiver_id,
        content=message_data.content,
        message_type=message_data.message_type,
        reply_to=message_data.reply_to,
    )
    payload = await service.serialize_one(message)
    await db.commit()

    await manager.deliver_new_message(
        message.sender_id,
        message.receiver_id,
        payload.model_dump(mode="json", by_alias=True)
    )
    return MessageEnvelope(message=payload)


@router.get(
    "/conversations",
    response_model=ConversationListResponse,
    summary="List conversations"
)
async def get_conversations(
    limit: int = Query(settings.default_conversations_limit, ge=1, le=settings.max_page_size),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Latest message and unread count for each peer, most recent first."""
    conversations = await ConversationService(db).list_conversations(current_user.id, limit)
    return ConversationListResponse(conversations=conversations)


@router.get(
    "/unread/count",
    response_model=UnreadCountResponse,
    summary="Get unread message count"
)
async def get_unread_count(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    count = await MessageService(db).get_unread_count(current_user.id)
    return UnreadCountResponse(unread_count=count)


@router.get(
    "/stats",
    response_model=MessageStatsResponse,
    summary="Get message statistics"
)
async def get_message_stats(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    stats = await MessageService(db).get_stats(current_user.id)
    return MessageStatsResponse(stats=stats)


@router.get(
    "/conversation/{peer_id}",
    response_model=ConversationMessagesResponse,
    summary="Get conversation with a user",
    description="Get one page of the conversation, oldest message first. Marks the peer's messages as read."
)
async def get_conversation(
    peer_id: str,
    pagination: dict = Depends(get_pagination_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    manager: ConnectionManager = Depends(get_connection_manager)
):
    service = MessageService(db)
    peer_id = validate_uuid(peer_id, "user ID")
    participant = await service.users.get_participant(peer_id)

    read_count = await service.mark_as_read(peer_id, current_user.id)
    messages, meta = await service.get_conversation(
        current_user.id, peer_id, page=pagination["page"], limit=pagination["limit"]
    )
    payloads = await service.serialize(messages)
    await db.commit()

    if read_count:
        await manager.broadcast_messages_read(
            reader_id=current_user.id, sender_id=peer_id, count=read_count
        )

    return ConversationMessagesResponse(
        messages=payloads,
        pagination=PaginationMeta(**meta),
        participant=participant,
    )


@router.post(
    "/search/{peer_id}",
    response_model=MessageSearchResponse,
    summary="Search a conversation"
)
async def search_conversation(
    peer_id: str,
    search: MessageSearchRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Case-insensitive search within the conversation, newest first."""
    service = MessageService(db)
    peer_id = validate_uuid(peer_id, "user ID")

    messages, meta, query = await service.search(
        current_user.id, peer_id, search.query, page=search.page, limit=search.limit
    )
    return MessageSearchResponse(
        messages=await service.serialize(messages),
        pagination=PaginationMeta(**meta),
        search_query=query,
    )


@router.put(
    "/read/{sender_id}",
    response_model=MarkReadResponse,
    summary="Mark messages from a user as read"
)
async def mark_messages_read(
    sender_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    manager: ConnectionManager = Depends(get_connection_manager)
):
    service = MessageService(db)
    sender_id = validate_uuid(sender_id, "sender ID")
    await service.users.require_user(sender_id, "Sender")

    modified = await service.mark_as_read(sender_id, current_user.id)
    await db.commit()

    if modified:
        await manager.broadcast_messages_read(
            reader_id=current_user.id, sender_id=sender_id, count=modified
        )
    return MarkReadResponse(modified_count=modified)


@router.get(
    "/{message_id}",
    response_model=MessageEnvelope,
    summary="Get a message"
)
async def get_message(
    message_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get a single message. Deleted messages are returned with isDeleted=true."""
    service = MessageService(db)
    message = await service.get_message(message_id, current_user.id)
    return MessageEnvelope(message=await service.serialize_one(message))


@router.put(
    "/{message_id}",
    response_model=MessageEnvelope,
    summary="Edit a message",
    description="Edit your own message within 24 hours of sending it."
)
async def edit_message(
    message_id: str,
    message_data: MessageUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    manager: ConnectionManager = Depends(get_connection_manager)
):
    service = MessageService(db)
    message = await service.edit(message_id, current_user.id, message_data.content)
    payload = await service.serialize_one(message)
    await db.commit()

    await manager.broadcast_message_edited(payload.model_dump(mode="json", by_alias=True))
    return MessageEnvelope(message=payload)


@router.delete(
    "/{message_id}",
    response_model=MessageDeleteResponse,
    summary="Delete a message"
)
async def delete_message(
    message_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    manager: ConnectionManager = Depends(get_connection_manager)
):
    message = await MessageService(db).soft_delete(message_id, current_user.id)
    await db.commit()

    await manager.broadcast_message_deleted(message.id, message.sender_id, message.receiver_id)
    return MessageDeleteResponse()


@router.post(
    "/{message_id}/forward",
    response_model=MessageEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Forward a message"
)
@limiter.limit(message_rate_limit)
async def forward_message(
    request: Request,
    message_id: str,
    forward_data: MessageForward,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    manager: ConnectionManager = Depends(get_connection_manager)
):
    service = MessageService(db)
    message = await service.forward(message_id, current_user.id, forward_data.receiver_id)
    payload = await service.serialize_one(message)
    await db.commit()

    await manager.deliver_new_message(
        message.sender_id,
        message.receiver_id,
        payload.model_dump(mode="json", by_alias=True)
    )
    return MessageEnvelope(message=payload)
