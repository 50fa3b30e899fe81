"""
Pydantic schemas for message requests and responses.
Handles validation for message-related API endpoints and the payloads
pushed over the socket channel.
"""
from typing import Optional, List

from pydantic import BaseModel, Field, ConfigDict

from app.config import settings
from app.models.message import MessageType, MessageStatusType
from app.schemas.user import ParticipantInfo, UserSummary, UTCDateTime


# ============================================================================
# Request Schemas
# ============================================================================

class MessageCreate(BaseModel):
    """Schema for creating a new message."""

    receiver_id: str = Field(..., alias="receiverId", description="Receiver user ID")
    content: str = Field(..., description="Message text content")
    message_type: Optional[MessageType] = Field(
        None, alias="messageType", description="Message type (auto-detected when omitted)"
    )
    reply_to: Optional[str] = Field(None, alias="replyTo", description="ID of message being replied to")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "receiverId": "123e4567-e89b-12d3-a456-426614174000",
                "content": "Hello, how are you?",
                "messageType": "text",
                "replyTo": None
            }
        }
    )


class MessageUpdate(BaseModel):
    """Schema for editing a message."""

    content: str = Field(..., description="Updated message content")

    model_config = ConfigDict(
        json_schema_extra={"example": {"content": "Updated message content"}}
    )


class MessageForward(BaseModel):
    """Schema for forwarding a message."""

    receiver_id: str = Field(..., alias="receiverId", description="User to forward to")

    model_config = ConfigDict(populate_by_name=True)


class MessageSearchRequest(BaseModel):
    """Schema for searching a conversation."""

    query: str = Field(..., description="Search text")
    page: int = Field(default=1, ge=1, description="Page number")
    limit: int = Field(
        default=settings.default_page_size, ge=1, le=settings.max_page_size, description="Page size"
    )

    model_config = ConfigDict(
        json_schema_extra={"example": {"query": "meeting", "page": 1, "limit": 20}}
    )


# ============================================================================
# Response Schemas
# ============================================================================

class PaginationMeta(BaseModel):
    """Page-number pagination metadata."""

    current_page: int = Field(serialization_alias="currentPage")
    total_pages: int = Field(serialization_alias="totalPages")
    total_results: int = Field(serialization_alias="totalResults")
    has_next_page: bool = Field(serialization_alias="hasNextPage")
    has_prev_page: bool = Field(serialization_alias="hasPrevPage")
    next_page: Optional[int] = Field(None, serialization_alias="nextPage")
    prev_page: Optional[int] = Field(None, serialization_alias="prevPage")


class ReplyPreview(BaseModel):
    """The message being replied to, as shown inside a reply."""

    id: str
    content: Optional[str] = None
    message_type: MessageType = Field(serialization_alias="messageType")
    sender: Optional[UserSummary] = None
    is_deleted: bool = Field(False, serialization_alias="isDeleted")


class MessageResponse(BaseModel):
    """Schema for message response with resolved participants."""

    id: str
    sender_id: str = Field(serialization_alias="senderId")
    receiver_id: str = Field(serialization_alias="receiverId")
    sender: Optional[UserSummary] = None
    receiver: Optional[UserSummary] = None
    content: str
    message_type: MessageType = Field(serialization_alias="messageType")
    status: MessageStatusType
    reply_to_id: Optional[str] = Field(None, serialization_alias="replyToId")
    reply_to: Optional[ReplyPreview] = Field(None, serialization_alias="replyTo")
    is_deleted: bool = Field(False, serialization_alias="isDeleted")
    delivered_at: Optional[UTCDateTime] = Field(None, serialization_alias="deliveredAt")
    read_at: Optional[UTCDateTime] = Field(None, serialization_alias="readAt")
    edited_at: Optional[UTCDateTime] = Field(None, serialization_alias="editedAt")
    deleted_at: Optional[UTCDateTime] = Field(None, serialization_alias="deletedAt")
    created_at: UTCDateTime = Field(serialization_alias="createdAt")
    updated_at: Optional[UTCDateTime] = Field(None, serialization_alias="updatedAt")

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174000",
                "senderId": "123e4567-e89b-12d3-a456-426614174001",
                "receiverId": "123e4567-e89b-12d3-a456-426614174002",
                "sender": {"id": "123e4567-e89b-12d3-a456-426614174001", "name": "Alice", "avatar": None},
                "receiver": {"id": "123e4567-e89b-12d3-a456-426614174002", "name": "Bob", "avatar": None},
                "content": "Hello, how are you?",
                "messageType": "text",
                "status": "sent",
                "replyToId": None,
                "replyTo": None,
                "isDeleted": False,
                "deliveredAt": None,
                "readAt": None,
                "editedAt": None,
                "deletedAt": None,
                "createdAt": "2025-10-10T10:00:00Z",
                "updatedAt": "2025-10-10T10:00:00Z"
            }
        }
    )


class MessageEnvelope(BaseModel):
    message: MessageResponse


class ConversationMessagesResponse(BaseModel):
    """One page of a conversation, oldest message first."""

    messages: List[MessageResponse]
    pagination: PaginationMeta
    participant: ParticipantInfo


class MessageSearchResponse(BaseModel):
    messages: List[MessageResponse]
    pagination: PaginationMeta
    search_query: str = Field(serialization_alias="searchQuery")


class ConversationSummary(BaseModel):
    """Latest message and unread count for one peer."""

    conversation_key: str = Field(serialization_alias="conversationKey")
    participant: ParticipantInfo
    last_message: MessageResponse = Field(serialization_alias="lastMessage")
    unread_count: int = Field(serialization_alias="unreadCount")


class ConversationListResponse(BaseModel):
    conversations: List[ConversationSummary]


class UnreadCountResponse(BaseModel):
    unread_count: int = Field(serialization_alias="unreadCount")


class MarkReadResponse(BaseModel):
    modified_count: int = Field(serialization_alias="modifiedCount")


class MessageStats(BaseModel):
    """Per-user message statistics."""

    total_sent: int = Field(serialization_alias="totalSent")
    total_received: int = Field(serialization_alias="totalReceived")
    unread_count: int = Field(serialization_alias="unreadCount")
    messages_today: int = Field(serialization_alias="messagesToday")
    total_conversations: int = Field(serialization_alias="totalConversations")
    total_messages: int = Field(serialization_alias="totalMessages")


class MessageStatsResponse(BaseModel):
    stats: MessageStats


class MessageDeleteResponse(BaseModel):
    """Response for message deletion."""

    status: str = "success"
    message: str = "Message deleted successfully"
