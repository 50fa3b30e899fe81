"""
Pydantic schema exports.
Provides request/response models for API endpoints.
"""
from app.schemas.message import (
    ConversationListResponse,
    ConversationMessagesResponse,
    ConversationSummary,
    MarkReadResponse,
    MessageCreate,
    MessageDeleteResponse,
    MessageEnvelope,
    MessageForward,
    MessageResponse,
    MessageSearchRequest,
    MessageSearchResponse,
    MessageStats,
    MessageStatsResponse,
    MessageUpdate,
    PaginationMeta,
    ReplyPreview,
    UnreadCountResponse,
)
from app.schemas.user import ParticipantInfo, UserSummary

__all__ = [
    "ConversationListResponse",
    "ConversationMessagesResponse",
    "ConversationSummary",
    "MarkReadResponse",
    "MessageCreate",
    "MessageDeleteResponse",
    "MessageEnvelope",
    "MessageForward",
    "MessageResponse",
    "MessageSearchRequest",
    "MessageSearchResponse",
    "MessageStats",
    "MessageStatsResponse",
    "MessageUpdate",
    "PaginationMeta",
    "ReplyPreview",
    "UnreadCountResponse",
    "ParticipantInfo",
    "UserSummary",
]
