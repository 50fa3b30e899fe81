"""
Message service containing business logic for messaging operations.
Handles validation, ownership and lifecycle rules on top of the message
repository, and assembles the payloads returned to clients.

Operations raise the typed errors from app.core.exceptions; callers decide
how those reach the client (HTTP status or socket error event).
"""
import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import (
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from app.models.message import Message, MessageType, MessageStatusType
from app.repositories.message_repo import MessageRepository
from app.schemas.message import MessageResponse, MessageStats, ReplyPreview
from app.services.user_service import UserService
from app.utils.datetime_utils import is_older_than, start_of_day_utc, utc_now
from app.utils.helpers import get_pagination_meta, normalize_page_params, page_offset
from app.utils.validators import (
    classify_message_type,
    validate_message_content,
    validate_search_query,
    validate_uuid,
)

logger = logging.getLogger(__name__)


class MessageService:
    """Service for message operations with business logic."""

    def __init__(self, db: AsyncSession, user_service: Optional[UserService] = None):
        """
        Initialize message service.

        Args:
            db: Database session
            user_service: User directory (defaults to one bound to the same session)
        """
        self.db = db
        self.message_repo = MessageRepository(db)
        self.users = user_service or UserService(db)

    @staticmethod
    def _resolve_message_type(content: str, message_type: Any) -> MessageType:
        if message_type is None:
            return classify_message_type(content)
        try:
            return MessageType(message_type)
        except ValueError:
            raise ValidationError("Invalid message type")

    async def _get_existing(self, message_id: str) -> Message:
        message_id = validate_uuid(message_id, "message ID")
        message = await self.message_repo.get(message_id)
        if not message:
            raise NotFoundError("Message not found")
        return message

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(
        self,
        sender_id: str,
        receiver_id: str,
        content: Optional[str],
        message_type: Any = None,
        reply_to: Optional[str] = None
    ) -> Message:
        """
        Create a message with status=sent.

        Args:
            sender_id: Sending user
            receiver_id: Receiving user
            content: Raw content (trimmed before storing)
            message_type: Explicit type, or None to auto-detect emoji
            reply_to: Optional ID of the message being replied to

        Returns:
            Created message

        Raises:
            ValidationError: Malformed IDs, empty or oversized content
            NotFoundError: Receiver or replied-to message does not exist
        """
        receiver_id = validate_uuid(receiver_id, "receiver ID")
        await self.users.require_user(receiver_id, "Receiver")

        content = validate_message_content(content)
        resolved_type = self._resolve_message_type(content, message_type)

        reply_to_id = None
        if reply_to:
            reply_to_id = validate_uuid(reply_to, "reply message ID")
            if not await self.message_repo.exists(reply_to_id):
                raise NotFoundError("Replied-to message not found")

        message = await self.message_repo.create(
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
            message_type=resolved_type,
            status=MessageStatusType.SENT,
            reply_to_id=reply_to_id,
        )
        logger.info("Message %s created: %s -> %s", message.id, sender_id, receiver_id)
        return message

    async def mark_as_delivered(self, sender_id: str, receiver_id: str) -> int:
        """Advance sent -> delivered for messages from sender to receiver."""
        return await self.message_repo.mark_delivered(sender_id, receiver_id)

    async def mark_as_read(self, sender_id: str, receiver_id: str) -> int:
        """Advance sent/delivered -> read for messages from sender to receiver."""
        return await self.message_repo.mark_read(sender_id, receiver_id)

    async def edit(self, message_id: str, requester_id: str, content: Optional[str]) -> Message:
        """
        Edit a message's content.

        Raises:
            NotFoundError: Message does not exist
            ForbiddenError: Requester is not the sender
            InvalidStateError: Message is deleted or older than the edit window
            ValidationError: Empty or oversized content
        """
        message = await self._get_existing(message_id)

        if message.sender_id != requester_id:
            raise ForbiddenError("You can only edit your own messages")

        self._check_editable(message)
        content = validate_message_content(content)

        now = utc_now()
        edited = await self.message_repo.edit_content(
            message.id,
            requester_id,
            content,
            classify_message_type(content),
            created_after=now - timedelta(hours=settings.message_edit_window_hours),
            when=now,
        )
        await self.db.refresh(message)

        if not edited:
            # Deleted or aged out since it was loaded
            self._check_editable(message)
            raise InvalidStateError("Message can no longer be edited")
        return message

    @staticmethod
    def _check_editable(message: Message) -> None:
        if message.is_deleted:
            raise InvalidStateError("Cannot edit a deleted message")

        window = timedelta(hours=settings.message_edit_window_hours)
        if is_older_than(message.created_at, window):
            raise InvalidStateError(
                f"Messages can only be edited within {settings.message_edit_window_hours} hours"
            )

    async def soft_delete(self, message_id: str, requester_id: str) -> Message:
        """
        Soft-delete a message. Deleting twice is a no-op.

        Raises:
            NotFoundError: Message does not exist
            ForbiddenError: Requester is not the sender
        """
        message = await self._get_existing(message_id)

        if message.sender_id != requester_id:
            raise ForbiddenError("You can only delete your own messages")

        deleted = await self.message_repo.soft_delete(message.id, requester_id)
        await self.db.refresh(message)

        if deleted:
            logger.info("Message %s deleted by %s", message.id, requester_id)
        return message

    async def forward(self, message_id: str, requester_id: str, receiver_id: str) -> Message:
        """
        Forward a message to another user as a new message from the requester.

        Raises:
            NotFoundError: Original (or deleted original) or receiver missing
            ForbiddenError: Requester did not send or receive the original
        """
        original = await self._get_existing(message_id)
        if original.is_deleted:
            raise NotFoundError("Message not found")

        if requester_id not in (original.sender_id, original.receiver_id):
            raise ForbiddenError("You don't have access to this message")

        return await self.create(
            sender_id=requester_id,
            receiver_id=receiver_id,
            content=original.content,
            message_type=original.message_type,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_message(self, message_id: str, requester_id: str) -> Message:
        """
        Get a single message, including deleted ones.

        Raises:
            NotFoundError: Message does not exist
            ForbiddenError: Requester is not a participant
        """
        message = await self._get_existing(message_id)
        if requester_id not in (message.sender_id, message.receiver_id):
            raise ForbiddenError("You don't have access to this message")
        return message

    async def get_conversation(
        self,
        user_id: str,
        peer_id: str,
        page: int = 1,
        limit: Optional[int] = None
    ) -> Tuple[List[Message], Dict[str, Any]]:
        """
        Get one page of the conversation between two users.

        Returns:
            Tuple of (messages oldest-first, pagination meta)
        """
        page, limit = normalize_page_params(page, limit)
        messages, total = await self.message_repo.get_conversation_page(
            user_id, peer_id, limit=limit, offset=page_offset(page, limit)
        )
        return messages, get_pagination_meta(page, limit, total)

    async def search(
        self,
        user_id: str,
        peer_id: str,
        query: Optional[str],
        page: int = 1,
        limit: Optional[int] = None
    ) -> Tuple[List[Message], Dict[str, Any], str]:
        """
        Search a conversation, newest first.

        Returns:
            Tuple of (messages, pagination meta, normalised query)

        Raises:
            ValidationError: Query too short or too long
        """
        query = validate_search_query(query)
        page, limit = normalize_page_params(page, limit)
        messages, total = await self.message_repo.search_conversation(
            user_id, peer_id, query, limit=limit, offset=page_offset(page, limit)
        )
        return messages, get_pagination_meta(page, limit, total), query

    async def get_latest_conversations(
        self,
        user_id: str,
        limit: Optional[int] = None
    ) -> List[Tuple[Message, str, int]]:
        """Latest message and unread count per peer, newest first."""
        limit = limit or settings.default_conversations_limit
        return await self.message_repo.get_latest_per_peer(user_id, max(1, limit))

    async def get_unread_count(self, user_id: str) -> int:
        return await self.message_repo.count_unread(user_id)

    async def get_stats(self, user_id: str) -> MessageStats:
        total_sent = await self.message_repo.count_sent(user_id)
        total_received = await self.message_repo.count_received(user_id)

        return MessageStats(
            total_sent=total_sent,
            total_received=total_received,
            unread_count=await self.message_repo.count_unread(user_id),
            messages_today=await self.message_repo.count_sent(user_id, since=start_of_day_utc()),
            total_conversations=await self.message_repo.count_peers(user_id),
            total_messages=total_sent + total_received,
        )

    # ------------------------------------------------------------------
    # Presentation
    # ------------------------------------------------------------------

    async def serialize(self, messages: Sequence[Message]) -> List[MessageResponse]:
        """
        Build client payloads for a batch of messages.

        Users and replied-to messages are loaded with one query each,
        whatever the batch size.
        """
        if not messages:
            return []

        reply_ids = {m.reply_to_id for m in messages if m.reply_to_id}
        replies = {m.id: m for m in await self.message_repo.get_many(reply_ids)}

        user_ids = set()
        for message in list(messages) + list(replies.values()):
            user_ids.update((message.sender_id, message.receiver_id))
        summaries = await self.users.get_summaries(user_ids)

        results = []
        for message in messages:
            reply_preview = None
            reply = replies.get(message.reply_to_id) if message.reply_to_id else None
            if reply is not None:
                reply_preview = ReplyPreview(
                    id=reply.id,
                    content=None if reply.is_deleted else reply.content,
                    message_type=reply.message_type,
                    sender=summaries.get(reply.sender_id),
                    is_deleted=reply.is_deleted,
                )

            results.append(MessageResponse(
                id=message.id,
                sender_id=message.sender_id,
                receiver_id=message.receiver_id,
                sender=summaries.get(message.sender_id),
                receiver=summaries.get(message.receiver_id),
                content=message.content,
                message_type=message.message_type,
                status=message.status,
                reply_to_id=message.reply_to_id,
                reply_to=reply_preview,
                is_deleted=message.is_deleted,
                delivered_at=message.delivered_at,
                read_at=message.read_at,
                edited_at=message.edited_at,
                deleted_at=message.deleted_at,
                created_at=message.created_at,
                updated_at=message.updated_at,
            ))
        return results

    async def serialize_one(self, message: Message) -> MessageResponse:
        return (await self.serialize([message]))[0]
