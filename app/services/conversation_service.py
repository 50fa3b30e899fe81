"""
Conversation list service.
Builds the per-peer conversation view from the message store and the
user directory. Holds no state of its own.
"""
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.session_registry import canonical_key
from app.schemas.message import ConversationSummary
from app.services.message_service import MessageService
from app.services.user_service import UserService


class ConversationService:
    """Service for the conversation list."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.users = UserService(db)
        self.messages = MessageService(db, user_service=self.users)

    async def list_conversations(
        self,
        user_id: str,
        limit: Optional[int] = None
    ) -> List[ConversationSummary]:
        """
        List a user's conversations, most recently active first.

        Peers that no longer exist in the user directory are skipped.

        Args:
            user_id: User whose conversations are listed
            limit: Maximum number of conversations

        Returns:
            One summary per peer
        """
        rows = await self.messages.get_latest_conversations(user_id, limit)
        if not rows:
            return []

        peers = await self.users.get_participants(peer_id for _, peer_id, _ in rows)
        rows = [row for row in rows if row[1] in peers]
        payloads = await self.messages.serialize([message for message, _, _ in rows])

        return [
            ConversationSummary(
                conversation_key=canonical_key(user_id, peer_id),
                participant=peers[peer_id],
                last_message=payload,
                unread_count=unread_count,
            )
            for (_, peer_id, unread_count), payload in zip(rows, payloads)
        ]
