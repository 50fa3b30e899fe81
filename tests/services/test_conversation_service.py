"""
Unit tests for ConversationService.
Tests the per-peer conversation list.
"""
import pytest
from sqlalchemy import delete

from app.core.session_registry import canonical_key
from app.models.user import User
from app.services.conversation_service import ConversationService
from app.services.message_service import MessageService


async def _send(db_session, sender, receiver, content):
    message = await MessageService(db_session).create(sender.id, receiver.id, content)
    await db_session.commit()
    return message


@pytest.mark.asyncio
class TestConversationService:
    """Test conversation list operations."""

    async def test_empty(self, db_session, test_user):
        """Test a user with no messages has no conversations."""
        assert await ConversationService(db_session).list_conversations(test_user.id) == []

    async def test_list_conversations(self, db_session, test_user, test_user_2, test_user_3):
        """Test one summary per peer with latest message and unread count."""
        await _send(db_session, test_user_2, test_user, "Bob 1")
        await _send(db_session, test_user_2, test_user, "Bob 2")
        await _send(db_session, test_user, test_user_3, "To Carol")

        conversations = await ConversationService(db_session).list_conversations(test_user.id)

        assert len(conversations) == 2
        latest, older = conversations

        assert latest.conversation_key == canonical_key(test_user.id, test_user_3.id)
        assert latest.participant.name == "Carol"
        assert latest.last_message.content == "To Carol"
        assert latest.unread_count == 0

        assert older.participant.id == test_user_2.id
        assert older.last_message.content == "Bob 2"
        assert older.last_message.sender.name == "Bob"
        assert older.unread_count == 2

    async def test_view_from_other_side(self, db_session, test_user, test_user_2):
        await _send(db_session, test_user, test_user_2, "Hi Bob")

        conversations = await ConversationService(db_session).list_conversations(test_user_2.id)

        assert len(conversations) == 1
        assert conversations[0].participant.id == test_user.id
        assert conversations[0].participant.status == "Available"
        assert conversations[0].unread_count == 1

    async def test_limit(self, db_session, test_user, test_user_2, test_user_3):
        await _send(db_session, test_user, test_user_2, "first")
        await _send(db_session, test_user, test_user_3, "second")

        conversations = await ConversationService(db_session).list_conversations(test_user.id, limit=1)

        assert [c.participant.id for c in conversations] == [test_user_3.id]

    async def test_skips_missing_peer(self, db_session, test_user, test_user_2, test_user_3):
        """Test peers removed from the user directory are dropped."""
        await _send(db_session, test_user, test_user_2, "to Bob")
        await _send(db_session, test_user, test_user_3, "to Carol")

        await db_session.execute(delete(User).where(User.id == test_user_3.id))
        await db_session.commit()
        db_session.expunge(test_user_3)

        conversations = await ConversationService(db_session).list_conversations(test_user.id)

        assert [c.participant.id for c in conversations] == [test_user_2.id]

    async def test_serialized_keys(self, db_session, test_user, test_user_2):
        await _send(db_session, test_user_2, test_user, "hey")

        conversation = (await ConversationService(db_session).list_conversations(test_user.id))[0]
        payload = conversation.model_dump(mode="json", by_alias=True)

        assert set(payload) == {"conversationKey", "participant", "lastMessage", "unreadCount"}
        assert payload["participant"]["isOnline"] is False
        assert payload["lastMessage"]["content"] == "hey"
