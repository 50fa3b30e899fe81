"""
Tests for database models.

Covers defaults, constraints and relationships of the messaging tables.
"""
import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.models import Contact, Message, MessageStatusType, MessageType, User


@pytest.mark.asyncio
class TestModels:
    """Model defaults and constraints."""

    async def test_user_defaults(self, db_session):
        user = User(name="Dana")
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)

        assert len(user.id) == 36
        assert user.is_online is False
        assert user.last_seen is None
        assert user.created_at is not None
        assert repr(user) == f"<User(id={user.id}, name=Dana)>"

    async def test_unique_email(self, db_session, test_user):
        db_session.add(User(name="Impostor", email=test_user.email))
        with pytest.raises(IntegrityError):
            await db_session.commit()
        await db_session.rollback()

    async def test_message_defaults(self, db_session, test_user, test_user_2):
        message = Message(sender_id=test_user.id, receiver_id=test_user_2.id, content="hi")
        db_session.add(message)
        await db_session.commit()
        await db_session.refresh(message)

        assert message.message_type == MessageType.TEXT
        assert message.status == MessageStatusType.SENT
        assert message.is_deleted is False
        assert message.reply_to_id is None
        assert "status=" in repr(message)

    async def test_enums_stored_as_values(self, db_session, test_message):
        raw = await db_session.scalar(
            select(Message.status).where(Message.id == test_message.id)
        )
        assert raw == MessageStatusType.SENT
        assert MessageStatusType("delivered") == MessageStatusType.DELIVERED
        assert MessageType("emoji") == MessageType.EMOJI

    async def test_reply_relationship(self, db_session, test_user, test_user_2, test_message):
        reply = Message(
            sender_id=test_user_2.id,
            receiver_id=test_user.id,
            content="reply",
            reply_to_id=test_message.id,
        )
        db_session.add(reply)
        await db_session.commit()

        loaded = await reply.awaitable_attrs.reply_to
        assert loaded.id == test_message.id

    async def test_contact_unique_pair(self, db_session, test_user, test_user_2):
        db_session.add(Contact(owner_id=test_user.id, contact_id=test_user_2.id))
        await db_session.commit()

        db_session.add(Contact(owner_id=test_user.id, contact_id=test_user_2.id))
        with pytest.raises(IntegrityError):
            await db_session.commit()
        await db_session.rollback()
