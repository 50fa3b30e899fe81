"""
Integration tests for Message API endpoints.
Tests API routes and HTTP interactions.
"""
import pytest
from datetime import timedelta
from uuid import uuid4

from app.config import settings
from app.core.security import create_access_token
from app.models.message import MessageStatusType
from app.services.message_service import MessageService
from app.utils.datetime_utils import utc_now


async def _send(db_session, sender, receiver, content):
    message = await MessageService(db_session).create(sender.id, receiver.id, content)
    await db_session.commit()
    return message


@pytest.mark.asyncio
class TestAuthentication:
    """Test cases for bearer authentication."""

    async def test_send_message_unauthorized(self, unauth_client):
        """Test sending a message without authentication."""
        response = await unauth_client.post(
            "/api/v1/messages/",
            json={"receiverId": str(uuid4()), "content": "Test message"}
        )

        assert response.status_code == 401
        assert response.json()["status"] == "error"

    async def test_invalid_token(self, unauth_client):
        response = await unauth_client.get(
            "/api/v1/messages/unread/count",
            headers={"Authorization": "Bearer garbage"}
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token"

    async def test_token_for_unknown_user(self, unauth_client):
        token = create_access_token(str(uuid4()))
        response = await unauth_client.get(
            "/api/v1/messages/unread/count",
            headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 401
        assert response.json()["message"] == "User not found"

    async def test_auth_headers(self, unauth_client, auth_headers, test_user_2):
        response = await unauth_client.post(
            "/api/v1/messages/",
            headers=auth_headers,
            json={"receiverId": test_user_2.id, "content": "Signed in"}
        )
        assert response.status_code == 201

    async def test_valid_token(self, unauth_client, test_user_2, test_message):
        token = create_access_token(test_user_2.id)
        response = await unauth_client.get(
            "/api/v1/messages/unread/count",
            headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 200
        assert response.json() == {"unreadCount": 1}


@pytest.mark.asyncio
class TestSendMessage:
    """Test cases for POST /messages/."""

    async def test_send_message_success(self, client, test_user, test_user_2, mock_websocket_manager):
        """Test sending a message successfully."""
        response = await client.post(
            "/api/v1/messages/",
            json={"receiverId": test_user_2.id, "content": "  Hello Bob  "}
        )

        assert response.status_code == 201
        message = response.json()["message"]
        assert message["content"] == "Hello Bob"
        assert message["messageType"] == "text"
        assert message["status"] == "sent"
        assert message["senderId"] == test_user.id
        assert message["receiver"]["name"] == "Bob"
        assert message["createdAt"].endswith("Z")

        mock_websocket_manager.deliver_new_message.assert_awaited_once()
        args = mock_websocket_manager.deliver_new_message.await_args.args
        assert args[0] == test_user.id
        assert args[1] == test_user_2.id
        assert args[2]["id"] == message["id"]

    async def test_send_emoji(self, client, test_user_2):
        response = await client.post(
            "/api/v1/messages/",
            json={"receiverId": test_user_2.id, "content": "🔥🔥"}
        )
        assert response.status_code == 201
        assert response.json()["message"]["messageType"] == "emoji"

    async def test_send_reply(self, client, test_user_2, test_message):
        response = await client.post(
            "/api/v1/messages/",
            json={"receiverId": test_user_2.id, "content": "Replying", "replyTo": test_message.id}
        )
        assert response.status_code == 201
        reply = response.json()["message"]["replyTo"]
        assert reply["id"] == test_message.id
        assert reply["content"] == "Test message content"

    async def test_send_empty_content(self, client, test_user_2, mock_websocket_manager):
        response = await client.post(
            "/api/v1/messages/",
            json={"receiverId": test_user_2.id, "content": "   "}
        )

        assert response.status_code == 400
        assert response.json() == {"status": "error", "message": "Message content is required"}
        mock_websocket_manager.deliver_new_message.assert_not_awaited()

    async def test_send_too_long(self, client, test_user_2):
        response = await client.post(
            "/api/v1/messages/",
            json={"receiverId": test_user_2.id, "content": "x" * 1001}
        )
        assert response.status_code == 400

    async def test_send_unknown_receiver(self, client):
        response = await client.post(
            "/api/v1/messages/",
            json={"receiverId": str(uuid4()), "content": "Hello?"}
        )
        assert response.status_code == 404
        assert response.json()["message"] == "Receiver not found"

    async def test_send_missing_fields(self, client):
        response = await client.post("/api/v1/messages/", json={"content": "No receiver"})

        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Validation failed"
        assert body["errors"]

    async def test_rate_limited(self, client, test_user_2):
        for _ in range(settings.rate_limit_messages_per_minute):
            response = await client.post(
                "/api/v1/messages/",
                json={"receiverId": test_user_2.id, "content": "spam"}
            )
            assert response.status_code == 201

        response = await client.post(
            "/api/v1/messages/",
            json={"receiverId": test_user_2.id, "content": "one too many"}
        )
        assert response.status_code == 429


@pytest.mark.asyncio
class TestConversationEndpoints:
    """Test cases for conversation reads."""

    async def test_get_conversation(self, client, db_session, test_user, test_user_2, mock_websocket_manager):
        await _send(db_session, test_user, test_user_2, "Hello from user1")
        await _send(db_session, test_user_2, test_user, "Hello back from user2")
        await _send(db_session, test_user, test_user_2, "How are you?")

        response = await client.get(f"/api/v1/messages/conversation/{test_user_2.id}")

        assert response.status_code == 200
        data = response.json()
        assert [m["content"] for m in data["messages"]] == [
            "Hello from user1", "Hello back from user2", "How are you?"
        ]
        assert data["pagination"]["totalResults"] == 3
        assert data["pagination"]["hasNextPage"] is False
        assert data["participant"]["id"] == test_user_2.id
        assert data["participant"]["isOnline"] is False

        # Bob's message to Alice was marked read on open
        assert data["messages"][1]["status"] == "read"
        assert data["messages"][1]["readAt"] is not None
        mock_websocket_manager.broadcast_messages_read.assert_awaited_once_with(
            reader_id=test_user.id, sender_id=test_user_2.id, count=1
        )

    async def test_get_conversation_paginated(self, client, db_session, test_user, test_user_2):
        for content in ("one", "two", "three"):
            await _send(db_session, test_user, test_user_2, content)

        response = await client.get(
            f"/api/v1/messages/conversation/{test_user_2.id}", params={"page": 1, "limit": 2}
        )

        pagination = response.json()["pagination"]
        assert [m["content"] for m in response.json()["messages"]] == ["two", "three"]
        assert pagination == {
            "currentPage": 1,
            "totalPages": 2,
            "totalResults": 3,
            "hasNextPage": True,
            "hasPrevPage": False,
            "nextPage": 2,
            "prevPage": None,
        }

    async def test_get_conversation_no_unread(self, client, test_user_2, test_message, mock_websocket_manager):
        response = await client.get(f"/api/v1/messages/conversation/{test_user_2.id}")

        assert response.status_code == 200
        mock_websocket_manager.broadcast_messages_read.assert_not_awaited()

    async def test_get_conversation_unknown_peer(self, client):
        response = await client.get(f"/api/v1/messages/conversation/{uuid4()}")
        assert response.status_code == 404

    async def test_get_conversation_invalid_peer(self, client):
        response = await client.get("/api/v1/messages/conversation/not-a-uuid")
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid user ID"

    async def test_list_conversations(self, client, db_session, test_user, test_user_2, test_user_3):
        await _send(db_session, test_user_2, test_user, "from bob")
        await _send(db_session, test_user, test_user_3, "to carol")

        response = await client.get("/api/v1/messages/conversations")

        assert response.status_code == 200
        conversations = response.json()["conversations"]
        assert [c["participant"]["name"] for c in conversations] == ["Carol", "Bob"]
        assert conversations[1]["unreadCount"] == 1
        assert conversations[1]["lastMessage"]["content"] == "from bob"
        assert ":" in conversations[0]["conversationKey"]

    async def test_list_conversations_limit(self, client, db_session, test_user, test_user_2, test_user_3):
        await _send(db_session, test_user_2, test_user, "from bob")
        await _send(db_session, test_user, test_user_3, "to carol")

        response = await client.get("/api/v1/messages/conversations", params={"limit": 1})
        assert len(response.json()["conversations"]) == 1

    async def test_search(self, client, db_session, test_user, test_user_2):
        await _send(db_session, test_user, test_user_2, "Lunch tomorrow?")
        await _send(db_session, test_user_2, test_user, "lunch sounds good")
        await _send(db_session, test_user_2, test_user, "see you")

        response = await client.post(
            f"/api/v1/messages/search/{test_user_2.id}", json={"query": "LUNCH"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["searchQuery"] == "LUNCH"
        assert [m["content"] for m in data["messages"]] == ["lunch sounds good", "Lunch tomorrow?"]
        assert data["pagination"]["totalResults"] == 2

    async def test_search_query_too_short(self, client, test_user_2):
        response = await client.post(
            f"/api/v1/messages/search/{test_user_2.id}", json={"query": "a"}
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Search query must be at least 2 characters long"


@pytest.mark.asyncio
class TestReadState:
    """Test cases for unread counts and read receipts."""

    async def test_unread_count_and_mark_read(
        self, client, db_session, test_user, test_user_2, mock_websocket_manager
    ):
        await _send(db_session, test_user_2, test_user, "one")
        await _send(db_session, test_user_2, test_user, "two")

        response = await client.get("/api/v1/messages/unread/count")
        assert response.json() == {"unreadCount": 2}

        response = await client.put(f"/api/v1/messages/read/{test_user_2.id}")
        assert response.status_code == 200
        assert response.json() == {"modifiedCount": 2}
        mock_websocket_manager.broadcast_messages_read.assert_awaited_once_with(
            reader_id=test_user.id, sender_id=test_user_2.id, count=2
        )

        response = await client.get("/api/v1/messages/unread/count")
        assert response.json() == {"unreadCount": 0}

    async def test_mark_read_nothing_pending(self, client, test_user_2, mock_websocket_manager):
        response = await client.put(f"/api/v1/messages/read/{test_user_2.id}")

        assert response.json() == {"modifiedCount": 0}
        mock_websocket_manager.broadcast_messages_read.assert_not_awaited()

    async def test_mark_read_unknown_sender(self, client):
        response = await client.put(f"/api/v1/messages/read/{uuid4()}")
        assert response.status_code == 404
        assert response.json()["message"] == "Sender not found"

    async def test_stats(self, client, db_session, test_user, test_user_2):
        await _send(db_session, test_user, test_user_2, "a")
        await _send(db_session, test_user_2, test_user, "b")

        response = await client.get("/api/v1/messages/stats")

        assert response.status_code == 200
        assert response.json()["stats"] == {
            "totalSent": 1,
            "totalReceived": 1,
            "unreadCount": 1,
            "messagesToday": 1,
            "totalConversations": 1,
            "totalMessages": 2,
        }


@pytest.mark.asyncio
class TestSingleMessage:
    """Test cases for single-message routes."""

    async def test_get_message(self, client, test_message):
        response = await client.get(f"/api/v1/messages/{test_message.id}")
        assert response.status_code == 200
        assert response.json()["message"]["id"] == test_message.id

    async def test_get_message_forbidden(self, client, db_session, test_user_2, test_user_3):
        message = await _send(db_session, test_user_2, test_user_3, "private")
        response = await client.get(f"/api/v1/messages/{message.id}")
        assert response.status_code == 403

    async def test_get_message_not_found(self, client):
        response = await client.get(f"/api/v1/messages/{uuid4()}")
        assert response.status_code == 404

    async def test_edit_message(self, client, test_message, mock_websocket_manager):
        response = await client.put(
            f"/api/v1/messages/{test_message.id}", json={"content": "Edited"}
        )

        assert response.status_code == 200
        message = response.json()["message"]
        assert message["content"] == "Edited"
        assert message["editedAt"] is not None
        mock_websocket_manager.broadcast_message_edited.assert_awaited_once()

    async def test_edit_after_window(self, client, db_session, test_message, mock_websocket_manager):
        test_message.created_at = utc_now() - timedelta(hours=25)
        await db_session.commit()

        response = await client.put(
            f"/api/v1/messages/{test_message.id}", json={"content": "Too late"}
        )

        assert response.status_code == 400
        mock_websocket_manager.broadcast_message_edited.assert_not_awaited()

    async def test_edit_someone_elses_message(self, client, db_session, test_user, test_user_2):
        message = await _send(db_session, test_user_2, test_user, "Bob's words")
        response = await client.put(f"/api/v1/messages/{message.id}", json={"content": "Mine now"})
        assert response.status_code == 403

    async def test_delete_message(self, client, db_session, test_user, test_user_2, test_message, mock_websocket_manager):
        response = await client.delete(f"/api/v1/messages/{test_message.id}")

        assert response.status_code == 200
        assert response.json() == {"status": "success", "message": "Message deleted successfully"}
        mock_websocket_manager.broadcast_message_deleted.assert_awaited_once_with(
            test_message.id, test_user.id, test_user_2.id
        )

        response = await client.get(f"/api/v1/messages/conversation/{test_user_2.id}")
        assert response.json()["messages"] == []

        # Deleted messages stay readable by ID
        response = await client.get(f"/api/v1/messages/{test_message.id}")
        assert response.json()["message"]["isDeleted"] is True

    async def test_delete_twice(self, client, test_message):
        assert (await client.delete(f"/api/v1/messages/{test_message.id}")).status_code == 200
        assert (await client.delete(f"/api/v1/messages/{test_message.id}")).status_code == 200

    async def test_forward(self, client, test_user, test_user_3, test_message, mock_websocket_manager):
        response = await client.post(
            f"/api/v1/messages/{test_message.id}/forward", json={"receiverId": test_user_3.id}
        )

        assert response.status_code == 201
        message = response.json()["message"]
        assert message["id"] != test_message.id
        assert message["content"] == "Test message content"
        assert message["senderId"] == test_user.id
        assert message["receiverId"] == test_user_3.id
        mock_websocket_manager.deliver_new_message.assert_awaited_once()

    async def test_forward_deleted(self, client, test_user_3, test_message):
        await client.delete(f"/api/v1/messages/{test_message.id}")
        response = await client.post(
            f"/api/v1/messages/{test_message.id}/forward", json={"receiverId": test_user_3.id}
        )
        assert response.status_code == 404


@pytest.mark.asyncio
class TestHealth:
    """Test cases for health endpoints."""

    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
