"""
WebSocket manager for real-time messaging.
Handles Socket.IO connections, conversation rooms, presence and message
broadcasting.

Every store mutation is committed before the corresponding event is
emitted, so clients never see a message or receipt that failed to persist.
"""
import asyncio
import contextlib
import logging
from typing import Any, Dict, Iterable, Optional

import socketio
from socketio.exceptions import ConnectionRefusedError

from app.config import settings
from app.core.database import AsyncSessionLocal
from app.core.exceptions import MessagingError, ValidationError
from app.core.security import SecurityException, get_user_id_from_token
from app.core.session_registry import SessionRegistry, canonical_key, conversation_room
from app.services.message_service import MessageService
from app.services.user_service import UserService
from app.utils.datetime_utils import to_iso_utc, utc_now
from app.utils.validators import is_valid_uuid, validate_uuid

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    WebSocket connection manager using Socket.IO.

    Owns the Socket.IO server, the session registry and the presence
    refresh task. Connection lifecycle: connecting -> authenticated
    (token accepted, session registered) -> active -> closed.
    """

    def __init__(
        self,
        registry: Optional[SessionRegistry] = None,
        session_factory=None
    ):
        """
        Initialize the connection manager.

        Args:
            registry: Session registry (a fresh one by default)
            session_factory: Callable returning an async DB session context
        """
        cors_origins = settings.get_allowed_origins_list() or "*"

        self.sio = socketio.AsyncServer(
            async_mode='asgi',
            cors_allowed_origins=cors_origins,
            # Socket.IO's own loggers are noisy; application events are logged below
            logger=False,
            engineio_logger=False,
            ping_timeout=settings.ws_heartbeat_interval,
            ping_interval=max(1, settings.ws_heartbeat_interval // 2),
        )

        self.registry = registry or SessionRegistry()
        self.session_factory = session_factory or AsyncSessionLocal

        # Track connections: {sid: user_id}
        self.connections: Dict[str, str] = {}

        self._presence_task: Optional[asyncio.Task] = None

        self._setup_handlers()

    def _setup_handlers(self):
        """Setup Socket.IO event handlers."""
        self.sio.on('connect', self.handle_connect)
        self.sio.on('disconnect', self.handle_disconnect)
        self.sio.on('join_conversation', self.handle_join_conversation)
        self.sio.on('leave_conversation', self.handle_leave_conversation)
        self.sio.on('send_message', self.handle_send_message)
        self.sio.on('typing', self.handle_typing)
        self.sio.on('mark_as_read', self.handle_mark_as_read)
        self.sio.on('update_status', self.handle_update_status)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the periodic presence refresh."""
        if self._presence_task is None or self._presence_task.done():
            self._presence_task = asyncio.create_task(self._presence_loop())
            logger.info(
                "Presence refresh started (every %ss)", settings.presence_refresh_interval
            )

    async def stop(self) -> None:
        """Stop background work and drop all sessions."""
        if self._presence_task is not None:
            self._presence_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._presence_task
            self._presence_task = None

        self.registry.clear()
        self.connections.clear()
        logger.info("Connection manager stopped")

    async def _presence_loop(self) -> None:
        while True:
            await asyncio.sleep(settings.presence_refresh_interval)
            try:
                await self.refresh_presence()
            except Exception:
                logger.error("Presence refresh failed", exc_info=True)

    async def refresh_presence(self) -> int:
        """
        Refresh last_seen for every registered session.

        Returns:
            Number of users refreshed
        """
        user_ids = self.registry.online_user_ids()
        if not user_ids:
            return 0

        now = utc_now()
        for user_id in user_ids:
            self.registry.touch(user_id, now)

        async with self.session_factory() as db:
            await UserService(db).touch_last_seen(user_ids, now)
            await db.commit()

        logger.debug("Refreshed last_seen for %d users", len(user_ids))
        return len(user_ids)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_token(environ: Optional[Dict[str, Any]], auth: Any) -> Optional[str]:
        if isinstance(auth, dict) and auth.get('token'):
            return auth['token']

        header = (environ or {}).get('HTTP_AUTHORIZATION')
        if header:
            parts = header.split()
            if len(parts) == 2 and parts[0].lower() == 'bearer':
                return parts[1]
        return None

    async def _emit_error(self, sid: str, event: str, message: str) -> None:
        await self.sio.emit('error', {'event': event, 'message': message}, to=sid)

    async def _emit_to_users(self, user_ids: Iterable[str], event: str, data: Dict[str, Any]) -> None:
        """Emit to the live connection of each user that is online."""
        for user_id in user_ids:
            handle = self.registry.lookup(user_id)
            if handle:
                await self.sio.emit(event, data, to=handle)

    def _is_viewing(self, user_id: str, key: str) -> bool:
        session = self.registry.get(user_id)
        return session is not None and session.joined_conversation == key

    async def _emit_to_conversation(
        self,
        user_a: str,
        user_b: str,
        event: str,
        data: Dict[str, Any],
        notify: Iterable[str] = ()
    ) -> None:
        """
        Emit to a conversation room, and directly to any user in `notify`
        who is online but not viewing that conversation.
        """
        key = canonical_key(user_a, user_b)
        await self.sio.emit(event, data, room=conversation_room(key))

        for user_id in notify:
            if not self._is_viewing(user_id, key):
                await self._emit_to_users([user_id], event, data)

    def _require_user(self, sid: str) -> Optional[str]:
        return self.connections.get(sid)

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    async def handle_connect(self, sid, environ, auth=None):
        """
        Authenticate a connection and register its session.

        The bearer token comes from the handshake auth payload ({'token': ...})
        or the Authorization header.
        """
        token = self._extract_token(environ, auth)
        if not token:
            logger.warning("Connection rejected - no token: %s", sid)
            raise ConnectionRefusedError("Authentication required")

        try:
            user_id = get_user_id_from_token(token)
        except SecurityException as e:
            logger.warning("Connection rejected - %s: %s", e.detail, sid)
            raise ConnectionRefusedError(e.detail)

        async with self.session_factory() as db:
            users = UserService(db)
            user = await users.get_user(user_id)
            if user is None:
                logger.warning("Connection rejected - user not found: %s", sid)
                raise ConnectionRefusedError("User not found")

            last_seen = await users.set_presence(user_id, True)
            contact_ids = await users.get_contact_ids(user_id)
            await db.commit()

        previous = self.registry.register(user_id, sid, name=user.name)
        if previous is not None and previous.handle != sid:
            self.connections.pop(previous.handle, None)
            if previous.joined_conversation:
                await self.sio.leave_room(previous.handle, conversation_room(previous.joined_conversation))
        self.connections[sid] = user_id

        logger.info("Client connected: %s (user: %s)", sid, user_id)

        await self._emit_to_users(contact_ids, 'user_online', {
            'user_id': user_id,
            'last_seen': to_iso_utc(last_seen),
        })
        return True

    async def handle_disconnect(self, sid, *args):
        """Deregister the session and broadcast offline presence."""
        user_id = self.connections.pop(sid, None)
        if not user_id:
            return

        if self.registry.unregister(user_id, sid) is None:
            # A newer connection owns this user; it stays online
            logger.info("Stale connection closed: %s (user: %s)", sid, user_id)
            return

        try:
            async with self.session_factory() as db:
                users = UserService(db)
                last_seen = await users.set_presence(user_id, False)
                contact_ids = await users.get_contact_ids(user_id)
                await db.commit()
        except Exception:
            logger.error("Failed to persist offline presence for %s", user_id, exc_info=True)
            return

        logger.info("Client disconnected: %s (user: %s)", sid, user_id)

        await self._emit_to_users(contact_ids, 'user_offline', {
            'user_id': user_id,
            'last_seen': to_iso_utc(last_seen),
        })

    async def handle_join_conversation(self, sid, data=None):
        """
        Join the conversation with a peer.

        Expected data: {'peer_id': 'uuid'}
        Leaves any previously joined conversation and marks the peer's
        messages as delivered.
        """
        user_id = self._require_user(sid)
        if not user_id:
            await self._emit_error(sid, 'join_conversation', 'Unauthorized')
            return None

        try:
            peer_id = validate_uuid((data or {}).get('peer_id'), "peer ID")
            key = canonical_key(user_id, peer_id)

            previous = self.registry.set_joined_conversation(user_id, key)
            if previous and previous != key:
                await self.sio.leave_room(sid, conversation_room(previous))
            await self.sio.enter_room(sid, conversation_room(key))

            async with self.session_factory() as db:
                delivered = await MessageService(db).mark_as_delivered(peer_id, user_id)
                await db.commit()

            logger.info("User %s joined conversation %s", user_id, key)

            if delivered:
                await self._emit_to_conversation(user_id, peer_id, 'messages_delivered', {
                    'conversation_key': key,
                    'sender_id': peer_id,
                    'receiver_id': user_id,
                    'count': delivered,
                    'delivered_at': to_iso_utc(utc_now()),
                }, notify=[peer_id])

            joined = {'conversation_key': key, 'peer_id': peer_id}
            await self.sio.emit('conversation_joined', joined, to=sid)
            return joined

        except MessagingError as e:
            logger.warning("join_conversation rejected for %s: %s", user_id, e.message)
            await self._emit_error(sid, 'join_conversation', e.message)
        except Exception:
            logger.error("Error joining conversation", exc_info=True)
            await self._emit_error(sid, 'join_conversation', 'Failed to join conversation')
        return None

    async def handle_leave_conversation(self, sid, data=None):
        """Leave the currently joined conversation, if any."""
        user_id = self._require_user(sid)
        if not user_id:
            return

        previous = self.registry.set_joined_conversation(user_id, None)
        if previous:
            await self.sio.leave_room(sid, conversation_room(previous))
            await self.sio.emit('conversation_left', {'conversation_key': previous}, to=sid)

    async def handle_send_message(self, sid, data=None):
        """
        Persist and broadcast a new message.

        Expected data: {'peer_id': 'uuid', 'content': str,
                        'message_type'?: 'text'|'emoji', 'reply_to'?: 'uuid'}
        Returns an acknowledgement with the stored message.
        """
        user_id = self._require_user(sid)
        if not user_id:
            await self._emit_error(sid, 'send_message', 'Unauthorized')
            return {'status': 'error', 'message': 'Unauthorized'}

        try:
            if not isinstance(data, dict):
                raise ValidationError("Invalid message payload")

            async with self.session_factory() as db:
                service = MessageService(db)
                message = await service.create(
                    sender_id=user_id,
                    receiver_id=data.get('peer_id'),
                    content=data.get('content'),
                    message_type=data.get('message_type'),
                    reply_to=data.get('reply_to'),
                )
                payload = (await service.serialize_one(message)).model_dump(mode='json', by_alias=True)
                await db.commit()

        except MessagingError as e:
            logger.warning("send_message rejected for %s: %s", user_id, e.message)
            await self._emit_error(sid, 'send_message', e.message)
            return {'status': 'error', 'message': e.message}
        except Exception:
            logger.error("Error sending message", exc_info=True)
            await self._emit_error(sid, 'send_message', 'Failed to send message')
            return {'status': 'error', 'message': 'Failed to send message'}

        await self.deliver_new_message(user_id, payload['receiverId'], payload)
        return {'status': 'ok', 'message': payload}

    async def handle_typing(self, sid, data=None):
        """
        Relay a typing indicator to the peer. Best-effort: malformed input
        is dropped silently.

        Expected data: {'peer_id': 'uuid', 'is_typing': bool}
        """
        user_id = self._require_user(sid)
        if not user_id or not isinstance(data, dict):
            return

        peer_id = data.get('peer_id')
        if not is_valid_uuid(peer_id):
            return

        key = canonical_key(user_id, peer_id)
        session = self.registry.get(user_id)
        await self.sio.emit('typing_indicator', {
            'conversation_key': key,
            'user_id': user_id,
            'user_name': session.name if session else None,
            'is_typing': bool(data.get('is_typing', True)),
        }, room=conversation_room(key), skip_sid=sid)

    async def handle_mark_as_read(self, sid, data=None):
        """
        Mark the sender's messages as read and send a read receipt.

        Expected data: {'message_id': 'uuid', 'sender_id': 'uuid'}
        """
        user_id = self._require_user(sid)
        if not user_id:
            await self._emit_error(sid, 'mark_as_read', 'Unauthorized')
            return None

        try:
            data = data if isinstance(data, dict) else {}
            sender_id = validate_uuid(data.get('sender_id'), "sender ID")
            message_id = data.get('message_id')
            if message_id is not None:
                message_id = validate_uuid(message_id, "message ID")

            async with self.session_factory() as db:
                modified = await MessageService(db).mark_as_read(sender_id, user_id)
                await db.commit()

        except MessagingError as e:
            await self._emit_error(sid, 'mark_as_read', e.message)
            return None
        except Exception:
            logger.error("Error marking messages as read", exc_info=True)
            await self._emit_error(sid, 'mark_as_read', 'Failed to mark messages as read')
            return None

        await self.broadcast_messages_read(
            reader_id=user_id,
            sender_id=sender_id,
            count=modified,
            message_id=message_id,
        )
        return {'status': 'ok', 'modified_count': modified}

    async def handle_update_status(self, sid, data=None):
        """
        Update the caller's status text and tell their contacts.

        Expected data: {'status': str}
        """
        user_id = self._require_user(sid)
        if not user_id:
            await self._emit_error(sid, 'update_status', 'Unauthorized')
            return None

        try:
            text = data.get('status') if isinstance(data, dict) else None
            async with self.session_factory() as db:
                users = UserService(db)
                text = await users.update_status_text(user_id, text)
                contact_ids = await users.get_contact_ids(user_id)
                await db.commit()

        except MessagingError as e:
            await self._emit_error(sid, 'update_status', e.message)
            return None
        except Exception:
            logger.error("Error updating status", exc_info=True)
            await self._emit_error(sid, 'update_status', 'Failed to update status')
            return None

        await self._emit_to_users(contact_ids, 'status_update', {
            'user_id': user_id,
            'status': text,
        })
        return {'status': 'ok', 'text': text}

    # ------------------------------------------------------------------
    # Fan-out shared with the HTTP API
    # ------------------------------------------------------------------

    async def deliver_new_message(self, sender_id: str, receiver_id: str, message_data: Dict[str, Any]):
        """
        Broadcast a stored message to its conversation room, and notify the
        receiver directly when they are online but not viewing it.

        Args:
            sender_id: Sender user ID
            receiver_id: Receiver user ID
            message_data: Serialized message
        """
        key = canonical_key(sender_id, receiver_id)
        await self.sio.emit('new_message', message_data, room=conversation_room(key))

        receiver = self.registry.get(receiver_id)
        if receiver is not None and receiver.joined_conversation != key:
            await self.sio.emit('message_notification', {
                'conversation_key': key,
                'sender': message_data.get('sender'),
                'message': message_data,
            }, to=receiver.handle)

    async def broadcast_messages_read(
        self,
        reader_id: str,
        sender_id: str,
        count: int = 0,
        message_id: Optional[str] = None,
        read_at=None
    ):
        """Send a read receipt to the conversation and to the original sender."""
        await self._emit_to_conversation(reader_id, sender_id, 'message_read', {
            'conversation_key': canonical_key(reader_id, sender_id),
            'reader_id': reader_id,
            'sender_id': sender_id,
            'message_id': message_id,
            'count': count,
            'read_at': to_iso_utc(read_at or utc_now()),
        }, notify=[sender_id])

    async def broadcast_message_edited(self, message_data: Dict[str, Any]):
        """Broadcast an edited message to its conversation."""
        await self._emit_to_conversation(
            message_data['senderId'], message_data['receiverId'], 'message_edited',
            message_data, notify=[message_data['receiverId']]
        )

    async def broadcast_message_deleted(self, message_id: str, sender_id: str, receiver_id: str):
        """Broadcast a message deletion to its conversation."""
        await self._emit_to_conversation(sender_id, receiver_id, 'message_deleted', {
            'conversation_key': canonical_key(sender_id, receiver_id),
            'message_id': message_id,
        }, notify=[receiver_id])

    def get_asgi_app(self, fastapi_app):
        """
        Get the ASGI app for Socket.IO wrapping FastAPI.

        Clients connect to /socket.io/; every other path falls through to
        the FastAPI application.
        """
        return socketio.ASGIApp(self.sio, fastapi_app)


# Global connection manager instance
connection_manager = ConnectionManager()
