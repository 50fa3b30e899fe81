"""
In-memory registry of live socket sessions.

Maps an authenticated user to a single live connection handle (the socket
sid), the conversation that connection currently has open, and its last
activity. Only the realtime gateway mutates it.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from app.utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)


def canonical_key(user_a: str, user_b: str) -> str:
    """
    Build the conversation key for an unordered pair of users.

    Both ids are normalised to lowercase hyphenated UUID strings and sorted
    lexicographically, so canonical_key(a, b) == canonical_key(b, a).

    Raises:
        ValueError: If either id is not a UUID
    """
    first, second = sorted((str(UUID(str(user_a))), str(UUID(str(user_b)))))
    return f"{first}:{second}"


def conversation_room(key: str) -> str:
    """Socket.IO room name for a conversation key."""
    return f"conversation:{key}"


@dataclass
class Session:
    """A single authenticated connection."""
    user_id: str
    handle: str
    name: Optional[str] = None
    joined_conversation: Optional[str] = None
    last_seen: datetime = field(default_factory=utc_now)


class SessionRegistry:
    """
    Process-local map of user -> Session.

    One live handle per user: registering a new connection replaces the
    previous one (last writer wins).
    """

    def __init__(self):
        self._sessions: Dict[str, Session] = {}

    def register(self, user_id: str, handle: str, name: Optional[str] = None) -> Optional[Session]:
        """
        Register a connection for a user.

        Returns:
            The replaced session, if the user was already connected
        """
        previous = self._sessions.get(user_id)
        self._sessions[user_id] = Session(user_id=user_id, handle=handle, name=name)
        if previous is not None and previous.handle != handle:
            logger.info("Session for user %s replaced (%s -> %s)", user_id, previous.handle, handle)
        return previous

    def unregister(self, user_id: str, handle: Optional[str] = None) -> Optional[Session]:
        """
        Remove a user's session.

        When `handle` is given and a newer connection already owns the user,
        nothing is removed and None is returned.
        """
        current = self._sessions.get(user_id)
        if current is None:
            return None
        if handle is not None and current.handle != handle:
            return None
        return self._sessions.pop(user_id)

    def set_joined_conversation(self, user_id: str, key: Optional[str]) -> Optional[str]:
        """
        Record the conversation a user's connection has open.

        Returns:
            The previously joined key, which the caller must leave
        """
        session = self._sessions.get(user_id)
        if session is None:
            return None
        previous = session.joined_conversation
        session.joined_conversation = key
        session.last_seen = utc_now()
        return previous

    def get(self, user_id: str) -> Optional[Session]:
        return self._sessions.get(user_id)

    def lookup(self, user_id: str) -> Optional[str]:
        """Live connection handle for a user, or None when offline."""
        session = self._sessions.get(user_id)
        return session.handle if session else None

    def is_online(self, user_id: str) -> bool:
        return user_id in self._sessions

    def touch(self, user_id: str, when: Optional[datetime] = None) -> None:
        session = self._sessions.get(user_id)
        if session is not None:
            session.last_seen = when or utc_now()

    def online_user_ids(self) -> List[str]:
        return list(self._sessions)

    def clear(self) -> None:
        self._sessions.clear()

    def __len__(self) -> int:
        return len(self._sessions)
