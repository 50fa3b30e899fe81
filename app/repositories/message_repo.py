"""
Message repository for database operations.
Handles persistence, status transitions and every read query for
direct messages.

All read paths share `pair_filter` (conversation membership) and
`unread_filter` (what counts as unread) so HTTP and socket callers
always see the same results.
"""
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import and_, case, desc, distinct, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.message import Message, MessageStatusType, MessageType
from app.repositories.base import BaseRepository
from app.utils.datetime_utils import utc_now


def pair_filter(user_a: str, user_b: str):
    """Messages exchanged between two users, in either direction."""
    return or_(
        and_(Message.sender_id == user_a, Message.receiver_id == user_b),
        and_(Message.sender_id == user_b, Message.receiver_id == user_a),
    )


def visible_filter():
    """Messages that have not been soft-deleted."""
    return Message.is_deleted.is_(False)


def unread_filter(user_id: str):
    """Non-deleted messages addressed to a user that have not been read."""
    return and_(
        Message.receiver_id == user_id,
        Message.status != MessageStatusType.READ,
        visible_filter(),
    )


def involves_filter(user_id: str):
    return or_(Message.sender_id == user_id, Message.receiver_id == user_id)


def peer_expression(user_id: str):
    """The other participant of a message, seen from `user_id`."""
    return case(
        (Message.sender_id == user_id, Message.receiver_id),
        else_=Message.sender_id,
    )


class MessageRepository(BaseRepository[Message]):
    """Repository for message database operations."""

    def __init__(self, db: AsyncSession):
        super().__init__(Message, db)

    async def get_conversation_page(
        self,
        user_a: str,
        user_b: str,
        limit: int,
        offset: int = 0
    ) -> Tuple[List[Message], int]:
        """
        Get one page of a conversation.

        Rows are fetched newest-first and reversed, so the returned page is
        oldest-first.

        Args:
            user_a: One participant
            user_b: The other participant
            limit: Page size
            offset: Rows to skip (counted from the newest message)

        Returns:
            Tuple of (messages oldest-first, total visible messages in the pair)
        """
        condition = and_(pair_filter(user_a, user_b), visible_filter())

        total = await self.db.scalar(
            select(func.count()).select_from(Message).where(condition)
        )

        result = await self.db.execute(
            select(Message)
            .where(condition)
            .order_by(desc(Message.created_at), desc(Message.id))
            .limit(limit)
            .offset(offset)
        )
        messages = list(result.scalars().all())
        messages.reverse()
        return messages, total or 0

    async def search_conversation(
        self,
        user_a: str,
        user_b: str,
        query: str,
        limit: int,
        offset: int = 0
    ) -> Tuple[List[Message], int]:
        """
        Case-insensitive substring search within a conversation.

        Returns:
            Tuple of (matching messages newest-first, total matches)
        """
        condition = and_(
            pair_filter(user_a, user_b),
            visible_filter(),
            Message.content.icontains(query, autoescape=True),
        )

        total = await self.db.scalar(
            select(func.count()).select_from(Message).where(condition)
        )

        result = await self.db.execute(
            select(Message)
            .where(condition)
            .order_by(desc(Message.created_at), desc(Message.id))
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), total or 0

    async def get_latest_per_peer(
        self,
        user_id: str,
        limit: int
    ) -> List[Tuple[Message, str, int]]:
        """
        Latest visible message and unread count for every peer of a user.

        Uses window functions so the whole aggregation is one query:
        row_number() picks the newest message per peer (ties broken by id),
        and a windowed sum counts that peer's unread messages.

        Args:
            user_id: User whose conversations are listed
            limit: Maximum number of peers

        Returns:
            List of (latest message, peer_id, unread_count), newest first
        """
        peer = peer_expression(user_id)
        unread_flag = case(
            (
                and_(
                    Message.receiver_id == user_id,
                    Message.status != MessageStatusType.READ,
                ),
                1,
            ),
            else_=0,
        )

        ranked = (
            select(
                Message.id.label("message_id"),
                peer.label("peer_id"),
                func.row_number().over(
                    partition_by=peer,
                    order_by=(desc(Message.created_at), desc(Message.id)),
                ).label("rank"),
                func.sum(unread_flag).over(partition_by=peer).label("unread_count"),
            )
            .where(involves_filter(user_id), visible_filter())
            .subquery()
        )

        result = await self.db.execute(
            select(Message, ranked.c.peer_id, ranked.c.unread_count)
            .join(ranked, Message.id == ranked.c.message_id)
            .where(ranked.c.rank == 1)
            .order_by(desc(Message.created_at), desc(Message.id))
            .limit(limit)
        )
        return [
            (message, peer_id, int(unread_count or 0))
            for message, peer_id, unread_count in result.all()
        ]

    async def mark_delivered(self, sender_id: str, receiver_id: str, when: Optional[datetime] = None) -> int:
        """
        Transition sent -> delivered for every message from sender to receiver.

        Conditional bulk update, so messages already delivered or read are
        never touched.

        Returns:
            Number of messages transitioned
        """
        result = await self.db.execute(
            update(Message)
            .where(
                Message.sender_id == sender_id,
                Message.receiver_id == receiver_id,
                Message.status == MessageStatusType.SENT,
            )
            .values(status=MessageStatusType.DELIVERED, delivered_at=when or utc_now())
            .execution_options(synchronize_session="evaluate")
        )
        await self.db.flush()
        return result.rowcount

    async def mark_read(self, sender_id: str, receiver_id: str, when: Optional[datetime] = None) -> int:
        """
        Transition sent/delivered -> read for every message from sender to receiver.

        delivered_at is stamped as well when a message skips the delivered state.

        Returns:
            Number of messages transitioned
        """
        now = when or utc_now()
        result = await self.db.execute(
            update(Message)
            .where(
                Message.sender_id == sender_id,
                Message.receiver_id == receiver_id,
                Message.status.in_([MessageStatusType.SENT, MessageStatusType.DELIVERED]),
            )
            .values(
                status=MessageStatusType.READ,
                read_at=now,
                delivered_at=func.coalesce(Message.delivered_at, now),
            )
            .execution_options(synchronize_session="evaluate")
        )
        await self.db.flush()
        return result.rowcount

    async def edit_content(
        self,
        message_id: str,
        sender_id: str,
        content: str,
        message_type: MessageType,
        created_after: datetime,
        when: Optional[datetime] = None
    ) -> int:
        """
        Replace a message's content if it is still editable.

        Only matches a non-deleted message owned by `sender_id` created at or
        after `created_after`, so a concurrent delete or an expired window
        leaves the row untouched.

        Returns:
            1 if the message was edited, 0 otherwise
        """
        result = await self.db.execute(
            update(Message)
            .where(
                Message.id == message_id,
                Message.sender_id == sender_id,
                visible_filter(),
                Message.created_at >= created_after,
            )
            .values(content=content, message_type=message_type, edited_at=when or utc_now())
            .execution_options(synchronize_session=False)
        )
        await self.db.flush()
        return result.rowcount

    async def soft_delete(self, message_id: str, sender_id: str, when: Optional[datetime] = None) -> int:
        """
        Flag a message as deleted if it is not already.

        deleted_at is stamped exactly once; repeated or concurrent deletes
        match no rows.

        Returns:
            1 if the message was deleted, 0 otherwise
        """
        result = await self.db.execute(
            update(Message)
            .where(
                Message.id == message_id,
                Message.sender_id == sender_id,
                visible_filter(),
            )
            .values(is_deleted=True, deleted_at=when or utc_now())
            .execution_options(synchronize_session=False)
        )
        await self.db.flush()
        return result.rowcount

    async def count_unread(self, user_id: str) -> int:
        result = await self.db.scalar(
            select(func.count()).select_from(Message).where(unread_filter(user_id))
        )
        return result or 0

    async def count_sent(self, user_id: str, since: Optional[datetime] = None) -> int:
        query = select(func.count()).select_from(Message).where(
            Message.sender_id == user_id, visible_filter()
        )
        if since is not None:
            query = query.where(Message.created_at >= since)
        return await self.db.scalar(query) or 0

    async def count_received(self, user_id: str) -> int:
        return await self.db.scalar(
            select(func.count()).select_from(Message).where(
                Message.receiver_id == user_id, visible_filter()
            )
        ) or 0

    async def count_peers(self, user_id: str) -> int:
        """Number of distinct users this user has a visible message with."""
        return await self.db.scalar(
            select(func.count(distinct(peer_expression(user_id))))
            .where(involves_filter(user_id), visible_filter())
        ) or 0
