"""
Message model.

One-to-one messages with a monotonic delivery status and soft delete.
"""
import enum
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    Enum as SQLEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.user import User


class MessageType(str, enum.Enum):
    """Enum for message types."""
    TEXT = "text"
    EMOJI = "emoji"


class MessageStatusType(str, enum.Enum):
    """
    Enum for message status types.

    Status only ever advances: sent -> delivered -> read.
    """
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"


class Message(Base, UUIDMixin, TimestampMixin):
    """
    Message model for direct messages between two users.

    The (sender, receiver) pair is fixed at creation. Deleted messages keep
    their row and content for audit but are hidden from every read path.
    """

    __tablename__ = "messages"

    # References
    sender_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        doc="User who sent the message"
    )

    receiver_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        doc="User the message was sent to"
    )

    # Message content
    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        doc="Trimmed message text (1-1000 characters)"
    )

    message_type: Mapped[MessageType] = mapped_column(
        SQLEnum(MessageType, name="message_type", native_enum=False, values_callable=lambda e: [m.value for m in e]),
        default=MessageType.TEXT,
        nullable=False,
        doc="Type of message: text or emoji"
    )

    # Delivery state
    status: Mapped[MessageStatusType] = mapped_column(
        SQLEnum(MessageStatusType, name="message_status_type", native_enum=False, values_callable=lambda e: [m.value for m in e]),
        default=MessageStatusType.SENT,
        nullable=False,
        doc="Status: sent, delivered, or read"
    )

    delivered_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="When the message reached the receiver"
    )

    read_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="When the receiver read the message"
    )

    edited_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="When the content was last edited"
    )

    # Soft delete
    is_deleted: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        doc="Soft delete flag"
    )

    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="Soft delete timestamp"
    )

    # Threading
    reply_to_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("messages.id", ondelete="SET NULL"),
        nullable=True,
        doc="ID of message this is replying to"
    )

    # Relationships
    sender: Mapped["User"] = relationship(
        back_populates="sent_messages",
        foreign_keys=[sender_id]
    )
    receiver: Mapped["User"] = relationship(
        back_populates="received_messages",
        foreign_keys=[receiver_id]
    )

    # Self-referential relationship for replies
    reply_to: Mapped["Message | None"] = relationship(
        remote_side="Message.id",
        foreign_keys=[reply_to_id]
    )

    __table_args__ = (
        Index("idx_messages_pair_created", "sender_id", "receiver_id", "created_at"),
        Index("idx_messages_receiver_status", "receiver_id", "status"),
        Index("idx_messages_created", "created_at"),
    )

    def __repr__(self) -> str:
        content_preview = self.content[:50] if self.content else ""
        return f"<Message(id={self.id}, status={self.status}, content='{content_preview}')>"
