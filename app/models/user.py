"""
User model - local record of the user directory.

Credentials and registration live outside the messaging core; this table
holds the profile fields the core observes (name, avatar, presence, status).
"""
from datetime import datetime
from typing import TYPE_CHECKING, List

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.contact import Contact
    from app.models.message import Message


class User(Base, UUIDMixin, TimestampMixin):
    """
    User model.

    Messages reference users by id only; profile snapshots are resolved
    at presentation time.
    """

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        doc="Display name"
    )

    email: Mapped[str | None] = mapped_column(
        String(255),
        unique=True,
        nullable=True,
        doc="Email address"
    )

    avatar: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
        doc="Avatar image URL"
    )

    status: Mapped[str | None] = mapped_column(
        String(139),
        nullable=True,
        doc="Free-form status text shown to contacts"
    )

    # Presence
    is_online: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        index=True,
        doc="Whether the user currently has a live connection"
    )

    last_seen: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        doc="Last time the user was observed active"
    )

    # Relationships
    contacts: Mapped[List["Contact"]] = relationship(
        back_populates="owner",
        foreign_keys="Contact.owner_id",
        cascade="all, delete-orphan"
    )

    sent_messages: Mapped[List["Message"]] = relationship(
        back_populates="sender",
        foreign_keys="Message.sender_id"
    )

    received_messages: Mapped[List["Message"]] = relationship(
        back_populates="receiver",
        foreign_keys="Message.receiver_id"
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, name={self.name})>"
