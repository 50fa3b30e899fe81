"""
Contact relation model.

One row per (owner, contact) pair so membership checks and presence
fan-out are indexed set lookups.
"""
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.user import User


class Contact(Base, UUIDMixin, TimestampMixin):
    """Contact model - owner has added contact to their list."""

    __tablename__ = "contacts"

    owner_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        doc="User who owns the contact list"
    )

    contact_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="User on the owner's contact list"
    )

    # Relationships
    owner: Mapped["User"] = relationship(
        back_populates="contacts",
        foreign_keys=[owner_id]
    )
    contact: Mapped["User"] = relationship(foreign_keys=[contact_id])

    __table_args__ = (
        UniqueConstraint("owner_id", "contact_id", name="uq_contact_owner_contact"),
        Index("idx_contacts_owner", "owner_id"),
    )

    def __repr__(self) -> str:
        return f"<Contact(owner_id={self.owner_id}, contact_id={self.contact_id})>"
