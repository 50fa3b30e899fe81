"""
SQLAlchemy models for the messaging application.

All models must be imported here for Alembic auto-generation to work.
"""

# Import Base first
from app.models.base import Base, TimestampMixin, UUIDMixin

# Import all models (order matters for relationships)
from app.models.user import User
from app.models.contact import Contact
from app.models.message import Message, MessageType, MessageStatusType

# Export all models and enums
__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    # Users
    "User",
    "Contact",
    # Messages
    "Message",
    "MessageType",
    "MessageStatusType",
]
