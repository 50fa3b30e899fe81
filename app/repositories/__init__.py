"""
Repository layer exports.
Provides database access layer for the application.
"""
from app.repositories.base import BaseRepository
from app.repositories.message_repo import MessageRepository
from app.repositories.user_repo import ContactRepository, UserRepository

__all__ = [
    "BaseRepository",
    "MessageRepository",
    "ContactRepository",
    "UserRepository",
]
