"""
Service layer exports.
Provides business logic for the application.
"""
from app.services.message_service import MessageService
from app.services.conversation_service import ConversationService
from app.services.user_service import UserService

__all__ = [
    "MessageService",
    "ConversationService",
    "UserService",
]
