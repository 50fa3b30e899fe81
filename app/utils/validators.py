"""
Custom validators for application data.
Provides reusable validation functions shared by the HTTP and socket paths.
"""
import re
from typing import Optional
from uuid import UUID

from app.config import settings
from app.core.exceptions import ValidationError
from app.models.message import MessageType


# Emoji code point ranges, plus the joiners and modifiers that glue
# multi-codepoint emoji together. Whitespace between emoji is allowed.
EMOJI_ONLY_PATTERN = re.compile(
    "^["
    "\U0001F600-\U0001F64F"  # emoticons
    "\U0001F300-\U0001F5FF"  # symbols & pictographs (incl. skin tones)
    "\U0001F680-\U0001F6FF"  # transport & map symbols
    "\U0001F1E0-\U0001F1FF"  # flags
    "\U0001F900-\U0001F9FF"  # supplemental symbols & pictographs
    "\U0001FA70-\U0001FAFF"  # symbols & pictographs extended-A
    "\U00002600-\U000026FF"  # miscellaneous symbols
    "\U00002700-\U000027BF"  # dingbats
    "\U00002B50\U00002B55"
    "\U0000200D"             # zero width joiner
    "\U0000FE0F"             # variation selector-16
    "\U000020E3"             # combining enclosing keycap
    "\\s"
    "]+$",
    flags=re.UNICODE
)


def is_valid_uuid(value) -> bool:
    """Check whether a value is a well-formed UUID reference."""
    if not isinstance(value, str):
        return False
    try:
        UUID(value)
    except (ValueError, AttributeError):
        return False
    return True


def validate_uuid(value, field_name: str = "ID") -> str:
    """
    Validate a UUID reference and return its canonical string form.

    Args:
        value: Value to validate
        field_name: Name of the field for error messages

    Returns:
        Lowercase hyphenated UUID string

    Raises:
        ValidationError: If value is not a valid UUID
    """
    if not is_valid_uuid(value):
        raise ValidationError(f"Invalid {field_name}")
    return str(UUID(value))


def is_emoji_only(text: str) -> bool:
    """
    Check whether text consists solely of emoji characters.

    Args:
        text: Text to check

    Returns:
        True if every character is an emoji (or emoji glue / whitespace)
        and at least one non-whitespace character is present
    """
    if not text or not text.strip():
        return False
    return bool(EMOJI_ONLY_PATTERN.match(text))


def classify_message_type(content: str) -> MessageType:
    """
    Classify trimmed content as emoji or text.

    Emoji messages are short (<= emoji_max_length characters) and emoji-only.
    """
    trimmed = content.strip()
    if len(trimmed) <= settings.emoji_max_length and is_emoji_only(trimmed):
        return MessageType.EMOJI
    return MessageType.TEXT


def validate_message_content(content: Optional[str]) -> str:
    """
    Validate and trim message content.

    Args:
        content: Raw message content

    Returns:
        Trimmed content

    Raises:
        ValidationError: If content is empty after trimming or too long
    """
    if content is None or not isinstance(content, str) or not content.strip():
        raise ValidationError("Message content is required")

    trimmed = content.strip()
    if len(trimmed) > settings.message_max_length:
        raise ValidationError(
            f"Message cannot be more than {settings.message_max_length} characters"
        )
    return trimmed


def validate_status_text(text: Optional[str]) -> str:
    """
    Validate a user's status text.

    Raises:
        ValidationError: If the status is missing or longer than allowed
    """
    if text is None or not isinstance(text, str) or not text.strip():
        raise ValidationError("Invalid status")
    text = text.strip()
    if len(text) > settings.status_max_length:
        raise ValidationError(
            f"Status cannot be more than {settings.status_max_length} characters"
        )
    return text


def validate_search_query(query: Optional[str]) -> str:
    """
    Validate a conversation search query.

    Returns:
        Trimmed query

    Raises:
        ValidationError: If query is too short or too long
    """
    if query is None or len(query.strip()) < settings.search_min_length:
        raise ValidationError(
            f"Search query must be at least {settings.search_min_length} characters long"
        )

    query = query.strip()
    if len(query) > settings.search_max_length:
        raise ValidationError(
            f"Search query too long (max {settings.search_max_length} characters)"
        )
    return query
