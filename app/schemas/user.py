"""
User schemas for API responses.
Projections of the user directory that are embedded in message payloads.
"""
from datetime import datetime
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

from app.utils.datetime_utils import to_iso_utc

# Datetimes always leave the API as ISO 8601 with a 'Z' suffix
UTCDateTime = Annotated[datetime, PlainSerializer(to_iso_utc, return_type=str, when_used="json")]


class UserSummary(BaseModel):
    """Minimal user reference embedded in messages."""

    id: str
    name: str
    avatar: Optional[str] = None

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class ParticipantInfo(BaseModel):
    """Peer profile snapshot shown alongside a conversation."""

    id: str
    name: str
    avatar: Optional[str] = None
    status: Optional[str] = None
    is_online: bool = Field(False, serialization_alias="isOnline")
    last_seen: Optional[UTCDateTime] = Field(None, serialization_alias="lastSeen")

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174000",
                "name": "Alice",
                "avatar": None,
                "status": "Hey there!",
                "isOnline": True,
                "lastSeen": "2025-10-10T10:00:00Z"
            }
        }
    )
