"""
User directory service.
Profile lookups, presence and status text for the messaging core.
"""
import logging
from datetime import datetime
from typing import Dict, Iterable, Optional, Set

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import (
    cache_user_profile,
    get_cached_user_profile,
    invalidate_user_cache,
    set_user_presence,
)
from app.core.exceptions import NotFoundError
from app.models.user import User
from app.repositories.user_repo import ContactRepository, UserRepository
from app.schemas.user import ParticipantInfo, UserSummary
from app.utils.datetime_utils import utc_now
from app.utils.validators import validate_status_text

logger = logging.getLogger(__name__)


class UserService:
    """Service for user directory operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.user_repo = UserRepository(db)
        self.contact_repo = ContactRepository(db)

    async def get_user(self, user_id: str) -> Optional[User]:
        return await self.user_repo.get(user_id)

    async def require_user(self, user_id: str, label: str = "User") -> User:
        """
        Get a user or fail.

        Raises:
            NotFoundError: If the user does not exist
        """
        user = await self.user_repo.get(user_id)
        if not user:
            raise NotFoundError(f"{label} not found")
        return user

    async def get_users(self, user_ids: Iterable[str]) -> Dict[str, User]:
        """Batch-load users keyed by ID; unknown IDs are omitted."""
        return await self.user_repo.get_users_map(user_ids)

    async def get_summaries(self, user_ids: Iterable[str]) -> Dict[str, UserSummary]:
        users = await self.get_users(user_ids)
        return {user_id: UserSummary.model_validate(user) for user_id, user in users.items()}

    async def get_participant(self, user_id: str) -> ParticipantInfo:
        """
        Get a peer's profile snapshot, served from cache when available.

        Raises:
            NotFoundError: If the user does not exist
        """
        participants = await self.get_participants([user_id])
        if user_id not in participants:
            raise NotFoundError("User not found")
        return participants[user_id]

    async def get_participants(self, user_ids: Iterable[str]) -> Dict[str, ParticipantInfo]:
        """
        Batch profile snapshots keyed by ID.

        Cache misses are loaded in one query and written back to the cache;
        unknown IDs are omitted.
        """
        participants: Dict[str, ParticipantInfo] = {}
        missing = []
        for user_id in dict.fromkeys(user_ids):
            cached = await get_cached_user_profile(user_id)
            if cached:
                participants[user_id] = ParticipantInfo.model_validate(cached)
            else:
                missing.append(user_id)

        for user_id, user in (await self.get_users(missing)).items():
            participant = ParticipantInfo.model_validate(user)
            await cache_user_profile(user_id, participant.model_dump(mode="json"))
            participants[user_id] = participant
        return participants

    async def get_contact_ids(self, user_id: str) -> Set[str]:
        return await self.contact_repo.get_contact_ids(user_id)

    async def set_presence(
        self,
        user_id: str,
        is_online: bool,
        when: Optional[datetime] = None
    ) -> datetime:
        """
        Persist online/offline presence and mirror it into the cache.

        Returns:
            The last-seen timestamp that was stored
        """
        when = when or utc_now()
        await self.user_repo.set_presence(user_id, is_online, when)
        await invalidate_user_cache(user_id)
        await set_user_presence(user_id, "online" if is_online else "offline")
        logger.debug("User %s is now %s", user_id, "online" if is_online else "offline")
        return when

    async def touch_last_seen(self, user_ids: Iterable[str], when: Optional[datetime] = None) -> int:
        return await self.user_repo.touch_last_seen(user_ids, when or utc_now())

    async def update_status_text(self, user_id: str, status: Optional[str]) -> str:
        """
        Validate and store a user's status text.

        Raises:
            ValidationError: If the text is missing or too long
            NotFoundError: If the user does not exist
        """
        text = validate_status_text(status)
        user = await self.user_repo.update_status_text(user_id, text)
        if not user:
            raise NotFoundError("User not found")
        await invalidate_user_cache(user_id)
        return text
