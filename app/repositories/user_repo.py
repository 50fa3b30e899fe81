"""
User repository for database operations.
Handles profile lookups, presence bookkeeping and contact membership.
"""
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.contact import Contact
from app.models.user import User
from app.repositories.base import BaseRepository
from app.utils.datetime_utils import utc_now


class UserRepository(BaseRepository[User]):
    """Repository for user database operations."""

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    async def get_users_map(self, user_ids: Iterable[str]) -> Dict[str, User]:
        """
        Batch-load users keyed by ID.

        Args:
            user_ids: User UUIDs (duplicates allowed)

        Returns:
            Dict of user_id -> User for every ID that exists
        """
        users = await self.get_many(set(user_ids))
        return {user.id: user for user in users}

    async def set_presence(
        self,
        user_id: str,
        is_online: bool,
        last_seen: Optional[datetime] = None
    ) -> None:
        """
        Persist a user's online flag and last-seen timestamp.

        Args:
            user_id: User UUID
            is_online: Online flag
            last_seen: Timestamp (defaults to now)
        """
        await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(is_online=is_online, last_seen=last_seen or utc_now())
            .execution_options(synchronize_session="evaluate")
        )
        await self.db.flush()

    async def touch_last_seen(self, user_ids: Iterable[str], when: datetime) -> int:
        """
        Bulk-refresh last_seen for a set of users.

        Returns:
            Number of rows updated
        """
        user_ids = list(user_ids)
        if not user_ids:
            return 0

        result = await self.db.execute(
            update(User)
            .where(User.id.in_(user_ids))
            .values(last_seen=when)
            .execution_options(synchronize_session="evaluate")
        )
        await self.db.flush()
        return result.rowcount

    async def update_status_text(self, user_id: str, status: str) -> Optional[User]:
        """Set a user's status text."""
        return await self.update(user_id, status=status)


class ContactRepository(BaseRepository[Contact]):
    """Repository for the owner -> contact relation."""

    def __init__(self, db: AsyncSession):
        super().__init__(Contact, db)

    async def get_contact_ids(self, owner_id: str) -> Set[str]:
        """
        Get the IDs in a user's contact list.

        Args:
            owner_id: Contact list owner

        Returns:
            Set of contact user IDs
        """
        result = await self.db.execute(
            select(Contact.contact_id).where(Contact.owner_id == owner_id)
        )
        return set(result.scalars().all())

    async def add_contacts(self, owner_id: str, contact_ids: List[str]) -> List[Contact]:
        """Add several contacts to a user's list, skipping ones already present."""
        existing = await self.get_contact_ids(owner_id)
        created = []
        for contact_id in contact_ids:
            if contact_id in existing or contact_id == owner_id:
                continue
            contact = Contact(owner_id=owner_id, contact_id=contact_id)
            self.db.add(contact)
            created.append(contact)
            existing.add(contact_id)
        await self.db.flush()
        return created
