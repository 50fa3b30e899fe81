"""
Dependency injection for FastAPI routes.
Provides reusable dependencies for authentication, database sessions, etc.
"""
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import (
    SecurityException,
    extract_token_from_header,
    get_user_id_from_token,
)
from app.core.websocket import ConnectionManager, connection_manager
from app.models.user import User
from app.repositories.user_repo import UserRepository
from app.utils.helpers import normalize_page_params


async def get_current_user(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Dependency to get the current authenticated user.

    Decodes the Bearer token and loads the matching local user.

    Args:
        authorization: Authorization header containing Bearer token
        db: Database session

    Returns:
        The authenticated User

    Raises:
        SecurityException: 401 if token is missing, invalid, or names an unknown user

    Example:
        ```python
        @router.get("/protected")
        async def protected_route(current_user: User = Depends(get_current_user)):
            return {"id": current_user.id}
        ```
    """
    token = extract_token_from_header(authorization)
    user_id = get_user_id_from_token(token)

    user = await UserRepository(db).get(user_id)
    if not user:
        raise SecurityException("User not found")
    return user


def get_pagination_params(
    page: int = 1,
    limit: Optional[int] = None
) -> dict:
    """
    Dependency for page-number pagination parameters.

    Args:
        page: 1-based page number
        limit: Number of items per page (default and maximum from settings)

    Returns:
        Dictionary with pagination parameters
    """
    page, limit = normalize_page_params(page, limit)
    return {
        "page": page,
        "limit": limit,
    }


def get_connection_manager() -> ConnectionManager:
    """Realtime gateway used for fan-out after HTTP writes."""
    return connection_manager
