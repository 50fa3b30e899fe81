"""
Security utilities for authentication.
Issues and validates the JWT bearer tokens that identify a user on both
the HTTP API and the socket handshake.
"""
import jwt
from datetime import timedelta
from typing import Optional, Dict, Any
from fastapi import HTTPException, status
from app.config import settings
from app.utils.datetime_utils import utc_now
from app.utils.validators import is_valid_uuid


class SecurityException(HTTPException):
    """Custom exception for security-related errors."""
    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


def create_access_token(
    user_id: str,
    expires_delta: Optional[timedelta] = None,
    extra_claims: Optional[Dict[str, Any]] = None
) -> str:
    """
    Create JWT access token for a user.

    Args:
        user_id: User UUID placed in the `sub` claim
        expires_delta: Optional expiration time delta
        extra_claims: Additional payload data to encode

    Returns:
        Encoded JWT token

    Example:
        ```python
        token = create_access_token(user.id, expires_delta=timedelta(hours=24))
        ```
    """
    now = utc_now()
    if expires_delta is None:
        expires_delta = timedelta(hours=settings.jwt_expiration_hours)

    to_encode: Dict[str, Any] = dict(extra_claims or {})
    to_encode.update({"sub": str(user_id), "exp": now + expires_delta, "iat": now})

    return jwt.encode(
        to_encode,
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm
    )


def decode_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate JWT token.

    Args:
        token: JWT token string

    Returns:
        Decoded token payload

    Raises:
        SecurityException: If token is invalid or expired
    """
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError:
        raise SecurityException("Token has expired")
    except jwt.InvalidTokenError:
        raise SecurityException("Invalid token")


def get_user_id_from_token(token: str) -> str:
    """
    Resolve the authenticated user ID carried by a token.

    Raises:
        SecurityException: If the token is invalid or has no usable subject
    """
    payload = decode_token(token)
    user_id = payload.get("sub")
    if not is_valid_uuid(user_id):
        raise SecurityException("Invalid token subject")
    return str(user_id).lower()


def extract_token_from_header(authorization: Optional[str]) -> str:
    """
    Extract JWT token from Authorization header.

    Args:
        authorization: Authorization header value (e.g., "Bearer <token>")

    Returns:
        Extracted token

    Raises:
        SecurityException: If header format is invalid
    """
    if not authorization:
        raise SecurityException("Missing authorization header")

    parts = authorization.split()

    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise SecurityException("Invalid authorization header format")

    return parts[1]
