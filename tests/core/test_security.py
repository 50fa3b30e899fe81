"""
Tests for JWT issuing and validation.
"""
import jwt
import pytest
from datetime import timedelta
from uuid import uuid4

from app.config import settings
from app.core.security import (
    SecurityException,
    create_access_token,
    decode_token,
    extract_token_from_header,
    get_user_id_from_token,
)


class TestTokens:
    """Tests for access tokens."""

    def test_round_trip_subject(self):
        user_id = str(uuid4())
        token = create_access_token(user_id)
        assert get_user_id_from_token(token) == user_id

    def test_claims(self):
        token = create_access_token(str(uuid4()), extra_claims={"scope": "chat"})
        payload = decode_token(token)
        assert payload["scope"] == "chat"
        assert payload["exp"] > payload["iat"]

    def test_subject_lowercased(self):
        user_id = str(uuid4())
        assert get_user_id_from_token(create_access_token(user_id.upper())) == user_id

    def test_expired(self):
        token = create_access_token(str(uuid4()), expires_delta=timedelta(seconds=-5))
        with pytest.raises(SecurityException) as exc_info:
            decode_token(token)
        assert exc_info.value.detail == "Token has expired"
        assert exc_info.value.status_code == 401

    def test_wrong_secret(self):
        token = jwt.encode({"sub": str(uuid4())}, "x" * 40, algorithm=settings.jwt_algorithm)
        with pytest.raises(SecurityException) as exc_info:
            decode_token(token)
        assert exc_info.value.detail == "Invalid token"

    def test_non_uuid_subject(self):
        token = create_access_token("alice")
        with pytest.raises(SecurityException) as exc_info:
            get_user_id_from_token(token)
        assert exc_info.value.detail == "Invalid token subject"


class TestAuthorizationHeader:
    """Tests for extract_token_from_header()."""

    def test_bearer(self):
        assert extract_token_from_header("Bearer abc.def") == "abc.def"
        assert extract_token_from_header("bearer abc.def") == "abc.def"

    @pytest.mark.parametrize("header", [None, "", "abc.def", "Basic abc", "Bearer a b"])
    def test_invalid(self, header):
        with pytest.raises(SecurityException):
            extract_token_from_header(header)
