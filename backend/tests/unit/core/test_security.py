"""
Unit Tests for Security Module
Tests for: password hashing, JWT tokens, one-time tokens
"""
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from biocms.core.config import settings
from biocms.core.exceptions import InvalidTokenError
from biocms.core.security import (
    create_access_token,
    decode_token,
    generate_one_time_token,
    get_password_hash,
    hash_token,
    peek_subject,
    verify_password,
)


class TestPasswordHashing:
    """Test password hashing functions"""

    def test_hash_differs_from_input_and_salts(self):
        hashed = get_password_hash("testpassword123")

        assert hashed != "testpassword123"
        assert hashed != get_password_hash("testpassword123")

    def test_verify_password(self):
        hashed = get_password_hash("testpassword123")

        assert verify_password("testpassword123", hashed) is True
        assert verify_password("wrongpassword", hashed) is False

    def test_long_password_truncated_to_bcrypt_limit(self):
        hashed = get_password_hash("a" * 100)

        assert verify_password("a" * 72, hashed) is True


class TestAccessTokens:
    """Test JWT creation and decoding"""

    def test_round_trip_claims(self):
        token = create_access_token("user-1", role="admin")
        payload = decode_token(token)

        assert payload["sub"] == "user-1"
        assert payload["role"] == "admin"
        assert payload["type"] == "access"

    def test_iat_keeps_sub_second_precision(self):
        issued = datetime(2024, 5, 1, 12, 0, 0, 250000, tzinfo=timezone.utc)
        token = create_access_token("user-1", issued_at=issued, expires_delta=timedelta(days=36500))

        assert decode_token(token)["iat"] == pytest.approx(issued.timestamp())

    def test_expired_token(self):
        token = create_access_token("user-1", expires_delta=timedelta(seconds=-10))

        with pytest.raises(InvalidTokenError) as exc_info:
            decode_token(token)
        assert "expired" in exc_info.value.message

    def test_wrong_signature(self):
        token = jwt.encode({"sub": "user-1", "type": "access"}, "another-key", algorithm=settings.JWT_ALGORITHM)

        with pytest.raises(InvalidTokenError):
            decode_token(token)

    def test_garbage(self):
        with pytest.raises(InvalidTokenError):
            decode_token("not-a-jwt")

    def test_peek_subject(self):
        assert peek_subject(create_access_token("user-9")) == "user-9"
        assert peek_subject("garbage") is None
        assert peek_subject(None) is None


class TestOneTimeTokens:
    """Reset and verification tokens"""

    def test_only_hash_is_stored(self):
        raw, hashed = generate_one_time_token()

        assert raw != hashed
        assert hash_token(raw) == hashed
        assert len(hashed) == 64

    def test_tokens_are_random(self):
        assert generate_one_time_token()[0] != generate_one_time_token()[0]
