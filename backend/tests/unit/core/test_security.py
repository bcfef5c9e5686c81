"""
Unit Tests for Security Module
Tests for: password hashing, JWT tokens, reset tokens
"""
import pytest
from datetime import datetime, timedelta
from jose import jwt

from gollisconnect.core.config import settings
from gollisconnect.core.exceptions import InvalidTokenError
from gollisconnect.core.security import (
    verify_password,
    get_password_hash,
    create_access_token,
    decode_token,
    generate_reset_token,
)


class TestPasswordHashing:
    """Test password hashing functions"""

    def test_hash_is_salted(self):
        """Hashing the same password twice gives different hashes"""
        hash1 = get_password_hash("testpassword123")
        hash2 = get_password_hash("testpassword123")

        assert hash1 != hash2
        assert hash1 != "testpassword123"

    def test_verify_password_correct(self):
        hashed = get_password_hash("testpassword123")

        assert verify_password("testpassword123", hashed) is True

    def test_verify_password_incorrect(self):
        hashed = get_password_hash("testpassword123")

        assert verify_password("wrongpassword", hashed) is False

    def test_hash_long_password_truncated(self):
        # Bcrypt has 72 byte limit
        long_password = "a" * 100
        hashed = get_password_hash(long_password)

        assert verify_password(long_password, hashed) is True

    def test_hash_unicode_password(self):
        password = "sirta-qarsoodi-ü-ñ-é"
        hashed = get_password_hash(password)

        assert verify_password(password, hashed) is True


class TestAccessTokens:
    """Test JWT creation and decoding"""

    def test_token_round_trip(self):
        token = create_access_token({"sub": "user-123", "role": "student"})

        payload = decode_token(token)

        assert payload["sub"] == "user-123"
        assert payload["role"] == "student"
        assert payload["type"] == "access"

    def test_default_expiry(self):
        token = create_access_token({"sub": "user-123"})

        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        expires = datetime.utcfromtimestamp(payload["exp"])
        expected = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

        assert abs((expires - expected).total_seconds()) < 60

    def test_expired_token_rejected(self):
        token = create_access_token({"sub": "user-123"}, expires_delta=timedelta(seconds=-1))

        with pytest.raises(InvalidTokenError):
            decode_token(token)

    def test_wrong_secret_rejected(self):
        token = jwt.encode({"sub": "user-123"}, "some-other-secret", algorithm=settings.JWT_ALGORITHM)

        with pytest.raises(InvalidTokenError):
            decode_token(token)

    def test_garbage_rejected(self):
        with pytest.raises(InvalidTokenError):
            decode_token("not.a.token")


class TestResetTokens:

    def test_reset_tokens_are_unique_hex(self):
        tokens = {generate_reset_token() for _ in range(20)}

        assert len(tokens) == 20
        assert all(len(t) == 40 and int(t, 16) >= 0 for t in tokens)
