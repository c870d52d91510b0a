"""
Unit tests for core.security module.
Tests password hashing and access token creation/validation.
"""
import pytest
import datetime as dt
import jwt
from app.core.security import (
    hash_password,
    verify_password,
    create_access_token,
    decode_access_token,
    ACCESS_TOKEN_EXPIRE_MINUTES,
)


class TestPasswordHashing:
    """Tests for password hashing and verification."""

    def test_hash_is_salted(self):
        """Hashing the same password twice gives different hashes."""
        assert hash_password("TestPassword123") != hash_password("TestPassword123")

    def test_verify_password_correct_and_incorrect(self):
        hashed = hash_password("TestPassword123")
        assert hashed != "TestPassword123"
        assert verify_password("TestPassword123", hashed) is True
        assert verify_password("WrongPassword456", hashed) is False


class TestJWTTokens:
    """Tests for JWT token creation and validation."""

    @pytest.mark.parametrize("role", ["parent", "childminder", "admin"])
    def test_token_carries_subject_and_role(self, role):
        token = create_access_token("user-123", role)
        payload = decode_access_token(token)
        assert payload["sub"] == "user-123"
        assert payload["role"] == role

    def test_token_expiration_time(self):
        """Token lifetime should match the configured minutes."""
        payload = decode_access_token(create_access_token("user-exp", "parent"))
        assert payload["exp"] > dt.datetime.now(dt.timezone.utc).timestamp()
        diff_minutes = (payload["exp"] - payload["iat"]) / 60
        assert abs(diff_minutes - ACCESS_TOKEN_EXPIRE_MINUTES) < 1

    def test_decode_access_token_invalid_token(self):
        with pytest.raises(jwt.InvalidTokenError):
            decode_access_token("invalid.token.here")

    def test_decode_access_token_wrong_secret(self):
        token = create_access_token("user-secret", "parent")
        with pytest.raises(jwt.InvalidSignatureError):
            jwt.decode(token, "wrong-secret", algorithms=["HS256"])
