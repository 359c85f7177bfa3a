"""Tests for password hashing and JWT helpers."""

from datetime import timedelta

import jwt
import pytest

from academy.config import UserRole, settings
from academy.core.security import (
    create_access_token,
    create_refresh_token,
    get_password_hash,
    hash_refresh_token,
    validate_password_strength,
    verify_access_token,
    verify_password,
    verify_refresh_token,
)

DEVICE = "a" * 64


@pytest.mark.unit
class TestPasswords:
    def test_hash_and_verify(self):
        hashed = get_password_hash("TestPassword123")
        assert hashed != "TestPassword123"
        assert verify_password("TestPassword123", hashed)
        assert not verify_password("WrongPassword123", hashed)

    def test_long_password_is_supported(self):
        """Passwords over bcrypt's 72-byte limit are pre-hashed, not truncated."""
        long_password = "Aa1" + "x" * 100
        hashed = get_password_hash(long_password)
        assert verify_password(long_password, hashed)
        assert not verify_password(long_password[:72], hashed)

    def test_malformed_hash_does_not_raise(self):
        assert verify_password("TestPassword123", "not-a-bcrypt-hash") is False

    @pytest.mark.parametrize(
        "password,valid",
        [
            ("Short1A", False),
            ("alllowercase1", False),
            ("ALLUPPERCASE1", False),
            ("NoDigitsHere", False),
            ("GoodPassword1", True),
        ],
    )
    def test_validate_password_strength(self, password, valid):
        is_valid, message = validate_password_strength(password)
        assert is_valid is valid
        assert (message is None) is valid


@pytest.mark.unit
class TestAccessTokens:
    def test_student_token_carries_device(self):
        token = create_access_token(7, UserRole.STUDENT, DEVICE)
        claims = verify_access_token(token)

        assert claims is not None
        assert claims.account_id == 7
        assert claims.role is UserRole.STUDENT
        assert claims.device_id == DEVICE

    @pytest.mark.parametrize("role", [UserRole.TEACHER, UserRole.ADMIN])
    def test_non_student_token_never_carries_device(self, role):
        token = create_access_token(7, role, DEVICE)
        payload = jwt.decode(token, options={"verify_signature": False})

        assert "device_id" not in payload
        assert verify_access_token(token).device_id is None

    def test_student_token_without_device(self):
        claims = verify_access_token(create_access_token(7, UserRole.STUDENT))
        assert claims.device_id is None

    def test_expired_token_is_rejected(self):
        token = create_access_token(
            7, UserRole.STUDENT, DEVICE, expires_delta=timedelta(seconds=-1)
        )
        assert verify_access_token(token) is None

    def test_garbage_is_rejected(self):
        assert verify_access_token("not.a.jwt") is None

    def test_refresh_token_is_not_an_access_token(self):
        refresh_token, _ = create_refresh_token(7, UserRole.STUDENT, DEVICE)
        assert verify_access_token(refresh_token) is None

    def test_wrong_type_claim_is_rejected(self):
        token = jwt.encode(
            {"sub": "7", "role": "student", "type": "refresh", "exp": 9999999999},
            settings.SECRET_KEY,
            algorithm=settings.ALGORITHM,
        )
        assert verify_access_token(token) is None

    def test_unknown_role_is_rejected(self):
        token = jwt.encode(
            {"sub": "7", "role": "janitor", "type": "access", "exp": 9999999999},
            settings.SECRET_KEY,
            algorithm=settings.ALGORITHM,
        )
        assert verify_access_token(token) is None


@pytest.mark.unit
class TestRefreshTokens:
    def test_round_trip(self):
        token, expires_at = create_refresh_token(3, UserRole.STUDENT, DEVICE)
        claims = verify_refresh_token(token)

        assert claims.account_id == 3
        assert claims.device_id == DEVICE
        assert claims.token_id
        assert expires_at.utcoffset() == timedelta(0)

    def test_tokens_are_unique(self):
        first, _ = create_refresh_token(3, UserRole.STUDENT, DEVICE)
        second, _ = create_refresh_token(3, UserRole.STUDENT, DEVICE)
        assert first != second
        assert hash_refresh_token(first) != hash_refresh_token(second)

    def test_access_token_is_not_a_refresh_token(self):
        assert verify_refresh_token(create_access_token(3, UserRole.STUDENT)) is None

    def test_hash_is_stable_sha256(self):
        digest = hash_refresh_token("token")
        assert digest == hash_refresh_token("token")
        assert len(digest) == 64
