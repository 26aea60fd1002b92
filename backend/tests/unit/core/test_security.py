"""
Unit Tests for Security Module
Tests for: password hashing, JWT tokens
"""
from datetime import timedelta

import pytest
from fastapi import HTTPException
from jose import jwt

from app.core.config import settings
from app.core.security import (
    create_access_token,
    create_refresh_token,
    create_token_pair,
    decode_token,
    get_password_hash,
    verify_password,
)
from app.models import User, UserRole


class TestPasswordHashing:
    """Test password hashing functions"""

    def test_hash_differs_from_password(self):
        hashed = get_password_hash("Str0ng!Passw0rd")

        assert hashed != "Str0ng!Passw0rd"
        assert hashed.startswith("$2")

    def test_hash_is_salted(self):
        assert get_password_hash("Str0ng!Passw0rd") != get_password_hash("Str0ng!Passw0rd")

    def test_verify_password(self):
        hashed = get_password_hash("Str0ng!Passw0rd")

        assert verify_password("Str0ng!Passw0rd", hashed) is True
        assert verify_password("wrong", hashed) is False

    def test_long_password_truncated_consistently(self):
        password = "A1!a" * 30
        hashed = get_password_hash(password)

        assert verify_password(password, hashed) is True


class TestJWT:
    """Test JWT token creation and decoding"""

    def test_access_token_round_trip(self):
        token = create_access_token({"sub": "user-1", "role": "HOD"})
        payload = decode_token(token)

        assert payload["sub"] == "user-1"
        assert payload["type"] == "access"

    def test_refresh_token_type(self):
        payload = decode_token(create_refresh_token({"sub": "user-1"}))

        assert payload["type"] == "refresh"

    def test_expired_token_rejected(self):
        token = create_access_token({"sub": "user-1"}, expires_delta=timedelta(seconds=-1))

        with pytest.raises(HTTPException) as exc_info:
            decode_token(token)

        assert exc_info.value.status_code == 401

    def test_foreign_signature_rejected(self):
        token = jwt.encode({"sub": "user-1"}, "someone-else", algorithm=settings.JWT_ALGORITHM)

        with pytest.raises(HTTPException):
            decode_token(token)

    def test_token_pair_carries_role(self):
        user = User(id="7d4c3b1e-0000-4000-8000-000000000001", email="a@b.in", name="A",
                    hashed_password="x", role=UserRole.FINANCE_MANAGER)
        pair = create_token_pair(user)

        assert pair["token_type"] == "bearer"
        assert decode_token(pair["access_token"])["role"] == "FINANCE_MANAGER"
        assert decode_token(pair["refresh_token"])["sub"] == user.id
