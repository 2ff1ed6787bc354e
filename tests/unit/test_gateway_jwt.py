"""Unit tests for JWT handler."""

from datetime import UTC, datetime, timedelta

import pytest
from jose import jwt

from config.settings import settings
from src.mk_gateway.auth.jwt_handler import (
    InvalidTokenError,
    create_access_token,
    decode_access_token,
)


def _encode(payload: dict) -> str:
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def test_access_token_contains_correct_claims() -> None:
    token = create_access_token("user-123")
    payload = jwt.get_unverified_claims(token)
    assert payload["sub"] == "user-123"
    assert payload["type"] == "access"


def test_decode_round_trip() -> None:
    payload = decode_access_token(create_access_token("user-123"))
    assert payload["sub"] == "user-123"


def test_tampered_token_rejected() -> None:
    header, _, signature = create_access_token("user-123").split(".")
    _, forged_payload, _ = create_access_token("admin-1").split(".")
    with pytest.raises(InvalidTokenError) as exc_info:
        decode_access_token(f"{header}.{forged_payload}.{signature}")
    assert exc_info.value.http_status == 401


def test_wrong_secret_rejected() -> None:
    token = jwt.encode(
        {"sub": "u", "type": "access"}, "another-secret", algorithm=settings.JWT_ALGORITHM
    )
    with pytest.raises(InvalidTokenError):
        decode_access_token(token)


def test_expired_token_rejected() -> None:
    past = datetime.now(UTC) - timedelta(minutes=5)
    token = _encode({"sub": "u", "type": "access", "iat": past, "exp": past})
    with pytest.raises(InvalidTokenError):
        decode_access_token(token)


def test_non_access_token_rejected() -> None:
    now = datetime.now(UTC)
    token = _encode({"sub": "u", "type": "refresh", "exp": now + timedelta(minutes=5)})
    with pytest.raises(InvalidTokenError):
        decode_access_token(token)
