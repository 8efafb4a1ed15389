"""Tests for owner identity tokens."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from blocktime.auth.jwt import create_access_token, verify_token
from blocktime.config import get_settings


def _encode(payload: dict) -> str:
    settings = get_settings()
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


class TestAccessToken:
    def test_create_and_verify(self):
        payload = verify_token(create_access_token("user-42"))
        assert payload["sub"] == "user-42"
        assert payload["type"] == "access"

    def test_expired_token_rejected(self):
        token = create_access_token("user-42", expires_in=timedelta(seconds=-10))
        with pytest.raises(jwt.InvalidTokenError, match="Token has expired"):
            verify_token(token)

    def test_wrong_secret_rejected(self):
        token = jwt.encode(
            {"sub": "user-42", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
            "some-other-secret-that-is-long-enough",
            algorithm="HS256",
        )
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token)

    def test_missing_subject_rejected(self):
        token = _encode({"exp": datetime.now(timezone.utc) + timedelta(minutes=5)})
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token)

    def test_provider_token_without_type_claim_accepted(self):
        token = _encode({"sub": "user-7", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)})
        assert verify_token(token)["sub"] == "user-7"

    def test_wrong_type_rejected(self):
        token = _encode({
            "sub": "user-7",
            "type": "refresh",
            "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
        })
        with pytest.raises(jwt.InvalidTokenError, match="Expected token type"):
            verify_token(token)
