"""
Owner identity tokens.

Users sign in through an external identity provider which issues HS256
JWTs signed with a shared secret. The ``sub`` claim is the owner id that
block watches are scoped to.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from blocktime.config import get_settings


def create_access_token(owner_id: str, expires_in: timedelta = timedelta(hours=1)) -> str:
    """
    Issue an access token for ``owner_id``.

    Used by tooling and tests; production tokens come from the identity provider.
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": owner_id,
        "iat": now,
        "exp": now + expires_in,
        "type": "access",
    }
    if settings.jwt_issuer:
        payload["iss"] = settings.jwt_issuer
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict[str, Any]:
    """
    Verify and decode an access token.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired, or has no subject.
    """
    settings = get_settings()
    options: dict[str, Any] = {"require": ["sub", "exp"]}
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
            options=options,
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    if payload.get("type", "access") != "access":
        msg = f"Expected token type 'access', got '{payload.get('type')}'"
        raise jwt.InvalidTokenError(msg)
    return payload
