"""FastAPI authentication dependencies."""

from __future__ import annotations

import secrets

import jwt
from fastapi import HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from blocktime.auth.jwt import verify_token
from blocktime.config import get_settings

_bearer = HTTPBearer(auto_error=False)


async def get_current_owner(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
) -> str:
    """
    Extract and verify the bearer JWT, return the owner id.

    Raises 401 when the token is missing or invalid.
    """
    if credentials is None:
        raise HTTPException(status_code=401, detail="Authentication required. Please sign in.")
    try:
        payload = verify_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    return str(payload["sub"])


async def require_cron_secret(request: Request) -> None:
    """
    Gate the notification cycle trigger behind ``Authorization: Bearer <cron secret>``.

    When no secret is configured the trigger is open, matching local development.
    """
    secret = get_settings().cron_secret
    if not secret:
        return
    header = request.headers.get("Authorization", "")
    if not secrets.compare_digest(header.encode(), f"Bearer {secret}".encode()):
        raise HTTPException(status_code=401, detail="Unauthorized")
