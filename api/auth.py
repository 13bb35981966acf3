"""Bearer token authentication for API endpoints."""

from __future__ import annotations

import os
from fastapi import Header, HTTPException


def token_matches(authorization: str | None, token: str | None) -> bool:
    """True if ``authorization`` is ``Bearer <token>``."""
    if not token or not authorization or not authorization.strip().lower().startswith("bearer "):
        return False
    return authorization.strip()[7:].strip() == token


async def require_bearer_token(authorization: str | None = Header(default=None)) -> None:
    """
    Dependency: require Authorization: Bearer <token> and validate against API_AUTH_TOKEN.
    Raises 401 if header is missing or token does not match.
    """
    token = os.environ.get("API_AUTH_TOKEN")
    if not token:
        raise HTTPException(
            status_code=503,
            detail="Server configuration error: API_AUTH_TOKEN not set",
        )
    if not token_matches(authorization, token):
        raise HTTPException(status_code=401, detail="Unauthorized")
