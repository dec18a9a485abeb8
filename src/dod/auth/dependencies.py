"""FastAPI authentication dependencies."""

from __future__ import annotations

import jwt
import structlog
from fastapi import Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from dod.auth.jwt import verify_token
from dod.runs.errors import Unauthenticated

logger = structlog.get_logger()

_bearer = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
) -> str:
    """
    Resolve the bearer credential to the caller's user id.

    Raises Unauthenticated (401) when the header is missing or the token
    does not verify.
    """
    if credentials is None:
        raise Unauthenticated("Missing Authorization header.")
    try:
        payload = verify_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        logger.info("auth_rejected", reason=str(e))
        raise Unauthenticated(f"Invalid auth token: {e}") from e
    return str(payload["sub"])
