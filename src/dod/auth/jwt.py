"""
Bearer credential verification.

Identities are issued by an external auth provider as signed JWTs. This module
only resolves a credential to its subject (the provider's user id); it never
creates accounts. HS* algorithms verify with the shared ``jwt_secret``; RS*/ES*
algorithms verify with the provider's public key on disk.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import jwt

from dod.config import get_settings

_public_key: str | None = None


def _verification_key() -> str:
    """Return the key used to verify provider tokens (public key cached after first read)."""
    global _public_key  # noqa: PLW0603
    settings = get_settings()
    if settings.jwt_algorithm.startswith("HS"):
        return settings.jwt_secret
    if _public_key is None:
        _public_key = Path(settings.jwt_public_key_path).read_text()
    return _public_key


def reset_keys() -> None:
    """Reset cached keys (useful for testing)."""
    global _public_key  # noqa: PLW0603
    _public_key = None


def create_access_token(user_id: str, *, expires_in: timedelta = timedelta(hours=1)) -> str:
    """
    Mint a provider-style access token signed with the shared secret.

    Only meaningful for HS* algorithms. Used by local tooling and tests to
    stand in for the auth provider.

    Args:
        user_id: The provider's user id (becomes ``sub``).
        expires_in: Token lifetime.

    Returns:
        Encoded JWT string.
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": user_id,
        "role": "authenticated",
        "iat": now,
        "exp": now + expires_in,
    }
    if settings.jwt_audience:
        payload["aud"] = settings.jwt_audience
    if settings.jwt_issuer:
        payload["iss"] = settings.jwt_issuer
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict[str, Any]:
    """
    Verify and decode a provider JWT.

    Args:
        token: The encoded JWT string.

    Returns:
        Decoded payload dictionary.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired, or has no subject.
    """
    settings = get_settings()
    options: dict[str, Any] = {"require": ["exp", "sub"]}
    if not settings.jwt_audience:
        options["verify_aud"] = False
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            _verification_key(),
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            options=options,
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    if not str(payload.get("sub", "")).strip():
        msg = "Token has no subject"
        raise jwt.InvalidTokenError(msg)

    return payload
