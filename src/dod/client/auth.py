"""Auth provider capability used by the client.

The game only needs to know who is signed in and what credential to send.
Sign-in flows themselves belong to the provider.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class AuthSession:
    user_id: str
    access_token: str


class AuthProvider(Protocol):
    async def get_session(self) -> AuthSession | None: ...

    async def sign_out(self) -> None: ...


class NullAuthProvider:
    """Offline or unconfigured mode: nobody is ever signed in."""

    async def get_session(self) -> AuthSession | None:
        return None

    async def sign_out(self) -> None:
        return None


class StaticAuthProvider:
    """A session handed over by an external sign-in flow."""

    def __init__(self, session: AuthSession | None) -> None:
        self._session = session

    async def get_session(self) -> AuthSession | None:
        return self._session

    async def sign_out(self) -> None:
        self._session = None
