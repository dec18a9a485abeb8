"""Python client for Double or Die: API access, leaderboard cache, and the game session."""

from dod.client.api import ApiError, DoubleOrDieApi
from dod.client.auth import AuthProvider, AuthSession, NullAuthProvider, StaticAuthProvider
from dod.client.cache import LeaderboardCache
from dod.client.session import GameSession
from dod.client.state import AppState, Store

__all__ = [
    "ApiError",
    "AppState",
    "AuthProvider",
    "AuthSession",
    "DoubleOrDieApi",
    "GameSession",
    "LeaderboardCache",
    "NullAuthProvider",
    "StaticAuthProvider",
    "Store",
]
