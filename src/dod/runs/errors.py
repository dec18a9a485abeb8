"""Error taxonomy for run issuance, verification, and the season ledger.

Every error maps to an HTTP status and a stable ``code`` string that clients
can switch on. The global handler renders them as ``{"error", "detail"}``.
"""

from __future__ import annotations


class GameError(Exception):
    """Base class for errors surfaced to API callers."""

    code = "error"
    status_code = 400
    default_message = "Request failed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(GameError):
    code = "unauthenticated"
    status_code = 401
    default_message = "Invalid auth token."


class NoActiveSeason(GameError):
    code = "no_active_season"
    status_code = 400
    default_message = "No active season."


class InvalidRequest(GameError):
    code = "invalid_request"
    status_code = 400
    default_message = "Invalid request body."


class RateLimited(GameError):
    code = "rate_limited"
    status_code = 429
    default_message = "Too many runs submitted. Try again later."


class RunVerificationFailed(GameError):
    code = "run_verification_failed"
    status_code = 400
    default_message = "Run failed verification."


class InvalidOrReusedToken(GameError):
    code = "invalid_or_reused_token"
    status_code = 400
    default_message = "Invalid or used run token."


class StorageFailure(GameError):
    code = "storage_failure"
    status_code = 500
    default_message = "Storage operation failed."
