"""CORS middleware configuration."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dod.config import Settings


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """Allow the browser game to call the API from its configured origins."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type", "x-request-id"],
        expose_headers=["X-Request-Id", "X-RateLimit-Remaining", "X-RateLimit-Limit"],
        max_age=86400,
    )
