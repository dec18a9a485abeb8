"""Middleware registration for the Double or Die API."""

from fastapi import FastAPI

from dod.config import Settings
from dod.middleware.cors import setup_cors
from dod.middleware.error_handler import setup_error_handlers
from dod.middleware.logging import setup_logging
from dod.middleware.rate_limit import RateLimitMiddleware
from dod.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Install logging, error handlers and the middleware stack.

    Request order, outermost first: CORS, request id, then the per-IP limiter.
    The limiter only exists when Redis is configured; run submissions are
    throttled per player in the database either way.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    if settings.redis_url:
        app.add_middleware(
            RateLimitMiddleware,
            requests_per_window=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
    app.add_middleware(RequestIdMiddleware)
    # Added last so it also wraps 429s and handler errors.
    setup_cors(app, settings)
