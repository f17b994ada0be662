"""Middleware registration."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cmk.config import Settings
from cmk.middleware.error_handler import setup_error_handlers
from cmk.middleware.logging import setup_logging
from cmk.middleware.rate_limit import RateLimitMiddleware
from cmk.middleware.request_context import RequestContextMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register logging, error handlers and middleware.

    Starlette runs middleware in reverse-add order: CORS is outermost, then the
    request context, so 429 responses from the rate limiter still carry CORS
    headers and a request id.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        register_requests_per_window=settings.rate_limit_register,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-Id", "X-RateLimit-Remaining", "X-RateLimit-Limit"],
    )
