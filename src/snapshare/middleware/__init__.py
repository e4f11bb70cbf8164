"""HTTP middleware stack for the SnapShare API."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from snapshare.config import Settings
from snapshare.middleware.error_handler import setup_error_handlers
from snapshare.middleware.logging import setup_logging
from snapshare.middleware.rate_limit import RateLimitMiddleware
from snapshare.middleware.request_id import RequestIdMiddleware

# Response headers the web and mobile clients may read
EXPOSED_HEADERS = ["X-Request-Id", "X-RateLimit-Remaining", "X-RateLimit-Limit", "Retry-After"]


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Install logging, error handlers and middleware.

    Outermost to innermost: CORS, request context, rate limiter. Starlette
    wraps in reverse order of ``add_middleware`` calls.
    """
    setup_logging(settings)
    setup_error_handlers(app)

    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
        api_prefix=settings.api_prefix,
    )
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-Id"],
        expose_headers=EXPOSED_HEADERS,
    )
