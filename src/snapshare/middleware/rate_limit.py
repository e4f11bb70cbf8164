"""Per-client fixed-window request limit kept in Redis."""

import time
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from snapshare.redis_client import get_optional_redis

# Probes under the API prefix are never limited
PROBE_PATHS = ("/health", "/ready")


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Allow ``requests_per_window`` requests per client IP per window.

    Without Redis every request passes and no limit headers are added.
    """

    def __init__(
        self,
        app: Any,  # noqa: ANN401
        requests_per_window: int = 100,
        window_seconds: int = 60,
        api_prefix: str = "",
    ) -> None:
        super().__init__(app)
        self.requests_per_window = requests_per_window
        self.window_seconds = window_seconds
        self.exempt_paths = frozenset(api_prefix + path for path in PROBE_PATHS)

    def _window_key(self, request: Request) -> str:
        client_ip = request.client.host if request.client else "unknown"
        window = int(time.time()) // self.window_seconds
        return f"ratelimit:{client_ip}:{window}"

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        redis = get_optional_redis()
        if redis is None or request.url.path in self.exempt_paths:
            return await call_next(request)

        key = self._window_key(request)
        pipe = redis.pipeline()
        pipe.incr(key)
        pipe.expire(key, self.window_seconds + 1)
        count = int((await pipe.execute())[0])

        limit_headers = {"X-RateLimit-Limit": str(self.requests_per_window)}
        if count > self.requests_per_window:
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded. Try again later.", "code": "rate_limited"},
                headers={**limit_headers, "X-RateLimit-Remaining": "0", "Retry-After": str(self.window_seconds)},
            )

        response = await call_next(request)
        response.headers.update(limit_headers)
        response.headers["X-RateLimit-Remaining"] = str(self.requests_per_window - count)
        return response
