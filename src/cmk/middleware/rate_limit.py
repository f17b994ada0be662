"""Redis-backed fixed-window rate limiting.

Registration has its own, tighter budget per client IP, since each new account
can earn sign-up and referral bonuses. Everything else shares the general
budget. Health checks are exempt.
"""

import time
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from cmk.redis_client import get_redis

_EXEMPT_PATHS = frozenset({"/health", "/ready", "/version"})
_REGISTER_PATH = "/api/v1/accounts/register"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Count requests per IP and bucket; return 429 once a bucket is spent."""

    def __init__(
        self,
        app: Any,  # noqa: ANN401
        requests_per_window: int = 100,
        register_requests_per_window: int = 5,
        window_seconds: int = 60,
    ) -> None:
        super().__init__(app)
        self.requests_per_window = requests_per_window
        self.register_requests_per_window = register_requests_per_window
        self.window_seconds = window_seconds

    def _bucket(self, request: Request) -> tuple[str, int]:
        if request.method == "POST" and request.url.path == _REGISTER_PATH:
            return "register", self.register_requests_per_window
        return "general", self.requests_per_window

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in _EXEMPT_PATHS:
            return await call_next(request)

        try:
            redis = get_redis()
        except RuntimeError:
            # Redis not initialized: serve without limiting
            return await call_next(request)

        bucket, limit = self._bucket(request)
        client_ip = request.client.host if request.client else "unknown"
        window = int(time.time()) // self.window_seconds
        rate_key = f"ratelimit:{bucket}:{client_ip}:{window}"

        pipe = redis.pipeline()
        pipe.incr(rate_key)
        pipe.expire(rate_key, self.window_seconds + 1)
        results: list[Any] = await pipe.execute()
        current_count: int = results[0]

        if current_count > limit:
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded. Try again later."},
                headers={
                    "Retry-After": str(self.window_seconds),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Limit": str(limit),
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Remaining"] = str(max(0, limit - current_count))
        response.headers["X-RateLimit-Limit"] = str(limit)
        return response
