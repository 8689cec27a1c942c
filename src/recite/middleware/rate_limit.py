"""Redis-backed fixed window rate limiting.

``RateLimitMiddleware`` throttles every request per client IP; ``AuthRateLimiter``
is a route dependency with a much smaller budget for credential endpoints.
"""

import time
from typing import Any

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from recite.dependencies import client_ip, get_app_settings
from recite.errors import RateLimited
from recite.redis_client import get_redis

logger = structlog.get_logger()

# Paths exempt from rate limiting
_EXEMPT_PATHS = frozenset({"/health", "/ready"})


async def hit(key_prefix: str, client: str, window_seconds: int) -> int:
    """Increment the counter for the current window and return the new count.

    Raises:
        RuntimeError: If Redis has not been initialized.
    """
    window = int(time.time()) // window_seconds
    key = f"{key_prefix}:{client}:{window}"
    redis = get_redis()
    pipe = redis.pipeline()
    pipe.incr(key)
    pipe.expire(key, window_seconds + 1)
    results: list[Any] = await pipe.execute()
    return int(results[0])


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rate limit requests per IP using Redis counters."""

    def __init__(self, app: Any, requests_per_window: int = 100, window_seconds: int = 900) -> None:  # noqa: ANN401
        super().__init__(app)
        self.requests_per_window = requests_per_window
        self.window_seconds = window_seconds

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Check rate limit, return 429 if exceeded."""
        if request.url.path in _EXEMPT_PATHS:
            return await call_next(request)

        try:
            current_count = await hit("ratelimit", client_ip(request), self.window_seconds)
        except RuntimeError:
            # Redis not initialized: let the request through without rate limiting
            return await call_next(request)

        if current_count > self.requests_per_window:
            return JSONResponse(
                status_code=429,
                content={"success": False, "message": "Too many requests. Try again later."},
                headers={
                    "Retry-After": str(self.window_seconds),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Limit": str(self.requests_per_window),
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Remaining"] = str(max(0, self.requests_per_window - current_count))
        response.headers["X-RateLimit-Limit"] = str(self.requests_per_window)
        return response


class AuthRateLimiter:
    """Route dependency limiting credential attempts per client IP.

    ``attempts_setting``/``window_setting`` name the ``Settings`` fields to read,
    so the limits follow the settings the app was built with.
    """

    def __init__(self, scope: str, attempts_setting: str, window_setting: str, message: str) -> None:
        self.scope = scope
        self.attempts_setting = attempts_setting
        self.window_setting = window_setting
        self.message = message

    async def __call__(self, request: Request) -> None:
        settings = get_app_settings(request)
        attempts = getattr(settings, self.attempts_setting)
        window_seconds = getattr(settings, self.window_setting)
        client = client_ip(request)

        try:
            count = await hit(f"authlimit:{self.scope}", client, window_seconds)
        except RuntimeError:
            return

        if count > attempts:
            logger.warning("auth_rate_limited", scope=self.scope, client_ip=client, count=count)
            raise RateLimited(self.message, headers={"Retry-After": str(window_seconds)})


login_rate_limit = AuthRateLimiter(
    "login",
    "auth_rate_limit_attempts",
    "auth_rate_limit_window_seconds",
    "Too many login attempts. Try again later.",
)
register_rate_limit = AuthRateLimiter(
    "register",
    "register_rate_limit_attempts",
    "register_rate_limit_window_seconds",
    "Too many registrations. Try again later.",
)
