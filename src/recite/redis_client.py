"""Shared Redis client.

Only the rate limiter's fixed-window counters and the ``/ready`` check use
Redis. Until ``init_redis`` has run, ``get_redis`` raises ``RuntimeError``,
which both callers treat as "Redis unavailable".
"""

import redis.asyncio as redis

_client: redis.Redis | None = None


async def init_redis(url: str) -> None:
    """Create the client for ``RECITE_REDIS_URL``. Connections are opened lazily."""
    global _client  # noqa: PLW0603
    _client = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=50,
    )


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client:
        await _client.aclose()
        _client = None


def get_redis() -> redis.Redis:
    """Return the client, or raise ``RuntimeError`` when Redis is not configured yet."""
    if _client is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _client
