"""
Shared Redis client.

Redis backs the per-IP rate limiter, login lockout counters and the
per-recipient email limit. All three degrade to "no limit" when Redis is
not configured, so the client is optional: an empty ``SNAP_REDIS_URL``
leaves it unset.
"""

import redis.asyncio as redis

_client: redis.Redis | None = None


async def init_redis(url: str) -> None:
    global _client  # noqa: PLW0603
    if not url:
        _client = None
        return
    _client = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=50,
        health_check_interval=30,
    )


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None


def get_optional_redis() -> redis.Redis | None:
    """FastAPI dependency: the client, or None when Redis is disabled."""
    return _client
