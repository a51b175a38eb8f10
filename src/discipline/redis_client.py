"""Redis client used for notification pub/sub.

Redis is optional: when ``init_redis`` was never called (tests, one-off
scripts) ``get_redis`` returns None and notification delivery is skipped.
"""

import redis.asyncio as redis

_client: redis.Redis | None = None

PUBSUB_MAX_CONNECTIONS = 20


async def init_redis(url: str) -> None:
    global _client  # noqa: PLW0603
    _client = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=PUBSUB_MAX_CONNECTIONS,
        health_check_interval=30,
    )


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None


def get_redis() -> redis.Redis | None:
    return _client


async def redis_status() -> str:
    """Readiness check result: ``ok``, ``disabled`` or ``error: ...``."""
    if _client is None:
        return "disabled"
    try:
        await _client.ping()
    except redis.RedisError as exc:
        return f"error: {exc}"
    return "ok"
