"""Shared FastAPI dependencies."""

from collections.abc import AsyncGenerator

from fastapi import Header, HTTPException

from discipline.database import get_session as _get_session
from discipline.redis_client import get_redis as _get_redis

get_db = _get_session


async def get_redis_dep() -> AsyncGenerator[object | None, None]:
    """Yield the Redis client as a FastAPI dependency."""
    yield _get_redis()


async def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Resolve the caller from the ``X-User-Id`` header set by the upstream gateway."""
    if x_user_id is None or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    user_id = x_user_id.strip()
    if len(user_id) > 64:
        raise HTTPException(status_code=401, detail="Invalid X-User-Id header")
    return user_id
