"""Discipline arq worker: daily decay sweep and weekly rollover.

Season close is enqueued on demand (``close_season``), never on a cron.
"""

from __future__ import annotations

import logging
from dataclasses import asdict

import redis.asyncio as aioredis
from arq import cron
from arq.connections import RedisSettings
from sqlalchemy.ext.asyncio import AsyncSession

from discipline.config import get_settings
from discipline.database import close_db, get_session, init_db
from discipline.decay.sweeper import run_decay_sweep
from discipline.seasons.service import close_active_season, ensure_active_season, run_weekly_reset

logger = logging.getLogger(__name__)


async def _get_db_session() -> AsyncSession:
    """Get a database session for the worker."""
    async for session in get_session():
        return session
    raise RuntimeError("Failed to get database session")


async def discipline_startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Initialize Redis + DB connections on worker startup."""
    settings = get_settings()
    await init_db(settings.database_url)

    ctx["redis"] = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
    )

    db = await _get_db_session()
    try:
        await ensure_active_season(db)
    finally:
        await db.close()
    logger.info("Discipline worker started")


async def discipline_shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    """Clean up on worker shutdown."""
    redis_client: aioredis.Redis | None = ctx.get("redis")
    if redis_client:
        await redis_client.aclose()
    await close_db()
    logger.info("Discipline worker shut down")


async def daily_decay_sweep(ctx: dict) -> dict:  # type: ignore[type-arg]
    """Scheduled task: decay inactive profiles and close expired challenges."""
    db = await _get_db_session()
    try:
        summary = await run_decay_sweep(db, ctx.get("redis"))
    finally:
        await db.close()
    return asdict(summary)


async def weekly_reset(ctx: dict) -> int:  # type: ignore[type-arg]
    """Scheduled task: reset weekly XP and task periods."""
    db = await _get_db_session()
    try:
        return await run_weekly_reset(db)
    finally:
        await db.close()


async def close_season(ctx: dict, next_name: str | None = None, next_theme: str | None = None) -> dict | None:  # type: ignore[type-arg]
    """Close the active season and open the next one."""
    db = await _get_db_session()
    try:
        summary = await close_active_season(db, next_name=next_name, next_theme=next_theme)
    finally:
        await db.close()
    return asdict(summary) if summary is not None else None


_settings = get_settings()


class DisciplineWorkerSettings:
    """arq worker settings for scheduled discipline jobs (times in UTC)."""

    functions = [daily_decay_sweep, weekly_reset, close_season]
    cron_jobs = [
        cron(daily_decay_sweep, hour=_settings.decay_sweep_hour, minute=_settings.decay_sweep_minute),
        cron(weekly_reset, weekday=_settings.weekly_reset_weekday, hour=0, minute=1),
    ]
    on_startup = discipline_startup
    on_shutdown = discipline_shutdown
    redis_settings = RedisSettings.from_dsn(_settings.redis_url)
    max_jobs = 2
    job_timeout = 3600
