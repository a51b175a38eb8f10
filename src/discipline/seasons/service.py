"""Weekly rollover and season lifecycle."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from discipline.config import get_settings
from discipline.db.models import DisciplineProfile, DisciplineSeason
from discipline.db.state_mapping import apply_profile, apply_task, profile_state, task_state
from discipline.engine import seasons
from discipline.engine.ranks import Rank
from discipline.engine.time_utils import get_week_iso, utcnow
from discipline.errors import PersistenceFailure
from discipline.profiles.service import get_task_rows
from discipline.unit_of_work import profile_unit

logger = logging.getLogger(__name__)

FIRST_SEASON = {
    "season_number": 1,
    "name": "Season 1",
    "theme": "Foundation",
    "survival_xp_threshold": 1000,
    "rank_retention_threshold": Rank.IRON.value,
}


@dataclass
class SeasonCloseSummary:
    closed_season: int
    next_season: int
    processed: int = 0
    survivors: int = 0
    demotions: int = 0
    failed: int = 0


async def get_active_season(db: AsyncSession) -> DisciplineSeason | None:
    result = await db.execute(
        select(DisciplineSeason)
        .where(DisciplineSeason.is_active.is_(True))
        .order_by(DisciplineSeason.season_number.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def ensure_active_season(db: AsyncSession, now: datetime | None = None) -> DisciplineSeason:
    """Return the active season, seeding Season 1 on an empty table (idempotent)."""
    season = await get_active_season(db)
    if season is not None:
        return season

    now = now or utcnow()
    season = DisciplineSeason(**FIRST_SEASON, is_active=True, started_at=now)
    db.add(season)
    await db.commit()
    logger.info("Seeded discipline season %d", season.season_number)
    return season


async def run_weekly_reset(db: AsyncSession, now: datetime | None = None) -> int:
    """Roll every profile still in a past ISO week. Returns profiles reset."""
    now = now or utcnow()
    current = get_week_iso(now)
    result = await db.execute(
        select(DisciplineProfile.user_id).where(
            (DisciplineProfile.week_iso.is_(None)) | (DisciplineProfile.week_iso != current)
        )
    )
    user_ids = list(result.scalars())

    reset = 0
    for user_id in user_ids:
        try:
            async with profile_unit(db, user_id):
                row = (
                    await db.execute(
                        select(DisciplineProfile).where(DisciplineProfile.user_id == user_id).with_for_update()
                    )
                ).scalar_one()
                tasks = await get_task_rows(db, user_id)
                rolled = seasons.roll_week(profile_state(row), [task_state(t) for t in tasks.values()], now)
                if rolled is None:
                    continue
                profile, reset_tasks = rolled
                for state in reset_tasks:
                    apply_task(tasks[state.task_name], state)
                apply_profile(row, profile, now)
            reset += 1
        except PersistenceFailure:
            logger.warning("Weekly reset skipped %s", user_id, exc_info=True)

    logger.info("Weekly reset %s: %d profiles", current, reset)
    return reset


async def close_active_season(
    db: AsyncSession,
    now: datetime | None = None,
    next_name: str | None = None,
    next_theme: str | None = None,
) -> SeasonCloseSummary | None:
    """Judge every profile against the active season and open the next one.

    Profiles already moved to the next season are skipped, so an interrupted
    close can be re-run.
    """
    now = now or utcnow()
    season = await get_active_season(db)
    if season is None:
        logger.warning("No active season to close")
        return None

    rules = seasons.SeasonRules(
        season_number=season.season_number,
        survival_xp_threshold=season.survival_xp_threshold,
        rank_retention_threshold=Rank(season.rank_retention_threshold),
    )
    next_number = season.season_number + 1
    summary = SeasonCloseSummary(closed_season=season.season_number, next_season=next_number)
    reentry = get_settings().demotion_reentry_progress

    result = await db.execute(
        select(DisciplineProfile.user_id).where(DisciplineProfile.current_season < next_number)
    )
    for user_id in list(result.scalars()):
        try:
            async with profile_unit(db, user_id):
                row = (
                    await db.execute(
                        select(DisciplineProfile).where(DisciplineProfile.user_id == user_id).with_for_update()
                    )
                ).scalar_one()
                before = profile_state(row)
                after = seasons.close_season(before, rules, next_number, reentry)
                apply_profile(row, after, now)
        except PersistenceFailure:
            summary.failed += 1
            logger.warning("Season close skipped %s", user_id, exc_info=True)
            continue
        summary.processed += 1
        if after.season_survived:
            summary.survivors += 1
        if after.current_rank is not before.current_rank:
            summary.demotions += 1

    if summary.failed:
        logger.error("Season %d close incomplete: %d profiles failed", rules.season_number, summary.failed)
        return summary

    season.is_active = False
    season.ends_at = now
    db.add(
        DisciplineSeason(
            season_number=next_number,
            name=next_name or f"Season {next_number}",
            theme=next_theme,
            survival_xp_threshold=season.survival_xp_threshold,
            rank_retention_threshold=season.rank_retention_threshold,
            is_active=True,
            started_at=now,
        )
    )
    await db.commit()
    logger.info(
        "Season %d closed: processed=%d survivors=%d demotions=%d",
        season.season_number,
        summary.processed,
        summary.survivors,
        summary.demotions,
    )
    return summary
