"""Profile operations: task completion, failures and visible stats.

Each mutating call loads the profile (creating it with the default tasks
when missing), catches up on decay and the weekly rollover, runs one engine
transition and commits everything in a single unit of work.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from discipline.config import get_settings
from discipline.db.models import (
    DisciplineChallenge,
    DisciplineProfile,
    DisciplineTask,
    UserTitle,
)
from discipline.db.state_mapping import (
    apply_profile,
    apply_task,
    challenge_state,
    new_profile_row,
    new_task_row,
    profile_state,
    task_state,
)
from discipline.engine import profile_machine, seasons
from discipline.engine.ranks import next_rank, xp_to_next_rank
from discipline.engine.state import ChallengeStatus, ProfileState, Transition
from discipline.engine.time_utils import utcnow
from discipline.engine.validator import CompletionOptions
from discipline.notifications.service import push_all
from discipline.unit_of_work import persist_transition, profile_unit

logger = logging.getLogger(__name__)

REJECTION_MESSAGE = "Completion did not meet quality standards."


@dataclass
class CompletionResult:
    accepted: bool
    xp_awarded: int = 0
    rank: str = ""
    rank_progress: float = 0.0
    promoted_to: str | None = None
    challenges_completed: list[str] = field(default_factory=list)


async def _load_profile(db: AsyncSession, user_id: str, *, for_update: bool) -> DisciplineProfile | None:
    stmt = select(DisciplineProfile).where(DisciplineProfile.user_id == user_id)
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_or_create_profile(db: AsyncSession, user_id: str, now: datetime | None = None) -> DisciplineProfile:
    """Get the profile row, initializing it with the default tasks if missing."""
    row = await _load_profile(db, user_id, for_update=True)
    if row is not None:
        return row

    now = now or utcnow()
    row = new_profile_row(profile_machine.new_profile(user_id), now)
    db.add(row)

    existing = set(await get_task_rows(db, user_id))
    for task in profile_machine.default_tasks():
        if task.task_name not in existing:
            db.add(new_task_row(user_id, task, now))
    await db.flush()
    logger.info("Initialized discipline profile for %s", user_id)
    return row


async def get_task_rows(db: AsyncSession, user_id: str) -> dict[str, DisciplineTask]:
    result = await db.execute(select(DisciplineTask).where(DisciplineTask.user_id == user_id))
    return {row.task_name: row for row in result.scalars()}


async def _get_or_create_task(
    db: AsyncSession,
    user_id: str,
    task_name: str,
    tasks: dict[str, DisciplineTask],
    now: datetime,
) -> DisciplineTask:
    row = tasks.get(task_name)
    if row is None:
        row = new_task_row(user_id, profile_machine.new_task(task_name), now)
        db.add(row)
        await db.flush()
        tasks[task_name] = row
    return row


async def active_challenge_rows(db: AsyncSession, user_id: str) -> list[DisciplineChallenge]:
    result = await db.execute(
        select(DisciplineChallenge)
        .where(
            DisciplineChallenge.user_id == user_id,
            DisciplineChallenge.status == ChallengeStatus.ACTIVE.value,
        )
        .order_by(DisciplineChallenge.id)
    )
    return list(result.scalars())


async def active_title_names(db: AsyncSession, user_id: str) -> set[str]:
    result = await db.execute(
        select(UserTitle.title_name).where(UserTitle.user_id == user_id, UserTitle.is_active.is_(True))
    )
    return set(result.scalars())


def catch_up(
    db: AsyncSession,
    row: DisciplineProfile,
    tasks: dict[str, DisciplineTask],
    now: datetime,
) -> ProfileState:
    """Apply pending on-load decay and the weekly rollover to ``row``."""
    settings = get_settings()
    profile = profile_state(row)

    decayed = profile_machine.apply_decay(profile, now, settings.demotion_reentry_progress)
    if decayed.activities:
        persist_transition(db, row, decayed, now)
        profile = decayed.profile

    rolled = seasons.roll_week(profile, [task_state(t) for t in tasks.values()], now)
    if rolled is not None:
        profile, reset_tasks = rolled
        for state in reset_tasks:
            apply_task(tasks[state.task_name], state)
        apply_profile(row, profile, now)
    return profile


async def complete_task(
    db: AsyncSession,
    redis: object | None,
    user_id: str,
    task_name: str,
    options: CompletionOptions | None = None,
    now: datetime | None = None,
) -> CompletionResult:
    """Submit a task completion. Rejected submissions return ``accepted=False``."""
    now = now or utcnow()

    async with profile_unit(db, user_id):
        row = await get_or_create_profile(db, user_id, now)
        tasks = await get_task_rows(db, user_id)
        profile = catch_up(db, row, tasks, now)
        task_row = await _get_or_create_task(db, user_id, task_name, tasks, now)
        challenge_rows = await active_challenge_rows(db, user_id)
        held = await active_title_names(db, user_id)

        transition = profile_machine.complete_task(
            profile,
            task_state(task_row),
            now,
            options,
            challenges=[challenge_state(c) for c in challenge_rows],
            held_titles=held,
        )
        notifications = persist_transition(db, row, transition, now, task_row, challenge_rows)

    await push_all(redis, notifications)

    if not transition.accepted:
        return CompletionResult(
            accepted=False,
            rank=transition.profile.current_rank.value,
            rank_progress=transition.profile.rank_progress,
        )

    if transition.promoted_to is not None:
        logger.info("Profile %s promoted to %s", user_id, transition.promoted_to.value)

    return CompletionResult(
        accepted=True,
        xp_awarded=transition.xp_awarded,
        rank=transition.profile.current_rank.value,
        rank_progress=transition.profile.rank_progress,
        promoted_to=transition.promoted_to.value if transition.promoted_to else None,
        challenges_completed=_completed_names(transition),
    )


def _completed_names(transition: Transition) -> list[str]:
    return [c.challenge_name for c in transition.challenges if c.status is ChallengeStatus.COMPLETED]


async def record_failure(
    db: AsyncSession,
    redis: object | None,
    user_id: str,
    task_name: str,
    now: datetime | None = None,
) -> None:
    """Record a missed task."""
    now = now or utcnow()

    async with profile_unit(db, user_id):
        row = await get_or_create_profile(db, user_id, now)
        tasks = await get_task_rows(db, user_id)
        profile = catch_up(db, row, tasks, now)
        task_row = await _get_or_create_task(db, user_id, task_name, tasks, now)
        challenge_rows = await active_challenge_rows(db, user_id)

        transition = profile_machine.record_failure(
            profile,
            task_state(task_row),
            now,
            challenges=[challenge_state(c) for c in challenge_rows],
        )
        notifications = persist_transition(db, row, transition, now, task_row, challenge_rows)

    await push_all(redis, notifications)


async def refresh_profile(db: AsyncSession, user_id: str, now: datetime | None = None) -> None:
    """Persist pending decay and weekly rollover without any other change."""
    now = now or utcnow()
    async with profile_unit(db, user_id):
        row = await get_or_create_profile(db, user_id, now)
        tasks = await get_task_rows(db, user_id)
        catch_up(db, row, tasks, now)


async def get_visible_stats(db: AsyncSession, user_id: str, now: datetime | None = None) -> dict[str, Any]:
    """User-facing projection. Hidden trust signals are never included.

    Reads are unsynchronized; pending decay is projected, not persisted.
    """
    now = now or utcnow()
    row = await _load_profile(db, user_id, for_update=False)
    profile = profile_state(row) if row is not None else profile_machine.new_profile(user_id)
    profile = profile_machine.apply_decay(profile, now, get_settings().demotion_reentry_progress).profile

    result = await db.execute(
        select(UserTitle)
        .where(UserTitle.user_id == user_id, UserTitle.is_active.is_(True))
        .order_by(UserTitle.earned_at.desc())
    )
    titles = [
        {
            "title_name": t.title_name,
            "title_description": t.title_description,
            "earned_from": t.earned_from,
            "can_be_lost": t.can_be_lost,
            "earned_at": t.earned_at,
        }
        for t in result.scalars()
    ]

    upper = next_rank(profile.current_rank)
    return {
        "rank": profile.current_rank.value,
        "rank_progress": round(profile.rank_progress, 2),
        "next_rank": upper.value if upper else None,
        "xp_to_next_rank": xp_to_next_rank(profile.total_xp, profile.current_rank),
        "total_xp": profile.total_xp,
        "weekly_xp": profile.weekly_xp,
        "season_xp": profile.season_xp,
        "current_streak": profile.current_streak,
        "longest_streak": profile.longest_streak,
        "completion_rate": round(profile.completion_rate, 4),
        "total_tasks_completed": profile.total_tasks_completed,
        "current_season": profile.current_season,
        "titles": titles,
    }


async def list_tasks(db: AsyncSession, user_id: str) -> list[DisciplineTask]:
    result = await db.execute(
        select(DisciplineTask)
        .where(DisciplineTask.user_id == user_id, DisciplineTask.is_active.is_(True))
        .order_by(DisciplineTask.task_name)
    )
    return list(result.scalars())
