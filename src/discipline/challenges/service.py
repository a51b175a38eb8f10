"""Challenge operations: start, list, abandon, titles.

Progress and completion are driven by task events in
``discipline.profiles.service``; expiry by the decay sweeper.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from discipline.config import get_settings
from discipline.db.models import DisciplineChallenge, UserTitle
from discipline.db.state_mapping import apply_challenge, challenge_state, new_challenge_row, new_task_row
from discipline.engine import challenges as challenge_rules
from discipline.engine import profile_machine
from discipline.engine.state import ChallengeStatus, DailyRequirement
from discipline.engine.time_utils import utcnow
from discipline.errors import ChallengeNotFound, InvalidChallenge
from discipline.profiles.service import get_task_rows, get_or_create_profile
from discipline.unit_of_work import profile_unit

logger = logging.getLogger(__name__)


def get_preset(name: str) -> dict[str, Any]:
    for preset in challenge_rules.PRESET_CHALLENGES:
        if preset["name"] == name:
            return preset
    raise ChallengeNotFound(f"no preset named {name!r}")


async def start_challenge(
    db: AsyncSession,
    user_id: str,
    name: str,
    duration_days: int,
    requirement: DailyRequirement | dict[str, Any],
    *,
    description: str | None = None,
    xp_reward: int | None = None,
    title_reward: str | None = None,
    is_exclusive: bool = False,
    zero_tolerance: bool = True,
    now: datetime | None = None,
) -> DisciplineChallenge:
    """Start a new active challenge.

    Raises InvalidChallenge on bad input; nothing is written in that case.
    """
    now = now or utcnow()
    state = challenge_rules.build_challenge(
        name,
        duration_days,
        requirement,
        now,
        description=description,
        xp_reward=xp_reward,
        title_reward=title_reward,
        is_exclusive=is_exclusive,
        zero_tolerance=zero_tolerance,
        xp_per_day=get_settings().default_challenge_xp_per_day,
    )

    async with profile_unit(db, user_id):
        await get_or_create_profile(db, user_id, now)
        task_name = state.daily_requirement.task_name
        tasks = await get_task_rows(db, user_id)
        if task_name not in tasks:
            db.add(new_task_row(user_id, profile_machine.new_task(task_name), now))

        row = new_challenge_row(user_id, state, now)
        db.add(row)
        await db.flush()

    logger.info("Challenge %s (%s) started for %s", row.id, row.challenge_name, user_id)
    return row


async def start_preset(
    db: AsyncSession,
    user_id: str,
    preset_name: str,
    now: datetime | None = None,
) -> DisciplineChallenge:
    preset = get_preset(preset_name)
    return await start_challenge(
        db,
        user_id,
        preset["name"],
        preset["duration_days"],
        {"task_name": preset["task_name"], "count": 1},
        description=preset["description"],
        xp_reward=preset["xp_reward"],
        title_reward=preset["title_reward"],
        is_exclusive=preset["is_exclusive"],
        now=now,
    )


async def list_challenges(
    db: AsyncSession,
    user_id: str,
    status: ChallengeStatus | None = None,
) -> list[DisciplineChallenge]:
    stmt = select(DisciplineChallenge).where(DisciplineChallenge.user_id == user_id)
    if status is not None:
        stmt = stmt.where(DisciplineChallenge.status == status.value)
    result = await db.execute(stmt.order_by(DisciplineChallenge.started_at.desc(), DisciplineChallenge.id.desc()))
    return list(result.scalars())


async def abandon_challenge(db: AsyncSession, user_id: str, challenge_id: int) -> DisciplineChallenge:
    """Abandon an active challenge. No penalty, no notification."""
    async with profile_unit(db, user_id):
        result = await db.execute(
            select(DisciplineChallenge).where(
                DisciplineChallenge.id == challenge_id,
                DisciplineChallenge.user_id == user_id,
            )
        )
        row = result.scalar_one_or_none()
        if row is None:
            raise ChallengeNotFound(f"challenge {challenge_id} not found")
        try:
            abandoned = challenge_rules.abandon(challenge_state(row))
        except ValueError as exc:
            raise InvalidChallenge(f"challenge {challenge_id} is already {row.status}") from exc
        apply_challenge(row, abandoned)

    logger.info("Challenge %s abandoned by %s", challenge_id, user_id)
    return row


async def list_titles(db: AsyncSession, user_id: str, active_only: bool = True) -> list[UserTitle]:
    stmt = select(UserTitle).where(UserTitle.user_id == user_id)
    if active_only:
        stmt = stmt.where(UserTitle.is_active.is_(True))
    result = await db.execute(stmt.order_by(UserTitle.earned_at.desc()))
    return list(result.scalars())
