"""Scheduled decay sweep.

Selects every profile inactive for more than a day plus every user with an
expired active challenge, then applies decay and finalizes challenges one
profile at a time. Each profile commits independently; re-running the sweep
over unchanged data is a no-op.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from discipline.config import get_settings
from discipline.db.models import DisciplineChallenge, DisciplineProfile
from discipline.db.state_mapping import challenge_state, profile_state
from discipline.engine import challenges as challenge_rules
from discipline.engine import profile_machine
from discipline.engine.state import ChallengeStatus, Transition
from discipline.engine.time_utils import utcnow
from discipline.errors import PersistenceFailure
from discipline.notifications.service import push_all
from discipline.profiles.service import active_challenge_rows, active_title_names
from discipline.unit_of_work import persist_transition, profile_unit

logger = logging.getLogger(__name__)

INACTIVITY_CUTOFF = timedelta(days=1)


@dataclass
class SweepSummary:
    processed: int = 0
    demotions: int = 0
    challenges_completed: int = 0
    challenges_failed: int = 0
    failed: int = 0


async def _candidate_user_ids(db: AsyncSession, now: datetime) -> list[str]:
    inactive = await db.execute(
        select(DisciplineProfile.user_id).where(
            DisciplineProfile.last_activity_at.is_not(None),
            DisciplineProfile.last_activity_at < now - INACTIVITY_CUTOFF,
        )
    )
    expired = await db.execute(
        select(DisciplineChallenge.user_id)
        .where(
            DisciplineChallenge.status == ChallengeStatus.ACTIVE.value,
            DisciplineChallenge.ends_at < now,
        )
        .distinct()
    )
    return sorted(set(inactive.scalars()) | set(expired.scalars()))


async def sweep_profile(
    db: AsyncSession,
    redis: object | None,
    user_id: str,
    now: datetime,
    summary: SweepSummary,
) -> None:
    """Decay one profile and close its expired challenges in one unit of work."""
    async with profile_unit(db, user_id):
        result = await db.execute(
            select(DisciplineProfile).where(DisciplineProfile.user_id == user_id).with_for_update()
        )
        row = result.scalar_one_or_none()
        if row is None:
            logger.warning("Expired challenges without a profile for %s", user_id)
            return

        decayed = profile_machine.sweep_decay(profile_state(row), now, get_settings().demotion_reentry_progress)
        profile = decayed.profile

        challenge_rows = await active_challenge_rows(db, user_id)
        held = await active_title_names(db, user_id)
        closed = []
        titles = []
        notifications = []
        completed = failed = 0
        for challenge in (challenge_state(c) for c in challenge_rows):
            outcome = challenge_rules.finalize_expired(profile, challenge, now, held)
            if outcome is None:
                continue
            profile = outcome.profile
            closed += outcome.challenges
            titles += outcome.titles
            held.update(t.title_name for t in outcome.titles)
            notifications += outcome.notifications
            for state in outcome.challenges:
                if state.status is ChallengeStatus.COMPLETED:
                    completed += 1
                else:
                    failed += 1

        if not decayed.activities and not closed:
            return

        transition = Transition(
            profile=profile,
            challenges=closed,
            activities=decayed.activities,
            titles=titles,
            notifications=notifications,
            demoted_to=decayed.demoted_to,
        )
        rows = persist_transition(db, row, transition, now, challenge_rows=challenge_rows)

    await push_all(redis, rows)

    summary.processed += 1
    summary.challenges_completed += completed
    summary.challenges_failed += failed
    if decayed.demoted_to is not None:
        summary.demotions += 1
        logger.info("Profile %s demoted to %s after inactivity", user_id, decayed.demoted_to.value)


async def run_decay_sweep(
    db: AsyncSession,
    redis: object | None = None,
    now: datetime | None = None,
) -> SweepSummary:
    """Run one sweep. A persistence failure on one profile does not stop the rest."""
    now = now or utcnow()
    summary = SweepSummary()

    for user_id in await _candidate_user_ids(db, now):
        try:
            await sweep_profile(db, redis, user_id, now, summary)
        except PersistenceFailure:
            summary.failed += 1
            logger.warning("Decay sweep skipped %s after a persistence failure", user_id, exc_info=True)

    logger.info(
        "Decay sweep: processed=%d demotions=%d completed=%d failed_challenges=%d errors=%d",
        summary.processed,
        summary.demotions,
        summary.challenges_completed,
        summary.challenges_failed,
        summary.failed,
    )
    return summary
