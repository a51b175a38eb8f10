"""One profile mutation = one lock + one transaction.

Profile, task, challenge and log rows produced by a transition are
committed together or not at all.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from discipline.db.models import DisciplineChallenge, DisciplineProfile, DisciplineTask, Notification
from discipline.db.state_mapping import (
    activity_row,
    apply_challenge,
    apply_profile,
    apply_task,
    completion_row,
    exploit_row,
    title_row,
)
from discipline.engine.state import Transition
from discipline.errors import PersistenceFailure, ProfileConflict
from discipline.locks import profile_locks
from discipline.notifications.service import add_notifications

logger = logging.getLogger(__name__)


@asynccontextmanager
async def profile_unit(db: AsyncSession, user_id: str) -> AsyncIterator[None]:
    """Serialize on ``user_id`` and commit on success, roll back on failure."""
    async with profile_locks.hold(user_id):
        try:
            yield
            await db.commit()
        except StaleDataError as exc:
            await db.rollback()
            logger.info("Concurrent update on profile %s", user_id)
            raise ProfileConflict(f"profile {user_id} was modified concurrently") from exc
        except SQLAlchemyError as exc:
            await db.rollback()
            logger.error("Persistence failure for profile %s: %s", user_id, exc)
            raise PersistenceFailure(f"could not persist changes for {user_id}") from exc
        except BaseException:
            await db.rollback()
            raise


def persist_transition(
    db: AsyncSession,
    profile_row: DisciplineProfile,
    transition: Transition,
    now: datetime,
    task_row: DisciplineTask | None = None,
    challenge_rows: Iterable[DisciplineChallenge] = (),
) -> list[Notification]:
    """Stage every row a transition produced. Returns staged notifications."""
    user_id = profile_row.user_id
    apply_profile(profile_row, transition.profile, now)

    if task_row is not None and transition.task is not None:
        apply_task(task_row, transition.task)

    by_id = {row.id: row for row in challenge_rows}
    for state in transition.challenges:
        row = by_id.get(state.id)
        if row is not None:
            apply_challenge(row, state)

    if transition.completion is not None:
        db.add(completion_row(user_id, task_row.id if task_row is not None else None, transition.completion))
    for record in transition.exploits:
        db.add(exploit_row(user_id, record))
    for record in transition.activities:
        db.add(activity_row(user_id, record))
    for grant in transition.titles:
        db.add(title_row(user_id, grant, now))

    return add_notifications(db, user_id, transition.notifications, now)
