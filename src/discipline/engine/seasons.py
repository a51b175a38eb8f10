"""Weekly and seasonal rollovers."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import datetime

from discipline.engine.profile_machine import DEFAULT_REENTRY_PROGRESS
from discipline.engine.ranks import Rank, previous_rank, rank_index
from discipline.engine.state import ProfileState, TaskState
from discipline.engine.time_utils import get_week_iso, week_start


@dataclass(frozen=True)
class SeasonRules:
    season_number: int
    survival_xp_threshold: int
    rank_retention_threshold: Rank = Rank.IRON


def roll_week(
    profile: ProfileState,
    tasks: Iterable[TaskState],
    now: datetime,
) -> tuple[ProfileState, list[TaskState]] | None:
    """Reset weekly XP and task period counters once per ISO week.

    Returns None when the profile already belongs to the current week.
    """
    current = get_week_iso(now)
    if profile.week_iso == current:
        return None

    period_start = week_start(now)
    reset_tasks = [
        replace(t, current_period_completions=0, current_period_misses=0, period_start_at=period_start)
        for t in tasks
    ]
    return replace(profile, weekly_xp=0, week_iso=current), reset_tasks


def survived(profile: ProfileState, rules: SeasonRules) -> bool:
    return (
        profile.season_xp >= rules.survival_xp_threshold
        and rank_index(profile.current_rank) >= rank_index(rules.rank_retention_threshold)
    )


def close_season(
    profile: ProfileState,
    rules: SeasonRules,
    next_season: int,
    reentry_progress: float = DEFAULT_REENTRY_PROGRESS,
) -> ProfileState:
    """Judge the closing season and move the profile to ``next_season``.

    Non-survivors above the retention rank drop one rank.
    """
    made_it = survived(profile, rules)
    rank = profile.current_rank
    progress = profile.rank_progress
    if not made_it and rank_index(rank) > rank_index(rules.rank_retention_threshold):
        lower = previous_rank(rank)
        if lower is not None:
            rank, progress = lower, reentry_progress

    return replace(
        profile,
        current_rank=rank,
        rank_progress=progress,
        season_survived=made_it,
        season_xp=0,
        current_season=next_season,
    )
