"""Profile state machine: completions, failures and inactivity decay.

Each transition takes the current profile (and task/challenges where
relevant) and returns a ``Transition`` holding the new state and every
record the caller has to persist in the same unit of work.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime

from discipline.engine import challenges as challenge_rules
from discipline.engine.exploit import apply_penalty
from discipline.engine.ranks import RANK_XP_THRESHOLDS, next_rank, previous_rank
from discipline.engine.scoring import decay_amounts, effective_xp, rank_progress
from discipline.engine.state import (
    ActivityRecord,
    ChallengeState,
    CompletionRecord,
    NotificationEvent,
    ProfileState,
    TaskState,
    Transition,
)
from discipline.engine.time_utils import elapsed_full_days
from discipline.engine.validator import CompletionOptions, validate_completion

logger = logging.getLogger(__name__)

INVALID_COMPLETION_SEVERITY = 2

DIFFICULTY_MILESTONE = 7
MAX_TASK_DIFFICULTY = 5

SHADOW_MAX = 100.0
SHADOW_BONUS_PER_EFFORT = 0.5
EFFORT_QUALITY_MAX = 2.0
EFFORT_QUALITY_STEP = 0.01

LEGACY_FLOOR = 0.5
MISS_LIMIT_LEGACY_PENALTY = 0.05
RECOVERY_FLOOR = 0.5
RECOVERY_PENALTY = 0.1

DEFAULT_REENTRY_PROGRESS = 75.0
STREAK_BREAK_DAYS = 1

# Sweeper-only chronic inactivity rules
MAX_DECAY_RATE = 0.1
DECAY_RATE_GROWTH_PER_DAY = 0.01
CHRONIC_INACTIVITY_DAYS = 7
CHRONIC_LEGACY_PENALTY = 0.02

DEFAULT_TASKS: dict[str, int] = {
    "food_logging": 10,
    "ai_consultation": 5,
}
FALLBACK_BASE_XP = 5


def new_profile(user_id: str) -> ProfileState:
    """Fresh profile: Iron, zero accrual, neutral hidden signals."""
    return ProfileState(user_id=user_id)


def new_task(task_name: str) -> TaskState:
    return TaskState(task_name=task_name, base_xp=DEFAULT_TASKS.get(task_name, FALLBACK_BASE_XP))


def default_tasks() -> list[TaskState]:
    return [new_task(name) for name in DEFAULT_TASKS]


def _completion_rate(completed: int, missed: int) -> float:
    total = completed + missed
    if total == 0:
        return 1.0
    return completed / total


def _advance_task(task: TaskState, now: datetime) -> TaskState:
    consecutive = task.consecutive_completions + 1
    difficulty = task.current_difficulty
    times_mastered = task.times_mastered

    if consecutive % DIFFICULTY_MILESTONE == 0 and difficulty < MAX_TASK_DIFFICULTY:
        difficulty += 1
        if difficulty == MAX_TASK_DIFFICULTY:
            times_mastered += 1

    return replace(
        task,
        consecutive_completions=consecutive,
        total_completions=task.total_completions + 1,
        current_period_completions=task.current_period_completions + 1,
        current_difficulty=difficulty,
        times_mastered=times_mastered,
        last_completion_at=now,
    )


def complete_task(
    profile: ProfileState,
    task: TaskState,
    now: datetime,
    options: CompletionOptions | None = None,
    challenges: Iterable[ChallengeState] = (),
    held_titles: Iterable[str] = (),
) -> Transition:
    """Apply a task completion.

    An invalid submission is rejected silently: the profile takes a hidden
    penalty and nothing else changes.
    """
    opts = options or CompletionOptions()
    result = validate_completion(task, opts)
    if not result.valid:
        logger.debug("Completion of %s rejected for %s (%s)", task.task_name, profile.user_id, result.reason)
        penalized, exploit = apply_penalty(profile, INVALID_COMPLETION_SEVERITY, now, detection_type="low_effort")
        return Transition(profile=penalized, task=task, exploits=[exploit], accepted=False)

    xp = effective_xp(task.base_xp * task.current_difficulty, profile)
    completion = CompletionRecord(
        task_name=task.task_name,
        effort_score=result.effort_score,
        xp_awarded=xp,
        completed_at=now,
        duration_minutes=opts.duration_minutes,
        reflection_text=opts.reflection_text,
        proof_url=opts.proof_url,
    )

    advanced = _advance_task(task, now)
    mastered = profile.mastered_tasks
    if advanced.times_mastered > task.times_mastered:
        mastered = mastered | {task.task_name}

    streak = profile.current_streak + 1
    completed = profile.total_tasks_completed + 1
    total_xp = profile.total_xp + xp

    updated = replace(
        profile,
        total_xp=total_xp,
        weekly_xp=profile.weekly_xp + xp,
        season_xp=profile.season_xp + xp,
        current_streak=streak,
        longest_streak=max(profile.longest_streak, streak),
        total_tasks_completed=completed,
        completion_rate=_completion_rate(completed, profile.total_tasks_missed),
        shadow_score=min(SHADOW_MAX, profile.shadow_score + result.effort_score * SHADOW_BONUS_PER_EFFORT),
        effort_quality=min(EFFORT_QUALITY_MAX, profile.effort_quality + EFFORT_QUALITY_STEP),
        mastered_tasks=mastered,
        last_activity_at=now,
        days_inactive=0,
    )

    # Challenge rewards count toward the same one-step promotion check.
    outcome = challenge_rules.on_task_completed(updated, challenges, task.task_name, now, held_titles)
    updated = outcome.profile
    total_xp = updated.total_xp

    notifications: list[NotificationEvent] = []
    promoted_to = None
    upper = next_rank(profile.current_rank)
    if upper is not None and total_xp >= RANK_XP_THRESHOLDS[upper]:
        promoted_to = upper
        updated = replace(updated, current_rank=upper, rank_progress=0.0)
        notifications.append(
            NotificationEvent(
                subtype="rank_up",
                title=f"Rank Achieved: {upper.value}",
                description="Your discipline has been recognized.",
                action_url="/profile/rank",
                payload={"old_rank": profile.current_rank.value, "new_rank": upper.value},
            )
        )
    else:
        updated = replace(
            updated,
            rank_progress=rank_progress(total_xp, profile.current_rank, current_progress=profile.rank_progress),
        )

    activity = ActivityRecord(
        activity_type="task_completion",
        activity_data={"task_name": task.task_name, "xp": xp},
        created_at=now,
        duration_seconds=(opts.duration_minutes or 0) * 60,
        input_length=len(opts.reflection_text or ""),
    )

    return Transition(
        profile=updated,
        task=advanced,
        challenges=outcome.challenges,
        completion=completion,
        activities=[activity],
        titles=outcome.titles,
        notifications=notifications + outcome.notifications,
        xp_awarded=xp,
        promoted_to=promoted_to,
    )


def record_failure(
    profile: ProfileState,
    task: TaskState,
    now: datetime,
    challenges: Iterable[ChallengeState] = (),
) -> Transition:
    """Register a missed task: streaks reset, legacy erodes past the miss limit."""
    misses = task.current_period_misses + 1
    missed_task = replace(task, current_period_misses=misses, consecutive_completions=0)

    legacy = profile.legacy_modifier
    if misses > task.acceptable_miss_limit:
        legacy = max(LEGACY_FLOOR, legacy - MISS_LIMIT_LEGACY_PENALTY)

    missed_total = profile.total_tasks_missed + 1
    updated = replace(
        profile,
        total_failures=profile.total_failures + 1,
        total_tasks_missed=missed_total,
        current_streak=0,
        completion_rate=_completion_rate(profile.total_tasks_completed, missed_total),
        legacy_modifier=legacy,
        recovery_factor=max(RECOVERY_FLOOR, profile.recovery_factor - RECOVERY_PENALTY),
    )

    activity = ActivityRecord(
        activity_type="task_missed",
        activity_data={"task_name": task.task_name, "period_misses": misses},
        created_at=now,
    )
    outcome = challenge_rules.on_task_missed(updated, challenges, task.task_name)

    return Transition(
        profile=outcome.profile,
        task=missed_task,
        challenges=outcome.challenges,
        activities=[activity],
        notifications=outcome.notifications,
    )


def _decay(profile: ProfileState, now: datetime, reentry_progress: float, chronic: bool) -> Transition:
    elapsed = elapsed_full_days(profile.last_activity_at, now)
    new_days = elapsed - profile.days_inactive
    if new_days <= 0:
        return Transition(profile=profile)

    amounts = decay_amounts(profile, new_days)
    progress = max(0.0, profile.rank_progress - amounts.rank_progress_decay)
    rank = profile.current_rank
    demoted_to = None
    if progress <= 0:
        lower = previous_rank(rank)
        if lower is not None:
            rank = demoted_to = lower
            progress = reentry_progress

    updated = replace(
        profile,
        total_xp=max(0, profile.total_xp - amounts.xp_decay),
        rank_progress=progress,
        current_rank=rank,
        shadow_score=max(0.0, profile.shadow_score - amounts.shadow_decay),
        current_streak=0 if elapsed > STREAK_BREAK_DAYS else profile.current_streak,
        days_inactive=elapsed,
    )

    if chronic:
        legacy = profile.legacy_modifier
        if elapsed > CHRONIC_INACTIVITY_DAYS:
            legacy = max(LEGACY_FLOOR, legacy - CHRONIC_LEGACY_PENALTY)
        updated = replace(
            updated,
            decay_rate=min(MAX_DECAY_RATE, profile.decay_rate * (1 + new_days * DECAY_RATE_GROWTH_PER_DAY)),
            legacy_modifier=legacy,
        )

    activity = ActivityRecord(
        activity_type="decay_applied",
        activity_data={
            "days_inactive": elapsed,
            "days_applied": new_days,
            "xp_lost": profile.total_xp - updated.total_xp,
            "rank_before": profile.current_rank.value,
            "rank_after": rank.value,
        },
        created_at=now,
    )
    return Transition(profile=updated, activities=[activity], demoted_to=demoted_to)


def apply_decay(
    profile: ProfileState,
    now: datetime,
    reentry_progress: float = DEFAULT_REENTRY_PROGRESS,
) -> Transition:
    """Decay for the full days elapsed since the last decay or activity.

    Days already accounted for in ``days_inactive`` are never decayed twice.
    Produces no notification.
    """
    return _decay(profile, now, reentry_progress, chronic=False)


def sweep_decay(
    profile: ProfileState,
    now: datetime,
    reentry_progress: float = DEFAULT_REENTRY_PROGRESS,
) -> Transition:
    """``apply_decay`` plus the scheduled sweeper's chronic-inactivity penalties."""
    return _decay(profile, now, reentry_progress, chronic=True)
