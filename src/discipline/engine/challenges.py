"""Challenge lifecycle: creation, daily crediting, zero tolerance and expiry.

Status progression: active -> completed | failed | abandoned.
Every non-active status is terminal.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any

from discipline.engine.state import (
    ChallengeState,
    ChallengeStatus,
    DailyRequirement,
    NotificationEvent,
    ProfileState,
    TitleGrant,
)
from discipline.engine.time_utils import as_utc, utc_day
from discipline.errors import InvalidChallenge

logger = logging.getLogger(__name__)

DEFAULT_XP_PER_DAY = 50
MAX_DURATION_DAYS = 365

EXPIRY_LEGACY_PENALTY = 0.05
LEGACY_FLOOR = 0.5

VALID_TRANSITIONS: dict[ChallengeStatus, list[ChallengeStatus]] = {
    ChallengeStatus.ACTIVE: [ChallengeStatus.COMPLETED, ChallengeStatus.FAILED, ChallengeStatus.ABANDONED],
    ChallengeStatus.COMPLETED: [],
    ChallengeStatus.FAILED: [],
    ChallengeStatus.ABANDONED: [],
}

PRESET_CHALLENGES: list[dict[str, Any]] = [
    {
        "name": "7-Day Nutrition Streak",
        "description": "Log your meals every day for 7 consecutive days. No exceptions.",
        "duration_days": 7,
        "task_name": "food_logging",
        "xp_reward": 350,
        "title_reward": "Consistent Logger",
        "is_exclusive": False,
    },
    {
        "name": "14-Day Discipline Trial",
        "description": "Two weeks of daily meal logging. Miss a day, and you start over.",
        "duration_days": 14,
        "task_name": "food_logging",
        "xp_reward": 800,
        "title_reward": "Disciplined",
        "is_exclusive": True,
    },
    {
        "name": "30-Day Iron Will",
        "description": "A full month of unwavering commitment. Only the disciplined survive.",
        "duration_days": 30,
        "task_name": "food_logging",
        "xp_reward": 2000,
        "title_reward": "Iron Will",
        "is_exclusive": True,
    },
    {
        "name": "7-Day AI Mastery",
        "description": "Use AI assistants daily for a week to build the consultation habit.",
        "duration_days": 7,
        "task_name": "ai_consultation",
        "xp_reward": 250,
        "title_reward": None,
        "is_exclusive": False,
    },
]


@dataclass(frozen=True)
class ChallengeOutcome:
    profile: ProfileState
    challenges: list[ChallengeState] = field(default_factory=list)
    titles: list[TitleGrant] = field(default_factory=list)
    notifications: list[NotificationEvent] = field(default_factory=list)


def validate_transition(current: ChallengeStatus, target: ChallengeStatus) -> None:
    """Raise ValueError unless ``current -> target`` is allowed."""
    valid = VALID_TRANSITIONS.get(current, [])
    if target not in valid:
        raise ValueError(
            f"Invalid transition: {current.value} -> {target.value}. "
            f"Valid transitions: {[s.value for s in valid]}"
        )


def parse_requirement(requirement: DailyRequirement | dict[str, Any]) -> DailyRequirement:
    """Coerce and validate a daily requirement."""
    req = requirement if isinstance(requirement, DailyRequirement) else DailyRequirement.from_dict(requirement)
    if not req.task_name.strip():
        raise InvalidChallenge("daily_requirement.task_name must not be empty")
    if req.count < 1:
        raise InvalidChallenge("daily_requirement.count must be at least 1")
    return replace(req, task_name=req.task_name.strip())


def build_challenge(
    name: str,
    duration_days: int,
    requirement: DailyRequirement | dict[str, Any],
    now: datetime,
    *,
    description: str | None = None,
    xp_reward: int | None = None,
    title_reward: str | None = None,
    is_exclusive: bool = False,
    zero_tolerance: bool = True,
    xp_per_day: int = DEFAULT_XP_PER_DAY,
) -> ChallengeState:
    """Create a new active challenge after validating its inputs."""
    if not name or not name.strip():
        raise InvalidChallenge("challenge name must not be empty")
    if duration_days < 1 or duration_days > MAX_DURATION_DAYS:
        raise InvalidChallenge(f"duration_days must be between 1 and {MAX_DURATION_DAYS}")
    if xp_reward is not None and xp_reward < 0:
        raise InvalidChallenge("xp_reward must not be negative")

    started = as_utc(now)
    return ChallengeState(
        challenge_name=name.strip(),
        description=description,
        duration_days=duration_days,
        started_at=started,
        ends_at=started + timedelta(days=duration_days),
        daily_requirement=parse_requirement(requirement),
        zero_tolerance=zero_tolerance,
        xp_reward=xp_reward if xp_reward is not None else duration_days * xp_per_day,
        title_reward=title_reward or None,
        is_exclusive=is_exclusive,
    )


def _references(challenge: ChallengeState, task_name: str) -> bool:
    return not challenge.is_terminal and challenge.daily_requirement.task_name == task_name


def _complete(
    profile: ProfileState,
    challenge: ChallengeState,
    held_titles: set[str],
) -> tuple[ProfileState, ChallengeState, list[TitleGrant], list[NotificationEvent]]:
    validate_transition(challenge.status, ChallengeStatus.COMPLETED)
    done = replace(challenge, status=ChallengeStatus.COMPLETED)
    profile = replace(profile, total_xp=profile.total_xp + challenge.xp_reward)

    titles: list[TitleGrant] = []
    notifications = [
        NotificationEvent(
            subtype="challenge_completed",
            title=f"Challenge Completed: {challenge.challenge_name}",
            description=f"+{challenge.xp_reward} XP",
            action_url="/challenges",
            payload={"challenge_id": challenge.id, "xp_reward": challenge.xp_reward},
        )
    ]

    if challenge.title_reward and challenge.title_reward not in held_titles:
        titles.append(
            TitleGrant(
                title_name=challenge.title_reward,
                title_description=f"Earned by completing {challenge.challenge_name}",
                earned_from="challenge",
                can_be_lost=challenge.is_exclusive,
                source_id=str(challenge.id) if challenge.id is not None else None,
            )
        )
        held_titles.add(challenge.title_reward)
        notifications.append(
            NotificationEvent(
                subtype="title_earned",
                title=f"Title Earned: {challenge.title_reward}",
                description="A mark of your discipline.",
                action_url="/challenges",
                payload={"title": challenge.title_reward},
            )
        )
    return profile, done, titles, notifications


def _failure_notice(challenge: ChallengeState, description: str) -> NotificationEvent:
    return NotificationEvent(
        subtype="challenge_failed",
        title="Challenge Failed",
        description=description,
        action_url="/challenges",
        payload={"challenge_id": challenge.id},
    )


def on_task_completed(
    profile: ProfileState,
    challenges: Iterable[ChallengeState],
    task_name: str,
    now: datetime,
    held_titles: Iterable[str] = (),
) -> ChallengeOutcome:
    """Count a qualifying completion toward every challenge that requires it.

    A day is credited once, when that day's completions reach the
    requirement count.
    """
    today = utc_day(now)
    held = set(held_titles)
    updated: list[ChallengeState] = []
    titles: list[TitleGrant] = []
    notifications: list[NotificationEvent] = []

    for challenge in challenges:
        if not _references(challenge, task_name) or as_utc(now) > as_utc(challenge.ends_at):
            continue

        count = challenge.progress_count + 1 if challenge.progress_on == today else 1
        progressed = replace(challenge, progress_on=today, progress_count=count)

        if count == challenge.daily_requirement.count:
            progressed = replace(progressed, days_completed=progressed.days_completed + 1)
            if progressed.days_completed >= progressed.duration_days:
                profile, progressed, new_titles, new_notes = _complete(profile, progressed, held)
                titles += new_titles
                notifications += new_notes

        updated.append(progressed)

    return ChallengeOutcome(profile, updated, titles, notifications)


def on_task_missed(
    profile: ProfileState,
    challenges: Iterable[ChallengeState],
    task_name: str,
) -> ChallengeOutcome:
    """Record a miss. Zero-tolerance challenges fail immediately, no partial credit."""
    updated: list[ChallengeState] = []
    notifications: list[NotificationEvent] = []

    for challenge in challenges:
        if not _references(challenge, task_name):
            continue

        missed = replace(challenge, days_missed=challenge.days_missed + 1)
        if challenge.zero_tolerance:
            validate_transition(challenge.status, ChallengeStatus.FAILED)
            missed = replace(missed, status=ChallengeStatus.FAILED)
            notifications.append(
                _failure_notice(challenge, f"{challenge.challenge_name} requires zero tolerance.")
            )
        updated.append(missed)

    return ChallengeOutcome(profile, updated, [], notifications)


def finalize_expired(
    profile: ProfileState,
    challenge: ChallengeState,
    now: datetime,
    held_titles: Iterable[str] = (),
) -> ChallengeOutcome | None:
    """Close an active challenge whose window has passed; None if still running."""
    if challenge.is_terminal or as_utc(now) <= as_utc(challenge.ends_at):
        return None

    if challenge.days_completed >= challenge.duration_days:
        profile, done, titles, notes = _complete(profile, challenge, set(held_titles))
        return ChallengeOutcome(profile, [done], titles, notes)

    validate_transition(challenge.status, ChallengeStatus.FAILED)
    failed = replace(challenge, status=ChallengeStatus.FAILED)
    profile = replace(
        profile,
        total_failures=profile.total_failures + 1,
        legacy_modifier=max(LEGACY_FLOOR, profile.legacy_modifier - EXPIRY_LEGACY_PENALTY),
    )
    logger.debug("Challenge %s expired with %d/%d days", challenge.id, challenge.days_completed, challenge.duration_days)
    return ChallengeOutcome(
        profile,
        [failed],
        [],
        [_failure_notice(challenge, f"{challenge.challenge_name} ended before it was completed.")],
    )


def abandon(challenge: ChallengeState) -> ChallengeState:
    """Give up on a challenge. Silent and without penalty."""
    validate_transition(challenge.status, ChallengeStatus.ABANDONED)
    return replace(challenge, status=ChallengeStatus.ABANDONED)
