"""Immutable state and event records passed through engine transitions.

Transitions never mutate their inputs: they return new states via
``dataclasses.replace`` together with the append-only records and
notification events the caller must persist.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any

from discipline.engine.ranks import Rank


class ChallengeStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"
    ABANDONED = "abandoned"


@dataclass(frozen=True)
class ProfileState:
    user_id: str
    total_xp: int = 0
    weekly_xp: int = 0
    season_xp: int = 0
    current_rank: Rank = Rank.IRON
    rank_progress: float = 0.0
    # Hidden trust signals
    shadow_score: float = 50.0
    honesty_factor: float = 1.0
    effort_quality: float = 1.0
    recovery_factor: float = 1.0
    # Legacy
    total_failures: int = 0
    legacy_modifier: float = 1.0
    permanent_debuffs: frozenset[str] = frozenset()
    # Decay
    last_activity_at: datetime | None = None
    decay_rate: float = 0.02
    days_inactive: int = 0
    # Consistency
    completion_rate: float = 1.0
    current_streak: int = 0
    longest_streak: int = 0
    total_tasks_completed: int = 0
    total_tasks_missed: int = 0
    # Difficulty
    difficulty_multiplier: float = 1.0
    mastered_tasks: frozenset[str] = frozenset()
    # Season
    current_season: int = 1
    season_survived: bool = False
    # ISO week that weekly_xp and task period counters belong to
    week_iso: str | None = None


@dataclass(frozen=True)
class TaskState:
    task_name: str
    task_type: str = "daily"
    target_frequency: int = 1
    minimum_duration_minutes: int | None = None
    acceptable_miss_limit: int = 1
    current_period_completions: int = 0
    current_period_misses: int = 0
    total_completions: int = 0
    consecutive_completions: int = 0
    base_xp: int = 5
    current_difficulty: int = 1
    times_mastered: int = 0
    requires_proof: bool = False
    requires_reflection: bool = False
    last_completion_at: datetime | None = None
    period_start_at: datetime | None = None
    is_active: bool = True


@dataclass(frozen=True)
class DailyRequirement:
    """What a challenge demands each day: ``count`` completions of ``task_name``.

    ``extra`` carries any additional keys a caller stored alongside.
    """

    task_name: str
    count: int = 1
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {**self.extra, "task_name": self.task_name, "count": self.count}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DailyRequirement:
        extra = {k: v for k, v in data.items() if k not in ("task_name", "count")}
        return cls(
            task_name=str(data.get("task_name", "")),
            count=int(data.get("count", 1)),
            extra=extra,
        )


@dataclass(frozen=True)
class ChallengeState:
    challenge_name: str
    duration_days: int
    started_at: datetime
    ends_at: datetime
    daily_requirement: DailyRequirement
    id: int | None = None
    description: str | None = None
    zero_tolerance: bool = True
    status: ChallengeStatus = ChallengeStatus.ACTIVE
    days_completed: int = 0
    days_missed: int = 0
    xp_reward: int = 0
    title_reward: str | None = None
    is_exclusive: bool = False
    # Per-day crediting of the daily requirement
    progress_on: date | None = None
    progress_count: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.status is not ChallengeStatus.ACTIVE


@dataclass(frozen=True)
class CompletionRecord:
    task_name: str
    effort_score: float
    xp_awarded: int
    completed_at: datetime
    duration_minutes: int | None = None
    reflection_text: str | None = None
    proof_url: str | None = None
    is_valid: bool = True


@dataclass(frozen=True)
class ExploitRecord:
    detection_type: str
    penalty_type: str
    penalty_value: float
    detected_at: datetime
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ActivityRecord:
    activity_type: str
    activity_data: dict[str, Any]
    created_at: datetime
    duration_seconds: int | None = None
    input_length: int | None = None


@dataclass(frozen=True)
class TitleGrant:
    title_name: str
    title_description: str
    earned_from: str
    can_be_lost: bool
    source_id: str | None = None


@dataclass(frozen=True)
class NotificationEvent:
    """User-visible event. Only rank-ups and challenge outcomes produce these."""

    subtype: str
    title: str
    description: str
    action_url: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Transition:
    """Everything a single engine operation produced."""

    profile: ProfileState
    task: TaskState | None = None
    challenges: list[ChallengeState] = field(default_factory=list)
    completion: CompletionRecord | None = None
    exploits: list[ExploitRecord] = field(default_factory=list)
    activities: list[ActivityRecord] = field(default_factory=list)
    titles: list[TitleGrant] = field(default_factory=list)
    notifications: list[NotificationEvent] = field(default_factory=list)
    accepted: bool = True
    xp_awarded: int = 0
    promoted_to: Rank | None = None
    demoted_to: Rank | None = None
