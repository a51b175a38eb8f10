"""Pure numeric scoring: effective XP, rank progress and decay amounts."""

from __future__ import annotations

import math
from typing import NamedTuple

from discipline.engine.ranks import RANK_XP_THRESHOLDS, Rank, compute_rank_progress
from discipline.engine.state import ProfileState

MIN_COMPLETION_RATE = 0.85
CONSISTENCY_BONUS = 1.2
CONSISTENCY_PENALTY = 0.8
SHADOW_NORMALIZER = 50.0

XP_DECAY_PER_DAY = 0.02
RANK_PROGRESS_DECAY_PER_DAY = 0.05
SHADOW_DECAY_PER_DAY = 1.0


class DecayAmounts(NamedTuple):
    xp_decay: int
    rank_progress_decay: float
    shadow_decay: float


def consistency_bonus(completion_rate: float) -> float:
    return CONSISTENCY_BONUS if completion_rate >= MIN_COMPLETION_RATE else CONSISTENCY_PENALTY


def effective_xp(base_xp: int, profile: ProfileState) -> int:
    """Apply every hidden modifier to ``base_xp``.

    shadow_score / 50 is 1.0 for a fresh profile. Never negative.
    """
    shadow_modifier = profile.shadow_score / SHADOW_NORMALIZER
    raw = (
        base_xp
        * shadow_modifier
        * profile.legacy_modifier
        * profile.difficulty_multiplier
        * consistency_bonus(profile.completion_rate)
    )
    return max(0, math.floor(raw))


def rank_progress(
    new_total_xp: int,
    current_rank: Rank | str,
    rank_thresholds: dict[Rank, int] | None = None,
    current_progress: float = 0.0,
) -> float:
    """Progress within ``current_rank`` toward the next one, capped at 99."""
    return compute_rank_progress(
        new_total_xp,
        current_rank,
        current_progress=current_progress,
        thresholds=rank_thresholds or RANK_XP_THRESHOLDS,
    )


def decay_amounts(profile: ProfileState, days_inactive: int) -> DecayAmounts:
    if days_inactive <= 0:
        return DecayAmounts(0, 0.0, 0.0)
    return DecayAmounts(
        xp_decay=math.floor(profile.total_xp * XP_DECAY_PER_DAY * days_inactive),
        rank_progress_decay=profile.rank_progress * RANK_PROGRESS_DECAY_PER_DAY * days_inactive,
        shadow_decay=SHADOW_DECAY_PER_DAY * days_inactive,
    )
