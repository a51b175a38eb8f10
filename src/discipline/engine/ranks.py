"""Rank thresholds and progress computation.

Thresholds are cumulative total_xp. Rank changes are always a single
adjacent step; callers move one rank at a time.
"""

from __future__ import annotations

from enum import Enum


class Rank(str, Enum):
    IRON = "Iron"
    STEEL = "Steel"
    TITAN = "Titan"
    ASCENDANT = "Ascendant"
    IMMORTAL = "Immortal"


RANK_ORDER: list[Rank] = [Rank.IRON, Rank.STEEL, Rank.TITAN, Rank.ASCENDANT, Rank.IMMORTAL]

RANK_XP_THRESHOLDS: dict[Rank, int] = {
    Rank.IRON: 0,
    Rank.STEEL: 500,
    Rank.TITAN: 2000,
    Rank.ASCENDANT: 5000,
    Rank.IMMORTAL: 15000,
}

# Interpolated progress never reaches 100; promotion is its own event.
MAX_INTERPOLATED_PROGRESS = 99.0


def rank_index(rank: Rank | str) -> int:
    return RANK_ORDER.index(Rank(rank))


def next_rank(rank: Rank | str) -> Rank | None:
    """Rank directly above ``rank``, or None at the top."""
    idx = rank_index(rank)
    if idx + 1 >= len(RANK_ORDER):
        return None
    return RANK_ORDER[idx + 1]


def previous_rank(rank: Rank | str) -> Rank | None:
    """Rank directly below ``rank``, or None at the bottom."""
    idx = rank_index(rank)
    if idx == 0:
        return None
    return RANK_ORDER[idx - 1]


def compute_rank_progress(
    total_xp: int,
    current_rank: Rank | str,
    current_progress: float = 0.0,
    thresholds: dict[Rank, int] | None = None,
) -> float:
    """Linear progress (0-99) from the current rank's threshold to the next.

    At the top rank there is no next threshold and ``current_progress``
    is returned unchanged.
    """
    table = thresholds or RANK_XP_THRESHOLDS
    rank = Rank(current_rank)
    upper = next_rank(rank)
    if upper is None:
        return current_progress

    floor_xp = table[rank]
    span = table[upper] - floor_xp
    progress = (total_xp - floor_xp) / span * 100
    return max(0.0, min(MAX_INTERPOLATED_PROGRESS, progress))


def xp_to_next_rank(total_xp: int, current_rank: Rank | str) -> int | None:
    """XP still missing for the next rank, None at the top."""
    upper = next_rank(current_rank)
    if upper is None:
        return None
    return max(0, RANK_XP_THRESHOLDS[upper] - total_xp)
