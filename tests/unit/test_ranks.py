"""Rank table and progress interpolation."""

from discipline.engine.ranks import (
    RANK_ORDER,
    RANK_XP_THRESHOLDS,
    Rank,
    compute_rank_progress,
    next_rank,
    previous_rank,
    xp_to_next_rank,
)


class TestRankTable:
    def test_order_is_ascending_by_threshold(self):
        thresholds = [RANK_XP_THRESHOLDS[r] for r in RANK_ORDER]
        assert thresholds == sorted(thresholds)
        assert thresholds == [0, 500, 2000, 5000, 15000]

    def test_neighbours(self):
        assert next_rank(Rank.IRON) is Rank.STEEL
        assert previous_rank(Rank.STEEL) is Rank.IRON
        assert next_rank("Titan") is Rank.ASCENDANT

    def test_edges_have_no_neighbour(self):
        assert next_rank(Rank.IMMORTAL) is None
        assert previous_rank(Rank.IRON) is None


class TestComputeRankProgress:
    def test_halfway_through_iron(self):
        assert compute_rank_progress(250, Rank.IRON) == 50.0

    def test_steel_interpolates_from_its_own_floor(self):
        # (1250 - 500) / (2000 - 500)
        assert compute_rank_progress(1250, Rank.STEEL) == 50.0

    def test_capped_below_promotion(self):
        """Interpolation alone never reaches 100."""
        assert compute_rank_progress(499, Rank.IRON) == 99.0
        assert compute_rank_progress(10_000, Rank.IRON) == 99.0

    def test_never_negative(self):
        assert compute_rank_progress(100, Rank.STEEL) == 0.0

    def test_top_rank_holds_current_progress(self):
        assert compute_rank_progress(50_000, Rank.IMMORTAL, current_progress=42.0) == 42.0


class TestXpToNextRank:
    def test_remaining_xp(self):
        assert xp_to_next_rank(450, Rank.IRON) == 50

    def test_zero_when_past_threshold(self):
        assert xp_to_next_rank(600, Rank.IRON) == 0

    def test_none_at_top(self):
        assert xp_to_next_rank(20_000, Rank.IMMORTAL) is None
