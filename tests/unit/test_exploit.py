"""Low-effort detection and silent penalties."""

from datetime import datetime, timezone

import pytest

from discipline.engine.exploit import (
    LOW_HONESTY_DEBUFF,
    ReflectionPolicy,
    apply_penalty,
    check_reflection,
    is_low_effort_text,
)
from discipline.engine.state import ProfileState

NOW = datetime(2026, 2, 25, tzinfo=timezone.utc)


class TestIsLowEffortText:
    @pytest.mark.parametrize(
        "text",
        [
            "aaaaaaaaaa",
            "ababababab",
            "xyzxyzxyzxyz",
            "asdfghjklqwertyuiop",
            "12345 67890",
            "   ",
        ],
    )
    def test_filler_is_detected(self, text):
        assert is_low_effort_text(text) is True

    def test_real_sentence_passes(self):
        assert is_low_effort_text("I went for a 30 minute run today and felt great") is False

    def test_surrounding_whitespace_is_ignored(self):
        assert is_low_effort_text("   zzzzzzzz   ") is True


class TestCheckReflection:
    def test_standard_accepts_a_real_sentence(self):
        assert check_reflection("Logged every meal and skipped the late snack.").valid is True

    def test_standard_rejects_short_text(self):
        check = check_reflection("Ate well today!")
        assert check.valid is False
        assert check.reason == "too_short"

    def test_standard_rejects_mash_even_when_long(self):
        assert check_reflection("qwertyuiopasdfghjklzxcvbnm").valid is False

    def test_missing_text(self):
        assert check_reflection(None).valid is False

    def test_strict_requires_fifty_characters(self):
        text = "Logged every meal and skipped the late snack."
        assert check_reflection(text, ReflectionPolicy.STRICT).reason == "too_short"

    def test_strict_requires_ten_words(self):
        text = "Consistently-logged-breakfast, lunch-and-dinner without-any-shortcuts today"
        assert len(text) >= 50
        assert check_reflection(text, ReflectionPolicy.STRICT).reason == "too_few_words"

    def test_strict_accepts_a_full_reflection(self):
        text = "Today I logged all three meals, drank enough water and avoided sugary snacks."
        assert check_reflection(text, ReflectionPolicy.STRICT).valid is True


class TestApplyPenalty:
    def test_lowers_hidden_signals(self):
        profile, record = apply_penalty(ProfileState(user_id="u1"), 2, NOW)
        assert profile.shadow_score == 48.0
        assert profile.honesty_factor == pytest.approx(0.95)
        assert profile.difficulty_multiplier == pytest.approx(0.9)
        assert record.detection_type == "low_effort"
        assert record.penalty_type == "shadow_score_reduction"
        assert record.penalty_value == 2
        assert record.detected_at == NOW

    def test_floors_hold(self):
        start = ProfileState(user_id="u1", shadow_score=1.0, honesty_factor=0.5, difficulty_multiplier=0.5)
        profile, _ = apply_penalty(start, 5, NOW)
        assert profile.shadow_score == 0.0
        assert profile.honesty_factor == 0.5
        assert profile.difficulty_multiplier == 0.5

    def test_honesty_floor_adds_permanent_debuff(self):
        profile, _ = apply_penalty(ProfileState(user_id="u1", honesty_factor=0.55), 1, NOW)
        assert profile.honesty_factor == pytest.approx(0.5)
        assert LOW_HONESTY_DEBUFF in profile.permanent_debuffs

    def test_input_is_not_mutated(self):
        original = ProfileState(user_id="u1")
        apply_penalty(original, 2, NOW)
        assert original.shadow_score == 50.0
