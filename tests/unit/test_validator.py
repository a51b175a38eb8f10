"""Proof-of-work validation rules."""

import pytest

from discipline.engine.state import TaskState
from discipline.engine.validator import CompletionOptions, validate_completion

GOOD_REFLECTION = "Cooked at home and logged every ingredient carefully."


class TestDurationRule:
    def test_missing_duration_is_rejected(self):
        task = TaskState(task_name="workout", minimum_duration_minutes=30)
        result = validate_completion(task, CompletionOptions())
        assert result.valid is False
        assert result.effort_score == 0.0

    def test_short_duration_is_rejected(self):
        task = TaskState(task_name="workout", minimum_duration_minutes=30)
        assert validate_completion(task, CompletionOptions(duration_minutes=20)).valid is False

    def test_sufficient_duration_earns_bonus(self):
        task = TaskState(task_name="workout", minimum_duration_minutes=30)
        result = validate_completion(task, CompletionOptions(duration_minutes=30))
        assert result.valid is True
        assert result.effort_score == pytest.approx(1.2)


class TestReflectionRule:
    def test_fifteen_character_reflection_is_rejected(self):
        task = TaskState(task_name="food_logging", requires_reflection=True)
        result = validate_completion(task, CompletionOptions(reflection_text="Ate well today!"))
        assert result.valid is False
        assert result.effort_score == 0.0

    def test_low_effort_reflection_is_rejected(self):
        task = TaskState(task_name="food_logging", requires_reflection=True)
        result = validate_completion(task, CompletionOptions(reflection_text="a" * 40))
        assert result.valid is False

    def test_good_reflection_earns_bonus(self):
        task = TaskState(task_name="food_logging", requires_reflection=True)
        result = validate_completion(task, CompletionOptions(reflection_text=GOOD_REFLECTION))
        assert result.valid is True
        assert result.effort_score == pytest.approx(1.3)

    def test_duration_and_reflection_stack(self):
        task = TaskState(task_name="meditation", minimum_duration_minutes=10, requires_reflection=True)
        options = CompletionOptions(duration_minutes=15, reflection_text=GOOD_REFLECTION)
        assert validate_completion(task, options).effort_score == pytest.approx(1.5)


class TestProofRule:
    def test_missing_proof_is_rejected(self):
        task = TaskState(task_name="gym", requires_proof=True)
        assert validate_completion(task, CompletionOptions()).valid is False

    def test_proof_supplied(self):
        task = TaskState(task_name="gym", requires_proof=True)
        result = validate_completion(task, CompletionOptions(proof_url="https://example.com/p.jpg"))
        assert result.valid is True
        assert result.effort_score == 1.0


def test_plain_task_accepts_bare_submission():
    result = validate_completion(TaskState(task_name="food_logging"))
    assert result.valid is True
    assert result.effort_score == 1.0
