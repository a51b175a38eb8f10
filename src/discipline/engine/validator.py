"""Proof-of-work validation for task completions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple

from discipline.engine.exploit import ReflectionPolicy, check_reflection
from discipline.engine.state import TaskState

BASE_EFFORT = 1.0
DURATION_BONUS = 0.2
REFLECTION_BONUS = 0.3
MAX_EFFORT = 2.0


@dataclass(frozen=True)
class CompletionOptions:
    duration_minutes: int | None = None
    reflection_text: str | None = None
    proof_url: str | None = None
    reflection_policy: ReflectionPolicy = ReflectionPolicy.STANDARD


class ValidationResult(NamedTuple):
    valid: bool
    effort_score: float
    reason: str | None = None


def _rejected(reason: str) -> ValidationResult:
    return ValidationResult(False, 0.0, reason)


def validate_completion(task: TaskState, options: CompletionOptions | None = None) -> ValidationResult:
    """Check a submission against the task's proof requirements.

    Rules run in order and the first failure rejects with effort 0.
    """
    opts = options or CompletionOptions()
    effort = BASE_EFFORT

    if task.minimum_duration_minutes:
        if opts.duration_minutes is None or opts.duration_minutes < task.minimum_duration_minutes:
            return _rejected("duration")
        effort += DURATION_BONUS

    if task.requires_reflection:
        check = check_reflection(opts.reflection_text, opts.reflection_policy)
        if not check.valid:
            return _rejected(f"reflection:{check.reason}")
        effort += REFLECTION_BONUS

    if task.requires_proof and not opts.proof_url:
        return _rejected("proof")

    return ValidationResult(True, min(MAX_EFFORT, effort))
