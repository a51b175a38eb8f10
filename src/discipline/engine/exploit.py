"""Low-effort text detection and silent exploit penalties."""

from __future__ import annotations

import math
import re
from dataclasses import replace
from datetime import datetime
from enum import Enum
from typing import NamedTuple

from discipline.engine.state import ExploitRecord, ProfileState

LOW_EFFORT_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^(.)\1+$", re.DOTALL),  # one repeated character
    re.compile(r"^(.{1,3})\1{3,}$", re.DOTALL),  # short chunk repeated 4+ times
    re.compile(r"^[^\W\d_]+$"),  # letters only, no whitespace
    re.compile(r"^[\d\s]+$"),  # digits and whitespace only
)

STANDARD_MIN_LENGTH = 20
STRICT_MIN_LENGTH = 50
STRICT_MIN_WORDS = 10

SHADOW_FLOOR = 0.0
HONESTY_FLOOR = 0.5
HONESTY_PENALTY = 0.05
DIFFICULTY_FLOOR = 0.5
DIFFICULTY_PENALTY_PER_SEVERITY = 0.05

LOW_HONESTY_DEBUFF = "low_honesty"


class ReflectionPolicy(str, Enum):
    """Which gate a reflection must pass.

    STANDARD guards the interactive completion path. STRICT adds a
    character and word minimum for the standalone reflection flow.
    """

    STANDARD = "standard"
    STRICT = "strict"


class ReflectionCheck(NamedTuple):
    valid: bool
    reason: str | None = None


def is_low_effort_text(text: str) -> bool:
    """True if the trimmed text looks like filler or keyboard mash."""
    trimmed = text.strip()
    if not trimmed:
        return True
    return any(pattern.match(trimmed) for pattern in LOW_EFFORT_PATTERNS)


def check_reflection(text: str | None, policy: ReflectionPolicy = ReflectionPolicy.STANDARD) -> ReflectionCheck:
    """Gate a reflection under ``policy``.

    ``reason`` is for server-side logs only; callers show a generic message.
    """
    if not text:
        return ReflectionCheck(False, "missing")

    min_length = STRICT_MIN_LENGTH if policy is ReflectionPolicy.STRICT else STANDARD_MIN_LENGTH
    if len(text) < min_length:
        return ReflectionCheck(False, "too_short")

    if is_low_effort_text(text):
        return ReflectionCheck(False, "low_effort_pattern")

    if policy is ReflectionPolicy.STRICT and len(text.split()) < STRICT_MIN_WORDS:
        return ReflectionCheck(False, "too_few_words")

    return ReflectionCheck(True)


def apply_penalty(
    profile: ProfileState,
    severity: float,
    now: datetime,
    detection_type: str = "low_effort",
) -> tuple[ProfileState, ExploitRecord]:
    """Silently lower the hidden trust signals and log the detection."""
    honesty = max(HONESTY_FLOOR, profile.honesty_factor - HONESTY_PENALTY)
    debuffs = profile.permanent_debuffs
    if math.isclose(honesty, HONESTY_FLOOR) and LOW_HONESTY_DEBUFF not in debuffs:
        debuffs = debuffs | {LOW_HONESTY_DEBUFF}

    penalized = replace(
        profile,
        shadow_score=max(SHADOW_FLOOR, profile.shadow_score - severity),
        honesty_factor=honesty,
        difficulty_multiplier=max(
            DIFFICULTY_FLOOR,
            profile.difficulty_multiplier * (1 - severity * DIFFICULTY_PENALTY_PER_SEVERITY),
        ),
        permanent_debuffs=debuffs,
    )
    record = ExploitRecord(
        detection_type=detection_type,
        penalty_type="shadow_score_reduction",
        penalty_value=severity,
        detected_at=now,
    )
    return penalized, record
