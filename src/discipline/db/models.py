"""ORM models for the discipline engine.

``task_completions``, ``exploit_detections`` and
``discipline_activity_log`` are append-only.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from discipline.db.base import Base, BigIntPK, JSONType


# ---------------------------------------------------------------------------
# Profiles and tasks
# ---------------------------------------------------------------------------


class DisciplineProfile(Base):
    """One row per user. ``version`` guards against lost updates."""

    __tablename__ = "discipline_profiles"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)

    total_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    weekly_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    season_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_rank: Mapped[str] = mapped_column(String(16), nullable=False, default="Iron")
    rank_progress: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    # --- Hidden trust signals (never rendered) ---
    shadow_score: Mapped[float] = mapped_column(Float, nullable=False, default=50.0)
    honesty_factor: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    effort_quality: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    recovery_factor: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)

    # --- Legacy ---
    total_failures: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    legacy_modifier: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    permanent_debuffs: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)

    # --- Decay ---
    last_activity_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
    decay_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.02)
    days_inactive: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # --- Consistency ---
    completion_rate: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_tasks_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_tasks_missed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # --- Difficulty ---
    difficulty_multiplier: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    mastered_tasks: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)

    # --- Season ---
    current_season: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    season_survived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    week_iso: Mapped[str | None] = mapped_column(String(10), nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __mapper_args__ = {"version_id_col": version}  # noqa: RUF012


class DisciplineTask(Base):
    """A habit the user is tracked on. UNIQUE(user_id, task_name)."""

    __tablename__ = "discipline_tasks"
    __table_args__ = (
        UniqueConstraint("user_id", "task_name", name="uq_discipline_tasks_user_task"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    task_name: Mapped[str] = mapped_column(String(64), nullable=False)
    task_type: Mapped[str] = mapped_column(String(16), nullable=False, default="daily")
    target_frequency: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    minimum_duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    acceptable_miss_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    current_period_completions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_period_misses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    period_start_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    total_completions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    consecutive_completions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    base_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    current_difficulty: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    times_mastered: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    requires_proof: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    requires_reflection: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_completion_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)


# ---------------------------------------------------------------------------
# Challenges and titles
# ---------------------------------------------------------------------------


class DisciplineChallenge(Base):
    """Time-boxed commitment. Never deleted; status is terminal once not active."""

    __tablename__ = "discipline_challenges"
    __table_args__ = (
        Index("idx_discipline_challenges_status", "status"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    challenge_name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration_days: Mapped[int] = mapped_column(Integer, nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ends_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    daily_requirement: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    zero_tolerance: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="active")
    days_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    days_missed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    progress_on: Mapped[date | None] = mapped_column(Date, nullable=True)
    progress_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    xp_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    title_reward: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_exclusive: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class UserTitle(Base):
    """Titles earned from challenges. ``can_be_lost`` marks exclusive titles."""

    __tablename__ = "user_titles"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    title_name: Mapped[str] = mapped_column(String(64), nullable=False)
    title_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    earned_from: Mapped[str | None] = mapped_column(String(32), nullable=True)
    source_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    can_be_lost: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    earned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Append-only logs
# ---------------------------------------------------------------------------


class TaskCompletion(Base):
    """Snapshot of one accepted completion. Never updated."""

    __tablename__ = "task_completions"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    task_id: Mapped[int | None] = mapped_column(
        BigIntPK, ForeignKey("discipline_tasks.id", ondelete="SET NULL"), nullable=True
    )
    duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reflection_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    proof_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    effort_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    xp_awarded: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_valid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class ExploitDetection(Base):
    """Audit trail of silent penalties. Never read back into scoring."""

    __tablename__ = "exploit_detections"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    detection_type: Mapped[str] = mapped_column(String(32), nullable=False)
    penalty_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    penalty_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    details: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    detected_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class ActivityLog(Base):
    """Completions and decay applications, kept for pattern analysis."""

    __tablename__ = "discipline_activity_log"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    activity_type: Mapped[str] = mapped_column(String(32), nullable=False)
    activity_data: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    duration_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    input_length: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Notifications and seasons
# ---------------------------------------------------------------------------


class Notification(Base):
    """User-visible events: rank-ups and challenge outcomes."""

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(32), nullable=False, default="discipline")
    subtype: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    action_url: Mapped[str | None] = mapped_column(String(256), nullable=True)
    action_label: Mapped[str | None] = mapped_column(String(64), nullable=True)
    payload: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class DisciplineSeason(Base):
    """Competitive season. At most one is active."""

    __tablename__ = "discipline_seasons"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    season_number: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    theme: Mapped[str | None] = mapped_column(String(64), nullable=True)
    survival_xp_threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rank_retention_threshold: Mapped[str] = mapped_column(String(16), nullable=False, default="Iron")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ends_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
