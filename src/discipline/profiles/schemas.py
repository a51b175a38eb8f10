"""Pydantic request and response models for profile endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


# --- Completion ---


class CompleteTaskRequest(BaseModel):
    duration_minutes: int | None = Field(default=None, ge=0)
    reflection_text: str | None = None
    proof_url: str | None = None
    strict_reflection: bool = False


class CompleteTaskResponse(BaseModel):
    accepted: bool
    message: str
    xp_awarded: int = 0
    rank: str
    rank_progress: float
    promoted_to: str | None = None
    challenges_completed: list[str] = []


class FailTaskResponse(BaseModel):
    recorded: bool = True


# --- Profile ---


class TitleResponse(BaseModel):
    title_name: str
    title_description: str | None = None
    earned_from: str | None = None
    can_be_lost: bool = False
    earned_at: datetime


class VisibleStatsResponse(BaseModel):
    rank: str
    rank_progress: float
    next_rank: str | None = None
    xp_to_next_rank: int | None = None
    total_xp: int
    weekly_xp: int
    season_xp: int
    current_streak: int
    longest_streak: int
    completion_rate: float
    total_tasks_completed: int
    current_season: int
    titles: list[TitleResponse] = []


class TaskResponse(BaseModel):
    task_name: str
    task_type: str
    base_xp: int
    current_difficulty: int
    consecutive_completions: int
    total_completions: int
    current_period_completions: int
    requires_proof: bool
    requires_reflection: bool
    minimum_duration_minutes: int | None = None
    last_completion_at: datetime | None = None


class TaskListResponse(BaseModel):
    tasks: list[TaskResponse]


# --- Ranks ---


class RankEntry(BaseModel):
    rank: str
    xp_required: int


class AllRanksResponse(BaseModel):
    ranks: list[RankEntry]
