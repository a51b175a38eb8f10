"""Pydantic request and response models for challenge endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class DailyRequirementModel(BaseModel):
    task_name: str = Field(min_length=1, max_length=64)
    count: int = Field(default=1, ge=1)


class StartChallengeRequest(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    duration_days: int = Field(ge=1, le=365)
    daily_requirement: DailyRequirementModel
    description: str | None = None
    xp_reward: int | None = Field(default=None, ge=0)
    title_reward: str | None = Field(default=None, max_length=64)
    is_exclusive: bool = False
    zero_tolerance: bool = True


class StartPresetRequest(BaseModel):
    name: str


class ChallengeResponse(BaseModel):
    id: int
    challenge_name: str
    description: str | None = None
    duration_days: int
    started_at: datetime
    ends_at: datetime
    daily_requirement: dict
    zero_tolerance: bool
    status: str
    days_completed: int
    days_missed: int
    xp_reward: int
    title_reward: str | None = None
    is_exclusive: bool


class ChallengeListResponse(BaseModel):
    challenges: list[ChallengeResponse]


class PresetResponse(BaseModel):
    name: str
    description: str
    duration_days: int
    task_name: str
    xp_reward: int
    title_reward: str | None = None
    is_exclusive: bool


class PresetListResponse(BaseModel):
    presets: list[PresetResponse]


class UserTitleResponse(BaseModel):
    title_name: str
    title_description: str | None = None
    earned_from: str | None = None
    can_be_lost: bool
    is_active: bool
    earned_at: datetime


class UserTitlesResponse(BaseModel):
    titles: list[UserTitleResponse]
