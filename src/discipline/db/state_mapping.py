"""Conversion between ORM rows and engine state records."""

from __future__ import annotations

from dataclasses import fields
from datetime import datetime

from discipline.db.models import (
    ActivityLog,
    DisciplineChallenge,
    DisciplineProfile,
    DisciplineTask,
    ExploitDetection,
    TaskCompletion,
    UserTitle,
)
from discipline.engine.ranks import Rank
from discipline.engine.state import (
    ActivityRecord,
    ChallengeState,
    ChallengeStatus,
    CompletionRecord,
    DailyRequirement,
    ExploitRecord,
    ProfileState,
    TaskState,
    TitleGrant,
)
from discipline.engine.time_utils import as_utc

_SET_FIELDS = ("permanent_debuffs", "mastered_tasks")


def _optional_utc(value: datetime | None) -> datetime | None:
    return as_utc(value) if value is not None else None


def profile_state(row: DisciplineProfile) -> ProfileState:
    values = {f.name: getattr(row, f.name) for f in fields(ProfileState)}
    values["current_rank"] = Rank(row.current_rank)
    values["last_activity_at"] = _optional_utc(row.last_activity_at)
    for name in _SET_FIELDS:
        values[name] = frozenset(values[name] or ())
    return ProfileState(**values)


def apply_profile(row: DisciplineProfile, state: ProfileState, now: datetime) -> None:
    for f in fields(ProfileState):
        if f.name == "user_id":
            continue
        value = getattr(state, f.name)
        if f.name in _SET_FIELDS:
            value = sorted(value)
        elif f.name == "current_rank":
            value = Rank(value).value
        setattr(row, f.name, value)
    row.updated_at = now


def new_profile_row(state: ProfileState, now: datetime) -> DisciplineProfile:
    row = DisciplineProfile(user_id=state.user_id, created_at=now)
    apply_profile(row, state, now)
    return row


def task_state(row: DisciplineTask) -> TaskState:
    values = {f.name: getattr(row, f.name) for f in fields(TaskState)}
    values["last_completion_at"] = _optional_utc(row.last_completion_at)
    values["period_start_at"] = _optional_utc(row.period_start_at)
    return TaskState(**values)


def apply_task(row: DisciplineTask, state: TaskState) -> None:
    for f in fields(TaskState):
        if f.name != "task_name":
            setattr(row, f.name, getattr(state, f.name))


def new_task_row(user_id: str, state: TaskState, now: datetime) -> DisciplineTask:
    row = DisciplineTask(user_id=user_id, task_name=state.task_name, created_at=now)
    apply_task(row, state)
    return row


def challenge_state(row: DisciplineChallenge) -> ChallengeState:
    return ChallengeState(
        id=row.id,
        challenge_name=row.challenge_name,
        description=row.description,
        duration_days=row.duration_days,
        started_at=as_utc(row.started_at),
        ends_at=as_utc(row.ends_at),
        daily_requirement=DailyRequirement.from_dict(row.daily_requirement or {}),
        zero_tolerance=row.zero_tolerance,
        status=ChallengeStatus(row.status),
        days_completed=row.days_completed,
        days_missed=row.days_missed,
        xp_reward=row.xp_reward,
        title_reward=row.title_reward,
        is_exclusive=row.is_exclusive,
        progress_on=row.progress_on,
        progress_count=row.progress_count,
    )


def apply_challenge(row: DisciplineChallenge, state: ChallengeState) -> None:
    row.status = state.status.value
    row.days_completed = state.days_completed
    row.days_missed = state.days_missed
    row.progress_on = state.progress_on
    row.progress_count = state.progress_count


def new_challenge_row(user_id: str, state: ChallengeState, now: datetime) -> DisciplineChallenge:
    return DisciplineChallenge(
        user_id=user_id,
        challenge_name=state.challenge_name,
        description=state.description,
        duration_days=state.duration_days,
        started_at=state.started_at,
        ends_at=state.ends_at,
        daily_requirement=state.daily_requirement.to_dict(),
        zero_tolerance=state.zero_tolerance,
        status=state.status.value,
        days_completed=state.days_completed,
        days_missed=state.days_missed,
        progress_count=state.progress_count,
        xp_reward=state.xp_reward,
        title_reward=state.title_reward,
        is_exclusive=state.is_exclusive,
        created_at=now,
    )


def completion_row(user_id: str, task_id: int | None, record: CompletionRecord) -> TaskCompletion:
    return TaskCompletion(
        user_id=user_id,
        task_id=task_id,
        duration_minutes=record.duration_minutes,
        reflection_text=record.reflection_text,
        proof_url=record.proof_url,
        effort_score=record.effort_score,
        xp_awarded=record.xp_awarded,
        is_valid=record.is_valid,
        completed_at=record.completed_at,
    )


def exploit_row(user_id: str, record: ExploitRecord) -> ExploitDetection:
    return ExploitDetection(
        user_id=user_id,
        detection_type=record.detection_type,
        penalty_type=record.penalty_type,
        penalty_value=record.penalty_value,
        details=record.details or None,
        detected_at=record.detected_at,
    )


def activity_row(user_id: str, record: ActivityRecord) -> ActivityLog:
    return ActivityLog(
        user_id=user_id,
        activity_type=record.activity_type,
        activity_data=record.activity_data,
        duration_seconds=record.duration_seconds,
        input_length=record.input_length,
        created_at=record.created_at,
    )


def title_row(user_id: str, grant: TitleGrant, now: datetime) -> UserTitle:
    return UserTitle(
        user_id=user_id,
        title_name=grant.title_name,
        title_description=grant.title_description,
        earned_from=grant.earned_from,
        source_id=grant.source_id,
        can_be_lost=grant.can_be_lost,
        is_active=True,
        earned_at=now,
    )
