"""Discipline profile endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from discipline.database import get_session
from discipline.dependencies import get_current_user_id, get_redis_dep
from discipline.engine.exploit import ReflectionPolicy
from discipline.engine.ranks import RANK_ORDER, RANK_XP_THRESHOLDS
from discipline.engine.validator import CompletionOptions
from discipline.profiles import service
from discipline.profiles.schemas import (
    AllRanksResponse,
    CompleteTaskRequest,
    CompleteTaskResponse,
    FailTaskResponse,
    RankEntry,
    TaskListResponse,
    TaskResponse,
    VisibleStatsResponse,
)

router = APIRouter(prefix="/api/v1/discipline", tags=["Discipline"])

TaskName = Annotated[str, Path(min_length=1, max_length=64, pattern=r"^[a-z0-9_]+$")]


@router.get("/ranks", response_model=AllRanksResponse)
async def list_ranks():
    """All ranks with their XP thresholds."""
    return AllRanksResponse(
        ranks=[RankEntry(rank=r.value, xp_required=RANK_XP_THRESHOLDS[r]) for r in RANK_ORDER]
    )


@router.get("/me", response_model=VisibleStatsResponse)
async def get_my_stats(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
):
    """Current user's visible stats. Hidden trust signals are never exposed."""
    return VisibleStatsResponse(**await service.get_visible_stats(db, user_id))


@router.get("/tasks", response_model=TaskListResponse)
async def list_my_tasks(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
):
    tasks = await service.list_tasks(db, user_id)
    return TaskListResponse(
        tasks=[
            TaskResponse(
                task_name=t.task_name,
                task_type=t.task_type,
                base_xp=t.base_xp,
                current_difficulty=t.current_difficulty,
                consecutive_completions=t.consecutive_completions,
                total_completions=t.total_completions,
                current_period_completions=t.current_period_completions,
                requires_proof=t.requires_proof,
                requires_reflection=t.requires_reflection,
                minimum_duration_minutes=t.minimum_duration_minutes,
                last_completion_at=t.last_completion_at,
            )
            for t in tasks
        ]
    )


@router.post("/tasks/{task_name}/complete", response_model=CompleteTaskResponse)
async def complete_task(
    task_name: TaskName,
    body: CompleteTaskRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
):
    """Submit a completion.

    Rejections are reported with a generic message; the reason is never
    disclosed.
    """
    options = CompletionOptions(
        duration_minutes=body.duration_minutes,
        reflection_text=body.reflection_text,
        proof_url=body.proof_url,
        reflection_policy=ReflectionPolicy.STRICT if body.strict_reflection else ReflectionPolicy.STANDARD,
    )
    result = await service.complete_task(db, redis, user_id, task_name, options)
    return CompleteTaskResponse(
        accepted=result.accepted,
        message="Completion recorded." if result.accepted else service.REJECTION_MESSAGE,
        xp_awarded=result.xp_awarded,
        rank=result.rank,
        rank_progress=round(result.rank_progress, 2),
        promoted_to=result.promoted_to,
        challenges_completed=result.challenges_completed,
    )


@router.post("/tasks/{task_name}/fail", response_model=FailTaskResponse)
async def fail_task(
    task_name: TaskName,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
):
    """Report a missed task."""
    await service.record_failure(db, redis, user_id, task_name)
    return FailTaskResponse()
