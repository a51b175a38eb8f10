"""Challenge endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from discipline.challenges import service
from discipline.challenges.schemas import (
    ChallengeListResponse,
    ChallengeResponse,
    PresetListResponse,
    PresetResponse,
    StartChallengeRequest,
    StartPresetRequest,
    UserTitleResponse,
    UserTitlesResponse,
)
from discipline.database import get_session
from discipline.db.models import DisciplineChallenge
from discipline.dependencies import get_current_user_id
from discipline.engine.challenges import PRESET_CHALLENGES
from discipline.engine.state import ChallengeStatus

router = APIRouter(prefix="/api/v1/discipline", tags=["Discipline Challenges"])


def _to_response(row: DisciplineChallenge) -> ChallengeResponse:
    return ChallengeResponse(
        id=row.id,
        challenge_name=row.challenge_name,
        description=row.description,
        duration_days=row.duration_days,
        started_at=row.started_at,
        ends_at=row.ends_at,
        daily_requirement={
            "task_name": row.daily_requirement.get("task_name"),
            "count": row.daily_requirement.get("count", 1),
        },
        zero_tolerance=row.zero_tolerance,
        status=row.status,
        days_completed=row.days_completed,
        days_missed=row.days_missed,
        xp_reward=row.xp_reward,
        title_reward=row.title_reward,
        is_exclusive=row.is_exclusive,
    )


@router.get("/challenges/presets", response_model=PresetListResponse)
async def list_presets():
    """Preset challenges a user can start."""
    return PresetListResponse(presets=[PresetResponse(**p) for p in PRESET_CHALLENGES])


@router.get("/challenges", response_model=ChallengeListResponse)
async def list_my_challenges(
    status: ChallengeStatus | None = Query(None),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
):
    rows = await service.list_challenges(db, user_id, status)
    return ChallengeListResponse(challenges=[_to_response(r) for r in rows])


@router.post("/challenges", response_model=ChallengeResponse, status_code=201)
async def start_challenge(
    body: StartChallengeRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
):
    """Start a custom challenge."""
    row = await service.start_challenge(
        db,
        user_id,
        body.name,
        body.duration_days,
        body.daily_requirement.model_dump(),
        description=body.description,
        xp_reward=body.xp_reward,
        title_reward=body.title_reward,
        is_exclusive=body.is_exclusive,
        zero_tolerance=body.zero_tolerance,
    )
    return _to_response(row)


@router.post("/challenges/presets", response_model=ChallengeResponse, status_code=201)
async def start_preset(
    body: StartPresetRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
):
    """Start one of the preset challenges by name."""
    row = await service.start_preset(db, user_id, body.name)
    return _to_response(row)


@router.post("/challenges/{challenge_id}/abandon", response_model=ChallengeResponse)
async def abandon_challenge(
    challenge_id: int,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
):
    row = await service.abandon_challenge(db, user_id, challenge_id)
    return _to_response(row)


@router.get("/titles", response_model=UserTitlesResponse)
async def list_my_titles(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
):
    rows = await service.list_titles(db, user_id)
    return UserTitlesResponse(
        titles=[
            UserTitleResponse(
                title_name=t.title_name,
                title_description=t.title_description,
                earned_from=t.earned_from,
                can_be_lost=t.can_be_lost,
                is_active=t.is_active,
                earned_at=t.earned_at,
            )
            for t in rows
        ]
    )
