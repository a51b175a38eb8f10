"""Profile service against a real (SQLite) database."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from discipline.db.models import (
    ActivityLog,
    DisciplineProfile,
    DisciplineTask,
    ExploitDetection,
    Notification,
    TaskCompletion,
)
from discipline.engine.validator import CompletionOptions
from discipline.profiles import service

USER = "user-1"


async def _profile(db: AsyncSession) -> DisciplineProfile:
    result = await db.execute(select(DisciplineProfile).where(DisciplineProfile.user_id == USER))
    return result.scalar_one()


async def _count(db: AsyncSession, model) -> int:
    return (await db.execute(select(func.count()).select_from(model).where(model.user_id == USER))).scalar_one()


@pytest_asyncio.fixture
async def seeded(db_session: AsyncSession, now):
    """Profile with default tasks already created."""
    await service.get_or_create_profile(db_session, USER, now)
    await db_session.commit()
    return db_session


class TestGetOrCreateProfile:
    @pytest.mark.asyncio
    async def test_seeds_default_tasks(self, seeded):
        tasks = await service.get_task_rows(seeded, USER)
        assert {name: t.base_xp for name, t in tasks.items()} == {"food_logging": 10, "ai_consultation": 5}

    @pytest.mark.asyncio
    async def test_is_idempotent(self, seeded, now):
        again = await service.get_or_create_profile(seeded, USER, now)
        await seeded.commit()
        assert again.user_id == USER
        assert await _count(seeded, DisciplineProfile) == 1
        assert await _count(seeded, DisciplineTask) == 2


class TestCompleteTask:
    @pytest.mark.asyncio
    async def test_first_completion_creates_everything(self, db_session, now):
        result = await service.complete_task(db_session, None, USER, "food_logging", now=now)

        assert result.accepted is True
        assert result.xp_awarded == 12
        assert result.rank == "Iron"
        profile = await _profile(db_session)
        assert profile.total_xp == 12
        assert profile.current_streak == 1
        assert profile.week_iso == "2026-W09"
        assert await _count(db_session, TaskCompletion) == 1
        assert await _count(db_session, ActivityLog) == 1

    @pytest.mark.asyncio
    async def test_unknown_task_is_created_lazily(self, db_session, now):
        result = await service.complete_task(db_session, None, USER, "journaling", now=now)
        assert result.xp_awarded == 6  # fallback base 5 * 1.2
        tasks = await service.get_task_rows(db_session, USER)
        assert "journaling" in tasks
        assert tasks["journaling"].total_completions == 1

    @pytest.mark.asyncio
    async def test_rejected_completion_only_logs_the_exploit(self, seeded, now):
        task = (await service.get_task_rows(seeded, USER))["food_logging"]
        task.requires_reflection = True
        await seeded.commit()

        result = await service.complete_task(
            seeded, None, USER, "food_logging", CompletionOptions(reflection_text="ok"), now=now
        )

        assert result.accepted is False
        assert result.xp_awarded == 0
        profile = await _profile(seeded)
        assert profile.total_xp == 0
        assert profile.shadow_score == 48.0
        assert await _count(seeded, TaskCompletion) == 0
        assert await _count(seeded, ExploitDetection) == 1
        assert await _count(seeded, Notification) == 0

    @pytest.mark.asyncio
    async def test_promotion_persists_a_notification(self, seeded, now):
        profile = await _profile(seeded)
        profile.total_xp = 495
        await seeded.commit()

        result = await service.complete_task(seeded, None, USER, "food_logging", now=now)

        assert result.promoted_to == "Steel"
        assert result.rank_progress == 0.0
        notes = (await seeded.execute(select(Notification).where(Notification.user_id == USER))).scalars().all()
        assert [n.subtype for n in notes] == ["rank_up"]
        assert notes[0].title == "Rank Achieved: Steel"

    @pytest.mark.asyncio
    async def test_pending_decay_is_applied_first(self, seeded, now):
        profile = await _profile(seeded)
        profile.total_xp = 1000
        profile.current_rank = "Steel"
        profile.rank_progress = 40.0
        profile.last_activity_at = now - timedelta(days=3)
        await seeded.commit()

        result = await service.complete_task(seeded, None, USER, "food_logging", now=now)

        profile = await _profile(seeded)
        assert profile.total_xp == 940 + result.xp_awarded
        assert profile.days_inactive == 0
        activity = (
            await seeded.execute(select(ActivityLog.activity_type).where(ActivityLog.user_id == USER).order_by(ActivityLog.id))
        ).scalars().all()
        assert activity == ["decay_applied", "task_completion"]

    @pytest.mark.asyncio
    async def test_concurrent_completions_are_not_lost(self, session_factory, now):
        async def submit() -> int:
            async with session_factory() as db:
                result = await service.complete_task(db, None, USER, "food_logging", now=now)
                return result.xp_awarded

        awarded = await asyncio.gather(submit(), submit())

        async with session_factory() as db:
            profile = await _profile(db)
            assert profile.total_tasks_completed == 2
            assert profile.total_xp == sum(awarded)


class TestRecordFailure:
    @pytest.mark.asyncio
    async def test_miss_resets_streak(self, db_session, now):
        await service.complete_task(db_session, None, USER, "food_logging", now=now)
        await service.record_failure(db_session, None, USER, "food_logging", now=now)

        profile = await _profile(db_session)
        assert profile.current_streak == 0
        assert profile.total_failures == 1
        assert profile.completion_rate == pytest.approx(0.5)
        task = (await service.get_task_rows(db_session, USER))["food_logging"]
        assert task.consecutive_completions == 0
        assert task.current_period_misses == 1

    @pytest.mark.asyncio
    async def test_failure_on_unknown_task_creates_it(self, db_session, now):
        await service.record_failure(db_session, None, USER, "meditation", now=now)
        tasks = await service.get_task_rows(db_session, USER)
        assert tasks["meditation"].current_period_misses == 1


class TestVisibleStats:
    HIDDEN = {
        "shadow_score",
        "honesty_factor",
        "effort_quality",
        "recovery_factor",
        "legacy_modifier",
        "permanent_debuffs",
    }

    @pytest.mark.asyncio
    async def test_hidden_signals_are_excluded(self, db_session, now):
        await service.complete_task(db_session, None, USER, "food_logging", now=now)
        stats = await service.get_visible_stats(db_session, USER, now)
        assert not self.HIDDEN & set(stats)
        assert stats["total_xp"] == 12
        assert stats["next_rank"] == "Steel"
        assert stats["xp_to_next_rank"] == 488

    @pytest.mark.asyncio
    async def test_unknown_user_gets_a_fresh_projection_without_writes(self, db_session, now):
        stats = await service.get_visible_stats(db_session, "nobody", now)
        assert stats["rank"] == "Iron"
        assert stats["total_xp"] == 0
        count = (await db_session.execute(select(func.count()).select_from(DisciplineProfile))).scalar_one()
        assert count == 0

    @pytest.mark.asyncio
    async def test_pending_decay_is_projected_not_persisted(self, seeded, now):
        profile = await _profile(seeded)
        profile.total_xp = 1000
        profile.last_activity_at = now - timedelta(days=10)
        await seeded.commit()

        stats = await service.get_visible_stats(seeded, USER, now)
        assert stats["total_xp"] == 800
        await seeded.refresh(profile)
        assert profile.total_xp == 1000

    @pytest.mark.asyncio
    async def test_top_rank_has_no_next_rank(self, seeded, now):
        profile = await _profile(seeded)
        profile.current_rank = "Immortal"
        profile.total_xp = 20_000
        profile.rank_progress = 42.0
        profile.last_activity_at = now
        await seeded.commit()

        stats = await service.get_visible_stats(seeded, USER, now)
        assert stats["rank"] == "Immortal"
        assert stats["next_rank"] is None
        assert stats["xp_to_next_rank"] is None
        assert stats["rank_progress"] == 42.0
