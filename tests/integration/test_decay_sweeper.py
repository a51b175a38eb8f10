"""Scheduled decay sweep."""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import select

from discipline.challenges import service as challenge_service
from discipline.db.models import ActivityLog, DisciplineProfile, Notification
from discipline.decay import sweeper
from discipline.errors import PersistenceFailure
from discipline.profiles import service as profile_service


async def _make_profile(db, user_id, now, **fields) -> DisciplineProfile:
    row = await profile_service.get_or_create_profile(db, user_id, now)
    for key, value in fields.items():
        setattr(row, key, value)
    await db.commit()
    return row


class TestRunDecaySweep:
    @pytest.mark.asyncio
    async def test_decays_inactive_profiles(self, db_session, now):
        await _make_profile(db_session, "idle", now, total_xp=1000, last_activity_at=now - timedelta(days=10))
        await _make_profile(db_session, "busy", now, total_xp=1000, last_activity_at=now - timedelta(hours=2))

        summary = await sweeper.run_decay_sweep(db_session, None, now)

        assert summary.processed == 1
        assert summary.demotions == 0
        idle = (await db_session.execute(select(DisciplineProfile).where(DisciplineProfile.user_id == "idle"))).scalar_one()
        busy = (await db_session.execute(select(DisciplineProfile).where(DisciplineProfile.user_id == "busy"))).scalar_one()
        assert idle.total_xp == 800
        assert idle.decay_rate == pytest.approx(0.022)
        assert idle.legacy_modifier == pytest.approx(0.98)
        assert idle.days_inactive == 10
        assert busy.total_xp == 1000

    @pytest.mark.asyncio
    async def test_rerun_does_not_double_apply(self, db_session, now):
        await _make_profile(db_session, "idle", now, total_xp=1000, last_activity_at=now - timedelta(days=10))

        await sweeper.run_decay_sweep(db_session, None, now)
        idle = (await db_session.execute(select(DisciplineProfile))).scalar_one()
        version, stamped = idle.version, idle.updated_at

        second = await sweeper.run_decay_sweep(db_session, None, now + timedelta(hours=1))

        assert second.processed == 0
        assert idle.total_xp == 800
        assert idle.version == version
        assert idle.updated_at == stamped
        logs = (
            (await db_session.execute(select(ActivityLog).where(ActivityLog.activity_type == "decay_applied")))
            .scalars()
            .all()
        )
        assert len(logs) == 1
        assert logs[0].activity_data["xp_lost"] == 200

    @pytest.mark.asyncio
    async def test_counts_demotions_silently(self, db_session, now):
        await _make_profile(
            db_session,
            "fallen",
            now,
            total_xp=600,
            current_rank="Steel",
            rank_progress=5.0,
            last_activity_at=now - timedelta(days=20),
        )

        summary = await sweeper.run_decay_sweep(db_session, None, now)

        assert summary.demotions == 1
        row = (await db_session.execute(select(DisciplineProfile))).scalar_one()
        assert row.current_rank == "Iron"
        assert row.rank_progress == 75.0
        assert (await db_session.execute(select(Notification))).scalars().all() == []

    @pytest.mark.asyncio
    async def test_expired_challenge_fails_with_penalty(self, db_session, now):
        await challenge_service.start_challenge(
            db_session, "quitter", "Week", 7, {"task_name": "food_logging"}, now=now - timedelta(days=10)
        )

        summary = await sweeper.run_decay_sweep(db_session, None, now)

        assert summary.challenges_failed == 1
        (challenge,) = await challenge_service.list_challenges(db_session, "quitter")
        assert challenge.status == "failed"
        profile = (await db_session.execute(select(DisciplineProfile))).scalar_one()
        assert profile.total_failures == 1
        assert profile.legacy_modifier == pytest.approx(0.95)
        subtypes = (await db_session.execute(select(Notification.subtype))).scalars().all()
        assert subtypes == ["challenge_failed"]

    @pytest.mark.asyncio
    async def test_one_failure_does_not_stop_the_sweep(self, db_session, now, monkeypatch):
        await _make_profile(db_session, "a-broken", now, total_xp=1000, last_activity_at=now - timedelta(days=3))
        await _make_profile(db_session, "b-fine", now, total_xp=1000, last_activity_at=now - timedelta(days=3))

        real = sweeper.sweep_profile

        async def flaky(db, redis, user_id, when, summary):
            if user_id == "a-broken":
                raise PersistenceFailure("boom")
            await real(db, redis, user_id, when, summary)

        monkeypatch.setattr(sweeper, "sweep_profile", flaky)
        summary = await sweeper.run_decay_sweep(db_session, None, now)

        assert summary.failed == 1
        assert summary.processed == 1
        fine = (await db_session.execute(select(DisciplineProfile).where(DisciplineProfile.user_id == "b-fine"))).scalar_one()
        assert fine.total_xp == 940
