"""HTTP surface of the discipline API."""

from __future__ import annotations

import pytest

from discipline.engine.time_utils import utcnow
from discipline.errors import PersistenceFailure
from discipline.profiles import service as profile_service

HIDDEN_FIELDS = {
    "shadow_score",
    "honesty_factor",
    "effort_quality",
    "recovery_factor",
    "legacy_modifier",
    "permanent_debuffs",
    "decay_rate",
    "difficulty_multiplier",
}


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "healthy"}

    @pytest.mark.asyncio
    async def test_ready_without_redis(self, client):
        resp = await client.get("/ready")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ready", "checks": {"database": "ok", "redis": "disabled"}}

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, client):
        resp = await client.get("/health", headers={"X-Request-Id": "req-42"})
        assert resp.headers["x-request-id"] == "req-42"


class TestAuth:
    @pytest.mark.asyncio
    async def test_missing_user_header(self, client):
        resp = await client.get("/api/v1/discipline/me")
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_ranks_are_public(self, client):
        resp = await client.get("/api/v1/discipline/ranks")
        assert resp.status_code == 200
        ranks = resp.json()["ranks"]
        assert [r["rank"] for r in ranks] == ["Iron", "Steel", "Titan", "Ascendant", "Immortal"]
        assert ranks[0]["xp_required"] == 0


class TestTasks:
    @pytest.mark.asyncio
    async def test_complete_task(self, client, user_headers):
        resp = await client.post("/api/v1/discipline/tasks/food_logging/complete", json={}, headers=user_headers)
        assert resp.status_code == 200
        body = resp.json()
        assert body["accepted"] is True
        assert body["xp_awarded"] == 12
        assert body["rank"] == "Iron"

    @pytest.mark.asyncio
    async def test_invalid_task_name(self, client, user_headers):
        resp = await client.post("/api/v1/discipline/tasks/Bad-Name/complete", json={}, headers=user_headers)
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_list_tasks_after_completion(self, client, user_headers):
        await client.post("/api/v1/discipline/tasks/food_logging/complete", json={}, headers=user_headers)
        resp = await client.get("/api/v1/discipline/tasks", headers=user_headers)
        assert resp.status_code == 200
        tasks = {t["task_name"]: t for t in resp.json()["tasks"]}
        assert set(tasks) == {"ai_consultation", "food_logging"}
        assert tasks["food_logging"]["total_completions"] == 1

    @pytest.mark.asyncio
    async def test_fail_task(self, client, user_headers):
        resp = await client.post("/api/v1/discipline/tasks/food_logging/fail", headers=user_headers)
        assert resp.status_code == 200
        assert resp.json() == {"recorded": True}

    @pytest.mark.asyncio
    async def test_me_hides_trust_signals(self, client, user_headers):
        await client.post("/api/v1/discipline/tasks/food_logging/complete", json={}, headers=user_headers)
        resp = await client.get("/api/v1/discipline/me", headers=user_headers)
        assert resp.status_code == 200
        body = resp.json()
        assert body["total_xp"] == 12
        assert body["next_rank"] == "Steel"
        assert HIDDEN_FIELDS.isdisjoint(body)

    @pytest.mark.asyncio
    async def test_me_at_top_rank(self, client, user_headers, session_factory):
        async with session_factory() as db:
            row = await profile_service.get_or_create_profile(db, user_headers["X-User-Id"])
            row.current_rank = "Immortal"
            row.total_xp = 20_000
            row.rank_progress = 42.0
            row.last_activity_at = utcnow()
            await db.commit()

        resp = await client.get("/api/v1/discipline/me", headers=user_headers)
        assert resp.status_code == 200
        body = resp.json()
        assert body["rank"] == "Immortal"
        assert body["next_rank"] is None
        assert body["xp_to_next_rank"] is None
        assert body["rank_progress"] == 42.0

    @pytest.mark.asyncio
    async def test_persistence_failure_is_retryable(self, client, user_headers, monkeypatch):
        async def broken(*args, **kwargs):
            raise PersistenceFailure("database unavailable")

        monkeypatch.setattr(profile_service, "complete_task", broken)
        resp = await client.post("/api/v1/discipline/tasks/food_logging/complete", json={}, headers=user_headers)
        assert resp.status_code == 503
        assert resp.headers["retry-after"] == "1"


class TestChallenges:
    @pytest.mark.asyncio
    async def test_start_and_abandon(self, client, user_headers):
        resp = await client.post(
            "/api/v1/discipline/challenges",
            json={"name": "Focus", "duration_days": 3, "daily_requirement": {"task_name": "food_logging"}},
            headers=user_headers,
        )
        assert resp.status_code == 201
        created = resp.json()
        assert created["status"] == "active"
        assert created["xp_reward"] == 150

        resp = await client.post(f"/api/v1/discipline/challenges/{created['id']}/abandon", headers=user_headers)
        assert resp.status_code == 200
        assert resp.json()["status"] == "abandoned"

        resp = await client.get("/api/v1/discipline/challenges?status=active", headers=user_headers)
        assert resp.json()["challenges"] == []

    @pytest.mark.asyncio
    async def test_zero_duration_rejected(self, client, user_headers):
        resp = await client.post(
            "/api/v1/discipline/challenges",
            json={"name": "Nope", "duration_days": 0, "daily_requirement": {"task_name": "food_logging"}},
            headers=user_headers,
        )
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_abandon_unknown(self, client, user_headers):
        resp = await client.post("/api/v1/discipline/challenges/999/abandon", headers=user_headers)
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_presets(self, client, user_headers):
        resp = await client.get("/api/v1/discipline/challenges/presets")
        assert resp.status_code == 200
        assert len(resp.json()["presets"]) == 4

        resp = await client.post(
            "/api/v1/discipline/challenges/presets",
            json={"name": "7-Day Nutrition Streak"},
            headers=user_headers,
        )
        assert resp.status_code == 201
        assert resp.json()["title_reward"] == "Consistent Logger"

    @pytest.mark.asyncio
    async def test_unknown_preset(self, client, user_headers):
        resp = await client.post(
            "/api/v1/discipline/challenges/presets",
            json={"name": "Does Not Exist"},
            headers=user_headers,
        )
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_titles_empty(self, client, user_headers):
        resp = await client.get("/api/v1/discipline/titles", headers=user_headers)
        assert resp.status_code == 200
        assert resp.json() == {"titles": []}
