"""Per-profile mutation serialization."""

from __future__ import annotations

import asyncio

import pytest

from discipline.locks import ProfileLocks


class TestProfileLocks:
    @pytest.mark.asyncio
    async def test_same_profile_is_serialized(self):
        locks = ProfileLocks()
        order: list[str] = []

        async def mutate(tag: str) -> None:
            async with locks.hold("u1"):
                order.append(f"{tag}-start")
                await asyncio.sleep(0.01)
                order.append(f"{tag}-end")

        await asyncio.gather(mutate("a"), mutate("b"))
        assert order == ["a-start", "a-end", "b-start", "b-end"]

    @pytest.mark.asyncio
    async def test_different_profiles_run_concurrently(self):
        locks = ProfileLocks()
        inside = asyncio.Event()

        async def first() -> None:
            async with locks.hold("u1"):
                await asyncio.wait_for(inside.wait(), timeout=1)

        async def second() -> None:
            async with locks.hold("u2"):
                inside.set()

        await asyncio.gather(first(), second())

    @pytest.mark.asyncio
    async def test_is_locked(self):
        locks = ProfileLocks()
        assert locks.is_locked("u1") is False
        async with locks.hold("u1"):
            assert locks.is_locked("u1") is True
        assert locks.is_locked("u1") is False
