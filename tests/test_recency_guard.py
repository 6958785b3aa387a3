"""
Tests for the recent-partner cooldown.
"""
import pytest

from core.recency_guard import RecencyGuard


class TestRecencyGuard:

    @pytest.mark.asyncio
    async def test_record_is_symmetric(self, recency):
        await recency.record("a", "b")

        assert await recency.is_recent_partner("a", "b")
        assert await recency.is_recent_partner("b", "a")
        assert not await recency.is_recent_partner("a", "c")

    @pytest.mark.asyncio
    async def test_cooldown_expires(self, recency, clock):
        await recency.record("a", "b")

        clock.advance(1199)
        assert await recency.is_recent_partner("a", "b")

        clock.advance(1)
        assert not await recency.is_recent_partner("a", "b")
        assert not await recency.is_recent_partner("b", "a")

    @pytest.mark.asyncio
    async def test_new_pairing_refreshes_window(self, recency, clock):
        await recency.record("a", "b")
        clock.advance(1000)
        await recency.record("a", "c")
        clock.advance(1000)

        # a's list was refreshed by the second pairing, so b is still remembered
        assert await recency.is_recent_partner("a", "b")
        assert await recency.is_recent_partner("a", "c")
        # b's own list was not refreshed
        assert not await recency.is_recent_partner("b", "a")

    @pytest.mark.asyncio
    async def test_list_is_capped(self, store):
        guard = RecencyGuard(store, ttl_seconds=1200, max_partners=2)
        for partner in ("p1", "p2", "p3"):
            await guard.record("a", partner)

        assert await guard.recent_partners("a") == ["p2", "p3"]
        assert not await guard.is_recent_partner("a", "p1")

    @pytest.mark.asyncio
    async def test_clear(self, recency):
        await recency.record("a", "b")
        await recency.clear("a")

        assert await recency.recent_partners("a") == []
        assert await recency.is_recent_partner("b", "a")
