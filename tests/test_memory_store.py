"""
Tests for the in-memory store backend.
"""
import pytest


class TestInMemoryStore:
    """Redis command semantics the matchmaking stores rely on."""

    @pytest.mark.asyncio
    async def test_set_nx_only_writes_missing_key(self, store):
        assert await store.set("pair:1", "2", nx=True) is True
        assert await store.set("pair:1", "3", nx=True) is None
        assert await store.get("pair:1") == "2"

    @pytest.mark.asyncio
    async def test_keys_expire_on_clock(self, store, clock):
        await store.set("pair:1", "2", ex=10)
        clock.advance(9)
        assert await store.get("pair:1") == "2"
        assert await store.ttl("pair:1") == 1
        clock.advance(1)
        assert await store.get("pair:1") is None
        # Expired key no longer blocks NX writes
        assert await store.set("pair:1", "5", nx=True) is True

    @pytest.mark.asyncio
    async def test_list_push_pop_order(self, store):
        await store.rpush("q", "a", "b")
        await store.lpush("q", "z")
        assert await store.lrange("q", 0, -1) == ["z", "a", "b"]
        assert await store.lpop("q") == "z"
        assert await store.rpop("q") == "b"
        assert await store.llen("q") == 1

    @pytest.mark.asyncio
    async def test_lrem_and_lpos(self, store):
        await store.rpush("q", "a", "b", "a", "c", "a")
        assert await store.lpos("q", "c") == 3
        assert await store.lrem("q", 1, "a") == 1
        assert await store.lrange("q", 0, -1) == ["b", "a", "c", "a"]
        assert await store.lrem("q", -1, "a") == 1
        assert await store.lrange("q", 0, -1) == ["b", "a", "c"]
        assert await store.lrem("q", 0, "a") == 1
        assert await store.lpos("q", "a") is None

    @pytest.mark.asyncio
    async def test_empty_list_is_deleted(self, store):
        await store.rpush("q", "a")
        await store.lpop("q")
        assert await store.exists("q") == 0
        assert await store.lpop("q") is None

    @pytest.mark.asyncio
    async def test_ltrim_keeps_tail(self, store):
        await store.rpush("recent", "1", "2", "3", "4")
        await store.ltrim("recent", -2, -1)
        assert await store.lrange("recent", 0, -1) == ["3", "4"]

    @pytest.mark.asyncio
    async def test_expire_missing_key(self, store):
        assert await store.expire("missing", 10) is False
        assert await store.ttl("missing") == -2

    @pytest.mark.asyncio
    async def test_delete_counts_existing_keys(self, store):
        await store.set("a", "1")
        await store.rpush("b", "x")
        assert await store.delete("a", "b", "c") == 2
