"""
Tests for the two-phase pairing protocol.
"""
import asyncio
from unittest.mock import patch

import pytest
from redis.exceptions import RedisError


class TestPairRegistry:

    @pytest.mark.asyncio
    async def test_try_pair_writes_reciprocal_entries(self, pairs, store):
        assert await pairs.try_pair("a", "b") is True

        assert await pairs.get_partner("a") == "b"
        assert await pairs.get_partner("b") == "a"
        assert await store.ttl("pair:a") == 86400
        assert await store.ttl("pair:b") == 86400

    @pytest.mark.asyncio
    async def test_first_side_taken_writes_nothing(self, pairs):
        await pairs.try_pair("a", "x")

        assert await pairs.try_pair("a", "b") is False
        assert await pairs.get_partner("a") == "x"
        assert await pairs.get_partner("b") is None

    @pytest.mark.asyncio
    async def test_second_side_taken_rolls_back_first(self, pairs):
        await pairs.try_pair("b", "x")

        assert await pairs.try_pair("a", "b") is False
        assert await pairs.get_partner("a") is None
        assert await pairs.get_partner("b") == "x"

    @pytest.mark.asyncio
    async def test_self_pair_refused(self, pairs):
        assert await pairs.try_pair("a", "a") is False
        assert await pairs.get_partner("a") is None

    @pytest.mark.asyncio
    async def test_concurrent_claims_on_same_candidate(self, pairs):
        results = await asyncio.gather(
            pairs.try_pair("a", "c"),
            pairs.try_pair("b", "c"),
            pairs.try_pair("c", "d"),
        )

        assert sum(results) == 1
        partner_of_c = await pairs.get_partner("c")
        assert partner_of_c in ("a", "b", "d")
        assert await pairs.get_partner(partner_of_c) == "c"
        for uid in ("a", "b", "d"):
            if uid != partner_of_c:
                assert await pairs.get_partner(uid) is None

    @pytest.mark.asyncio
    async def test_unpair_removes_both_and_is_idempotent(self, pairs):
        await pairs.try_pair("a", "b")

        assert await pairs.unpair("a") == "b"
        assert await pairs.get_partner("a") is None
        assert await pairs.get_partner("b") is None
        assert await pairs.unpair("a") is None
        assert await pairs.unpair("b") is None

    @pytest.mark.asyncio
    async def test_unpair_leaves_partners_newer_pair_alone(self, pairs, store):
        # a's entry is stale: b has already moved on to c
        await store.set("pair:a", "b")
        await pairs.try_pair("b", "c")

        assert await pairs.unpair("a") == "b"
        assert await pairs.get_partner("b") == "c"
        assert await pairs.get_partner("c") == "b"

    @pytest.mark.asyncio
    async def test_pairs_expire(self, pairs, clock):
        await pairs.try_pair("a", "b")
        clock.advance(86400)

        assert await pairs.get_partner("a") is None
        assert await pairs.try_pair("a", "c") is True

    @pytest.mark.asyncio
    async def test_consistency_and_rollback(self, pairs, store):
        await pairs.try_pair("a", "b")
        assert await pairs.is_consistent("a", "b")

        await store.set("pair:b", "z")
        assert not await pairs.is_consistent("a", "b")

        await pairs.rollback("a", "b")
        assert await pairs.get_partner("a") is None
        assert await pairs.get_partner("b") == "z"

    @pytest.mark.asyncio
    async def test_store_failure_on_second_write_leaves_nothing(self, pairs, store):
        original_set = store.set
        writes = []

        async def flaky_set(name, value, ex=None, nx=False):
            writes.append(name)
            if len(writes) == 2:
                raise RedisError("connection reset")
            return await original_set(name, value, ex=ex, nx=nx)

        with patch.object(store, "set", side_effect=flaky_set):
            with pytest.raises(RedisError):
                await pairs.try_pair("a", "b")

        assert writes == ["pair:a", "pair:b"]
        assert await pairs.get_partner("a") is None
        assert await pairs.get_partner("b") is None
        assert await pairs.try_pair("a", "b") is True
