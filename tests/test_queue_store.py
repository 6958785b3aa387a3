"""
Tests for the tier queue store.
"""
import pytest

from core.memory_store import InMemoryStore
from core.queue_store import QueueStore
from core.tiers import Tier


class TestQueueStore:

    @pytest.mark.asyncio
    async def test_claim_is_fifo(self, queues):
        await queues.enqueue(Tier.FREE, "f1")
        await queues.enqueue(Tier.FREE, "f2")

        assert await queues.claim(Tier.FREE) == "f1"
        assert await queues.claim(Tier.FREE) == "f2"
        assert await queues.claim(Tier.FREE) is None

    @pytest.mark.asyncio
    async def test_peek_does_not_remove(self, queues):
        for uid in ("a", "b", "c"):
            await queues.enqueue(Tier.VIP_ANY, uid)

        assert await queues.peek(Tier.VIP_ANY, 2) == ["a", "b"]
        assert await queues.peek(Tier.VIP_ANY, 0) == []
        assert await queues.length(Tier.VIP_ANY) == 3

    @pytest.mark.asyncio
    async def test_requeue_goes_to_tail(self, queues):
        await queues.enqueue(Tier.FREE, "a")
        await queues.enqueue(Tier.FREE, "b")

        claimed = await queues.claim(Tier.FREE)
        await queues.requeue(Tier.FREE, claimed)

        assert await queues.members(Tier.FREE) == ["b", "a"]

    @pytest.mark.asyncio
    async def test_remove_everywhere_clears_all_tiers(self, queues):
        await queues.enqueue(Tier.FREE, "x")
        await queues.enqueue(Tier.VIP_ANY, "x")
        await queues.enqueue(Tier.VIP_ANY, "y")

        assert await queues.remove_everywhere("x") == 2
        assert not await queues.is_queued("x")
        assert await queues.is_queued("y")
        assert await queues.remove_everywhere("x") == 0

    @pytest.mark.asyncio
    async def test_find_tier(self, queues):
        await queues.enqueue(Tier.VIP_FEMALE, "v")
        assert await queues.find_tier("v") is Tier.VIP_FEMALE
        assert await queues.find_tier("nobody") is None

    @pytest.mark.asyncio
    async def test_integer_ids_are_normalized(self, queues):
        await queues.enqueue(Tier.FREE, 42)
        assert await queues.is_queued("42")
        assert await queues.claim(Tier.FREE) == "42"

    @pytest.mark.asyncio
    async def test_all_members_vip_first_and_unique(self, queues):
        await queues.enqueue(Tier.FREE, "f1")
        await queues.enqueue(Tier.VIP_ANY, "v1")
        await queues.enqueue(Tier.VIP_MALE, "v2")
        await queues.enqueue(Tier.FREE, "v1")

        assert await queues.all_members() == ["v2", "v1", "f1"]

    @pytest.mark.asyncio
    async def test_counts(self, queues):
        await queues.enqueue(Tier.FREE, "f1")
        await queues.enqueue(Tier.FREE, "f2")
        await queues.enqueue(Tier.VIP_ANY, "v1")

        counts = await queues.counts()
        assert counts[Tier.FREE] == 2
        assert counts[Tier.VIP_ANY] == 1
        assert counts[Tier.VIP_MALE] == 0

    @pytest.mark.asyncio
    async def test_namespaces_are_isolated(self):
        store = InMemoryStore()
        bot_a = QueueStore(store, namespace="bot_a")
        bot_b = QueueStore(store, namespace="bot_b")

        await bot_a.enqueue(Tier.FREE, "u1")

        assert await bot_a.is_queued("u1")
        assert not await bot_b.is_queued("u1")
        assert await store.lrange("bot_a:queue:free", 0, -1) == ["u1"]
