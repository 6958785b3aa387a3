"""
Redis-backed queue store for matchmaking tiers.
Each tier is a Redis list: participants join at the tail and are claimed from the head.
"""
import asyncio
import logging
from typing import Dict, List, Optional

import redis.asyncio as redis

from core.keys import decode, namespaced
from core.tiers import ALL_TIERS, ParticipantId, Tier, normalize_id

logger = logging.getLogger(__name__)


class QueueStore:
    """Ordered waiting lists, one per matching tier."""

    def __init__(self, redis_client: redis.Redis, namespace: str = ""):
        """
        Initialize queue store with Redis client.

        Args:
            redis_client: Redis async client (or InMemoryStore)
            namespace: Optional key prefix for bot-scoped pools
        """
        self.redis = redis_client
        self.namespace = namespace
        self.queue_prefix = "queue"

    def _get_queue_key(self, tier: Tier) -> str:
        """Get Redis key for a tier's waiting list."""
        return namespaced(self.namespace, f"{self.queue_prefix}:{tier.value}")

    async def enqueue(self, tier: Tier, participant_id: ParticipantId) -> int:
        """
        Push participant to the tail of the tier.

        The caller must already know the participant is not queued in any
        tier; cross-tier idempotency is the engine's job.

        Returns:
            Length of the tier after the push
        """
        return await self.redis.rpush(self._get_queue_key(tier), normalize_id(participant_id))

    async def peek(self, tier: Tier, n: int) -> List[ParticipantId]:
        """Return up to n ids from the head without removing them."""
        if n <= 0:
            return []
        items = await self.redis.lrange(self._get_queue_key(tier), 0, n - 1)
        return [decode(item) for item in items]

    async def claim(self, tier: Tier) -> Optional[ParticipantId]:
        """Atomically pop one id from the head. None if the tier is empty."""
        return decode(await self.redis.lpop(self._get_queue_key(tier)))

    async def requeue(self, tier: Tier, participant_id: ParticipantId) -> int:
        """Push a rejected candidate back to the tail, not the head."""
        return await self.redis.rpush(self._get_queue_key(tier), normalize_id(participant_id))

    async def remove_everywhere(self, participant_id: ParticipantId) -> int:
        """
        Remove participant from all tiers.

        Args:
            participant_id: Participant to remove

        Returns:
            Total number of entries removed (0 if the participant was not queued)
        """
        uid = normalize_id(participant_id)
        removed = await asyncio.gather(
            *(self.redis.lrem(self._get_queue_key(tier), 0, uid) for tier in ALL_TIERS)
        )
        total = sum(removed)
        if total > 1:
            logger.warning(f"Participant {uid} had {total} queue entries; all removed")
        return total

    async def find_tier(self, participant_id: ParticipantId) -> Optional[Tier]:
        """Return the first tier holding the participant, if any."""
        uid = normalize_id(participant_id)
        positions = await asyncio.gather(
            *(self.redis.lpos(self._get_queue_key(tier), uid) for tier in ALL_TIERS)
        )
        for tier, position in zip(ALL_TIERS, positions):
            if position is not None:
                return tier
        return None

    async def is_queued(self, participant_id: ParticipantId) -> bool:
        """Check if participant is in any tier."""
        return await self.find_tier(participant_id) is not None

    async def length(self, tier: Tier) -> int:
        return await self.redis.llen(self._get_queue_key(tier))

    async def members(self, tier: Tier) -> List[ParticipantId]:
        items = await self.redis.lrange(self._get_queue_key(tier), 0, -1)
        return [decode(item) for item in items]

    async def all_members(self) -> List[ParticipantId]:
        """
        Get all unique participant ids across tiers.

        VIP tiers come first, each in head-to-tail order. This is a helper for
        the matchmaking worker so it doesn't have to know about Redis internals.
        """
        seen = set()
        ordered: List[ParticipantId] = []
        for tier in ALL_TIERS:
            for uid in await self.members(tier):
                if uid not in seen:
                    seen.add(uid)
                    ordered.append(uid)
        return ordered

    async def counts(self) -> Dict[Tier, int]:
        """Get number of entries per tier."""
        lengths = await asyncio.gather(*(self.length(tier) for tier in ALL_TIERS))
        return dict(zip(ALL_TIERS, lengths))
