"""
Recent-partner tracking to prevent re-matching the same two participants too quickly.
"""
import asyncio
from typing import List

import redis.asyncio as redis

from core.keys import decode, namespaced
from core.tiers import ParticipantId, normalize_id


class RecencyGuard:
    """Redis-based rolling list of recent partners per participant."""

    def __init__(
        self,
        redis_client: redis.Redis,
        ttl_seconds: int = 1200,
        max_partners: int = 50,
        namespace: str = "",
    ):
        """
        Initialize recency guard with Redis client.

        Args:
            redis_client: Redis async client (or InMemoryStore)
            ttl_seconds: Cooldown window, refreshed on every new pairing (default: 20 minutes)
            max_partners: How many recent partners to remember per participant
            namespace: Optional key prefix for bot-scoped pools
        """
        self.redis = redis_client
        self.ttl_seconds = ttl_seconds
        self.max_partners = max_partners
        self.namespace = namespace
        self.recent_prefix = "recent"

    def _get_recent_key(self, participant_id: ParticipantId) -> str:
        return namespaced(self.namespace, f"{self.recent_prefix}:{normalize_id(participant_id)}")

    async def is_recent_partner(self, participant_id: ParticipantId, candidate_id: ParticipantId) -> bool:
        """
        Check whether candidate is in participant's recent-partner list.

        Args:
            participant_id: Participant who is searching
            candidate_id: Candidate being evaluated

        Returns:
            True if they were paired within the cooldown window
        """
        position = await self.redis.lpos(self._get_recent_key(participant_id), normalize_id(candidate_id))
        return position is not None

    async def _append(self, participant_id: ParticipantId, partner_id: ParticipantId) -> None:
        key = self._get_recent_key(participant_id)
        await self.redis.rpush(key, normalize_id(partner_id))
        await self.redis.ltrim(key, -self.max_partners, -1)
        await self.redis.expire(key, self.ttl_seconds)

    async def record(self, participant_a: ParticipantId, participant_b: ParticipantId) -> None:
        """
        Remember a finalized pairing on both sides.

        Must only be called after the pair registry accepted the pairing, so an
        aborted attempt never blocks two participants from each other.
        """
        await asyncio.gather(
            self._append(participant_a, participant_b),
            self._append(participant_b, participant_a),
        )

    async def recent_partners(self, participant_id: ParticipantId) -> List[ParticipantId]:
        items = await self.redis.lrange(self._get_recent_key(participant_id), 0, -1)
        return [decode(item) for item in items]

    async def clear(self, participant_id: ParticipantId) -> None:
        await self.redis.delete(self._get_recent_key(participant_id))
