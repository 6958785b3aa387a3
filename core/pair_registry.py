"""
Pair registry: who is currently chatting with whom.

Pairing protocol
----------------
Redis only guarantees atomicity per key, so a pairing is finalized with an
ordered two-phase claim:

    1. SET pair:<a> <b> NX EX ttl   -> fails if a is already paired: abort
    2. SET pair:<b> <a> NX EX ttl   -> fails if b is already paired:
                                       DEL pair:<a> and abort

Whichever searcher wins the NX write on a key owns that participant; a loser
never writes the second key, or removes its own first key. Reading both keys
and then writing both is NOT race free: two searchers can both observe "free"
and overwrite each other. try_pair is the only place a match becomes final,
and every other queue operation may race freely around it.

The TTL is a backstop for pairs whose chat-termination logic never ran.
"""
import logging
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from core.keys import decode, namespaced
from core.tiers import ParticipantId, normalize_id

logger = logging.getLogger(__name__)


class PairRegistry:
    """Reciprocal participant -> partner entries with bounded lifetime."""

    def __init__(self, redis_client: redis.Redis, ttl_seconds: int = 86400, namespace: str = ""):
        self.redis = redis_client
        self.ttl_seconds = ttl_seconds
        self.namespace = namespace
        self.pair_prefix = "pair"

    def _get_pair_key(self, participant_id: ParticipantId) -> str:
        return namespaced(self.namespace, f"{self.pair_prefix}:{normalize_id(participant_id)}")

    async def try_pair(self, participant_a: ParticipantId, participant_b: ParticipantId) -> bool:
        """
        Pair two participants if, and only if, both are currently unpaired.

        Args:
            participant_a: Searching participant (claimed first)
            participant_b: Candidate

        Returns:
            True if both reciprocal entries were written, False if either side
            was already paired (nothing is left behind in that case)

        Raises:
            RedisError: if the store fails; entries written by this attempt
                are removed on a best-effort basis first
        """
        a = normalize_id(participant_a)
        b = normalize_id(participant_b)
        if a == b:
            return False

        key_a = self._get_pair_key(a)
        key_b = self._get_pair_key(b)

        if not await self.redis.set(key_a, b, ex=self.ttl_seconds, nx=True):
            logger.debug(f"try_pair {a} <-> {b}: {a} already paired")
            return False

        try:
            claimed_b = await self.redis.set(key_b, a, ex=self.ttl_seconds, nx=True)
        except RedisError:
            # The write may or may not have landed; undo whatever this attempt left
            await self._release(a, b)
            raise

        if not claimed_b:
            await self.redis.delete(key_a)
            logger.debug(f"try_pair {a} <-> {b}: {b} already paired, rolled back {a}")
            return False

        return True

    async def _release(self, a: ParticipantId, b: ParticipantId) -> None:
        try:
            await self.rollback(a, b)
        except RedisError as e:
            logger.error(f"Could not roll back half-written pair {a} <-> {b}: {e}")

    async def get_partner(self, participant_id: ParticipantId) -> Optional[ParticipantId]:
        """Get current partner id, or None if not paired."""
        return decode(await self.redis.get(self._get_pair_key(participant_id)))

    async def is_consistent(self, participant_a: ParticipantId, participant_b: ParticipantId) -> bool:
        """Read back both entries and check they point at each other."""
        a = normalize_id(participant_a)
        b = normalize_id(participant_b)
        partner_of_a = await self.get_partner(a)
        partner_of_b = await self.get_partner(b)
        return partner_of_a == b and partner_of_b == a

    async def rollback(self, participant_a: ParticipantId, participant_b: ParticipantId) -> None:
        """Delete entries written for this pairing, leaving anyone else's entries alone."""
        a = normalize_id(participant_a)
        b = normalize_id(participant_b)
        if await self.get_partner(a) == b:
            await self.redis.delete(self._get_pair_key(a))
        if await self.get_partner(b) == a:
            await self.redis.delete(self._get_pair_key(b))

    async def unpair(self, participant_id: ParticipantId) -> Optional[ParticipantId]:
        """
        Remove a pair. Idempotent.

        The partner's entry is only deleted while it still points back at this
        participant, so a stale call cannot break the partner's newer pair.

        Returns:
            Former partner id, or None if the participant was not paired
        """
        uid = normalize_id(participant_id)
        partner_id = await self.get_partner(uid)
        await self.redis.delete(self._get_pair_key(uid))
        if partner_id and partner_id != uid:
            if await self.get_partner(partner_id) == uid:
                await self.redis.delete(self._get_pair_key(partner_id))
        return partner_id
