"""
Tiered, preference-aware match engine for anonymous chat.

search() walks the participant's tiers in priority order, claims candidates
one at a time from the head of each tier, evaluates them, and finalizes a
match only through PairRegistry.try_pair. Every other step may race with
concurrent searches (other participants, or the background sweep) and is
written to tolerate losing those races.
"""
import asyncio
import logging
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

import redis.asyncio as redis
from redis.exceptions import RedisError

from core.pair_registry import PairRegistry
from core.preference_resolver import PreferenceResolver
from core.queue_store import QueueStore
from core.recency_guard import RecencyGuard
from core.tiers import GenderPreference, ParticipantId, Preference, Tier, normalize_id

logger = logging.getLogger(__name__)


class _Outcome(Enum):
    NO_MATCH = "no_match"
    MATCHED = "matched"
    # searcher was paired by a concurrent search while this one was running
    SEARCHER_PAIRED = "searcher_paired"
    # pairing was written but failed read-back verification and was rolled back
    ABORTED = "aborted"


class MatchEngine:
    """Matches waiting participants into one-to-one pairs."""

    def __init__(
        self,
        queues: QueueStore,
        pairs: PairRegistry,
        recency: RecencyGuard,
        resolver: PreferenceResolver,
        max_attempts: int = 50,
    ):
        self.queues = queues
        self.pairs = pairs
        self.recency = recency
        self.resolver = resolver
        self.max_attempts = max_attempts

    @classmethod
    def create(
        cls,
        redis_client: redis.Redis,
        resolver: PreferenceResolver,
        namespace: str = "",
        pair_ttl_seconds: int = 86400,
        recent_ttl_seconds: int = 1200,
        recent_max: int = 50,
        max_attempts: int = 50,
    ) -> "MatchEngine":
        """Build an engine and its stores on top of one shared store client."""
        return cls(
            queues=QueueStore(redis_client, namespace=namespace),
            pairs=PairRegistry(redis_client, ttl_seconds=pair_ttl_seconds, namespace=namespace),
            recency=RecencyGuard(
                redis_client,
                ttl_seconds=recent_ttl_seconds,
                max_partners=recent_max,
                namespace=namespace,
            ),
            resolver=resolver,
            max_attempts=max_attempts,
        )

    # ============= Search =============

    async def search(
        self,
        participant_id: ParticipantId,
        explicit_preference: Optional[Union[GenderPreference, str]] = None,
    ) -> Optional[ParticipantId]:
        """
        Find a partner for a participant, or queue them.

        Callers should check get_partner() first; a participant that is
        already paired is not special-cased here.

        Args:
            participant_id: Participant who is searching
            explicit_preference: Gender preference for this search (VIP only)

        Returns:
            Partner id if a pair was finalized, otherwise None
        """
        uid = normalize_id(participant_id)
        if explicit_preference is not None:
            explicit_preference = GenderPreference.parse(explicit_preference)
        try:
            return await self._search(uid, explicit_preference)
        except RedisError as e:
            # Transient store failure: no match this round, next sweep or click retries
            logger.warning(f"Store error while searching for {uid}: {e}")
            return None

    async def _search(
        self,
        uid: ParticipantId,
        explicit_preference: Optional[GenderPreference],
    ) -> Optional[ParticipantId]:
        me = await self.resolver.resolve(uid, explicit_preference)
        if me is None:
            # Fail closed: collaborator unavailable or no profile
            logger.debug(f"Participant {uid} could not be resolved, skipping search")
            return None
        if not me.eligible:
            logger.info(f"Participant {uid} is not eligible (banned={me.banned}, gender={me.gender}), removing from queues")
            await self.queues.remove_everywhere(uid)
            return None

        for tier in me.search_order:
            outcome, partner_id = await self._search_tier(me, tier)
            if outcome is _Outcome.MATCHED:
                return partner_id
            if outcome is _Outcome.SEARCHER_PAIRED:
                return None
            if outcome is _Outcome.ABORTED:
                break

        if await self.pairs.get_partner(uid) is not None:
            logger.debug(f"Participant {uid} was paired concurrently, not queueing")
            return None
        await self._place(me)
        return None

    async def _search_tier(self, me: Preference, tier: Tier) -> Tuple[_Outcome, Optional[ParticipantId]]:
        """Bounded claim-and-test loop over one tier."""
        uid = me.participant_id
        attempts = min(self.max_attempts, await self.queues.length(tier))
        if attempts <= 0:
            return _Outcome.NO_MATCH, None

        # Pre-fetch candidate metadata for the head of the tier. Local to this call.
        head = [pid for pid in await self.queues.peek(tier, attempts) if pid != uid]
        candidates: Dict[ParticipantId, Optional[Preference]] = await self.resolver.resolve_many(head)

        for _ in range(attempts):
            candidate_id = await self.queues.claim(tier)
            if candidate_id is None:
                break

            # The claimed candidate is in no queue until it is requeued or paired
            try:
                outcome = await self._try_candidate(me, tier, candidate_id, candidates)
            except RedisError:
                await self._return_candidate(tier, candidate_id)
                raise

            if outcome is _Outcome.NO_MATCH:
                continue
            if outcome is not _Outcome.MATCHED:
                return outcome, None

            if not await self._verify_pair(uid, candidate_id):
                await self.pairs.rollback(uid, candidate_id)
                await self.queues.requeue(tier, candidate_id)
                return _Outcome.ABORTED, None

            await self._finish_match(uid, candidate_id)
            logger.info(f"Matched {uid} <-> {candidate_id} from tier {tier.value}")
            return _Outcome.MATCHED, candidate_id

        return _Outcome.NO_MATCH, None

    async def _try_candidate(
        self,
        me: Preference,
        tier: Tier,
        candidate_id: ParticipantId,
        candidates: Dict[ParticipantId, Optional[Preference]],
    ) -> _Outcome:
        """Evaluate one claimed candidate and attempt the pairing."""
        uid = me.participant_id
        if candidate_id != uid and candidate_id not in candidates:
            candidates[candidate_id] = await self.resolver.resolve(candidate_id)

        if not await self._is_suitable(me, candidate_id, candidates.get(candidate_id)):
            await self.queues.requeue(tier, candidate_id)
            return _Outcome.NO_MATCH

        if await self.pairs.try_pair(uid, candidate_id):
            return _Outcome.MATCHED

        if await self.pairs.get_partner(uid) is not None:
            # We lost ourselves, not the candidate: hand the candidate back
            await self.queues.requeue(tier, candidate_id)
            return _Outcome.SEARCHER_PAIRED
        # Candidate was paired elsewhere (or is a stale duplicate entry)
        logger.debug(f"Candidate {candidate_id} already paired, discarding claim")
        return _Outcome.NO_MATCH

    async def _return_candidate(self, tier: Tier, candidate_id: ParticipantId) -> None:
        """Put a claimed candidate back after a store failure, unless it got paired."""
        try:
            if await self.pairs.get_partner(candidate_id) is None:
                await self.queues.requeue(tier, candidate_id)
        except RedisError as e:
            logger.error(f"Could not return candidate {candidate_id} to tier {tier.value}: {e}")

    async def _verify_pair(self, uid: ParticipantId, candidate_id: ParticipantId) -> bool:
        try:
            consistent = await self.pairs.is_consistent(uid, candidate_id)
        except RedisError as e:
            # try_pair wrote both entries; an unreadable check does not undo that
            logger.warning(f"Could not verify pair {uid} <-> {candidate_id}: {e}")
            return True
        if not consistent:
            logger.error(f"Inconsistent pair state after pairing {uid} <-> {candidate_id}; rolling back")
        return consistent

    async def _finish_match(self, uid: ParticipantId, candidate_id: ParticipantId) -> None:
        """Queue and recency bookkeeping for a finalized pair. Failures are logged only."""
        results = await asyncio.gather(
            self.queues.remove_everywhere(candidate_id),
            self.queues.remove_everywhere(uid),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, RedisError):
                logger.warning(f"Could not clear queue entries after pairing {uid} <-> {candidate_id}: {result}")
            elif isinstance(result, BaseException):
                raise result
        try:
            await self.recency.record(uid, candidate_id)
        except RedisError as e:
            logger.warning(f"Could not record recent partners {uid} <-> {candidate_id}: {e}")

    async def _is_suitable(
        self,
        me: Preference,
        candidate_id: ParticipantId,
        candidate: Optional[Preference],
    ) -> bool:
        if candidate_id == me.participant_id:
            return False
        if candidate is None or not candidate.eligible:
            logger.debug(f"Skipping candidate {candidate_id}: unresolved or ineligible")
            return False
        if await self.recency.is_recent_partner(me.participant_id, candidate_id):
            logger.debug(f"Skipping candidate {candidate_id}: recent partner of {me.participant_id}")
            return False
        if not me.accepts(candidate):
            logger.debug(
                f"Skipping candidate {candidate_id}: gender {candidate.gender} does not match "
                f"preference {me.gender_preference.value}"
            )
            return False
        if candidate.is_vip and not candidate.accepts(me):
            logger.debug(
                f"Skipping candidate {candidate_id}: their preference "
                f"{candidate.gender_preference.value} excludes {me.participant_id}"
            )
            return False
        return True

    async def _place(self, me: Preference) -> Tier:
        """Queue participant in their current tier, moving them if their tier changed."""
        uid = me.participant_id
        current = await self.queues.find_tier(uid)
        if current is me.tier:
            return current
        if current is not None:
            logger.info(f"Participant {uid} moved from tier {current.value} to {me.tier.value}")
            await self.queues.remove_everywhere(uid)
        await self.queues.enqueue(me.tier, uid)
        logger.debug(f"Participant {uid} queued in tier {me.tier.value}")
        return me.tier

    # ============= Facade for the chat/session layer =============

    async def enqueue(
        self,
        participant_id: ParticipantId,
        explicit_preference: Optional[Union[GenderPreference, str]] = None,
    ) -> Optional[Tier]:
        """
        Put participant in the queue without searching. Idempotent.

        Returns:
            Tier the participant waits in, or None if they are not eligible
        """
        uid = normalize_id(participant_id)
        if explicit_preference is not None:
            explicit_preference = GenderPreference.parse(explicit_preference)
        me = await self.resolver.resolve(uid, explicit_preference)
        if me is None or not me.eligible:
            return None
        return await self._place(me)

    async def dequeue(self, participant_id: ParticipantId) -> bool:
        """Remove participant from all queues. Safe to call at any time."""
        return await self.queues.remove_everywhere(participant_id) > 0

    async def is_queued(self, participant_id: ParticipantId) -> bool:
        return await self.queues.is_queued(participant_id)

    async def get_partner(self, participant_id: ParticipantId) -> Optional[ParticipantId]:
        return await self.pairs.get_partner(participant_id)

    async def unpair(self, participant_id: ParticipantId) -> Optional[ParticipantId]:
        """End a pair (called by the chat-termination collaborator)."""
        partner_id = await self.pairs.unpair(participant_id)
        if partner_id:
            logger.info(f"Unpaired {normalize_id(participant_id)} <-> {partner_id}")
        return partner_id

    async def recent_partners(self, participant_id: ParticipantId) -> List[ParticipantId]:
        """Partners still inside the re-match cooldown, oldest first."""
        return await self.recency.recent_partners(participant_id)

    async def reset_cooldown(self, participant_id: ParticipantId) -> None:
        """Forget participant's recent partners (their partners still remember them)."""
        await self.recency.clear(participant_id)
        logger.info(f"Cleared recent partners of {normalize_id(participant_id)}")

    async def queue_stats(self) -> Dict[str, int]:
        """Get number of waiting entries per tier, plus the total."""
        counts = await self.queues.counts()
        stats = {tier.value: count for tier, count in counts.items()}
        stats["total"] = sum(counts.values())
        return stats
