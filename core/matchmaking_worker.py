"""
Background worker for matchmaking.
Periodically runs a search for every queued participant, so people who never
click search again are still matched.
"""
import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Tuple

from core.match_engine import MatchEngine
from core.tiers import ParticipantId

logger = logging.getLogger(__name__)

MatchCallback = Callable[[ParticipantId, ParticipantId], Awaitable[None]]


class MatchmakingWorker:
    """Fixed-interval sweep over the matchmaking queues."""

    def __init__(
        self,
        engine: MatchEngine,
        interval: float = 2,
        batch_size: int = 50,
        on_match: Optional[MatchCallback] = None,
    ):
        """
        Args:
            engine: Match engine shared with direct searches
            interval: Seconds to sleep between cycles
            batch_size: Maximum number of matches made per cycle
            on_match: Optional coroutine called with (participant, partner)
                for each pair made by the sweep, e.g. to notify the chat layer
        """
        self.engine = engine
        self.interval = interval
        self.batch_size = batch_size
        self.on_match = on_match
        self._task: Optional[asyncio.Task] = None
        self._stopping = asyncio.Event()

    async def run_cycle(self) -> List[Tuple[ParticipantId, ParticipantId]]:
        """Check queue and match users. Process multiple matches per cycle."""
        user_ids = await self.engine.queues.all_members()
        if len(user_ids) < 2:
            return []  # Need at least 2 users to match

        processed_users = set()
        matches_found: List[Tuple[ParticipantId, ParticipantId]] = []

        for user_id in user_ids:
            # Skip if already matched in this cycle
            if user_id in processed_users:
                continue

            # Paired elsewhere but still queued: stale entry
            if await self.engine.get_partner(user_id):
                await self.engine.dequeue(user_id)
                processed_users.add(user_id)
                continue

            # Might have been claimed by a search since the snapshot
            if not await self.engine.is_queued(user_id):
                continue

            match_id = await self.engine.search(user_id)
            if match_id:
                logger.info(f"Sweep matched {user_id} <-> {match_id}")
                processed_users.add(user_id)
                processed_users.add(match_id)
                matches_found.append((user_id, match_id))

                if len(matches_found) >= self.batch_size:
                    break
            else:
                logger.debug(f"No match found for {user_id} in this cycle")

        if matches_found and self.on_match is not None:
            results = await asyncio.gather(
                *(self.on_match(a, b) for a, b in matches_found),
                return_exceptions=True,
            )
            for (a, b), result in zip(matches_found, results):
                if isinstance(result, Exception):
                    logger.error(f"Match callback failed for {a} <-> {b}: {result}", exc_info=result)

        if matches_found:
            logger.info(f"Processed {len(matches_found)} matches in this cycle")
        return matches_found

    async def run(self) -> None:
        """Run the sweep until stop() is called."""
        logger.info(f"Matchmaking worker started with interval: {self.interval} seconds, batch size: {self.batch_size}")
        while not self._stopping.is_set():
            try:
                await self.run_cycle()
            except Exception as e:
                logger.error(f"Matchmaking worker error: {e}", exc_info=True)

            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
        logger.info("Matchmaking worker stopped")

    def start(self) -> asyncio.Task:
        """Start the sweep in a background task (no-op if already running)."""
        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self) -> None:
        self._stopping.set()
        if self._task is not None:
            await self._task
            self._task = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()
