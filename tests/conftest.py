"""
Shared fixtures: in-memory store with a controllable clock and a fake
profile/subscription directory standing in for the database collaborators.
"""
from typing import Dict, Optional

import pytest

from core.match_engine import MatchEngine
from core.memory_store import InMemoryStore
from core.pair_registry import PairRegistry
from core.preference_resolver import PreferenceResolver
from core.queue_store import QueueStore
from core.recency_guard import RecencyGuard
from core.tiers import Gender, GenderPreference, Profile, VipPreferences


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeDirectory:
    """Profile and subscription provider backed by dicts."""

    def __init__(self):
        self.profiles: Dict[str, Profile] = {}
        self.vip: Dict[str, GenderPreference] = {}

    def add(
        self,
        participant_id: str,
        gender: Optional[str] = "male",
        vip: bool = False,
        wants: str = "any",
        banned: bool = False,
    ) -> str:
        self.profiles[participant_id] = Profile(banned=banned, gender=Gender.parse(gender))
        if vip:
            self.vip[participant_id] = GenderPreference.parse(wants)
        else:
            self.vip.pop(participant_id, None)
        return participant_id

    async def get_profile(self, participant_id: str) -> Optional[Profile]:
        return self.profiles.get(participant_id)

    async def is_vip_active(self, participant_id: str) -> bool:
        return participant_id in self.vip

    async def get_vip_preferences(self, participant_id: str) -> VipPreferences:
        return VipPreferences(gender=self.vip.get(participant_id, GenderPreference.ANY))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> InMemoryStore:
    return InMemoryStore(clock=clock)


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory()


@pytest.fixture
def resolver(directory) -> PreferenceResolver:
    return PreferenceResolver(profiles=directory, subscriptions=directory)


@pytest.fixture
def queues(store) -> QueueStore:
    return QueueStore(store)


@pytest.fixture
def pairs(store) -> PairRegistry:
    return PairRegistry(store, ttl_seconds=86400)


@pytest.fixture
def recency(store) -> RecencyGuard:
    return RecencyGuard(store, ttl_seconds=1200, max_partners=50)


@pytest.fixture
def engine(queues, pairs, recency, resolver) -> MatchEngine:
    return MatchEngine(queues=queues, pairs=pairs, recency=recency, resolver=resolver, max_attempts=50)
