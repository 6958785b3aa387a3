"""
Database-backed profile and subscription providers for the preference resolver.
"""
import logging
from datetime import datetime
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from core.keys import decode, namespaced
from core.tiers import Gender, GenderPreference, ParticipantId, Profile, VipPreferences, normalize_id
from db.crud import get_active_vip_expiry, get_user_by_chat_id
from db.database import get_db

logger = logging.getLogger(__name__)


class DatabaseProfileProvider:
    """Reads ban status and gender from the users table."""

    async def get_profile(self, participant_id: ParticipantId) -> Optional[Profile]:
        user = None
        async for db_session in get_db():
            user = await get_user_by_chat_id(db_session, normalize_id(participant_id))
            break

        if not user:
            return None
        return Profile(banned=bool(user.is_banned), gender=Gender.parse(user.gender))


class DatabaseSubscriptionProvider:
    """
    VIP status from the vip_subscriptions table, cached in Redis.

    An active subscription is cached as user:vip:<id> = "1" with a TTL that
    never outlives the subscription, so a cache hit is always trustworthy.
    """

    def __init__(self, redis_client: Optional[redis.Redis] = None, cache_enabled: bool = True, namespace: str = ""):
        self.redis = redis_client
        self.cache_enabled = cache_enabled and redis_client is not None
        self.namespace = namespace
        self.vip_prefix = "user:vip"

    def _get_vip_key(self, participant_id: ParticipantId) -> str:
        return namespaced(self.namespace, f"{self.vip_prefix}:{normalize_id(participant_id)}")

    async def _cached_vip(self, key: str) -> bool:
        try:
            return decode(await self.redis.get(key)) == "1"
        except RedisError as e:
            logger.debug(f"VIP cache read failed for {key}: {e}")
            return False

    async def is_vip_active(self, participant_id: ParticipantId) -> bool:
        """
        Check if VIP is currently active.

        Cache hit means active. On a miss the database decides; an expired or
        missing subscription clears the cache.
        """
        uid = normalize_id(participant_id)
        key = self._get_vip_key(uid)
        if self.cache_enabled and await self._cached_vip(key):
            return True

        expires_at = None
        async for db_session in get_db():
            expires_at = await get_active_vip_expiry(db_session, uid)
            break

        if not self.cache_enabled:
            return expires_at is not None

        try:
            if expires_at is None:
                await self.redis.delete(key)
                return False
            ttl_seconds = max(1, int((expires_at - datetime.utcnow()).total_seconds()))
            await self.redis.set(key, "1", ex=ttl_seconds)
        except RedisError as e:
            logger.debug(f"VIP cache write failed for {uid}: {e}")
        return expires_at is not None

    async def get_vip_preferences(self, participant_id: ParticipantId) -> VipPreferences:
        user = None
        async for db_session in get_db():
            user = await get_user_by_chat_id(db_session, normalize_id(participant_id))
            break

        if not user:
            return VipPreferences()
        return VipPreferences(gender=GenderPreference.parse(user.vip_gender))
