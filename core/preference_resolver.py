"""
Resolves a participant's eligibility, VIP tier and gender preference at match time.
Thin wrapper over the profile and subscription collaborators.
"""
import asyncio
import logging
from typing import Dict, Iterable, Optional, Protocol

from core.tiers import (
    GenderPreference,
    ParticipantId,
    Preference,
    Profile,
    VipPreferences,
    normalize_id,
)

logger = logging.getLogger(__name__)


class ProfileProvider(Protocol):
    async def get_profile(self, participant_id: ParticipantId) -> Optional[Profile]:
        ...


class SubscriptionProvider(Protocol):
    async def is_vip_active(self, participant_id: ParticipantId) -> bool:
        ...

    async def get_vip_preferences(self, participant_id: ParticipantId) -> VipPreferences:
        ...


class PreferenceResolver:
    """Point-in-time preference lookup. Nothing is cached between calls."""

    def __init__(self, profiles: ProfileProvider, subscriptions: SubscriptionProvider):
        self.profiles = profiles
        self.subscriptions = subscriptions

    async def resolve(
        self,
        participant_id: ParticipantId,
        explicit_preference: Optional[GenderPreference] = None,
    ) -> Optional[Preference]:
        """
        Resolve a participant for one matching decision.

        Args:
            participant_id: Participant to resolve
            explicit_preference: Gender preference chosen for this search; only
                honoured for VIPs, free participants have no gender choice

        Returns:
            Preference, or None when the participant has no profile or a
            collaborator failed (callers treat None as ineligible)
        """
        uid = normalize_id(participant_id)
        try:
            profile, is_vip = await asyncio.gather(
                self.profiles.get_profile(uid),
                self.subscriptions.is_vip_active(uid),
            )
            if profile is None:
                logger.debug(f"No profile for participant {uid}")
                return None

            gender_preference = GenderPreference.ANY
            if is_vip:
                if explicit_preference is not None:
                    gender_preference = GenderPreference.parse(explicit_preference)
                else:
                    vip_prefs = await self.subscriptions.get_vip_preferences(uid)
                    if vip_prefs is not None:
                        gender_preference = GenderPreference.parse(vip_prefs.gender)
        except Exception as e:
            logger.warning(f"Could not resolve preferences for participant {uid}: {e}", exc_info=True)
            return None

        return Preference(
            participant_id=uid,
            banned=bool(profile.banned),
            gender=profile.gender,
            is_vip=bool(is_vip),
            gender_preference=gender_preference,
        )

    async def resolve_many(self, participant_ids: Iterable[ParticipantId]) -> Dict[ParticipantId, Optional[Preference]]:
        """Resolve several participants concurrently (batch pre-fetch of candidates)."""
        ids = list(dict.fromkeys(normalize_id(pid) for pid in participant_ids))
        if not ids:
            return {}
        results = await asyncio.gather(*(self.resolve(uid) for uid in ids))
        return dict(zip(ids, results))
