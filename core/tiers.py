"""
Matching pools and participant preference types.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

ParticipantId = str


def normalize_id(participant_id: Union[str, int, bytes]) -> ParticipantId:
    """Participant IDs are opaque strings; Telegram-style ints are accepted too."""
    if isinstance(participant_id, bytes):
        return participant_id.decode("utf-8")
    return str(participant_id)


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"

    @classmethod
    def parse(cls, value) -> Optional["Gender"]:
        """Parse a stored gender value ('Male', 'female', ...). Unknown values map to None."""
        if value is None:
            return None
        if isinstance(value, Gender):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


class GenderPreference(str, Enum):
    MALE = "male"
    FEMALE = "female"
    ANY = "any"

    @classmethod
    def parse(cls, value) -> "GenderPreference":
        """Parse a stored preference. None, 'all' and unknown values mean any."""
        if isinstance(value, GenderPreference):
            return value
        if value is None:
            return cls.ANY
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.ANY

    def accepts(self, gender: Optional[Gender]) -> bool:
        if self is GenderPreference.ANY:
            return True
        return gender is not None and gender.value == self.value


class Tier(str, Enum):
    """Matching pools. VIP_MALE holds VIPs who want a male partner, and so on."""
    VIP_MALE = "vip_male"
    VIP_FEMALE = "vip_female"
    VIP_ANY = "vip_any"
    FREE = "free"

    @property
    def is_vip(self) -> bool:
        return self is not Tier.FREE

    @classmethod
    def for_vip_preference(cls, preference: GenderPreference) -> "Tier":
        if preference is GenderPreference.MALE:
            return cls.VIP_MALE
        if preference is GenderPreference.FEMALE:
            return cls.VIP_FEMALE
        return cls.VIP_ANY

    @classmethod
    def wanting(cls, gender: Optional[Gender]) -> Optional["Tier"]:
        """VIP tier whose occupants are looking for the given gender."""
        if gender is Gender.MALE:
            return cls.VIP_MALE
        if gender is Gender.FEMALE:
            return cls.VIP_FEMALE
        return None


# VIP pools first so the sweep serves paying participants before free ones.
ALL_TIERS = (Tier.VIP_MALE, Tier.VIP_FEMALE, Tier.VIP_ANY, Tier.FREE)


@dataclass(frozen=True)
class Profile:
    """Eligibility data from the profile collaborator."""
    banned: bool
    gender: Optional[Gender]


@dataclass(frozen=True)
class VipPreferences:
    gender: GenderPreference = GenderPreference.ANY


@dataclass(frozen=True)
class Preference:
    """Point-in-time view of a participant used for one matching decision."""
    participant_id: ParticipantId
    banned: bool
    gender: Optional[Gender]
    is_vip: bool
    gender_preference: GenderPreference = GenderPreference.ANY

    @property
    def eligible(self) -> bool:
        return not self.banned and self.gender is not None

    @property
    def tier(self) -> Tier:
        if not self.is_vip:
            return Tier.FREE
        return Tier.for_vip_preference(self.gender_preference)

    @property
    def search_order(self) -> list:
        """Tiers to draw candidates from, in priority order."""
        if not self.is_vip:
            return [Tier.FREE]
        order = []
        if self.gender_preference is not GenderPreference.ANY:
            wanting_me = Tier.wanting(self.gender)
            if wanting_me is not None:
                order.append(wanting_me)
        order.extend([Tier.VIP_ANY, Tier.FREE])
        return order

    def accepts(self, other: "Preference") -> bool:
        """Whether this participant's gender preference admits the other one."""
        return self.gender_preference.accepts(other.gender)
