from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from pawmatch.schemas.dog import DogProfile, Venue


def pair_key(dog_a_id: UUID | str, dog_b_id: UUID | str) -> str:
    """Canonical identity of an unordered dog pair."""
    first, second = sorted((str(dog_a_id), str(dog_b_id)))
    return f"{first}:{second}"


# ── Enums ────────────────────────────────────────────────────────────────────

class SwipeDirection(str, Enum):
    LIKE = "LIKE"
    PASS = "PASS"
    SUPER_LIKE = "SUPER_LIKE"

    @property
    def is_like(self) -> bool:
        return self in (SwipeDirection.LIKE, SwipeDirection.SUPER_LIKE)


class MatchStatus(str, Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    DECLINED = "DECLINED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in (MatchStatus.DECLINED, MatchStatus.EXPIRED, MatchStatus.CANCELLED)


class MatchReason(str, Enum):
    BREED_COMPATIBILITY = "BREED_COMPATIBILITY"
    ENERGY_LEVEL_MATCH = "ENERGY_LEVEL_MATCH"
    AGE_COMPATIBILITY = "AGE_COMPATIBILITY"
    SIZE_COMPATIBILITY = "SIZE_COMPATIBILITY"
    TEMPERAMENT_MATCH = "TEMPERAMENT_MATCH"
    PLAY_STYLE_MATCH = "PLAY_STYLE_MATCH"
    TRAINING_LEVEL_MATCH = "TRAINING_LEVEL_MATCH"
    HEALTH_COMPATIBILITY = "HEALTH_COMPATIBILITY"

    @property
    def description(self) -> str:
        return _REASON_DESCRIPTIONS[self]


_REASON_DESCRIPTIONS: dict[MatchReason, str] = {
    MatchReason.BREED_COMPATIBILITY: "Similar breeds",
    MatchReason.ENERGY_LEVEL_MATCH: "Matching energy levels",
    MatchReason.AGE_COMPATIBILITY: "Similar age",
    MatchReason.SIZE_COMPATIBILITY: "Compatible sizes",
    MatchReason.TEMPERAMENT_MATCH: "Compatible temperaments",
    MatchReason.PLAY_STYLE_MATCH: "Similar play styles",
    MatchReason.TRAINING_LEVEL_MATCH: "Similar training levels",
    MatchReason.HEALTH_COMPATIBILITY: "Health compatible",
}


class MatchType(str, Enum):
    NORMAL = "NORMAL"
    HIGH_COMPATIBILITY = "HIGH_COMPATIBILITY"
    SUPER_LIKE = "SUPER_LIKE"
    PERFECT_MATCH = "PERFECT_MATCH"
    NEARBY = "NEARBY"
    BREED_MATCH = "BREED_MATCH"

    @classmethod
    def derive(
        cls,
        score: float,
        distance_km: float | None = None,
        is_super_like: bool = False,
        is_breed_match: bool = False,
        nearby_km: float = 5.0,
    ) -> "MatchType":
        """Pick the most significant type for a freshly created match."""
        if score >= 0.95:
            return cls.PERFECT_MATCH
        if is_super_like:
            return cls.SUPER_LIKE
        if score >= 0.8:
            return cls.HIGH_COMPATIBILITY
        if is_breed_match:
            return cls.BREED_MATCH
        if distance_km is not None and distance_km <= nearby_km:
            return cls.NEARBY
        return cls.NORMAL

    @property
    def display_name(self) -> str:
        return _TYPE_DISPLAY[self][0]

    @property
    def match_message(self) -> str:
        return _TYPE_DISPLAY[self][1]

    def expiry_duration(self, base_days: int = 7) -> timedelta:
        # High-value matches stay open twice as long.
        if self in (MatchType.SUPER_LIKE, MatchType.PERFECT_MATCH):
            return timedelta(days=base_days * 2)
        return timedelta(days=base_days)


_TYPE_DISPLAY: dict[MatchType, tuple[str, str]] = {
    MatchType.NORMAL: ("Match", "It's a Match!"),
    MatchType.HIGH_COMPATIBILITY: (
        "High Compatibility Match",
        "Great Match! You're highly compatible!",
    ),
    MatchType.SUPER_LIKE: ("Super Like Match", "Super Like Match!"),
    MatchType.PERFECT_MATCH: (
        "Perfect Match",
        "Perfect Match! An exceptional connection!",
    ),
    MatchType.NEARBY: ("Nearby Match", "Nearby Match! A perfect playdate opportunity!"),
    MatchType.BREED_MATCH: ("Breed Match", "Breed Match! Similar backgrounds!"),
}


# ── Scoring results ──────────────────────────────────────────────────────────

class FactorScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    factor: str
    score: float
    weight: float
    applied: bool


class CompatibilityResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: float
    reasons: list[MatchReason]
    factors: list[FactorScore] = Field(default_factory=list)


class LocationScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: float
    distance_km: Optional[float] = None
    common_venues: list[Venue] = Field(default_factory=list)


class MatchScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    combined: float
    compatibility: float
    location: float
    distance_km: Optional[float] = None
    common_venues: list[Venue] = Field(default_factory=list)
    reasons: list[MatchReason] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class RankedCandidate(BaseModel):
    dog: DogProfile
    score: MatchScore


# ── Persistent records ───────────────────────────────────────────────────────

class Swipe(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: UUID
    swiper_owner_id: UUID
    swiper_dog_id: UUID
    swiped_dog_id: UUID
    direction: SwipeDirection
    created_at: datetime


class Match(BaseModel):
    """A mutual-interest record between two dogs.

    ``dog1`` belongs to the owner whose swipe completed the pair (the
    initiator), ``dog2`` to the owner who liked first.  The ``dog2`` owner
    receives the match and is the one who accepts or declines it while it is
    PENDING.
    """

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    pair_key: str
    user1_id: UUID
    user2_id: UUID
    dog1_id: UUID
    dog2_id: UUID
    initiator_dog_id: UUID
    compatibility_score: float
    base_compatibility: float = 0.0
    location_score: float = 0.0
    location_distance_km: Optional[float] = None
    match_reasons: list[MatchReason] = Field(default_factory=list)
    match_type: MatchType = MatchType.NORMAL
    status: MatchStatus = MatchStatus.PENDING
    is_archived: bool = False
    created_at: datetime
    last_interaction_at: datetime
    expires_at: datetime
    conversation_id: Optional[UUID] = None
    conversation_created_at: Optional[datetime] = None

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def is_active(self, now: datetime) -> bool:
        return self.status == MatchStatus.ACTIVE and not self.is_expired(now)

    def can_schedule_playdate(self, now: datetime) -> bool:
        return self.is_active(now) and not self.is_archived

    @property
    def participants(self) -> set[UUID]:
        return {self.user1_id, self.user2_id}

    def other_user_id(self, user_id: UUID) -> UUID:
        return self.user2_id if user_id == self.user1_id else self.user1_id

    def other_dog_id(self, dog_id: UUID) -> UUID:
        return self.dog2_id if dog_id == self.dog1_id else self.dog1_id

    def dog_of(self, user_id: UUID) -> UUID:
        return self.dog1_id if user_id == self.user1_id else self.dog2_id


class SwipeOutcome(BaseModel):
    """Result of recording a swipe; ``match`` is set once the pair is mutual."""

    swipe: Swipe
    match: Optional[Match] = None
    match_created: bool = False

    @property
    def is_mutual_match(self) -> bool:
        return self.match is not None


# ── API bodies ───────────────────────────────────────────────────────────────

class SwipeCreate(BaseModel):
    swiper_dog_id: UUID
    swiped_dog_id: UUID
    direction: SwipeDirection = SwipeDirection.LIKE


class SwipeResponse(BaseModel):
    swipe_id: UUID
    direction: SwipeDirection
    is_mutual_match: bool
    match_created: bool
    match_id: Optional[UUID] = None


class MatchResponse(BaseModel):
    match_id: UUID
    status: MatchStatus
    match_type: MatchType
    match_message: str
    user1_id: UUID
    user2_id: UUID
    dog1_id: UUID
    dog2_id: UUID
    compatibility_score: float
    match_reasons: list[str]
    location_distance_km: Optional[float] = None
    expires_at: datetime
    conversation_id: Optional[UUID] = None

    @classmethod
    def from_match(cls, match: Match) -> "MatchResponse":
        return cls(
            match_id=match.id,
            status=match.status,
            match_type=match.match_type,
            match_message=match.match_type.match_message,
            user1_id=match.user1_id,
            user2_id=match.user2_id,
            dog1_id=match.dog1_id,
            dog2_id=match.dog2_id,
            compatibility_score=match.compatibility_score,
            match_reasons=[r.description for r in match.match_reasons],
            location_distance_km=match.location_distance_km,
            expires_at=match.expires_at,
            conversation_id=match.conversation_id,
        )


class NearbyCandidate(BaseModel):
    dog_id: UUID
    name: str
    breed: Optional[str] = None
    combined: float
    compatibility: float
    location: float
    distance_km: Optional[float] = None
    reasons: list[str]
