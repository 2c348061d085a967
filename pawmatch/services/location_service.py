"""
PawMatch — Proximity and shared-venue scoring.

Great-circle (haversine) distance between two dogs is mapped to a score by
fixed distance bands:

  ≤ 5 km  → 1.0    (VERY_CLOSE)
  ≤ 10 km → 0.75   (CLOSE)
  ≤ 20 km → 0.5    (MEDIUM)
  ≤ max   → 0.25   (FAR, max = MAX_MATCH_DISTANCE_KM, 50 km by default)
  beyond  → 0.0

When either dog has no coordinates the distance is undefined and the score
falls back to UNKNOWN_LOCATION_SCORE (deprioritised, not excluded).
"""

from __future__ import annotations

import math
from enum import Enum

import structlog

from pawmatch.config import get_settings
from pawmatch.schemas.dog import DogProfile, Venue
from pawmatch.schemas.match import LocationScore

logger = structlog.get_logger("pawmatch.location_service")

EARTH_RADIUS_KM = 6371.0


class DistanceBand(str, Enum):
    VERY_CLOSE = "VERY_CLOSE"
    CLOSE = "CLOSE"
    MEDIUM = "MEDIUM"
    FAR = "FAR"
    OUT_OF_RANGE = "OUT_OF_RANGE"


_BANDS: list[tuple[float, DistanceBand, float]] = [
    (5.0, DistanceBand.VERY_CLOSE, 1.0),
    (10.0, DistanceBand.CLOSE, 0.75),
    (20.0, DistanceBand.MEDIUM, 0.5),
]
_FAR_SCORE = 0.25


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))


class LocationService:
    """Location half of the match score."""

    def __init__(
        self,
        max_distance_km: float | None = None,
        unknown_score: float | None = None,
    ) -> None:
        settings = get_settings()
        self.max_distance_km = (
            max_distance_km if max_distance_km is not None else settings.MAX_MATCH_DISTANCE_KM
        )
        self.unknown_score = (
            unknown_score if unknown_score is not None else settings.UNKNOWN_LOCATION_SCORE
        )

    # ── Public API ────────────────────────────────────────────────────────

    def score(self, dog_a: DogProfile, dog_b: DogProfile) -> LocationScore:
        distance = self.distance_km(dog_a, dog_b)
        common = self.common_venues(dog_a, dog_b)

        if distance is None:
            value = self.unknown_score
        else:
            value = self.score_for_distance(distance)

        logger.debug(
            "location_scored",
            dog_a=str(dog_a.id),
            dog_b=str(dog_b.id),
            distance_km=round(distance, 3) if distance is not None else None,
            score=value,
            common_venues=len(common),
        )
        return LocationScore(score=value, distance_km=distance, common_venues=common)

    @staticmethod
    def distance_km(dog_a: DogProfile, dog_b: DogProfile) -> float | None:
        if not (dog_a.has_coordinates and dog_b.has_coordinates):
            return None
        return haversine_km(dog_a.latitude, dog_a.longitude, dog_b.latitude, dog_b.longitude)

    def band_for_distance(self, distance_km: float) -> DistanceBand:
        if distance_km > self.max_distance_km:
            return DistanceBand.OUT_OF_RANGE
        for limit, band, _ in _BANDS:
            if distance_km <= limit:
                return band
        return DistanceBand.FAR

    def score_for_distance(self, distance_km: float) -> float:
        """Monotonically non-increasing in distance; 0 past the matching radius."""
        if distance_km > self.max_distance_km:
            return 0.0
        for limit, _, value in _BANDS:
            if distance_km <= limit:
                return value
        return _FAR_SCORE

    @staticmethod
    def common_venues(dog_a: DogProfile, dog_b: DogProfile) -> list[Venue]:
        """Venues both dogs frequent, matched by place id, in ``dog_a``'s order."""
        other_ids = {v.place_id for v in dog_b.frequented_venues}
        seen: set[str] = set()
        common: list[Venue] = []
        for venue in dog_a.frequented_venues:
            if venue.place_id in other_ids and venue.place_id not in seen:
                seen.add(venue.place_id)
                common.append(venue)
        return common
