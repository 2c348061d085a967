"""
PawMatch — Match score composition and candidate ranking.

Combines the compatibility and location halves into the score that decides
whether two dogs are a match:

  combined = (w_compat × compatibility) + (w_loc × location)

Default weights: compatibility=0.6, location=0.4.  A pair is a match when
``combined ≥ MATCH_THRESHOLD`` (0.7).

All methods are pure: no I/O and no shared mutable state, so one instance
can serve any number of concurrent callers.
"""

from __future__ import annotations

from typing import Iterable

import structlog

from pawmatch.config import get_settings
from pawmatch.schemas.dog import DogProfile
from pawmatch.schemas.match import MatchScore, RankedCandidate
from pawmatch.services.compatibility_service import CompatibilityService
from pawmatch.services.location_service import LocationService

logger = structlog.get_logger("pawmatch.matching_service")

SPAY_NEUTER_WARNING = "Different spay/neuter status"


class MatchingService:
    """Composes compatibility and location scoring.

    Dependencies are injected at construction so that the service can be
    tested with stubs and swapped in FastAPI's dependency-injection graph.
    """

    def __init__(
        self,
        compatibility_service: CompatibilityService | None = None,
        location_service: LocationService | None = None,
    ) -> None:
        """Initialise the matching service with injected dependencies.

        Parameters
        ----------
        compatibility_service:
            Scorer for profile attributes.  Defaults to one built from settings.
        location_service:
            Scorer for proximity and shared venues.  Defaults to one built
            from settings.
        """
        self.compatibility_service = compatibility_service or CompatibilityService()
        self.location_service = location_service or LocationService()

        settings = get_settings()
        self.w_compat: float = settings.COMPATIBILITY_WEIGHT   # 0.6
        self.w_loc: float = settings.LOCATION_WEIGHT           # 0.4
        self.threshold: float = settings.MATCH_THRESHOLD       # 0.7
        self.default_limit: int = settings.DEFAULT_NEARBY_LIMIT

    # ── Public API ────────────────────────────────────────────────────────

    def score(self, dog_a: DogProfile, dog_b: DogProfile) -> MatchScore:
        """Score a pair of dogs.

        Parameters
        ----------
        dog_a, dog_b:
            Profiles to compare.

        Returns
        -------
        MatchScore
            ``combined``, both component scores, distance (``None`` when a
            side has no coordinates), common venues, compatibility reasons
            and warnings.
        """
        compatibility = self.compatibility_service.score(dog_a, dog_b)
        location = self.location_service.score(dog_a, dog_b)

        combined = (self.w_compat * compatibility.score) + (self.w_loc * location.score)
        combined = max(0.0, min(1.0, combined))

        warnings: list[str] = []
        if dog_a.is_spayed_neutered != dog_b.is_spayed_neutered:
            warnings.append(SPAY_NEUTER_WARNING)

        return MatchScore(
            combined=combined,
            compatibility=compatibility.score,
            location=location.score,
            distance_km=location.distance_km,
            common_venues=location.common_venues,
            reasons=compatibility.reasons,
            warnings=warnings,
        )

    def is_match(self, dog_a: DogProfile, dog_b: DogProfile) -> bool:
        return self.score(dog_a, dog_b).combined >= self.threshold

    def rank_nearby(
        self,
        dog: DogProfile,
        candidates: Iterable[DogProfile],
        radius_km: float,
        limit: int | None = None,
    ) -> list[RankedCandidate]:
        """Score candidates within ``radius_km`` of ``dog`` and return the best.

        Candidates without coordinates, or ``dog`` itself, are never within
        range.  Ordering is location score descending, then compatibility
        descending.  An empty list is returned when ``dog`` has no
        coordinates.
        """
        limit = self.default_limit if limit is None else limit
        if not dog.has_coordinates or limit <= 0:
            return []

        ranked: list[RankedCandidate] = []
        for candidate in candidates:
            if candidate.id == dog.id:
                continue
            distance = self.location_service.distance_km(dog, candidate)
            if distance is None or distance > radius_km:
                continue
            ranked.append(RankedCandidate(dog=candidate, score=self.score(dog, candidate)))

        ranked.sort(key=lambda r: (r.score.location, r.score.compatibility), reverse=True)

        logger.info(
            "nearby_ranked",
            dog_id=str(dog.id),
            radius_km=radius_km,
            in_range=len(ranked),
            returned=min(limit, len(ranked)),
        )
        return ranked[:limit]

    def score_batch(
        self,
        dog: DogProfile,
        candidates: Iterable[DogProfile],
    ) -> list[RankedCandidate]:
        """Score every candidate against ``dog``, best compatibility first."""
        ranked = [
            RankedCandidate(dog=candidate, score=self.score(dog, candidate))
            for candidate in candidates
        ]
        ranked.sort(key=lambda r: r.score.compatibility, reverse=True)
        return ranked
