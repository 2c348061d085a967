"""
PawMatch — Multi-factor dog compatibility scoring.

Each factor maps a pair of profile attributes to a normalised score in
[0, 1].  Every scored factor enters the weighted mean:

  score = Σ(factor_score × weight) / Σ(weight)   over scored factors
  score = 0                                      if nothing was scored

A factor is listed as a reason only when its score reaches the significance
threshold (0.7 by default).  Missing data on either side yields a neutral
0.5.  Breed and size require both values to be present, and special needs
are scored only when at least one dog has them.

Every factor function is symmetric, so ``score(a, b) == score(b, a)`` and a
profile scored against itself attains the maximum.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from pawmatch.config import get_settings
from pawmatch.schemas.dog import DogProfile
from pawmatch.schemas.match import CompatibilityResult, FactorScore, MatchReason

logger = structlog.get_logger("pawmatch.compatibility_service")

NEUTRAL_SCORE = 0.5


@dataclass(frozen=True)
class ScoringPreferences:
    """Preference flags that raise a factor's weight."""

    prioritize_breed: bool = False
    prioritize_energy: bool = False
    prioritize_age: bool = False

    @classmethod
    def from_settings(cls) -> "ScoringPreferences":
        settings = get_settings()
        return cls(
            prioritize_breed=settings.PRIORITIZE_BREED,
            prioritize_energy=settings.PRIORITIZE_ENERGY,
            prioritize_age=settings.PRIORITIZE_AGE,
        )


class CompatibilityService:
    """Weighted similarity between two dog profiles."""

    # ── Ordinal scales ──────────────────────────────────────────────
    ENERGY_LEVELS: dict[str, int] = {"low": 1, "medium": 2, "moderate": 2, "high": 3}
    FRIENDLINESS_LEVELS: dict[str, int] = {"shy": 1, "selective": 2, "friendly": 3}
    SIZE_LEVELS: dict[str, int] = {"small": 1, "medium": 2, "large": 3, "extra large": 4}
    EXERCISE_LEVELS: dict[str, int] = {
        "minimal": 1, "moderate": 2, "high": 3, "very high": 4,
    }
    TRAINING_LEVELS: dict[str, int] = {"basic": 1, "intermediate": 2, "advanced": 3}

    # ── Base weights ────────────────────────────────────────────────
    BASE_WEIGHTS: dict[str, float] = {
        "breed": 0.15,
        "energy": 0.2,
        "age": 0.15,
        "size": 0.15,
        "temperament": 0.15,
        "exercise": 0.1,
        "training": 0.1,
        "health": 0.1,
    }
    PRIORITY_WEIGHTS: dict[str, float] = {
        "breed": 0.25,
        "energy": 0.25,
        "age": 0.2,
    }

    FACTOR_REASONS: dict[str, MatchReason] = {
        "breed": MatchReason.BREED_COMPATIBILITY,
        "energy": MatchReason.ENERGY_LEVEL_MATCH,
        "age": MatchReason.AGE_COMPATIBILITY,
        "size": MatchReason.SIZE_COMPATIBILITY,
        "temperament": MatchReason.TEMPERAMENT_MATCH,
        "exercise": MatchReason.PLAY_STYLE_MATCH,
        "training": MatchReason.TRAINING_LEVEL_MATCH,
        "health": MatchReason.HEALTH_COMPATIBILITY,
    }

    def __init__(
        self,
        preferences: ScoringPreferences | None = None,
        reason_threshold: float | None = None,
    ) -> None:
        self.preferences = preferences or ScoringPreferences.from_settings()
        self.reason_threshold = (
            reason_threshold
            if reason_threshold is not None
            else get_settings().REASON_THRESHOLD
        )

    # ── Public API ────────────────────────────────────────────────────────

    def score(self, dog_a: DogProfile, dog_b: DogProfile) -> CompatibilityResult:
        """Score two profiles.

        Parameters
        ----------
        dog_a, dog_b:
            The profiles to compare.  Neither is modified.

        Returns
        -------
        CompatibilityResult
            ``score`` in [0, 1], ``reasons`` for every factor at or above
            the threshold in evaluation order, and the per-factor breakdown.
        """
        raw: dict[str, float | None] = {
            "breed": self._breed_score(dog_a.breed, dog_b.breed),
            "energy": self._ordinal_score(
                dog_a.energy_level, dog_b.energy_level, self.ENERGY_LEVELS, 3
            ),
            "age": self._age_score(dog_a.age, dog_b.age),
            "size": self._size_score(dog_a.size, dog_b.size),
            "temperament": self._ordinal_score(
                dog_a.friendliness, dog_b.friendliness, self.FRIENDLINESS_LEVELS, 3
            ),
            "exercise": self._ordinal_score(
                dog_a.exercise_needs, dog_b.exercise_needs, self.EXERCISE_LEVELS, 4
            ),
            "training": self._ordinal_score(
                dog_a.trainability,
                dog_b.trainability,
                self.TRAINING_LEVELS,
                3,
                unknown=1,
            ),
            "health": self._special_needs_score(dog_a.special_needs, dog_b.special_needs),
        }

        factors: list[FactorScore] = []
        reasons: list[MatchReason] = []
        weighted_sum = 0.0
        weight_total = 0.0

        for factor, value in raw.items():
            weight = self._weight(factor)
            if value is None:
                factors.append(FactorScore(factor=factor, score=0.0, weight=weight, applied=False))
                continue
            factors.append(FactorScore(factor=factor, score=value, weight=weight, applied=True))
            weighted_sum += value * weight
            weight_total += weight
            if value >= self.reason_threshold:
                reasons.append(self.FACTOR_REASONS[factor])

        final = weighted_sum / weight_total if weight_total > 0 else 0.0
        final = max(0.0, min(1.0, final))

        logger.debug(
            "compatibility_scored",
            dog_a=str(dog_a.id),
            dog_b=str(dog_b.id),
            score=round(final, 4),
            reasons=[r.value for r in reasons],
        )

        return CompatibilityResult(score=final, reasons=reasons, factors=factors)

    # ── Factor functions ─────────────────────────────────────────────────

    def _weight(self, factor: str) -> float:
        prioritized = {
            "breed": self.preferences.prioritize_breed,
            "energy": self.preferences.prioritize_energy,
            "age": self.preferences.prioritize_age,
        }
        if prioritized.get(factor):
            return self.PRIORITY_WEIGHTS[factor]
        return self.BASE_WEIGHTS[factor]

    @staticmethod
    def _normalise(label: str | None) -> str:
        return (label or "").strip().lower()

    def _breed_score(self, breed_a: str | None, breed_b: str | None) -> float | None:
        a, b = self._normalise(breed_a), self._normalise(breed_b)
        if not a or not b:
            return None
        return 1.0 if a == b else 0.0

    def _ordinal_score(
        self,
        label_a: str | None,
        label_b: str | None,
        scale: dict[str, int],
        span: int,
        unknown: int = 2,
    ) -> float:
        """1 - |a - b| / span on an ordinal scale; unknown labels sit at ``unknown``."""
        a, b = self._normalise(label_a), self._normalise(label_b)
        if not a or not b:
            return NEUTRAL_SCORE
        level_a = scale.get(a, unknown)
        level_b = scale.get(b, unknown)
        return 1.0 - abs(level_a - level_b) / span

    @staticmethod
    def _age_score(age_a: int | None, age_b: int | None) -> float:
        if age_a is None or age_b is None:
            return NEUTRAL_SCORE
        diff = abs(age_a - age_b)
        if diff <= 2:
            return 1.0
        if diff <= 4:
            return 0.7
        if diff <= 6:
            return 0.4
        return 0.2

    def _size_score(self, size_a: str | None, size_b: str | None) -> float | None:
        a, b = self._normalise(size_a), self._normalise(size_b)
        if not a or not b:
            return None
        if a == b:
            return 1.0
        if abs(self.SIZE_LEVELS.get(a, 2) - self.SIZE_LEVELS.get(b, 2)) == 1:
            return 0.5
        return 0.0

    def _special_needs_score(self, needs_a: str | None, needs_b: str | None) -> float | None:
        has_a = bool(self._normalise(needs_a))
        has_b = bool(self._normalise(needs_b))
        if not has_a and not has_b:
            return None
        if has_a and has_b:
            return 0.5
        return 0.7
