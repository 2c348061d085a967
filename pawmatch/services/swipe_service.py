"""
PawMatch — Swipe recording and reciprocal match creation.

Pipeline for ``record_swipe``:
  1. Reject self-swipes and unknown target dogs before writing anything.
  2. Persist the swipe (append-only).  A failure here reaches the caller as
     ``SwipeRecordingFailedError``.
  3. On a like / super-like, look for the other dog's latest swipe back.
  4. If it is a like and the pair has no open match, score the pair and
     create a PENDING match through the store's atomic
     ``insert_if_absent`` guard keyed by the sorted pair identity.
  5. If another writer created the match first, return theirs.

Failures in steps 3-5 are logged and leave the persisted swipe in place;
any later swipe between the pair re-runs the reciprocity check.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Callable
from uuid import UUID

import structlog

from pawmatch.config import get_settings
from pawmatch.exceptions import (
    InvalidSwipeError,
    ProfileNotFoundError,
    SwipeRecordingFailedError,
)
from pawmatch.schemas.match import (
    Match,
    MatchReason,
    MatchStatus,
    MatchType,
    Swipe,
    SwipeDirection,
    SwipeOutcome,
    pair_key,
)
from pawmatch.services.contracts import MatchStore, ProfileLookup, SwipeStore
from pawmatch.services.match_lifecycle_service import expiry_for
from pawmatch.services.matching_service import MatchingService
from pawmatch.utils.clock import utc_now

logger = structlog.get_logger("pawmatch.swipe_service")


class SwipeService:
    """Records swipes and turns reciprocal likes into exactly one match per pair."""

    def __init__(
        self,
        swipe_store: SwipeStore,
        match_store: MatchStore,
        profiles: ProfileLookup,
        matching_service: MatchingService | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialise the swipe service with injected dependencies.

        Parameters
        ----------
        swipe_store:
            Append-only swipe persistence.
        match_store:
            Match persistence providing the atomic pair guard.
        profiles:
            Dog profile lookup used to score a new match.
        matching_service:
            Pair scorer.  Defaults to one built from settings.
        clock:
            Returns the current aware UTC time.
        """
        self.swipe_store = swipe_store
        self.match_store = match_store
        self.profiles = profiles
        self.matching_service = matching_service or MatchingService()
        self.clock = clock
        self.nearby_km: float = get_settings().NEARBY_MATCH_DISTANCE_KM

    # ── Public API ────────────────────────────────────────────────────────

    async def record_swipe(
        self,
        swiper_owner_id: UUID,
        swiper_dog_id: UUID,
        swiped_dog_id: UUID,
        direction: SwipeDirection,
    ) -> SwipeOutcome:
        """Persist a swipe and create the match if it completes a mutual like.

        Parameters
        ----------
        swiper_owner_id:
            Owner performing the swipe.
        swiper_dog_id:
            The owner's dog on whose behalf the swipe is made.
        swiped_dog_id:
            The dog being swiped on.
        direction:
            LIKE, PASS or SUPER_LIKE.

        Returns
        -------
        SwipeOutcome
            The stored swipe, plus the pair's match when the like was
            reciprocated.  ``match_created`` is True only for the call that
            actually inserted it.

        Raises
        ------
        InvalidSwipeError
            A dog swiped on itself; nothing is written.
        ProfileNotFoundError
            The swiped dog does not exist; nothing is written.
        SwipeRecordingFailedError
            The swipe could not be persisted.
        """
        log = logger.bind(
            swiper_dog_id=str(swiper_dog_id),
            swiped_dog_id=str(swiped_dog_id),
            direction=direction.value,
        )

        if swiper_dog_id == swiped_dog_id:
            raise InvalidSwipeError("A dog cannot swipe on itself")

        try:
            target = await self.profiles.get_dog_by_id(swiped_dog_id)
        except Exception as exc:
            log.exception("swiped_dog_lookup_failed")
            raise SwipeRecordingFailedError(str(exc) or type(exc).__name__) from exc
        if target is None:
            raise ProfileNotFoundError(owner_id=None, dog_id=swiped_dog_id)

        swipe = Swipe(
            id=uuid.uuid4(),
            swiper_owner_id=swiper_owner_id,
            swiper_dog_id=swiper_dog_id,
            swiped_dog_id=swiped_dog_id,
            direction=direction,
            created_at=self.clock(),
        )
        try:
            stored = await self.swipe_store.insert(swipe)
        except Exception as exc:
            log.exception("swipe_recording_failed")
            raise SwipeRecordingFailedError(str(exc) or type(exc).__name__) from exc

        log.info("swipe_recorded", swipe_id=str(stored.id))

        if not direction.is_like:
            return SwipeOutcome(swipe=stored)

        try:
            match, created = await self._match_if_reciprocal(stored)
        except Exception:
            # The swipe is already persisted; a later swipe retries detection.
            log.exception("match_creation_failed")
            return SwipeOutcome(swipe=stored)

        return SwipeOutcome(swipe=stored, match=match, match_created=created)

    # ── Match creation ───────────────────────────────────────────────────

    async def _match_if_reciprocal(self, swipe: Swipe) -> tuple[Match | None, bool]:
        log = logger.bind(
            swiper_dog_id=str(swipe.swiper_dog_id),
            swiped_dog_id=str(swipe.swiped_dog_id),
        )

        reciprocal = await self.swipe_store.find_reciprocal(
            swipe.swiper_dog_id, swipe.swiped_dog_id
        )
        if reciprocal is None:
            log.debug("no_reciprocal_swipe")
            return None, False

        existing = await self.match_store.find_by_pair(
            swipe.swiper_dog_id, swipe.swiped_dog_id
        )
        if existing is not None:
            log.info("match_creation_skipped", match_id=str(existing.id), reason="exists")
            return existing, False

        swiper_dog = await self.profiles.get_dog_by_id(swipe.swiper_dog_id)
        if swiper_dog is None:
            raise ProfileNotFoundError(swipe.swiper_owner_id, swipe.swiper_dog_id)
        swiped_dog = await self.profiles.get_dog_by_id(swipe.swiped_dog_id)
        if swiped_dog is None:
            raise ProfileNotFoundError(reciprocal.swiper_owner_id, swipe.swiped_dog_id)

        score = self.matching_service.score(swiper_dog, swiped_dog)
        match_type = MatchType.derive(
            score.combined,
            distance_km=score.distance_km,
            is_super_like=SwipeDirection.SUPER_LIKE
            in (swipe.direction, reciprocal.direction),
            is_breed_match=MatchReason.BREED_COMPATIBILITY in score.reasons,
            nearby_km=self.nearby_km,
        )

        now = self.clock()
        candidate = Match(
            id=uuid.uuid4(),
            pair_key=pair_key(swipe.swiper_dog_id, swipe.swiped_dog_id),
            user1_id=swipe.swiper_owner_id,
            user2_id=reciprocal.swiper_owner_id,
            dog1_id=swipe.swiper_dog_id,
            dog2_id=swipe.swiped_dog_id,
            initiator_dog_id=swipe.swiper_dog_id,
            compatibility_score=round(score.combined, 4),
            base_compatibility=round(score.compatibility, 4),
            location_score=round(score.location, 4),
            location_distance_km=score.distance_km,
            match_reasons=score.reasons,
            match_type=match_type,
            status=MatchStatus.PENDING,
            created_at=now,
            last_interaction_at=now,
            expires_at=expiry_for(match_type, now),
        )

        stored = await self.match_store.insert_if_absent(candidate)
        if stored is None:
            winner = await self.match_store.find_by_pair(
                swipe.swiper_dog_id, swipe.swiped_dog_id
            )
            log.info(
                "match_creation_skipped",
                match_id=str(winner.id) if winner else None,
                reason="concurrent_insert",
            )
            return winner, False

        log.info(
            "match_created",
            match_id=str(stored.id),
            match_type=stored.match_type.value,
            combined=stored.compatibility_score,
            compatibility=stored.base_compatibility,
            location=stored.location_score,
        )
        return stored, True
