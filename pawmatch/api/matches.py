"""
PawMatch — Matching API

Match reads and lifecycle actions, score previews, nearby ranking, and the
match-to-conversation handoff.
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import APIRouter, Depends, Query

from pawmatch.api.deps import (
    get_conversation_service,
    get_current_user_id,
    get_lifecycle_service,
    get_matching_service,
    get_profile_lookup,
)
from pawmatch.config import get_settings
from pawmatch.exceptions import NotParticipantError, ProfileNotFoundError
from pawmatch.repositories.dog_repository import SqlProfileLookup
from pawmatch.schemas.conversation import ConversationResponse
from pawmatch.schemas.match import MatchResponse, MatchScore, NearbyCandidate
from pawmatch.services.conversation_service import ConversationService
from pawmatch.services.match_lifecycle_service import MatchLifecycleService
from pawmatch.services.matching_service import MatchingService

logger = structlog.get_logger("pawmatch.api.matches")

router = APIRouter()


# ──────────────────────────────────────────────────────────────────────────────
# Scoring
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/score/{dog_a_id}/{dog_b_id}",
    response_model=MatchScore,
    summary="Preview the match score between two dogs",
)
async def preview_score(
    dog_a_id: uuid.UUID,
    dog_b_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    profiles: SqlProfileLookup = Depends(get_profile_lookup),
    matching: MatchingService = Depends(get_matching_service),
) -> MatchScore:
    dog_a = await profiles.get_dog_by_id(dog_a_id)
    if dog_a is None:
        raise ProfileNotFoundError(user_id, dog_a_id)
    dog_b = await profiles.get_dog_by_id(dog_b_id)
    if dog_b is None:
        raise ProfileNotFoundError(user_id, dog_b_id)
    return matching.score(dog_a, dog_b)


@router.get(
    "/nearby/{dog_id}",
    response_model=list[NearbyCandidate],
    summary="Rank nearby dogs by proximity, then compatibility",
)
async def nearby(
    dog_id: uuid.UUID,
    radius_km: float | None = Query(default=None, gt=0),
    limit: int | None = Query(default=None, ge=1, le=100),
    user_id: uuid.UUID = Depends(get_current_user_id),
    profiles: SqlProfileLookup = Depends(get_profile_lookup),
    matching: MatchingService = Depends(get_matching_service),
) -> list[NearbyCandidate]:
    settings = get_settings()
    dog = await profiles.get_dog_by_id(dog_id)
    if dog is None:
        raise ProfileNotFoundError(user_id, dog_id)

    candidates = await profiles.list_candidates(exclude_dog_id=dog_id)
    ranked = matching.rank_nearby(
        dog,
        candidates,
        radius_km=radius_km if radius_km is not None else settings.MAX_MATCH_DISTANCE_KM,
        limit=limit,
    )
    return [
        NearbyCandidate(
            dog_id=r.dog.id,
            name=r.dog.name,
            breed=r.dog.breed,
            combined=round(r.score.combined, 4),
            compatibility=round(r.score.compatibility, 4),
            location=r.score.location,
            distance_km=round(r.score.distance_km, 2) if r.score.distance_km is not None else None,
            reasons=[reason.description for reason in r.score.reasons],
        )
        for r in ranked
    ]


# ──────────────────────────────────────────────────────────────────────────────
# Lifecycle
# ──────────────────────────────────────────────────────────────────────────────

@router.get("/{match_id}", response_model=MatchResponse, summary="Get a match")
async def get_match(
    match_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    lifecycle: MatchLifecycleService = Depends(get_lifecycle_service),
) -> MatchResponse:
    match = await lifecycle.get_for_participant(match_id, user_id)
    return MatchResponse.from_match(match)


@router.post("/{match_id}/accept", response_model=MatchResponse, summary="Accept a pending match")
async def accept_match(
    match_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    lifecycle: MatchLifecycleService = Depends(get_lifecycle_service),
) -> MatchResponse:
    return MatchResponse.from_match(await lifecycle.accept(match_id, user_id))


@router.post("/{match_id}/decline", response_model=MatchResponse, summary="Decline a pending match")
async def decline_match(
    match_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    lifecycle: MatchLifecycleService = Depends(get_lifecycle_service),
) -> MatchResponse:
    return MatchResponse.from_match(await lifecycle.decline(match_id, user_id))


@router.post("/{match_id}/cancel", response_model=MatchResponse, summary="Withdraw from an active match")
async def cancel_match(
    match_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    lifecycle: MatchLifecycleService = Depends(get_lifecycle_service),
) -> MatchResponse:
    return MatchResponse.from_match(await lifecycle.cancel(match_id, user_id))


# ──────────────────────────────────────────────────────────────────────────────
# Conversation handoff
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/{match_id}/conversation",
    response_model=ConversationResponse,
    summary="Open (or fetch) the conversation for an active match",
)
async def initiate_conversation(
    match_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    lifecycle: MatchLifecycleService = Depends(get_lifecycle_service),
    service: ConversationService = Depends(get_conversation_service),
) -> ConversationResponse:
    match = await lifecycle.get(match_id)
    if user_id not in match.participants:
        raise NotParticipantError(user_id, match_id)
    return await service.initiate_conversation(match_id)
