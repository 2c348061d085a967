"""
PawMatch — Swipe API

Records a swipe for one of the caller's dogs and reports whether it
completed a mutual like.
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import APIRouter, Depends, status

from pawmatch.api.deps import get_current_user_id, get_profile_lookup, get_swipe_service
from pawmatch.exceptions import InvalidSwipeError, ProfileNotFoundError
from pawmatch.repositories.dog_repository import SqlProfileLookup
from pawmatch.schemas.match import SwipeCreate, SwipeResponse
from pawmatch.services.swipe_service import SwipeService

logger = structlog.get_logger("pawmatch.api.swipes")

router = APIRouter()


@router.post(
    "",
    response_model=SwipeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a swipe",
)
async def record_swipe(
    body: SwipeCreate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    profiles: SqlProfileLookup = Depends(get_profile_lookup),
    service: SwipeService = Depends(get_swipe_service),
) -> SwipeResponse:
    swiper_dog = await profiles.get_dog_by_id(body.swiper_dog_id)
    if swiper_dog is None:
        raise ProfileNotFoundError(user_id, body.swiper_dog_id)
    if swiper_dog.owner_id != user_id:
        raise InvalidSwipeError("Swiper dog does not belong to the caller", field="swiper_dog_id")

    outcome = await service.record_swipe(
        swiper_owner_id=user_id,
        swiper_dog_id=body.swiper_dog_id,
        swiped_dog_id=body.swiped_dog_id,
        direction=body.direction,
    )
    return SwipeResponse(
        swipe_id=outcome.swipe.id,
        direction=outcome.swipe.direction,
        is_mutual_match=outcome.is_mutual_match,
        match_created=outcome.match_created,
        match_id=outcome.match.id if outcome.match else None,
    )
