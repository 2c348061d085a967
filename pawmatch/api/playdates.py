"""
PawMatch — Playdate API

Drives the caller's in-process playdate negotiation one step per request,
and lets participants answer finalized requests.
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import APIRouter, Depends, Response, status

from pawmatch.api.deps import (
    NegotiationRegistry,
    get_current_user_id,
    get_negotiation_registry,
    get_playdate_service,
)
from pawmatch.schemas.playdate import (
    LocationProposal,
    NegotiationResponse,
    NegotiationStart,
    PlaydateRequestResponse,
    RequestResponse,
    TimeProposal,
)
from pawmatch.services.playdate_service import PlaydateService

logger = structlog.get_logger("pawmatch.api.playdates")

router = APIRouter()


@router.post(
    "/negotiation",
    response_model=NegotiationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start a playdate negotiation for a match",
)
async def start_negotiation(
    body: NegotiationStart,
    user_id: uuid.UUID = Depends(get_current_user_id),
    registry: NegotiationRegistry = Depends(get_negotiation_registry),
    service: PlaydateService = Depends(get_playdate_service),
) -> NegotiationResponse:
    async with registry.lock_for(user_id):
        result = await service.start(registry.session_for(user_id), body.match_id)
    return NegotiationResponse.from_result(result)


@router.post(
    "/negotiation/time",
    response_model=NegotiationResponse,
    summary="Propose a date and time",
)
async def propose_time(
    body: TimeProposal,
    user_id: uuid.UUID = Depends(get_current_user_id),
    registry: NegotiationRegistry = Depends(get_negotiation_registry),
    service: PlaydateService = Depends(get_playdate_service),
) -> NegotiationResponse:
    async with registry.lock_for(user_id):
        result = await service.propose_time(registry.session_for(user_id), body.proposed_time)
    return NegotiationResponse.from_result(result)


@router.post(
    "/negotiation/location",
    response_model=NegotiationResponse,
    summary="Propose a venue",
)
async def propose_location(
    body: LocationProposal,
    user_id: uuid.UUID = Depends(get_current_user_id),
    registry: NegotiationRegistry = Depends(get_negotiation_registry),
    service: PlaydateService = Depends(get_playdate_service),
) -> NegotiationResponse:
    async with registry.lock_for(user_id):
        result = await service.propose_location(registry.session_for(user_id), body.location)
    return NegotiationResponse.from_result(result)


@router.post(
    "/negotiation/finalize",
    response_model=NegotiationResponse,
    summary="Finalize the negotiation into a playdate request",
)
async def finalize_negotiation(
    user_id: uuid.UUID = Depends(get_current_user_id),
    registry: NegotiationRegistry = Depends(get_negotiation_registry),
    service: PlaydateService = Depends(get_playdate_service),
) -> NegotiationResponse:
    async with registry.lock_for(user_id):
        result = await service.finalize(registry.session_for(user_id))
    return NegotiationResponse.from_result(result)


@router.delete(
    "/negotiation",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Abandon the current negotiation",
)
async def cancel_negotiation(
    user_id: uuid.UUID = Depends(get_current_user_id),
    registry: NegotiationRegistry = Depends(get_negotiation_registry),
    service: PlaydateService = Depends(get_playdate_service),
) -> Response:
    async with registry.lock_for(user_id):
        await service.cancel(registry.session_for(user_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/requests/{request_id}/respond",
    response_model=PlaydateRequestResponse,
    summary="Accept, decline, reschedule or cancel a playdate request",
)
async def respond_to_request(
    request_id: uuid.UUID,
    body: RequestResponse,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: PlaydateService = Depends(get_playdate_service),
) -> PlaydateRequestResponse:
    request = await service.respond(request_id, user_id, body.status)
    return PlaydateRequestResponse.from_request(request)
