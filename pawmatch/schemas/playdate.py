from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from pawmatch.schemas.dog import DogProfile, Venue
from pawmatch.schemas.match import Match

DEFAULT_PLAYDATE_MINUTES = 60


class RequestStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
    RESCHEDULED = "RESCHEDULED"
    CANCELED = "CANCELED"


class NegotiationStatus(str, Enum):
    """Derived progress of an open negotiation."""

    BOTH_PENDING = "BOTH_PENDING"
    LOCATION_PENDING = "LOCATION_PENDING"
    TIME_PENDING = "TIME_PENDING"
    READY = "READY"


class TimeSlot(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @classmethod
    def starting_at(
        cls, start: datetime, minutes: int = DEFAULT_PLAYDATE_MINUTES
    ) -> "TimeSlot":
        return cls(start=start, end=start + timedelta(minutes=minutes))

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end


class PlaydateRequest(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    match_id: UUID
    requester_id: UUID
    receiver_id: UUID
    requester_dog_id: UUID
    receiver_dog_id: UUID
    time_slots: list[TimeSlot]
    location: Venue
    status: RequestStatus = RequestStatus.PENDING
    duration_minutes: int = DEFAULT_PLAYDATE_MINUTES
    notes: str = ""
    created_at: datetime
    updated_at: datetime

    @property
    def participants(self) -> set[UUID]:
        return {self.requester_id, self.receiver_id}


class PlaydateNegotiationContext(BaseModel):
    """Staging area for one in-progress negotiation.

    Immutable; every step produces a new context with ``model_copy`` and the
    coordinator only stores it once the step has fully succeeded.
    """

    model_config = ConfigDict(frozen=True)

    match: Match
    initiator_id: UUID
    other_dog: DogProfile
    participants: frozenset[UUID]
    selected_location: Optional[Venue] = None
    proposed_time: Optional[datetime] = None

    @property
    def status(self) -> NegotiationStatus:
        if self.selected_location is None and self.proposed_time is None:
            return NegotiationStatus.BOTH_PENDING
        if self.selected_location is None:
            return NegotiationStatus.LOCATION_PENDING
        if self.proposed_time is None:
            return NegotiationStatus.TIME_PENDING
        return NegotiationStatus.READY

    @property
    def missing_fields(self) -> list[str]:
        missing = []
        if self.proposed_time is None:
            missing.append("proposed_time")
        if self.selected_location is None:
            missing.append("location")
        return missing


class NegotiationResult(BaseModel):
    """Outcome of a negotiation step: partial progress or a finalized request."""

    match_id: UUID
    status: NegotiationStatus
    proposed_time: Optional[datetime] = None
    selected_location: Optional[Venue] = None
    request: Optional[PlaydateRequest] = None

    @property
    def is_finalized(self) -> bool:
        return self.request is not None

    @classmethod
    def partial(cls, context: PlaydateNegotiationContext) -> "NegotiationResult":
        return cls(
            match_id=context.match.id,
            status=context.status,
            proposed_time=context.proposed_time,
            selected_location=context.selected_location,
        )


# ── API bodies ───────────────────────────────────────────────────────────────

class NegotiationStart(BaseModel):
    match_id: UUID


class TimeProposal(BaseModel):
    proposed_time: datetime


class LocationProposal(BaseModel):
    location: Venue


class RequestResponse(BaseModel):
    status: RequestStatus


class NegotiationResponse(BaseModel):
    match_id: UUID
    status: NegotiationStatus
    finalized: bool
    proposed_time: Optional[datetime] = None
    selected_location: Optional[Venue] = None
    request_id: Optional[UUID] = None

    @classmethod
    def from_result(cls, result: NegotiationResult) -> "NegotiationResponse":
        return cls(
            match_id=result.match_id,
            status=result.status,
            finalized=result.is_finalized,
            proposed_time=result.proposed_time,
            selected_location=result.selected_location,
            request_id=result.request.id if result.request else None,
        )


class PlaydateRequestResponse(BaseModel):
    request_id: UUID
    match_id: UUID
    status: RequestStatus
    requester_id: UUID
    receiver_id: UUID
    time_slots: list[TimeSlot] = Field(default_factory=list)
    location: Venue

    @classmethod
    def from_request(cls, request: PlaydateRequest) -> "PlaydateRequestResponse":
        return cls(
            request_id=request.id,
            match_id=request.match_id,
            status=request.status,
            requester_id=request.requester_id,
            receiver_id=request.receiver_id,
            time_slots=request.time_slots,
            location=request.location,
        )
