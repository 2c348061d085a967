"""
PawMatch — Playdate negotiation and request responses.

A negotiation is a three-step wizard held in a caller-owned
``NegotiationSession``:

  start ─▶ propose_time / propose_location (either order) ─▶ finalize
                         │
                         └─▶ cancel (always safe)

Once both a future time and a validated location are present, the context
is flushed into a persisted ``PlaydateRequest`` and cleared.  A step that
fails leaves the session exactly as it was; only ``finalize`` writes.

The conversation's ``playdate_status`` is updated along the way as a UI
hint only; failures there are logged and ignored.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable
from uuid import UUID

import structlog

from pawmatch.exceptions import (
    InvalidLocationError,
    InvalidMatchStatusError,
    InvalidProposedTimeError,
    NegotiationIncompleteError,
    NegotiationNotOpenError,
    NotParticipantError,
    NotReceiverError,
    PlaydateRequestFailedError,
    PlaydateRequestNotFoundError,
    ProfileNotFoundError,
    RequestNotPendingError,
    ValidationFailure,
)
from pawmatch.schemas.conversation import PlaydateHint
from pawmatch.schemas.dog import Venue
from pawmatch.schemas.match import Match, MatchStatus
from pawmatch.schemas.playdate import (
    NegotiationResult,
    NegotiationStatus,
    PlaydateNegotiationContext,
    PlaydateRequest,
    RequestStatus,
    TimeSlot,
)
from pawmatch.services.collaborators import NoAvailabilityData, VenueValidator
from pawmatch.services.contracts import (
    AvailabilitySource,
    ConversationStore,
    LocationValidator,
    NotificationSink,
    PlaydateRequestStore,
    ProfileLookup,
)
from pawmatch.services.match_lifecycle_service import MatchLifecycleService
from pawmatch.utils.clock import as_utc, utc_now

logger = structlog.get_logger("pawmatch.playdate_service")

_RESPONSE_HINTS: dict[RequestStatus, PlaydateHint] = {
    RequestStatus.ACCEPTED: PlaydateHint.CONFIRMED,
    RequestStatus.DECLINED: PlaydateHint.CANCELLED,
    RequestStatus.CANCELED: PlaydateHint.CANCELLED,
    RequestStatus.RESCHEDULED: PlaydateHint.SCHEDULING,
}


@dataclass
class NegotiationSession:
    """Single in-memory slot for one caller's negotiation."""

    owner_id: UUID
    context: PlaydateNegotiationContext | None = None

    @property
    def is_open(self) -> bool:
        return self.context is not None


class PlaydateService:
    """Coordinates playdate negotiation for active matches."""

    def __init__(
        self,
        lifecycle: MatchLifecycleService,
        profiles: ProfileLookup,
        requests: PlaydateRequestStore,
        notifications: NotificationSink,
        location_validator: LocationValidator | None = None,
        availability: AvailabilitySource | None = None,
        conversations: ConversationStore | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialise the playdate service with injected dependencies.

        Parameters
        ----------
        lifecycle:
            Match reads (with lazy expiry).
        profiles:
            Dog profile lookup for the other participant's dog.
        requests:
            Persistence for finalized playdate requests.
        notifications:
            Sink for the playdate-request notification.
        location_validator:
            External venue check.  Defaults to ``VenueValidator``.
        availability:
            Best-effort availability source.  Defaults to one with no data.
        conversations:
            Optional; when given, receives ``playdate_status`` UI hints.
        clock:
            Returns the current aware UTC time.
        """
        self.lifecycle = lifecycle
        self.profiles = profiles
        self.requests = requests
        self.notifications = notifications
        self.location_validator = location_validator or VenueValidator()
        self.availability = availability or NoAvailabilityData()
        self.conversations = conversations
        self.clock = clock

    # ── Negotiation ───────────────────────────────────────────────────────

    async def start(
        self, session: NegotiationSession, match_id: UUID
    ) -> NegotiationResult:
        """Open a negotiation for ``match_id``, replacing any open one."""
        caller_id = session.owner_id
        log = logger.bind(match_id=str(match_id), caller_id=str(caller_id))

        match = await self.lifecycle.get_for_participant(match_id, caller_id)
        self._require_schedulable(match)

        other_dog_id = match.other_dog_id(match.dog_of(caller_id))
        other_dog = await self.profiles.get_dog_by_id(other_dog_id)
        if other_dog is None:
            raise ProfileNotFoundError(match.other_user_id(caller_id), other_dog_id)

        if session.context is not None:
            log.info(
                "playdate_negotiation_replaced",
                previous_match_id=str(session.context.match.id),
            )

        context = PlaydateNegotiationContext(
            match=match,
            initiator_id=caller_id,
            other_dog=other_dog,
            participants=frozenset(match.participants),
        )
        session.context = context
        log.info("playdate_negotiation_started")

        await self._update_hint(match, PlaydateHint.SCHEDULING)
        return NegotiationResult.partial(context)

    async def propose_time(
        self, session: NegotiationSession, proposed_time: datetime
    ) -> NegotiationResult:
        """Store a proposed time; finalizes if a location is already chosen.

        Naive datetimes are taken as UTC.
        """
        context = self._require_open(session)
        when = as_utc(proposed_time)
        self._require_future(when)

        await self._check_availability(context, when)

        updated = context.model_copy(update={"proposed_time": when})
        if updated.selected_location is not None:
            return await self._finalize(session, updated)

        session.context = updated
        logger.info(
            "playdate_time_proposed",
            match_id=str(context.match.id),
            proposed_time=when.isoformat(),
        )
        await self._update_hint(context.match, PlaydateHint.DATE_SUGGESTED)
        return NegotiationResult.partial(updated)

    async def propose_location(
        self, session: NegotiationSession, location: Venue
    ) -> NegotiationResult:
        """Validate and store a location; finalizes if a time is already proposed."""
        context = self._require_open(session)

        try:
            await self.location_validator.validate(location)
        except InvalidLocationError:
            raise
        except Exception as exc:
            logger.info(
                "playdate_location_rejected",
                match_id=str(context.match.id),
                place_id=location.place_id,
                reason=str(exc),
            )
            raise InvalidLocationError(str(exc) or "Location failed validation") from exc

        updated = context.model_copy(update={"selected_location": location})
        if updated.proposed_time is not None:
            return await self._finalize(session, updated)

        session.context = updated
        logger.info(
            "playdate_location_proposed",
            match_id=str(context.match.id),
            place_id=location.place_id,
        )
        await self._update_hint(context.match, PlaydateHint.LOCATION_SUGGESTED)
        return NegotiationResult.partial(updated)

    async def finalize(self, session: NegotiationSession) -> NegotiationResult:
        """Persist the request; requires both time and location."""
        context = self._require_open(session)
        missing = context.missing_fields
        if missing:
            raise NegotiationIncompleteError(missing)
        return await self._finalize(session, context)

    async def cancel(self, session: NegotiationSession) -> None:
        """Drop the open negotiation, if any."""
        previous = session.context
        session.context = None
        if previous is None:
            return
        logger.info("playdate_negotiation_cancelled", match_id=str(previous.match.id))
        await self._update_hint(previous.match, PlaydateHint.NONE)

    # ── Request responses ────────────────────────────────────────────────

    async def respond(
        self, request_id: UUID, actor_id: UUID, status: RequestStatus
    ) -> PlaydateRequest:
        """Answer a pending request.

        The receiver may accept, decline or ask to reschedule; either
        participant may cancel.
        """
        request = await self.requests.get_by_id(request_id)
        if request is None:
            raise PlaydateRequestNotFoundError(request_id)
        if actor_id not in request.participants:
            raise NotParticipantError(actor_id, request.match_id)
        if status == RequestStatus.PENDING:
            raise ValidationFailure("A request cannot be set back to PENDING", field="status")
        if request.status != RequestStatus.PENDING:
            raise RequestNotPendingError(request_id, request.status)
        if status != RequestStatus.CANCELED and actor_id != request.receiver_id:
            raise NotReceiverError(actor_id, request_id)

        updated = request.model_copy(update={"status": status, "updated_at": self.clock()})
        stored = await self.requests.update(updated)
        logger.info(
            "playdate_request_answered",
            request_id=str(request_id),
            actor_id=str(actor_id),
            status=status.value,
        )

        try:
            match = await self.lifecycle.get(request.match_id)
        except Exception:
            logger.warning("playdate_hint_match_unavailable", match_id=str(request.match_id))
        else:
            await self._update_hint(match, _RESPONSE_HINTS[status])
        return stored

    # ── Private helpers ───────────────────────────────────────────────────

    @staticmethod
    def _require_open(session: NegotiationSession) -> PlaydateNegotiationContext:
        if session.context is None:
            raise NegotiationNotOpenError()
        return session.context

    def _require_schedulable(self, match: Match) -> None:
        now = self.clock()
        if match.can_schedule_playdate(now):
            return
        status = "ARCHIVED" if match.is_active(now) else match.status
        raise InvalidMatchStatusError(match.id, status, MatchStatus.ACTIVE)

    def _require_future(self, when: datetime) -> None:
        if when <= self.clock():
            raise InvalidProposedTimeError()

    async def _check_availability(
        self, context: PlaydateNegotiationContext, when: datetime
    ) -> None:
        """Best-effort: unknown or failing availability never blocks scheduling."""
        week_start = (when - timedelta(days=when.weekday())).date()
        for user_id in sorted(context.participants, key=str):
            try:
                window = await self.availability.get_availability_window(user_id, week_start)
            except Exception:
                logger.warning(
                    "availability_lookup_failed",
                    match_id=str(context.match.id),
                    user_id=str(user_id),
                    exc_info=True,
                )
                continue
            if window and not any(slot.contains(when) for slot in window):
                logger.info(
                    "proposed_time_outside_availability",
                    match_id=str(context.match.id),
                    user_id=str(user_id),
                    proposed_time=when.isoformat(),
                )

    async def _finalize(
        self, session: NegotiationSession, context: PlaydateNegotiationContext
    ) -> NegotiationResult:
        log = logger.bind(match_id=str(context.match.id))
        self._require_future(context.proposed_time)

        match = await self.lifecycle.get(context.match.id)
        self._require_schedulable(match)

        requester_id = context.initiator_id
        now = self.clock()
        request = PlaydateRequest(
            id=uuid.uuid4(),
            match_id=match.id,
            requester_id=requester_id,
            receiver_id=match.other_user_id(requester_id),
            requester_dog_id=match.dog_of(requester_id),
            receiver_dog_id=context.other_dog.id,
            time_slots=[TimeSlot.starting_at(context.proposed_time)],
            location=context.selected_location,
            created_at=now,
            updated_at=now,
        )

        try:
            stored = await self.requests.create(request)
        except Exception as exc:
            log.exception("playdate_request_persist_failed")
            raise PlaydateRequestFailedError(
                match.id, str(exc) or type(exc).__name__
            ) from exc

        session.context = None
        log.info("playdate_request_created", request_id=str(stored.id))

        try:
            await self.notifications.send_playdate_request_notification(
                stored.id, context.other_dog.name, stored.receiver_id
            )
        except Exception:
            # The request is persisted; the receiver still sees it in-app.
            log.exception("playdate_request_notification_failed", request_id=str(stored.id))

        await self._update_hint(match, PlaydateHint.PENDING_CONFIRMATION)
        return NegotiationResult(
            match_id=match.id,
            status=NegotiationStatus.READY,
            proposed_time=context.proposed_time,
            selected_location=context.selected_location,
            request=stored,
        )

    async def _update_hint(self, match: Match, hint: PlaydateHint) -> None:
        if self.conversations is None:
            return
        try:
            conversation_id = match.conversation_id
            if conversation_id is None:
                conversation = await self.conversations.find_by_match(match.id)
                if conversation is None:
                    return
                conversation_id = conversation.id
            await self.conversations.set_playdate_status(conversation_id, hint)
        except Exception:
            logger.warning(
                "playdate_hint_update_failed",
                match_id=str(match.id),
                hint=hint.value,
                exc_info=True,
            )
