"""Unit tests for PlaydateService — negotiation steps and request responses."""
import uuid
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from conftest import DOLORES_PARK, NOW, make_match
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
from pawmatch.schemas.conversation import Conversation, PlaydateHint
from pawmatch.schemas.dog import Venue
from pawmatch.schemas.match import MatchStatus
from pawmatch.schemas.playdate import NegotiationStatus, RequestStatus, TimeSlot
from pawmatch.services.match_lifecycle_service import MatchLifecycleService
from pawmatch.services.playdate_service import NegotiationSession, PlaydateService

TOMORROW = NOW + timedelta(days=1)


class RejectingValidator:
    async def validate(self, location):
        raise ValueError("Venue is closed")


class FixedAvailability:
    def __init__(self, slots=None, fail=False):
        self.slots = slots
        self.fail = fail
        self.calls = []

    async def get_availability_window(self, user_id, week_start):
        self.calls.append((user_id, week_start))
        if self.fail:
            raise RuntimeError("calendar unavailable")
        return self.slots


@pytest.fixture
def availability():
    return FixedAvailability()


@pytest.fixture
def service(match_store, profiles, request_store, notifications, conversation_store, availability, clock):
    return PlaydateService(
        lifecycle=MatchLifecycleService(match_store, clock=clock),
        profiles=profiles,
        requests=request_store,
        notifications=notifications,
        availability=availability,
        conversations=conversation_store,
        clock=clock,
    )


@pytest.fixture
def conversation(active_match, conversation_store):
    conversation = Conversation(
        id=uuid.uuid4(),
        match_id=active_match.id,
        user1_id=active_match.user1_id,
        user2_id=active_match.user2_id,
        dog1_id=active_match.dog1_id,
        dog2_id=active_match.dog2_id,
        participants=[active_match.user1_id, active_match.user2_id],
        created_at=NOW,
    )
    conversation_store.conversations[conversation.id] = conversation
    conversation_store.messages[conversation.id] = []
    return conversation


@pytest.fixture
def session(active_match):
    # user1 (lab_a's owner) drives the negotiation.
    return NegotiationSession(owner_id=active_match.user1_id)


class TestStart:

    @pytest.mark.asyncio
    async def test_opens_context(self, service, session, active_match, lab_b):
        result = await service.start(session, active_match.id)

        assert result.status == NegotiationStatus.BOTH_PENDING
        assert not result.is_finalized
        assert session.is_open
        assert session.context.other_dog.id == lab_b.id
        assert session.context.participants == frozenset(active_match.participants)

    @pytest.mark.asyncio
    async def test_sets_scheduling_hint(self, service, session, active_match, conversation, conversation_store):
        await service.start(session, active_match.id)
        assert conversation_store.conversations[conversation.id].playdate_status == PlaydateHint.SCHEDULING

    @pytest.mark.asyncio
    async def test_requires_active_match(self, service, match_store, lab_a, lab_b):
        pending = make_match(lab_a, lab_b, status=MatchStatus.PENDING)
        match_store.matches[pending.id] = pending
        session = NegotiationSession(owner_id=lab_a.owner_id)
        with pytest.raises(InvalidMatchStatusError):
            await service.start(session, pending.id)
        assert not session.is_open

    @pytest.mark.asyncio
    async def test_archived_match_refused(self, service, match_store, active_match, session):
        match_store.matches[active_match.id] = active_match.model_copy(update={"is_archived": True})
        with pytest.raises(InvalidMatchStatusError):
            await service.start(session, active_match.id)

    @pytest.mark.asyncio
    async def test_outsider_refused(self, service, active_match):
        with pytest.raises(NotParticipantError):
            await service.start(NegotiationSession(owner_id=uuid.uuid4()), active_match.id)

    @pytest.mark.asyncio
    async def test_missing_other_dog(self, service, profiles, session, active_match, lab_b):
        del profiles.dogs[lab_b.id]
        with pytest.raises(ProfileNotFoundError):
            await service.start(session, active_match.id)

    @pytest.mark.asyncio
    async def test_second_start_replaces_context(self, service, session, active_match):
        await service.start(session, active_match.id)
        await service.propose_time(session, TOMORROW)
        await service.start(session, active_match.id)
        assert session.context.proposed_time is None


class TestProposals:

    @pytest.mark.asyncio
    async def test_steps_require_open_negotiation(self, service, session):
        with pytest.raises(NegotiationNotOpenError):
            await service.propose_time(session, TOMORROW)
        with pytest.raises(NegotiationNotOpenError):
            await service.propose_location(session, DOLORES_PARK)
        with pytest.raises(NegotiationNotOpenError):
            await service.finalize(session)

    @pytest.mark.asyncio
    async def test_time_only_is_partial(self, service, session, active_match, conversation, conversation_store):
        await service.start(session, active_match.id)
        result = await service.propose_time(session, TOMORROW)

        assert result.status == NegotiationStatus.LOCATION_PENDING
        assert result.proposed_time == TOMORROW
        assert not result.is_finalized
        assert conversation_store.conversations[conversation.id].playdate_status == PlaydateHint.DATE_SUGGESTED

    @pytest.mark.asyncio
    async def test_location_only_is_partial(self, service, session, active_match):
        await service.start(session, active_match.id)
        result = await service.propose_location(session, DOLORES_PARK)
        assert result.status == NegotiationStatus.TIME_PENDING
        assert result.selected_location == DOLORES_PARK

    @pytest.mark.asyncio
    async def test_past_time_rejected_and_context_kept(self, service, session, active_match):
        await service.start(session, active_match.id)
        await service.propose_location(session, DOLORES_PARK)
        before = session.context

        with pytest.raises(InvalidProposedTimeError):
            await service.propose_time(session, NOW - timedelta(hours=1))
        with pytest.raises(InvalidProposedTimeError):
            await service.propose_time(session, NOW)
        assert session.context == before

    @pytest.mark.asyncio
    async def test_naive_time_taken_as_utc(self, service, session, active_match):
        await service.start(session, active_match.id)
        result = await service.propose_time(session, datetime(2026, 5, 2, 15, 0))
        assert result.proposed_time == datetime(2026, 5, 2, 15, 0, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_invalid_location_keeps_context(self, service, session, active_match):
        await service.start(session, active_match.id)
        await service.propose_time(session, TOMORROW)
        before = session.context

        with pytest.raises(InvalidLocationError) as exc_info:
            await service.propose_location(session, Venue(place_id="  "))
        assert exc_info.value.field == "location"
        assert session.context == before

    @pytest.mark.asyncio
    async def test_external_validator_rejection(
        self, match_store, profiles, request_store, notifications, clock, active_match, session
    ):
        service = PlaydateService(
            lifecycle=MatchLifecycleService(match_store, clock=clock),
            profiles=profiles,
            requests=request_store,
            notifications=notifications,
            location_validator=RejectingValidator(),
            clock=clock,
        )
        await service.start(session, active_match.id)
        with pytest.raises(InvalidLocationError, match="Venue is closed"):
            await service.propose_location(session, DOLORES_PARK)
        assert session.context.selected_location is None


class TestFinalize:

    @pytest.mark.asyncio
    async def test_time_then_location_finalizes(
        self, service, session, active_match, request_store, notifications, lab_a, lab_b
    ):
        await service.start(session, active_match.id)
        await service.propose_time(session, TOMORROW)
        result = await service.propose_location(session, DOLORES_PARK)

        assert result.is_finalized
        assert result.status == NegotiationStatus.READY
        assert not session.is_open

        request = request_store.requests[result.request.id]
        assert request.status == RequestStatus.PENDING
        assert request.requester_id == lab_a.owner_id
        assert request.receiver_id == lab_b.owner_id
        assert request.requester_dog_id == lab_a.id
        assert request.receiver_dog_id == lab_b.id
        assert request.time_slots == [TimeSlot.starting_at(TOMORROW)]
        assert request.location == DOLORES_PARK

        (sent,) = notifications.playdate_notifications
        assert sent["recipient_id"] == lab_b.owner_id
        assert sent["other_dog_name"] == "Luna"

    @pytest.mark.asyncio
    async def test_location_then_time_finalizes(self, service, session, active_match, conversation, conversation_store):
        await service.start(session, active_match.id)
        await service.propose_location(session, DOLORES_PARK)
        result = await service.propose_time(session, TOMORROW)

        assert result.is_finalized
        assert conversation_store.conversations[conversation.id].playdate_status == PlaydateHint.PENDING_CONFIRMATION

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "steps, missing",
        [
            ([], ["proposed_time", "location"]),
            (["time"], ["location"]),
            (["location"], ["proposed_time"]),
        ],
    )
    async def test_incomplete(self, service, session, active_match, request_store, steps, missing):
        await service.start(session, active_match.id)
        if "time" in steps:
            await service.propose_time(session, TOMORROW)
        if "location" in steps:
            await service.propose_location(session, DOLORES_PARK)

        with pytest.raises(NegotiationIncompleteError) as exc_info:
            await service.finalize(session)
        assert exc_info.value.missing_fields == missing
        assert session.is_open
        assert request_store.requests == {}

    @pytest.mark.asyncio
    async def test_store_failure_keeps_context(self, service, session, active_match, request_store):
        await service.start(session, active_match.id)
        await service.propose_time(session, TOMORROW)
        request_store.fail_create = True

        with pytest.raises(PlaydateRequestFailedError):
            await service.propose_location(session, DOLORES_PARK)
        assert session.is_open
        assert session.context.selected_location is None

        # Retry the final step once the store recovers.
        request_store.fail_create = False
        result = await service.propose_location(session, DOLORES_PARK)
        assert result.is_finalized

    @pytest.mark.asyncio
    async def test_notification_failure_still_finalizes(
        self, service, session, active_match, request_store, notifications
    ):
        notifications.fail = True
        await service.start(session, active_match.id)
        await service.propose_time(session, TOMORROW)
        result = await service.propose_location(session, DOLORES_PARK)

        assert result.is_finalized
        assert result.request.id in request_store.requests

    @pytest.mark.asyncio
    async def test_time_lapsing_before_finalize(self, service, session, active_match, clock):
        await service.start(session, active_match.id)
        await service.propose_time(session, NOW + timedelta(minutes=30))
        clock.advance(hours=1)
        with pytest.raises(InvalidProposedTimeError):
            await service.propose_location(session, DOLORES_PARK)

    @pytest.mark.asyncio
    async def test_match_cancelled_mid_negotiation(self, service, session, active_match, match_store):
        await service.start(session, active_match.id)
        await service.propose_time(session, TOMORROW)
        match_store.matches[active_match.id] = active_match.model_copy(
            update={"status": MatchStatus.CANCELLED}
        )
        with pytest.raises(InvalidMatchStatusError):
            await service.propose_location(session, DOLORES_PARK)

    @pytest.mark.asyncio
    async def test_hint_failure_is_ignored(self, service, session, active_match, conversation, conversation_store):
        conversation_store.fail_status = True
        await service.start(session, active_match.id)
        await service.propose_time(session, TOMORROW)
        result = await service.propose_location(session, DOLORES_PARK)
        assert result.is_finalized


class TestAvailability:

    @pytest.mark.asyncio
    async def test_failing_source_does_not_block(self, service, session, active_match, availability):
        availability.fail = True
        await service.start(session, active_match.id)
        result = await service.propose_time(session, TOMORROW)
        assert result.proposed_time == TOMORROW
        assert len(availability.calls) == 2

    @pytest.mark.asyncio
    async def test_time_outside_window_still_accepted(self, service, session, active_match, availability):
        availability.slots = [TimeSlot.starting_at(TOMORROW + timedelta(days=2))]
        await service.start(session, active_match.id)
        result = await service.propose_time(session, TOMORROW)
        assert result.proposed_time == TOMORROW


class TestCancel:

    @pytest.mark.asyncio
    async def test_cancel_clears_context(self, service, session, active_match, conversation, conversation_store):
        await service.start(session, active_match.id)
        await service.propose_time(session, TOMORROW)
        await service.cancel(session)

        assert not session.is_open
        assert conversation_store.conversations[conversation.id].playdate_status == PlaydateHint.NONE

    @pytest.mark.asyncio
    async def test_cancel_without_negotiation_is_safe(self, service, session):
        await service.cancel(session)
        assert not session.is_open


class TestRespond:

    @pytest_asyncio.fixture
    async def pending_request(self, service, session, active_match):
        await service.start(session, active_match.id)
        await service.propose_time(session, TOMORROW)
        result = await service.propose_location(session, DOLORES_PARK)
        return result.request

    @pytest.mark.asyncio
    async def test_receiver_accepts(self, service, pending_request, request_store, conversation, conversation_store):
        updated = await service.respond(
            pending_request.id, pending_request.receiver_id, RequestStatus.ACCEPTED
        )
        assert updated.status == RequestStatus.ACCEPTED
        assert request_store.requests[pending_request.id].status == RequestStatus.ACCEPTED
        assert conversation_store.conversations[conversation.id].playdate_status == PlaydateHint.CONFIRMED

    @pytest.mark.asyncio
    async def test_requester_cannot_accept(self, service, pending_request):
        with pytest.raises(NotReceiverError):
            await service.respond(pending_request.id, pending_request.requester_id, RequestStatus.ACCEPTED)

    @pytest.mark.asyncio
    async def test_requester_can_cancel(self, service, pending_request):
        updated = await service.respond(
            pending_request.id, pending_request.requester_id, RequestStatus.CANCELED
        )
        assert updated.status == RequestStatus.CANCELED

    @pytest.mark.asyncio
    async def test_outsider_refused(self, service, pending_request):
        with pytest.raises(NotParticipantError):
            await service.respond(pending_request.id, uuid.uuid4(), RequestStatus.CANCELED)

    @pytest.mark.asyncio
    async def test_answered_request_is_final(self, service, pending_request):
        await service.respond(pending_request.id, pending_request.receiver_id, RequestStatus.DECLINED)
        with pytest.raises(RequestNotPendingError):
            await service.respond(pending_request.id, pending_request.receiver_id, RequestStatus.ACCEPTED)

    @pytest.mark.asyncio
    async def test_cannot_reset_to_pending(self, service, pending_request):
        with pytest.raises(ValidationFailure):
            await service.respond(pending_request.id, pending_request.receiver_id, RequestStatus.PENDING)

    @pytest.mark.asyncio
    async def test_unknown_request(self, service):
        with pytest.raises(PlaydateRequestNotFoundError):
            await service.respond(uuid.uuid4(), uuid.uuid4(), RequestStatus.ACCEPTED)
