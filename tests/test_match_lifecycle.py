"""Unit tests for the match lifecycle state machine."""
import asyncio
import uuid
from datetime import timedelta

import pytest

from conftest import NOW, make_match
from pawmatch.exceptions import (
    InvalidTransitionError,
    MatchNotFoundError,
    NotParticipantError,
    NotReceiverError,
)
from pawmatch.schemas.match import MatchStatus, MatchType
from pawmatch.services.match_lifecycle_service import (
    MatchEvent,
    MatchLifecycleService,
    effective_status,
    expiry_for,
    transition_status,
)


class TestTransitionTable:

    @pytest.mark.parametrize(
        "current, event, expected",
        [
            (MatchStatus.PENDING, MatchEvent.ACCEPT, MatchStatus.ACTIVE),
            (MatchStatus.PENDING, MatchEvent.DECLINE, MatchStatus.DECLINED),
            (MatchStatus.ACTIVE, MatchEvent.CANCEL, MatchStatus.CANCELLED),
            (MatchStatus.PENDING, MatchEvent.EXPIRE, MatchStatus.EXPIRED),
            (MatchStatus.ACTIVE, MatchEvent.EXPIRE, MatchStatus.EXPIRED),
        ],
    )
    def test_allowed(self, current, event, expected):
        assert transition_status(current, event) == expected

    @pytest.mark.parametrize("terminal", [MatchStatus.DECLINED, MatchStatus.EXPIRED, MatchStatus.CANCELLED])
    @pytest.mark.parametrize("event", list(MatchEvent))
    def test_terminal_states_are_final(self, terminal, event):
        with pytest.raises(InvalidTransitionError):
            transition_status(terminal, event)

    def test_active_cannot_be_declined(self):
        with pytest.raises(InvalidTransitionError):
            transition_status(MatchStatus.ACTIVE, MatchEvent.DECLINE)


class TestExpiry:

    def test_effective_status_after_deadline(self):
        expires = NOW + timedelta(days=7)
        assert effective_status(MatchStatus.ACTIVE, expires, expires) == MatchStatus.EXPIRED
        assert effective_status(MatchStatus.PENDING, expires, NOW) == MatchStatus.PENDING

    def test_terminal_status_not_rewritten(self):
        assert effective_status(MatchStatus.DECLINED, NOW, NOW + timedelta(days=30)) == MatchStatus.DECLINED

    def test_expiry_durations(self):
        assert expiry_for(MatchType.NORMAL, NOW, base_days=7) == NOW + timedelta(days=7)
        assert expiry_for(MatchType.SUPER_LIKE, NOW, base_days=7) == NOW + timedelta(days=14)
        assert expiry_for(MatchType.PERFECT_MATCH, NOW, base_days=7) == NOW + timedelta(days=14)


@pytest.fixture
def lifecycle(match_store, clock):
    return MatchLifecycleService(match_store, clock=clock)


@pytest.fixture
def pending_match(lab_a, lab_b, match_store):
    match = make_match(lab_a, lab_b, status=MatchStatus.PENDING)
    match_store.matches[match.id] = match
    return match


class TestLifecycleService:

    @pytest.mark.asyncio
    async def test_receiver_accepts(self, lifecycle, match_store, pending_match):
        updated = await lifecycle.accept(pending_match.id, pending_match.user2_id)
        assert updated.status == MatchStatus.ACTIVE
        assert match_store.matches[pending_match.id].status == MatchStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_initiator_cannot_accept(self, lifecycle, pending_match):
        with pytest.raises(NotReceiverError):
            await lifecycle.accept(pending_match.id, pending_match.user1_id)

    @pytest.mark.asyncio
    async def test_outsider_cannot_read(self, lifecycle, pending_match):
        with pytest.raises(NotParticipantError):
            await lifecycle.get_for_participant(pending_match.id, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_receiver_declines(self, lifecycle, pending_match):
        updated = await lifecycle.decline(pending_match.id, pending_match.user2_id)
        assert updated.status == MatchStatus.DECLINED

    @pytest.mark.asyncio
    async def test_either_side_cancels_active(self, lifecycle, active_match):
        updated = await lifecycle.cancel(active_match.id, active_match.user1_id)
        assert updated.status == MatchStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_cancel_pending_is_invalid(self, lifecycle, pending_match):
        with pytest.raises(InvalidTransitionError):
            await lifecycle.cancel(pending_match.id, pending_match.user2_id)

    @pytest.mark.asyncio
    async def test_unknown_match(self, lifecycle):
        with pytest.raises(MatchNotFoundError) as exc_info:
            await lifecycle.get(uuid.uuid4())
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_lazy_expiry_persisted_on_read(self, lifecycle, match_store, pending_match, clock):
        clock.advance(days=8)
        match = await lifecycle.get(pending_match.id)
        assert match.status == MatchStatus.EXPIRED
        assert match_store.matches[pending_match.id].status == MatchStatus.EXPIRED

    @pytest.mark.asyncio
    async def test_expired_match_cannot_be_accepted(self, lifecycle, pending_match, clock):
        clock.advance(days=7)
        with pytest.raises(InvalidTransitionError):
            await lifecycle.accept(pending_match.id, pending_match.user2_id)

    @pytest.mark.asyncio
    async def test_attach_conversation_is_idempotent(self, lifecycle, match_store, active_match):
        conversation_id = uuid.uuid4()
        first = await lifecycle.attach_conversation(active_match, conversation_id)
        second = await lifecycle.attach_conversation(first, conversation_id)
        assert second.conversation_id == conversation_id
        assert second.conversation_created_at == first.conversation_created_at
        assert match_store.matches[active_match.id].conversation_id == conversation_id


class TestConcurrentWrites:

    @pytest.mark.asyncio
    async def test_accept_and_decline_race_has_one_winner(self, lifecycle, match_store, pending_match):
        receiver = pending_match.user2_id
        results = await asyncio.gather(
            lifecycle.accept(pending_match.id, receiver),
            lifecycle.decline(pending_match.id, receiver),
            return_exceptions=True,
        )

        winners = [r for r in results if not isinstance(r, Exception)]
        losers = [r for r in results if isinstance(r, Exception)]
        assert len(winners) == 1
        assert len(losers) == 1
        assert isinstance(losers[0], InvalidTransitionError)
        assert match_store.matches[pending_match.id].status == winners[0].status

    @pytest.mark.asyncio
    async def test_losing_writer_sees_stored_status(self, lifecycle, pending_match):
        receiver = pending_match.user2_id
        accepted, declined = await asyncio.gather(
            lifecycle.accept(pending_match.id, receiver),
            lifecycle.decline(pending_match.id, receiver),
            return_exceptions=True,
        )
        assert accepted.status == MatchStatus.ACTIVE
        assert isinstance(declined, InvalidTransitionError)
        assert declined.metadata["status"] == "ACTIVE"

    @pytest.mark.asyncio
    async def test_double_cancel_applies_once(self, lifecycle, match_store, active_match):
        results = await asyncio.gather(
            lifecycle.cancel(active_match.id, active_match.user1_id),
            lifecycle.cancel(active_match.id, active_match.user2_id),
            return_exceptions=True,
        )
        assert sum(isinstance(r, InvalidTransitionError) for r in results) == 1
        assert match_store.matches[active_match.id].status == MatchStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_stale_attach_keeps_cancellation(self, lifecycle, match_store, active_match):
        await lifecycle.cancel(active_match.id, active_match.user1_id)

        # ``active_match`` was read before the cancel.
        await lifecycle.attach_conversation(active_match, uuid.uuid4())

        stored = match_store.matches[active_match.id]
        assert stored.status == MatchStatus.CANCELLED
        assert stored.conversation_id is not None

    @pytest.mark.asyncio
    async def test_attach_to_unknown_match(self, lifecycle, lab_a, lab_b):
        with pytest.raises(MatchNotFoundError):
            await lifecycle.attach_conversation(make_match(lab_a, lab_b), uuid.uuid4())
