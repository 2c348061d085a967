"""Unit tests for ConversationService — idempotent match-to-conversation handoff."""
import asyncio
import uuid

import pytest

from conftest import make_match
from pawmatch.exceptions import (
    ConversationCreationFailedError,
    InvalidMatchStatusError,
    MatchNotFoundError,
    ProfileNotFoundError,
)
from pawmatch.schemas.conversation import SYSTEM_SENDER_ID, MessageType
from pawmatch.schemas.match import MatchReason, MatchStatus
from pawmatch.services.conversation_service import (
    MATCH_NOTIFICATION_TITLE,
    ConversationService,
    compose_welcome_message,
)
from pawmatch.services.match_lifecycle_service import MatchLifecycleService


@pytest.fixture
def service(match_store, profiles, conversation_store, notifications, clock):
    return ConversationService(
        lifecycle=MatchLifecycleService(match_store, clock=clock),
        profiles=profiles,
        conversations=conversation_store,
        notifications=notifications,
        clock=clock,
    )


class TestWelcomeMessage:

    def test_layout(self, lab_a, lab_b):
        match = make_match(
            lab_a,
            lab_b,
            compatibility_score=0.876,
            match_reasons=[
                MatchReason.BREED_COMPATIBILITY,
                MatchReason.ENERGY_LEVEL_MATCH,
                MatchReason.AGE_COMPATIBILITY,
                MatchReason.SIZE_COMPATIBILITY,
            ],
        )
        body = compose_welcome_message(match, lab_a, lab_b, reason_count=3)
        assert body.splitlines() == [
            "It's a match! Buddy and Luna seem perfect for a playdate!",
            "",
            "Compatibility Score: 87%",
            "Top Match Reasons: Similar breeds, Matching energy levels, Similar age",
            "",
            "Start chatting to plan your first playdate!",
        ]

    def test_no_reasons_line_without_reasons(self, lab_a, lab_b):
        body = compose_welcome_message(make_match(lab_a, lab_b), lab_a, lab_b)
        assert "Top Match Reasons" not in body


class TestInitiateConversation:

    @pytest.mark.asyncio
    async def test_creates_and_seeds(
        self, service, conversation_store, notifications, match_store, active_match
    ):
        response = await service.initiate_conversation(active_match.id)

        assert response.created
        assert response.match_id == active_match.id
        messages = conversation_store.messages[response.conversation_id]
        assert len(messages) == 1
        welcome = messages[0]
        assert welcome.sender_id == SYSTEM_SENDER_ID
        assert welcome.message_type == MessageType.SYSTEM
        assert welcome.metadata["match_id"] == str(active_match.id)

        assert {n["user_id"] for n in notifications.match_notifications} == {
            active_match.user1_id,
            active_match.user2_id,
        }
        assert all(n["title"] == MATCH_NOTIFICATION_TITLE for n in notifications.match_notifications)
        assert match_store.matches[active_match.id].conversation_id == response.conversation_id

    @pytest.mark.asyncio
    async def test_notification_names_the_other_dog(self, service, notifications, active_match):
        await service.initiate_conversation(active_match.id)
        by_user = {n["user_id"]: n["message"] for n in notifications.match_notifications}
        assert by_user[active_match.user1_id] == "Your dog matched with Luna! Start chatting now!"
        assert by_user[active_match.user2_id] == "Your dog matched with Buddy! Start chatting now!"

    @pytest.mark.asyncio
    async def test_retry_returns_same_conversation(
        self, service, conversation_store, notifications, active_match
    ):
        first = await service.initiate_conversation(active_match.id)
        second = await service.initiate_conversation(active_match.id)

        assert second.conversation_id == first.conversation_id
        assert not second.created
        assert len(conversation_store.conversations) == 1
        assert len(conversation_store.messages[first.conversation_id]) == 1
        assert len(notifications.match_notifications) == 2

    @pytest.mark.asyncio
    async def test_concurrent_calls_produce_one_conversation(
        self, service, conversation_store, notifications, active_match
    ):
        results = await asyncio.gather(
            *(service.initiate_conversation(active_match.id) for _ in range(4))
        )
        assert len({r.conversation_id for r in results}) == 1
        assert sum(r.created for r in results) == 1
        assert len(conversation_store.conversations) == 1
        (conversation_id,) = conversation_store.conversations
        assert len(conversation_store.messages[conversation_id]) == 1
        assert len(notifications.match_notifications) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [MatchStatus.PENDING, MatchStatus.DECLINED, MatchStatus.CANCELLED])
    async def test_requires_active_match(
        self, service, match_store, conversation_store, lab_a, lab_b, status
    ):
        match = make_match(lab_a, lab_b, status=status)
        match_store.matches[match.id] = match
        with pytest.raises(InvalidMatchStatusError):
            await service.initiate_conversation(match.id)
        assert conversation_store.conversations == {}

    @pytest.mark.asyncio
    async def test_expired_match_refused(self, service, active_match, clock):
        clock.advance(days=8)
        with pytest.raises(InvalidMatchStatusError) as exc_info:
            await service.initiate_conversation(active_match.id)
        assert exc_info.value.status == "EXPIRED"

    @pytest.mark.asyncio
    async def test_unknown_match(self, service):
        with pytest.raises(MatchNotFoundError):
            await service.initiate_conversation(uuid.uuid4())

    @pytest.mark.asyncio
    async def test_missing_profile_names_owner(self, service, profiles, active_match, lab_b):
        del profiles.dogs[lab_b.id]
        with pytest.raises(ProfileNotFoundError) as exc_info:
            await service.initiate_conversation(active_match.id)
        assert exc_info.value.owner_id == str(lab_b.owner_id)


class TestFailures:

    @pytest.mark.asyncio
    async def test_store_failure_wrapped(self, service, conversation_store, active_match):
        conversation_store.fail_create = True
        with pytest.raises(ConversationCreationFailedError) as exc_info:
            await service.initiate_conversation(active_match.id)
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_notification_failure_wrapped(self, service, notifications, active_match):
        notifications.fail = True
        with pytest.raises(ConversationCreationFailedError):
            await service.initiate_conversation(active_match.id)

    @pytest.mark.asyncio
    async def test_retry_after_failure_does_not_duplicate(
        self, service, conversation_store, notifications, active_match
    ):
        notifications.fail = True
        with pytest.raises(ConversationCreationFailedError):
            await service.initiate_conversation(active_match.id)

        notifications.fail = False
        response = await service.initiate_conversation(active_match.id)
        assert not response.created
        assert len(conversation_store.conversations) == 1
        assert len(conversation_store.messages[response.conversation_id]) == 1
