"""
PawMatch — Match-to-conversation handoff.

``initiate_conversation`` is safe to retry and to run concurrently for the
same match.  The conversation is found before it is created, and the
store's per-match uniqueness guard turns a lost creation race into a lookup.
The welcome message and match notifications go out only on the branch that
actually created the conversation, so a retry never repeats them.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Callable
from uuid import UUID

import structlog

from pawmatch.config import get_settings
from pawmatch.exceptions import (
    AppException,
    ConversationCreationFailedError,
    DuplicateConversationError,
    InvalidMatchStatusError,
    ProfileNotFoundError,
)
from pawmatch.schemas.conversation import (
    SYSTEM_SENDER_ID,
    Conversation,
    ConversationResponse,
    Message,
    MessageType,
)
from pawmatch.schemas.dog import DogProfile
from pawmatch.schemas.match import Match, MatchStatus
from pawmatch.services.contracts import ConversationStore, NotificationSink, ProfileLookup
from pawmatch.services.match_lifecycle_service import MatchLifecycleService
from pawmatch.utils.clock import utc_now

logger = structlog.get_logger("pawmatch.conversation_service")

MATCH_NOTIFICATION_TITLE = "New Match!"


def compose_welcome_message(
    match: Match, dog1: DogProfile, dog2: DogProfile, reason_count: int = 3
) -> str:
    lines = [
        f"It's a match! {dog1.name} and {dog2.name} seem perfect for a playdate!",
        "",
        f"Compatibility Score: {int(match.compatibility_score * 100)}%",
    ]
    reasons = [r.description for r in match.match_reasons[:reason_count]]
    if reasons:
        lines.append(f"Top Match Reasons: {', '.join(reasons)}")
    lines += ["", "Start chatting to plan your first playdate!"]
    return "\n".join(lines)


class ConversationService:
    """Produces exactly one conversation per active match."""

    def __init__(
        self,
        lifecycle: MatchLifecycleService,
        profiles: ProfileLookup,
        conversations: ConversationStore,
        notifications: NotificationSink,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.lifecycle = lifecycle
        self.profiles = profiles
        self.conversations = conversations
        self.notifications = notifications
        self.clock = clock
        self.reason_count: int = get_settings().WELCOME_REASON_COUNT

    # ── Public API ────────────────────────────────────────────────────────

    async def initiate_conversation(self, match_id: UUID) -> ConversationResponse:
        """Obtain the match's conversation, creating and seeding it if needed.

        Parameters
        ----------
        match_id:
            The match to open a conversation for.

        Returns
        -------
        ConversationResponse
            The conversation id and whether this call created it.

        Raises
        ------
        MatchNotFoundError
            No such match.
        InvalidMatchStatusError
            The match is not ACTIVE (expiry is applied first).
        ProfileNotFoundError
            One of the match's dogs is missing; names that side's owner.
        ConversationCreationFailedError
            A store or notification call failed.  Retrying is safe.
        """
        log = logger.bind(match_id=str(match_id))

        match = await self.lifecycle.get(match_id)
        if not match.is_active(self.clock()):
            log.info("conversation_refused", status=match.status.value)
            raise InvalidMatchStatusError(match_id, match.status, MatchStatus.ACTIVE)

        dog1 = await self.profiles.get_dog_by_id(match.dog1_id)
        if dog1 is None:
            raise ProfileNotFoundError(match.user1_id, match.dog1_id)
        dog2 = await self.profiles.get_dog_by_id(match.dog2_id)
        if dog2 is None:
            raise ProfileNotFoundError(match.user2_id, match.dog2_id)

        try:
            conversation, created = await self._get_or_create(match)
            if created:
                await self._send_welcome(conversation, match, dog1, dog2)
                await self._notify_match(match, dog1, dog2)
            await self.lifecycle.attach_conversation(match, conversation.id)
        except ConversationCreationFailedError:
            raise
        except Exception as exc:
            log.exception("conversation_initiation_failed")
            reason = exc.message if isinstance(exc, AppException) else str(exc)
            raise ConversationCreationFailedError(
                match_id, reason or type(exc).__name__
            ) from exc

        log.info(
            "conversation_ready",
            conversation_id=str(conversation.id),
            created=created,
        )
        return ConversationResponse(
            conversation_id=conversation.id, match_id=match.id, created=created
        )

    # ── Private helpers ───────────────────────────────────────────────────

    async def _get_or_create(self, match: Match) -> tuple[Conversation, bool]:
        existing = await self.conversations.find_by_match(match.id)
        if existing is not None:
            return existing, False

        conversation = Conversation(
            id=uuid.uuid4(),
            match_id=match.id,
            user1_id=match.user1_id,
            user2_id=match.user2_id,
            dog1_id=match.dog1_id,
            dog2_id=match.dog2_id,
            participants=[match.user1_id, match.user2_id],
            created_at=self.clock(),
        )
        try:
            stored = await self.conversations.create(conversation)
        except DuplicateConversationError:
            winner = await self.conversations.find_by_match(match.id)
            if winner is None:
                raise ConversationCreationFailedError(
                    match.id, "conversation reported as duplicate but not found"
                )
            logger.info(
                "conversation_creation_skipped",
                match_id=str(match.id),
                conversation_id=str(winner.id),
            )
            return winner, False

        logger.info(
            "conversation_created",
            match_id=str(match.id),
            conversation_id=str(stored.id),
        )
        return stored, True

    async def _send_welcome(
        self,
        conversation: Conversation,
        match: Match,
        dog1: DogProfile,
        dog2: DogProfile,
    ) -> None:
        message = Message(
            id=uuid.uuid4(),
            conversation_id=conversation.id,
            sender_id=SYSTEM_SENDER_ID,
            body=compose_welcome_message(match, dog1, dog2, self.reason_count),
            message_type=MessageType.SYSTEM,
            metadata={
                "match_id": str(match.id),
                "compatibility_score": str(match.compatibility_score),
                "match_type": match.match_type.value,
            },
            created_at=self.clock(),
        )
        await self.conversations.append_message(conversation.id, message)

    async def _notify_match(self, match: Match, dog1: DogProfile, dog2: DogProfile) -> None:
        data = {"type": "match", "match_id": str(match.id)}
        for user_id, other_dog_name in (
            (match.user1_id, dog2.name),
            (match.user2_id, dog1.name),
        ):
            await self.notifications.send_match_notification(
                user_id,
                MATCH_NOTIFICATION_TITLE,
                f"Your dog matched with {other_dog_name}! Start chatting now!",
                data,
            )
