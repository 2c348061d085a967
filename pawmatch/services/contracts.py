"""
PawMatch — Collaborator contracts consumed by the coordination services.

Stores, the notification sink, the venue validator and the availability
source are all asynchronous and may fail independently.  The SQLAlchemy
repositories in ``pawmatch.repositories`` and the defaults in
``pawmatch.services.collaborators`` implement these; tests use in-memory
fakes.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Protocol, Sequence
from uuid import UUID

from pawmatch.schemas.conversation import Conversation, Message, PlaydateHint
from pawmatch.schemas.dog import DogProfile, Venue
from pawmatch.schemas.match import Match, MatchStatus, Swipe
from pawmatch.schemas.playdate import PlaydateRequest, TimeSlot


class ProfileLookup(Protocol):
    async def get_dog_by_id(self, dog_id: UUID) -> DogProfile | None: ...

    async def list_candidates(self, exclude_dog_id: UUID) -> Sequence[DogProfile]: ...


class SwipeStore(Protocol):
    async def insert(self, swipe: Swipe) -> Swipe: ...

    async def find_reciprocal(
        self, swiper_dog_id: UUID, swiped_dog_id: UUID
    ) -> Swipe | None:
        """Latest swipe from ``swiped_dog_id`` toward ``swiper_dog_id``, if it is a like."""
        ...


class MatchStore(Protocol):
    async def insert_if_absent(self, match: Match) -> Match | None:
        """Atomically insert unless a non-cancelled match exists for ``match.pair_key``.

        Returns the stored match, or ``None`` when another writer got there
        first.
        """
        ...

    async def get_by_id(self, match_id: UUID) -> Match | None: ...

    async def find_by_pair(self, dog_a_id: UUID, dog_b_id: UUID) -> Match | None:
        """The non-cancelled match for the unordered pair, if any."""
        ...

    async def transition(
        self, match_id: UUID, expected: MatchStatus, new_status: MatchStatus, at: datetime
    ) -> Match | None:
        """Move the match from ``expected`` to ``new_status`` in one conditional write.

        Returns ``None`` when the stored status is no longer ``expected``.
        """
        ...

    async def set_conversation(
        self, match_id: UUID, conversation_id: UUID, at: datetime
    ) -> Match | None:
        """Write only the conversation link and ``last_interaction_at``.

        ``conversation_created_at`` keeps its first value.  Returns ``None``
        for an unknown match.
        """
        ...


class ConversationStore(Protocol):
    async def find_by_match(self, match_id: UUID) -> Conversation | None: ...

    async def create(self, conversation: Conversation) -> Conversation:
        """Raises ``DuplicateConversationError`` if the match already has one."""
        ...

    async def append_message(self, conversation_id: UUID, message: Message) -> Message: ...

    async def list_messages(self, conversation_id: UUID) -> Sequence[Message]: ...

    async def set_playdate_status(
        self, conversation_id: UUID, status: PlaydateHint
    ) -> None: ...


class PlaydateRequestStore(Protocol):
    async def create(self, request: PlaydateRequest) -> PlaydateRequest: ...

    async def get_by_id(self, request_id: UUID) -> PlaydateRequest | None: ...

    async def update(self, request: PlaydateRequest) -> PlaydateRequest: ...


class NotificationSink(Protocol):
    async def send_match_notification(
        self, user_id: UUID, title: str, message: str, data: dict[str, str]
    ) -> None: ...

    async def send_playdate_request_notification(
        self, request_id: UUID, other_dog_name: str, recipient_id: UUID
    ) -> None: ...


class LocationValidator(Protocol):
    async def validate(self, location: Venue) -> None:
        """Raise if ``location`` is not an acceptable meeting place."""
        ...


class AvailabilitySource(Protocol):
    async def get_availability_window(
        self, user_id: UUID, week_start: date
    ) -> list[TimeSlot] | None:
        """Free slots for the week, or ``None`` when nothing is known."""
        ...
