"""Shared pytest fixtures for PawMatch tests.

The in-memory stores yield to the event loop before every operation so that
``asyncio.gather`` interleaves concurrent callers at each store call, the
way independent requests interleave against a real database.
"""
import asyncio
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from pawmatch.exceptions import (
    ConversationNotFoundError,
    DuplicateConversationError,
    PlaydateRequestNotFoundError,
)
from pawmatch.schemas.dog import DogProfile, Venue
from pawmatch.schemas.match import Match, MatchStatus, MatchType, pair_key

NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


# ── Stores ───────────────────────────────────────────────────────────────────

class InMemorySwipeStore:
    def __init__(self):
        self.swipes = []
        self.fail_insert = False

    async def insert(self, swipe):
        await asyncio.sleep(0)
        if self.fail_insert:
            raise RuntimeError("swipe store unavailable")
        self.swipes.append(swipe)
        return swipe

    async def find_reciprocal(self, swiper_dog_id, swiped_dog_id):
        await asyncio.sleep(0)
        back = [
            s for s in self.swipes
            if s.swiper_dog_id == swiped_dog_id and s.swiped_dog_id == swiper_dog_id
        ]
        if not back or not back[-1].direction.is_like:
            return None
        return back[-1]


class InMemoryMatchStore:
    def __init__(self):
        self.matches = {}
        self.fail_insert = False

    def open_matches(self, dog_a_id=None, dog_b_id=None):
        key = pair_key(dog_a_id, dog_b_id) if dog_a_id is not None else None
        return [
            m for m in self.matches.values()
            if m.status != MatchStatus.CANCELLED and (key is None or m.pair_key == key)
        ]

    async def insert_if_absent(self, match):
        await asyncio.sleep(0)
        if self.fail_insert:
            raise RuntimeError("match store unavailable")
        # No await between the check and the write.
        if any(
            m.pair_key == match.pair_key and m.status != MatchStatus.CANCELLED
            for m in self.matches.values()
        ):
            return None
        self.matches[match.id] = match
        return match

    async def get_by_id(self, match_id):
        await asyncio.sleep(0)
        return self.matches.get(match_id)

    async def find_by_pair(self, dog_a_id, dog_b_id):
        await asyncio.sleep(0)
        found = self.open_matches(dog_a_id, dog_b_id)
        return found[0] if found else None

    async def transition(self, match_id, expected, new_status, at):
        await asyncio.sleep(0)
        # Compare-and-set: no await between the check and the write.
        current = self.matches.get(match_id)
        if current is None or current.status != expected:
            return None
        stored = current.model_copy(update={"status": new_status, "last_interaction_at": at})
        self.matches[match_id] = stored
        return stored

    async def set_conversation(self, match_id, conversation_id, at):
        await asyncio.sleep(0)
        current = self.matches.get(match_id)
        if current is None:
            return None
        stored = current.model_copy(
            update={
                "conversation_id": conversation_id,
                "conversation_created_at": current.conversation_created_at or at,
                "last_interaction_at": at,
            }
        )
        self.matches[match_id] = stored
        return stored


class InMemoryProfiles:
    def __init__(self, *dogs):
        self.dogs = {d.id: d for d in dogs}

    def add(self, dog):
        self.dogs[dog.id] = dog

    async def get_dog_by_id(self, dog_id):
        await asyncio.sleep(0)
        return self.dogs.get(dog_id)

    async def list_candidates(self, exclude_dog_id):
        await asyncio.sleep(0)
        return [d for d in self.dogs.values() if d.id != exclude_dog_id and d.has_coordinates]


class InMemoryConversationStore:
    def __init__(self):
        self.conversations = {}
        self.messages = {}
        self.fail_create = False
        self.fail_append = False
        self.fail_status = False

    async def find_by_match(self, match_id):
        await asyncio.sleep(0)
        for conversation in self.conversations.values():
            if conversation.match_id == match_id:
                return conversation
        return None

    async def create(self, conversation):
        await asyncio.sleep(0)
        if self.fail_create:
            raise RuntimeError("conversation store unavailable")
        if any(c.match_id == conversation.match_id for c in self.conversations.values()):
            raise DuplicateConversationError(conversation.match_id)
        self.conversations[conversation.id] = conversation
        self.messages[conversation.id] = []
        return conversation

    async def append_message(self, conversation_id, message):
        await asyncio.sleep(0)
        if self.fail_append:
            raise RuntimeError("message write failed")
        if conversation_id not in self.conversations:
            raise ConversationNotFoundError(conversation_id)
        self.messages[conversation_id].append(message)
        self.conversations[conversation_id] = self.conversations[conversation_id].model_copy(
            update={
                "last_message_preview": message.body[:100],
                "last_message_at": message.created_at,
                "has_unread_messages": True,
            }
        )
        return message

    async def list_messages(self, conversation_id):
        await asyncio.sleep(0)
        return list(self.messages.get(conversation_id, []))

    async def set_playdate_status(self, conversation_id, status):
        await asyncio.sleep(0)
        if self.fail_status:
            raise RuntimeError("status write failed")
        if conversation_id not in self.conversations:
            raise ConversationNotFoundError(conversation_id)
        self.conversations[conversation_id] = self.conversations[conversation_id].model_copy(
            update={"playdate_status": status}
        )


class InMemoryPlaydateRequestStore:
    def __init__(self):
        self.requests = {}
        self.fail_create = False

    async def create(self, request):
        await asyncio.sleep(0)
        if self.fail_create:
            raise RuntimeError("request store unavailable")
        self.requests[request.id] = request
        return request

    async def get_by_id(self, request_id):
        await asyncio.sleep(0)
        return self.requests.get(request_id)

    async def update(self, request):
        await asyncio.sleep(0)
        if request.id not in self.requests:
            raise PlaydateRequestNotFoundError(request.id)
        self.requests[request.id] = request
        return request


class RecordingNotificationSink:
    def __init__(self):
        self.match_notifications = []
        self.playdate_notifications = []
        self.fail = False

    async def send_match_notification(self, user_id, title, message, data):
        await asyncio.sleep(0)
        if self.fail:
            raise RuntimeError("push gateway down")
        self.match_notifications.append(
            {"user_id": user_id, "title": title, "message": message, "data": data}
        )

    async def send_playdate_request_notification(self, request_id, other_dog_name, recipient_id):
        await asyncio.sleep(0)
        if self.fail:
            raise RuntimeError("push gateway down")
        self.playdate_notifications.append(
            {"request_id": request_id, "other_dog_name": other_dog_name, "recipient_id": recipient_id}
        )


# ── Profiles ─────────────────────────────────────────────────────────────────

def make_dog(**overrides):
    """Build a DogProfile with sensible defaults for the fields not given."""
    values = {
        "id": uuid.uuid4(),
        "owner_id": uuid.uuid4(),
        "name": "Rex",
    }
    values.update(overrides)
    return DogProfile(**values)


DOLORES_PARK = Venue(
    place_id="park-dolores",
    name="Dolores Park",
    address="Dolores St & 19th St, San Francisco",
    latitude=37.7596,
    longitude=-122.4269,
    place_types=("park",),
)

CRISSY_FIELD = Venue(place_id="crissy-field", name="Crissy Field", place_types=("park",))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def lab_a():
    """Labrador in the Mission, San Francisco."""
    return make_dog(
        name="Buddy",
        breed="Labrador Retriever",
        age=3,
        size="large",
        energy_level="high",
        friendliness="friendly",
        trainability="intermediate",
        exercise_needs="high",
        is_spayed_neutered=True,
        latitude=37.7599,
        longitude=-122.4148,
        frequented_venues=(DOLORES_PARK, CRISSY_FIELD),
    )


@pytest.fixture
def lab_b():
    """Labrador about a kilometre from ``lab_a``."""
    return make_dog(
        name="Luna",
        breed="labrador retriever",
        age=4,
        size="large",
        energy_level="high",
        friendliness="friendly",
        trainability="intermediate",
        exercise_needs="high",
        is_spayed_neutered=True,
        latitude=37.7680,
        longitude=-122.4210,
        frequented_venues=(DOLORES_PARK,),
    )


@pytest.fixture
def chihuahua():
    """Shares nothing with the labradors and lives in Sacramento."""
    return make_dog(
        name="Taco",
        breed="Chihuahua",
        age=12,
        size="small",
        energy_level="low",
        friendliness="shy",
        trainability="basic",
        exercise_needs="minimal",
        special_needs="heart condition",
        is_spayed_neutered=False,
        latitude=38.5816,
        longitude=-121.4944,
    )


@pytest.fixture
def swipe_store():
    return InMemorySwipeStore()


@pytest.fixture
def match_store():
    return InMemoryMatchStore()


@pytest.fixture
def conversation_store():
    return InMemoryConversationStore()


@pytest.fixture
def request_store():
    return InMemoryPlaydateRequestStore()


@pytest.fixture
def notifications():
    return RecordingNotificationSink()


@pytest.fixture
def profiles(lab_a, lab_b, chihuahua):
    return InMemoryProfiles(lab_a, lab_b, chihuahua)


def make_match(dog1, dog2, status=MatchStatus.ACTIVE, created_at=NOW, **overrides):
    """A stored match where ``dog1``'s owner completed the pair."""
    values = {
        "id": uuid.uuid4(),
        "pair_key": pair_key(dog1.id, dog2.id),
        "user1_id": dog1.owner_id,
        "user2_id": dog2.owner_id,
        "dog1_id": dog1.id,
        "dog2_id": dog2.id,
        "initiator_dog_id": dog1.id,
        "compatibility_score": 0.87,
        "base_compatibility": 0.9,
        "location_score": 0.75,
        "match_type": MatchType.HIGH_COMPATIBILITY,
        "status": status,
        "created_at": created_at,
        "last_interaction_at": created_at,
        "expires_at": created_at + timedelta(days=7),
    }
    values.update(overrides)
    return Match(**values)


@pytest.fixture
def active_match(lab_a, lab_b, match_store):
    match = make_match(lab_a, lab_b)
    match_store.matches[match.id] = match
    return match
