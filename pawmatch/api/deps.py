"""
PawMatch — API dependency wiring.

Caller identity comes from the ``X-User-Id`` header; authentication happens
upstream.  Stores are built per request on the request's ``AsyncSession``;
stateless services and collaborators are process-wide.
"""

from __future__ import annotations

import asyncio
from functools import lru_cache
from uuid import UUID

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from pawmatch.database import get_db
from pawmatch.repositories.conversation_repository import SqlConversationStore
from pawmatch.repositories.dog_repository import SqlProfileLookup
from pawmatch.repositories.match_repository import SqlMatchStore, SqlSwipeStore
from pawmatch.repositories.playdate_repository import SqlPlaydateRequestStore
from pawmatch.services.collaborators import (
    LoggingNotificationSink,
    NoAvailabilityData,
    VenueValidator,
)
from pawmatch.services.conversation_service import ConversationService
from pawmatch.services.match_lifecycle_service import MatchLifecycleService
from pawmatch.services.matching_service import MatchingService
from pawmatch.services.playdate_service import NegotiationSession, PlaydateService
from pawmatch.services.swipe_service import SwipeService


async def get_current_user_id(x_user_id: UUID = Header(..., alias="X-User-Id")) -> UUID:
    return x_user_id


# ── Process-wide singletons ───────────────────────────────────────────────────

@lru_cache(maxsize=1)
def get_matching_service() -> MatchingService:
    return MatchingService()


@lru_cache(maxsize=1)
def get_notification_sink() -> LoggingNotificationSink:
    return LoggingNotificationSink()


class NegotiationRegistry:
    """One negotiation slot per calling user, held in this process."""

    def __init__(self) -> None:
        self._sessions: dict[UUID, NegotiationSession] = {}
        self._locks: dict[UUID, asyncio.Lock] = {}

    def session_for(self, user_id: UUID) -> NegotiationSession:
        session = self._sessions.get(user_id)
        if session is None:
            session = self._sessions[user_id] = NegotiationSession(owner_id=user_id)
        return session

    def lock_for(self, user_id: UUID) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        return lock


@lru_cache(maxsize=1)
def get_negotiation_registry() -> NegotiationRegistry:
    return NegotiationRegistry()


# ── Per-request services ──────────────────────────────────────────────────────

def get_profile_lookup(db: AsyncSession = Depends(get_db)) -> SqlProfileLookup:
    return SqlProfileLookup(db)


def get_lifecycle_service(db: AsyncSession = Depends(get_db)) -> MatchLifecycleService:
    return MatchLifecycleService(SqlMatchStore(db))


def get_swipe_service(
    db: AsyncSession = Depends(get_db),
    matching: MatchingService = Depends(get_matching_service),
) -> SwipeService:
    return SwipeService(
        swipe_store=SqlSwipeStore(db),
        match_store=SqlMatchStore(db),
        profiles=SqlProfileLookup(db),
        matching_service=matching,
    )


def get_conversation_service(
    db: AsyncSession = Depends(get_db),
    lifecycle: MatchLifecycleService = Depends(get_lifecycle_service),
    notifications: LoggingNotificationSink = Depends(get_notification_sink),
) -> ConversationService:
    return ConversationService(
        lifecycle=lifecycle,
        profiles=SqlProfileLookup(db),
        conversations=SqlConversationStore(db),
        notifications=notifications,
    )


def get_playdate_service(
    db: AsyncSession = Depends(get_db),
    lifecycle: MatchLifecycleService = Depends(get_lifecycle_service),
    notifications: LoggingNotificationSink = Depends(get_notification_sink),
) -> PlaydateService:
    return PlaydateService(
        lifecycle=lifecycle,
        profiles=SqlProfileLookup(db),
        requests=SqlPlaydateRequestStore(db),
        notifications=notifications,
        location_validator=VenueValidator(),
        availability=NoAvailabilityData(),
        conversations=SqlConversationStore(db),
    )
