"""
PawMatch — Match lifecycle state machine.

  PENDING ──accept──▶ ACTIVE ──cancel──▶ CANCELLED
     │
     └──decline──▶ DECLINED

  PENDING / ACTIVE ──(expires_at passed)──▶ EXPIRED

DECLINED, EXPIRED and CANCELLED are terminal.  Expiry is applied lazily when
a match is read.  This service is the only writer of ``Match.status``.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Callable
from uuid import UUID

import structlog

from pawmatch.config import get_settings
from pawmatch.exceptions import (
    InvalidTransitionError,
    MatchNotFoundError,
    NotParticipantError,
    NotReceiverError,
)
from pawmatch.schemas.match import Match, MatchStatus, MatchType
from pawmatch.services.contracts import MatchStore
from pawmatch.utils.clock import utc_now

logger = structlog.get_logger("pawmatch.match_lifecycle_service")


class MatchEvent(str, Enum):
    ACCEPT = "accept"
    DECLINE = "decline"
    CANCEL = "cancel"
    EXPIRE = "expire"


_TRANSITIONS: dict[tuple[MatchStatus, MatchEvent], MatchStatus] = {
    (MatchStatus.PENDING, MatchEvent.ACCEPT): MatchStatus.ACTIVE,
    (MatchStatus.PENDING, MatchEvent.DECLINE): MatchStatus.DECLINED,
    (MatchStatus.ACTIVE, MatchEvent.CANCEL): MatchStatus.CANCELLED,
    (MatchStatus.PENDING, MatchEvent.EXPIRE): MatchStatus.EXPIRED,
    (MatchStatus.ACTIVE, MatchEvent.EXPIRE): MatchStatus.EXPIRED,
}


def transition_status(current: MatchStatus, event: MatchEvent) -> MatchStatus:
    """Next status for ``event``; raises ``InvalidTransitionError`` if not allowed."""
    try:
        return _TRANSITIONS[(current, event)]
    except KeyError:
        raise InvalidTransitionError(current, event.value) from None


def effective_status(status: MatchStatus, expires_at: datetime, now: datetime) -> MatchStatus:
    """Status as observed at ``now``, with lazy expiry applied."""
    if (status, MatchEvent.EXPIRE) in _TRANSITIONS and now >= expires_at:
        return MatchStatus.EXPIRED
    return status


def expiry_for(
    match_type: MatchType, created_at: datetime, base_days: int | None = None
) -> datetime:
    days = base_days if base_days is not None else get_settings().MATCH_EXPIRY_DAYS
    return created_at + match_type.expiry_duration(days)


class MatchLifecycleService:
    """Reads matches and applies lifecycle events through the match store."""

    def __init__(
        self,
        match_store: MatchStore,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.match_store = match_store
        self.clock = clock

    # ── Reads ─────────────────────────────────────────────────────────────

    async def get(self, match_id: UUID) -> Match:
        """Load a match, persisting lazy expiry if it has lapsed."""
        match = await self._load(match_id)

        now = self.clock()
        observed = effective_status(match.status, match.expires_at, now)
        if observed != match.status:
            stored = await self.match_store.transition(
                match.id, match.status, MatchStatus.EXPIRED, now
            )
            if stored is None:
                # Another writer changed the status first; report what it stored.
                return await self._load(match_id)
            self._log_transition(match, MatchEvent.EXPIRE, stored.status)
            match = stored
        return match

    async def get_for_participant(self, match_id: UUID, user_id: UUID) -> Match:
        match = await self.get(match_id)
        if user_id not in match.participants:
            raise NotParticipantError(user_id, match_id)
        return match

    # ── Events ────────────────────────────────────────────────────────────

    async def accept(self, match_id: UUID, actor_id: UUID) -> Match:
        match = await self._receiver_match(match_id, actor_id)
        return await self._apply(match, MatchEvent.ACCEPT, self.clock())

    async def decline(self, match_id: UUID, actor_id: UUID) -> Match:
        match = await self._receiver_match(match_id, actor_id)
        return await self._apply(match, MatchEvent.DECLINE, self.clock())

    async def cancel(self, match_id: UUID, actor_id: UUID) -> Match:
        match = await self.get_for_participant(match_id, actor_id)
        return await self._apply(match, MatchEvent.CANCEL, self.clock())

    async def attach_conversation(self, match: Match, conversation_id: UUID) -> Match:
        """Record the conversation reference on the match (idempotent).

        Only the conversation columns are written, so a status change made
        since ``match`` was read is kept.
        """
        if match.conversation_id == conversation_id:
            return match
        stored = await self.match_store.set_conversation(match.id, conversation_id, self.clock())
        if stored is None:
            raise MatchNotFoundError(match.id)
        logger.info(
            "match_conversation_attached",
            match_id=str(match.id),
            conversation_id=str(conversation_id),
        )
        return stored

    # ── Private helpers ───────────────────────────────────────────────────

    async def _load(self, match_id: UUID) -> Match:
        match = await self.match_store.get_by_id(match_id)
        if match is None:
            raise MatchNotFoundError(match_id)
        return match

    async def _receiver_match(self, match_id: UUID, actor_id: UUID) -> Match:
        match = await self.get_for_participant(match_id, actor_id)
        if actor_id != match.user2_id:
            raise NotReceiverError(actor_id, match_id)
        return match

    async def _apply(self, match: Match, event: MatchEvent, now: datetime) -> Match:
        new_status = transition_status(match.status, event)
        stored = await self.match_store.transition(match.id, match.status, new_status, now)
        if stored is None:
            current = await self._load(match.id)
            raise InvalidTransitionError(current.status, event.value)
        self._log_transition(match, event, new_status)
        return stored

    @staticmethod
    def _log_transition(match: Match, event: MatchEvent, new_status: MatchStatus) -> None:
        logger.info(
            "match_status_changed",
            match_id=str(match.id),
            match_event=event.value,
            from_status=match.status.value,
            to_status=new_status.value,
        )
