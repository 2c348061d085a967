"""
PawMatch — SQLAlchemy swipe and match stores.

``insert_if_absent`` relies on the partial unique index
``uq_matches_open_pair`` (pair_key, where status <> 'CANCELLED').  The insert
runs as ``INSERT ... ON CONFLICT DO NOTHING RETURNING id``, so two
transactions racing on the same pair serialise on the index and exactly one
of them gets a row back.

Status changes are compare-and-set: ``UPDATE ... WHERE id = :id AND status =
:expected``.  A writer that read a status another transaction has since
changed updates no row and gets ``None``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import func, select, text, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from pawmatch.models.match import Match as MatchRecord
from pawmatch.models.match import Swipe as SwipeRecord
from pawmatch.schemas.match import Match, MatchStatus, Swipe, SwipeDirection, pair_key

logger = structlog.get_logger("pawmatch.repositories.match")

_LIKE_DIRECTIONS = (SwipeDirection.LIKE.value, SwipeDirection.SUPER_LIKE.value)
_MATCHES = MatchRecord.__table__


def _match_values(match: Match) -> dict[str, Any]:
    return {
        "id": match.id,
        "pair_key": match.pair_key,
        "user1_id": match.user1_id,
        "user2_id": match.user2_id,
        "dog1_id": match.dog1_id,
        "dog2_id": match.dog2_id,
        "initiator_dog_id": match.initiator_dog_id,
        "compatibility_score": match.compatibility_score,
        "base_compatibility": match.base_compatibility,
        "location_score": match.location_score,
        "location_distance_km": match.location_distance_km,
        "match_reasons": [r.value for r in match.match_reasons],
        "match_type": match.match_type.value,
        "status": match.status.value,
        "is_archived": match.is_archived,
        "created_at": match.created_at,
        "last_interaction_at": match.last_interaction_at,
        "expires_at": match.expires_at,
        "conversation_id": match.conversation_id,
        "conversation_created_at": match.conversation_created_at,
    }


class SqlSwipeStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def insert(self, swipe: Swipe) -> Swipe:
        record = SwipeRecord(
            id=swipe.id,
            swiper_owner_id=swipe.swiper_owner_id,
            swiper_dog_id=swipe.swiper_dog_id,
            swiped_dog_id=swipe.swiped_dog_id,
            direction=swipe.direction.value,
            created_at=swipe.created_at,
        )
        self.session.add(record)
        await self.session.flush()
        return swipe

    async def find_reciprocal(
        self, swiper_dog_id: UUID, swiped_dog_id: UUID
    ) -> Swipe | None:
        stmt = (
            select(SwipeRecord)
            .where(
                SwipeRecord.swiper_dog_id == swiped_dog_id,
                SwipeRecord.swiped_dog_id == swiper_dog_id,
            )
            .order_by(SwipeRecord.created_at.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        latest = result.scalar_one_or_none()
        if latest is None or latest.direction not in _LIKE_DIRECTIONS:
            return None
        return Swipe.model_validate(latest)


class SqlMatchStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def insert_if_absent(self, match: Match) -> Match | None:
        stmt = (
            pg_insert(MatchRecord)
            .values(**_match_values(match))
            .on_conflict_do_nothing(
                index_elements=["pair_key"],
                index_where=text("status <> 'CANCELLED'"),
            )
            .returning(MatchRecord.id)
        )
        # Savepoint: a failure here must not abort the transaction holding the swipe.
        async with self.session.begin_nested():
            result = await self.session.execute(stmt)
            inserted_id = result.scalar_one_or_none()
        if inserted_id is None:
            logger.info("match_insert_conflict", pair_key=match.pair_key)
            return None
        return match

    async def get_by_id(self, match_id: UUID) -> Match | None:
        result = await self.session.execute(
            select(MatchRecord)
            .where(MatchRecord.id == match_id)
            .execution_options(populate_existing=True)
        )
        record = result.scalar_one_or_none()
        return Match.model_validate(record) if record is not None else None

    async def find_by_pair(self, dog_a_id: UUID, dog_b_id: UUID) -> Match | None:
        stmt = (
            select(MatchRecord)
            .where(
                MatchRecord.pair_key == pair_key(dog_a_id, dog_b_id),
                MatchRecord.status != MatchStatus.CANCELLED.value,
            )
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        record = result.scalar_one_or_none()
        return Match.model_validate(record) if record is not None else None

    async def transition(
        self, match_id: UUID, expected: MatchStatus, new_status: MatchStatus, at: datetime
    ) -> Match | None:
        stmt = (
            update(_MATCHES)
            .where(_MATCHES.c.id == match_id, _MATCHES.c.status == expected.value)
            .values(status=new_status.value, last_interaction_at=at)
            .returning(*_MATCHES.c)
        )
        result = await self.session.execute(stmt)
        row = result.mappings().one_or_none()
        if row is None:
            logger.info(
                "match_transition_conflict",
                match_id=str(match_id),
                expected=expected.value,
                to_status=new_status.value,
            )
            return None
        return Match.model_validate(dict(row))

    async def set_conversation(
        self, match_id: UUID, conversation_id: UUID, at: datetime
    ) -> Match | None:
        stmt = (
            update(_MATCHES)
            .where(_MATCHES.c.id == match_id)
            .values(
                conversation_id=conversation_id,
                conversation_created_at=func.coalesce(_MATCHES.c.conversation_created_at, at),
                last_interaction_at=at,
            )
            .returning(*_MATCHES.c)
        )
        result = await self.session.execute(stmt)
        row = result.mappings().one_or_none()
        return Match.model_validate(dict(row)) if row is not None else None
