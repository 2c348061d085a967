from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from pawmatch.exceptions import PlaydateRequestNotFoundError
from pawmatch.models.playdate import PlaydateRequest as PlaydateRequestRecord
from pawmatch.schemas.playdate import PlaydateRequest


def _request_values(request: PlaydateRequest) -> dict[str, Any]:
    return {
        "match_id": request.match_id,
        "requester_id": request.requester_id,
        "receiver_id": request.receiver_id,
        "requester_dog_id": request.requester_dog_id,
        "receiver_dog_id": request.receiver_dog_id,
        "time_slots": [slot.model_dump(mode="json") for slot in request.time_slots],
        "location": request.location.model_dump(mode="json"),
        "status": request.status.value,
        "duration_minutes": request.duration_minutes,
        "notes": request.notes,
        "created_at": request.created_at,
        "updated_at": request.updated_at,
    }


class SqlPlaydateRequestStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, request: PlaydateRequest) -> PlaydateRequest:
        self.session.add(PlaydateRequestRecord(id=request.id, **_request_values(request)))
        await self.session.flush()
        return request

    async def get_by_id(self, request_id: UUID) -> PlaydateRequest | None:
        result = await self.session.execute(
            select(PlaydateRequestRecord).where(PlaydateRequestRecord.id == request_id)
        )
        record = result.scalar_one_or_none()
        return PlaydateRequest.model_validate(record) if record is not None else None

    async def update(self, request: PlaydateRequest) -> PlaydateRequest:
        updated = await self.session.execute(
            update(PlaydateRequestRecord)
            .where(PlaydateRequestRecord.id == request.id)
            .values(**_request_values(request))
        )
        if updated.rowcount == 0:
            raise PlaydateRequestNotFoundError(request.id)
        return request
