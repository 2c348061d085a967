from __future__ import annotations

from typing import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pawmatch.models.dog import Dog
from pawmatch.schemas.dog import DogProfile


class SqlProfileLookup:
    """Read-only access to dog profiles."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_dog_by_id(self, dog_id: UUID) -> DogProfile | None:
        result = await self.session.execute(select(Dog).where(Dog.id == dog_id))
        record = result.scalar_one_or_none()
        return DogProfile.model_validate(record) if record is not None else None

    async def list_candidates(self, exclude_dog_id: UUID) -> Sequence[DogProfile]:
        """Dogs with coordinates, other than ``exclude_dog_id``."""
        stmt = select(Dog).where(
            Dog.id != exclude_dog_id,
            Dog.latitude.is_not(None),
            Dog.longitude.is_not(None),
        )
        result = await self.session.execute(stmt)
        return [DogProfile.model_validate(record) for record in result.scalars().all()]
