"""
PawMatch — Dog profile model.

Profiles are owned by the profile-management path; the matching core only
reads them.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, Integer, String, func
from sqlalchemy.dialects.postgresql import JSONB, UUID as PgUUID
from sqlalchemy.orm import Mapped, mapped_column

from pawmatch.database import Base


class Dog(Base):
    __tablename__ = "dogs"

    id: Mapped[uuid.UUID] = mapped_column(
        PgUUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        PgUUID(as_uuid=True), index=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    breed: Mapped[str | None] = mapped_column(String, nullable=True)
    age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    size: Mapped[str | None] = mapped_column(String, nullable=True)
    energy_level: Mapped[str | None] = mapped_column(String, nullable=True)
    friendliness: Mapped[str | None] = mapped_column(String, nullable=True)
    trainability: Mapped[str | None] = mapped_column(String, nullable=True)
    exercise_needs: Mapped[str | None] = mapped_column(String, nullable=True)
    grooming_needs: Mapped[str | None] = mapped_column(String, nullable=True)
    special_needs: Mapped[str | None] = mapped_column(String, nullable=True)
    is_spayed_neutered: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    frequented_venues: Mapped[list] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
        server_default="[]",
        comment="Array of {place_id, name, address, latitude, longitude, place_types}",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True
    )

    def __repr__(self) -> str:
        return f"<Dog {self.id} name={self.name!r} owner={self.owner_id}>"
