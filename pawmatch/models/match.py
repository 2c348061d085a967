"""
PawMatch — Match and Swipe models.

``matches.pair_key`` is the sorted ``"<dog>:<dog>"`` identity of the pair.
The partial unique index on it is the atomic guard that keeps at most one
non-cancelled match per pair, whichever side's swipe gets there first.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Index, String, func, text
from sqlalchemy.dialects.postgresql import JSONB, UUID as PgUUID
from sqlalchemy.orm import Mapped, mapped_column

from pawmatch.database import Base


class Match(Base):
    __tablename__ = "matches"
    __table_args__ = (
        Index(
            "uq_matches_open_pair",
            "pair_key",
            unique=True,
            postgresql_where=text("status <> 'CANCELLED'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        PgUUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    pair_key: Mapped[str] = mapped_column(String, nullable=False)
    user1_id: Mapped[uuid.UUID] = mapped_column(
        PgUUID(as_uuid=True), index=True, nullable=False
    )
    user2_id: Mapped[uuid.UUID] = mapped_column(
        PgUUID(as_uuid=True), index=True, nullable=False
    )
    dog1_id: Mapped[uuid.UUID] = mapped_column(
        PgUUID(as_uuid=True), ForeignKey("dogs.id", ondelete="CASCADE"), nullable=False
    )
    dog2_id: Mapped[uuid.UUID] = mapped_column(
        PgUUID(as_uuid=True), ForeignKey("dogs.id", ondelete="CASCADE"), nullable=False
    )
    initiator_dog_id: Mapped[uuid.UUID] = mapped_column(
        PgUUID(as_uuid=True), nullable=False
    )
    compatibility_score: Mapped[float] = mapped_column(
        Float, nullable=False, comment="Combined compatibility + location score"
    )
    base_compatibility: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    location_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    location_distance_km: Mapped[float | None] = mapped_column(Float, nullable=True)
    match_reasons: Mapped[list] = mapped_column(
        JSONB, nullable=False, default=list, server_default="[]"
    )
    match_type: Mapped[str] = mapped_column(
        String, nullable=False, default="NORMAL", server_default="NORMAL"
    )
    status: Mapped[str] = mapped_column(
        String,
        nullable=False,
        default="PENDING",
        server_default="PENDING",
        comment="PENDING / ACTIVE / DECLINED / EXPIRED / CANCELLED",
    )
    is_archived: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    last_interaction_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    conversation_id: Mapped[uuid.UUID | None] = mapped_column(
        PgUUID(as_uuid=True), nullable=True
    )
    conversation_created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        return (
            f"<Match {self.dog1_id} <-> {self.dog2_id} "
            f"status={self.status} score={self.compatibility_score:.3f}>"
        )


class Swipe(Base):
    __tablename__ = "swipes"
    __table_args__ = (
        Index("ix_swipes_pair_created", "swiper_dog_id", "swiped_dog_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        PgUUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    swiper_owner_id: Mapped[uuid.UUID] = mapped_column(
        PgUUID(as_uuid=True), nullable=False
    )
    swiper_dog_id: Mapped[uuid.UUID] = mapped_column(
        PgUUID(as_uuid=True), ForeignKey("dogs.id", ondelete="CASCADE"), nullable=False
    )
    swiped_dog_id: Mapped[uuid.UUID] = mapped_column(
        PgUUID(as_uuid=True), ForeignKey("dogs.id", ondelete="CASCADE"), nullable=False
    )
    direction: Mapped[str] = mapped_column(
        String, nullable=False, comment="LIKE / PASS / SUPER_LIKE"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<Swipe {self.swiper_dog_id} -> {self.swiped_dog_id} "
            f"dir={self.direction!r}>"
        )
