"""Initial schema — dogs, swipes, matches, conversations, playdate requests.

Revision ID: 001_initial
Revises:
Create Date: 2026-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── 1. dogs ─────────────────────────────────────────────────────
    op.create_table(
        "dogs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), index=True, nullable=False),
        sa.Column("name", sa.String, nullable=False),
        sa.Column("breed", sa.String, nullable=True),
        sa.Column("age", sa.Integer, nullable=True),
        sa.Column("size", sa.String, nullable=True),
        sa.Column("energy_level", sa.String, nullable=True),
        sa.Column("friendliness", sa.String, nullable=True),
        sa.Column("trainability", sa.String, nullable=True),
        sa.Column("exercise_needs", sa.String, nullable=True),
        sa.Column("grooming_needs", sa.String, nullable=True),
        sa.Column("special_needs", sa.String, nullable=True),
        sa.Column("is_spayed_neutered", sa.Boolean, nullable=True),
        sa.Column("latitude", sa.Float, nullable=True),
        sa.Column("longitude", sa.Float, nullable=True),
        sa.Column(
            "frequented_venues",
            postgresql.JSONB,
            server_default="[]",
            nullable=False,
            comment="Array of {place_id, name, address, latitude, longitude, place_types}",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )

    # ── 2. swipes ───────────────────────────────────────────────────
    op.create_table(
        "swipes",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("swiper_owner_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "swiper_dog_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("dogs.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "swiped_dog_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("dogs.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "direction",
            sa.String,
            nullable=False,
            comment="LIKE / PASS / SUPER_LIKE",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index(
        "ix_swipes_pair_created",
        "swipes",
        ["swiper_dog_id", "swiped_dog_id", "created_at"],
    )

    # ── 3. matches ──────────────────────────────────────────────────
    op.create_table(
        "matches",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("pair_key", sa.String, nullable=False),
        sa.Column("user1_id", postgresql.UUID(as_uuid=True), index=True, nullable=False),
        sa.Column("user2_id", postgresql.UUID(as_uuid=True), index=True, nullable=False),
        sa.Column(
            "dog1_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("dogs.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "dog2_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("dogs.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("initiator_dog_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "compatibility_score",
            sa.Float,
            nullable=False,
            comment="Combined compatibility + location score",
        ),
        sa.Column("base_compatibility", sa.Float, nullable=False),
        sa.Column("location_score", sa.Float, nullable=False),
        sa.Column("location_distance_km", sa.Float, nullable=True),
        sa.Column("match_reasons", postgresql.JSONB, server_default="[]", nullable=False),
        sa.Column("match_type", sa.String, server_default="NORMAL", nullable=False),
        sa.Column(
            "status",
            sa.String,
            server_default="PENDING",
            nullable=False,
            comment="PENDING / ACTIVE / DECLINED / EXPIRED / CANCELLED",
        ),
        sa.Column("is_archived", sa.Boolean, server_default="false", nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "last_interaction_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("conversation_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("conversation_created_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "uq_matches_open_pair",
        "matches",
        ["pair_key"],
        unique=True,
        postgresql_where=sa.text("status <> 'CANCELLED'"),
    )

    # ── 4. conversations ────────────────────────────────────────────
    op.create_table(
        "conversations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "match_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("matches.id", ondelete="CASCADE"),
            unique=True,
            nullable=False,
        ),
        sa.Column("user1_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user2_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("dog1_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("dog2_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "participants",
            postgresql.JSONB,
            nullable=False,
            comment="Array of participant user ids",
        ),
        sa.Column("last_message_preview", sa.String, server_default="", nullable=False),
        sa.Column("last_message_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("has_unread_messages", sa.Boolean, server_default="false", nullable=False),
        sa.Column("playdate_status", sa.String, server_default="NONE", nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    # ── 5. messages ─────────────────────────────────────────────────
    op.create_table(
        "messages",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "conversation_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("conversations.id", ondelete="CASCADE"),
            index=True,
            nullable=False,
        ),
        sa.Column("sender_id", sa.String, nullable=False, comment="User id, or 'system'"),
        sa.Column("body", sa.Text, nullable=False),
        sa.Column("message_type", sa.String, nullable=False),
        sa.Column("metadata", postgresql.JSONB, server_default="{}", nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    # ── 6. playdate_requests ────────────────────────────────────────
    op.create_table(
        "playdate_requests",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "match_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("matches.id", ondelete="CASCADE"),
            index=True,
            nullable=False,
        ),
        sa.Column("requester_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("receiver_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("requester_dog_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("receiver_dog_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "time_slots",
            postgresql.JSONB,
            nullable=False,
            comment="Array of {start, end} ISO timestamps",
        ),
        sa.Column("location", postgresql.JSONB, nullable=False, comment="Selected venue"),
        sa.Column(
            "status",
            sa.String,
            server_default="PENDING",
            nullable=False,
            comment="PENDING / ACCEPTED / DECLINED / RESCHEDULED / CANCELED",
        ),
        sa.Column("duration_minutes", sa.Integer, server_default="60", nullable=False),
        sa.Column("notes", sa.Text, server_default="", nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )


def downgrade() -> None:
    # Drop in reverse order (children / dependents first).
    op.drop_table("playdate_requests")
    op.drop_table("messages")
    op.drop_table("conversations")

    op.drop_index("uq_matches_open_pair", table_name="matches")
    op.drop_table("matches")

    op.drop_index("ix_swipes_pair_created", table_name="swipes")
    op.drop_table("swipes")

    op.drop_table("dogs")
