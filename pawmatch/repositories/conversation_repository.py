"""
PawMatch — SQLAlchemy conversation store.

``conversations.match_id`` is unique; ``create`` inserts with
``ON CONFLICT DO NOTHING`` and reports the loser of a race as
``DuplicateConversationError``.
"""

from __future__ import annotations

from typing import Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from pawmatch.exceptions import ConversationNotFoundError, DuplicateConversationError
from pawmatch.models.conversation import Conversation as ConversationRecord
from pawmatch.models.conversation import Message as MessageRecord
from pawmatch.schemas.conversation import Conversation, Message, PlaydateHint

PREVIEW_LENGTH = 100


def _message_from_record(record: MessageRecord) -> Message:
    return Message(
        id=record.id,
        conversation_id=record.conversation_id,
        sender_id=record.sender_id,
        body=record.body,
        message_type=record.message_type,
        metadata=record.message_metadata or {},
        created_at=record.created_at,
    )


class SqlConversationStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def find_by_match(self, match_id: UUID) -> Conversation | None:
        result = await self.session.execute(
            select(ConversationRecord).where(ConversationRecord.match_id == match_id)
        )
        record = result.scalar_one_or_none()
        return Conversation.model_validate(record) if record is not None else None

    async def create(self, conversation: Conversation) -> Conversation:
        stmt = (
            pg_insert(ConversationRecord)
            .values(
                id=conversation.id,
                match_id=conversation.match_id,
                user1_id=conversation.user1_id,
                user2_id=conversation.user2_id,
                dog1_id=conversation.dog1_id,
                dog2_id=conversation.dog2_id,
                participants=[str(p) for p in conversation.participants],
                last_message_preview=conversation.last_message_preview,
                last_message_at=conversation.last_message_at,
                has_unread_messages=conversation.has_unread_messages,
                playdate_status=conversation.playdate_status.value,
                created_at=conversation.created_at,
            )
            .on_conflict_do_nothing(index_elements=["match_id"])
            .returning(ConversationRecord.id)
        )
        result = await self.session.execute(stmt)
        if result.scalar_one_or_none() is None:
            raise DuplicateConversationError(conversation.match_id)
        return conversation

    async def append_message(self, conversation_id: UUID, message: Message) -> Message:
        updated = await self.session.execute(
            update(ConversationRecord)
            .where(ConversationRecord.id == conversation_id)
            .values(
                last_message_preview=message.body[:PREVIEW_LENGTH],
                last_message_at=message.created_at,
                has_unread_messages=True,
            )
        )
        if updated.rowcount == 0:
            raise ConversationNotFoundError(conversation_id)

        self.session.add(
            MessageRecord(
                id=message.id,
                conversation_id=conversation_id,
                sender_id=message.sender_id,
                body=message.body,
                message_type=message.message_type.value,
                message_metadata=dict(message.metadata),
                created_at=message.created_at,
            )
        )
        await self.session.flush()
        return message

    async def list_messages(self, conversation_id: UUID) -> Sequence[Message]:
        result = await self.session.execute(
            select(MessageRecord)
            .where(MessageRecord.conversation_id == conversation_id)
            .order_by(MessageRecord.created_at)
        )
        return [_message_from_record(r) for r in result.scalars().all()]

    async def set_playdate_status(
        self, conversation_id: UUID, status: PlaydateHint
    ) -> None:
        updated = await self.session.execute(
            update(ConversationRecord)
            .where(ConversationRecord.id == conversation_id)
            .values(playdate_status=status.value)
        )
        if updated.rowcount == 0:
            raise ConversationNotFoundError(conversation_id)
