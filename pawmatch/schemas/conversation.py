from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

SYSTEM_SENDER_ID = "system"


class MessageType(str, Enum):
    TEXT = "TEXT"
    SYSTEM = "SYSTEM"
    PLAYDATE_SUGGESTION = "PLAYDATE_SUGGESTION"
    PLAYDATE_CONFIRMATION = "PLAYDATE_CONFIRMATION"
    LOCATION_SHARE = "LOCATION_SHARE"


class PlaydateHint(str, Enum):
    """Negotiation progress shown next to a conversation (UI hint only)."""

    NONE = "NONE"
    SCHEDULING = "SCHEDULING"
    DATE_SUGGESTED = "DATE_SUGGESTED"
    LOCATION_SUGGESTED = "LOCATION_SUGGESTED"
    PENDING_CONFIRMATION = "PENDING_CONFIRMATION"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class Conversation(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    match_id: UUID
    user1_id: UUID
    user2_id: UUID
    dog1_id: UUID
    dog2_id: UUID
    participants: list[UUID]
    last_message_preview: str = ""
    last_message_at: Optional[datetime] = None
    has_unread_messages: bool = False
    playdate_status: PlaydateHint = PlaydateHint.NONE
    created_at: datetime


class Message(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    conversation_id: UUID
    sender_id: str  # user UUID as text, or SYSTEM_SENDER_ID
    body: str
    message_type: MessageType = MessageType.TEXT
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime

    @property
    def is_system(self) -> bool:
        return self.sender_id == SYSTEM_SENDER_ID


class ConversationResponse(BaseModel):
    conversation_id: UUID
    match_id: UUID
    created: bool
