"""
Messaging Module - Pydantic Schemas
"""
import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.modules.messaging.models import MessageType


class ConversationOpen(BaseModel):
    household_id: uuid.UUID
    building_id: uuid.UUID | None = None
    title: str | None = Field(None, max_length=255)


class ConversationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    household_id: uuid.UUID
    building_id: uuid.UUID | None = None
    created_by: uuid.UUID | None = None
    title: str | None = None
    type: str
    last_message_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    unread_count: int = 0


class MessageCreate(BaseModel):
    content: str = Field(..., max_length=10000)
    message_type: MessageType = MessageType.TEXT
    metadata: dict[str, Any] | None = None


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    conversation_id: uuid.UUID
    sender_id: uuid.UUID | None = None
    content: str
    message_type: str
    metadata: dict[str, Any] | None = Field(None, validation_alias="message_metadata")
    read_at: datetime | None = None
    created_at: datetime


class MarkReadResponse(BaseModel):
    marked: int


class CallStart(BaseModel):
    # Checked by the service so an unknown type is a 400
    call_type: str = "audio"
    receiver_id: uuid.UUID | None = None


class CallAction(str, Enum):
    ANSWER = "answer"
    REJECT = "reject"
    END = "end"


class CallActionRequest(BaseModel):
    action: CallAction


class CallSessionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    conversation_id: uuid.UUID
    caller_id: uuid.UUID | None = None
    receiver_id: uuid.UUID | None = None
    call_type: str
    status: str
    rejection_reason: str | None = None
    started_at: datetime
    answered_at: datetime | None = None
    ended_at: datetime | None = None
    duration: int | None = None
