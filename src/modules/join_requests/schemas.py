"""
Join Requests Module - Pydantic Schemas
"""
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from src.modules.join_requests.models import JoinRequestType


class JoinRequestCreate(BaseModel):
    type: JoinRequestType
    target_id: uuid.UUID
    message: str | None = Field(None, max_length=1000)
    role: str | None = Field(None, description="Defaults to MEMBER, or USER for households")


class JoinRequestApprove(BaseModel):
    role: str | None = Field(None, description="Overrides the role asked for")


class JoinRequestReject(BaseModel):
    reason: str | None = None


class JoinRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    type: str
    target_id: uuid.UUID
    message: str | None = None
    role: str
    status: str
    reviewed_by: uuid.UUID | None = None
    reviewed_at: datetime | None = None
    rejection_reason: str | None = None
    created_at: datetime
