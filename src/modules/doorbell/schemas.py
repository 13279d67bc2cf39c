"""
Doorbell Module - Pydantic Schemas
"""
import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class DoorBellCreate(BaseModel):
    household_id: uuid.UUID | None = None
    door_bell_number: str = Field(..., min_length=1, max_length=20, examples=["12B"])
    is_enabled: bool = True


class DoorBellUpdate(BaseModel):
    household_id: uuid.UUID | None = None
    is_enabled: bool | None = None


class DoorBellResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    building_id: uuid.UUID
    household_id: uuid.UUID | None = None
    door_bell_number: str
    is_enabled: bool
    last_rung_at: datetime | None = None


class RingRequest(BaseModel):
    building_id: uuid.UUID
    door_bell_id: uuid.UUID | None = None
    door_bell_number: str | None = Field(None, max_length=20)

    @model_validator(mode="after")
    def bell_reference(self) -> "RingRequest":
        if self.door_bell_id is None and not self.door_bell_number:
            raise ValueError("door_bell_id or door_bell_number is required")
        return self


class CallSessionAction(str, Enum):
    CONNECT = "connect"
    END = "end"


class CallSessionActionRequest(BaseModel):
    action: CallSessionAction


class DoorBellCallSessionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    door_bell_id: uuid.UUID
    building_id: uuid.UUID
    household_id: uuid.UUID | None = None
    status: str
    started_at: datetime
    connected_at: datetime | None = None
    ended_at: datetime | None = None
    routed_to_front_desk: bool
    routed_at: datetime | None = None


class TimeoutCheckResponse(BaseModel):
    routed: int
