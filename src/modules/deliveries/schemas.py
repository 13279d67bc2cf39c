"""
Deliveries Module - Pydantic Schemas
"""
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class LockerCreate(BaseModel):
    locker_number: str = Field(..., min_length=1, max_length=20, examples=["L-03"])
    size: str | None = Field(None, max_length=20, examples=["M"])


class LockerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    building_id: uuid.UUID
    locker_number: str
    size: str | None = None
    is_occupied: bool


class PackageCheckIn(BaseModel):
    locker_id: uuid.UUID
    household_id: uuid.UUID
    package_number: str | None = Field(None, max_length=100)
    description: str | None = None


class PackageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    building_id: uuid.UUID
    locker_id: uuid.UUID | None = None
    household_id: uuid.UUID
    package_number: str | None = None
    description: str | None = None
    status: str
    checked_in_by: uuid.UUID | None = None
    picked_up_by: uuid.UUID | None = None
    picked_up_at: datetime | None = None
    created_at: datetime


class PackageCheckInResponse(BaseModel):
    package: PackageResponse
    locker: LockerResponse
    notifications_sent: int


class MailboxCreate(BaseModel):
    mailbox_number: str = Field(..., min_length=1, max_length=20)
    household_id: uuid.UUID | None = None


class MailboxResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    building_id: uuid.UUID
    household_id: uuid.UUID | None = None
    mailbox_number: str
    has_mail: bool
    last_mail_at: datetime | None = None


class MailboxNotifyResponse(BaseModel):
    mailbox: MailboxResponse
    notifications_sent: int
