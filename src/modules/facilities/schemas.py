"""
Facilities Module - Pydantic Schemas
"""
import uuid
from datetime import datetime, time

from pydantic import BaseModel, ConfigDict, Field, model_validator


class FacilityCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, examples=["Rooftop terrace"])
    description: str | None = None
    type: str | None = Field(None, max_length=50, examples=["GYM"])
    floor_number: int | None = Field(None, ge=0)
    capacity: int | None = Field(None, gt=0)


class FacilityUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    type: str | None = Field(None, max_length=50)
    capacity: int | None = Field(None, gt=0)
    is_active: bool | None = None


class OperatingHoursEntry(BaseModel):
    day_of_week: int = Field(..., ge=0, le=6, description="0=Sunday..6=Saturday")
    open_time: time
    close_time: time
    is_closed: bool = False

    @model_validator(mode="after")
    def opens_before_closing(self) -> "OperatingHoursEntry":
        if not self.is_closed and self.close_time <= self.open_time:
            raise ValueError("close_time must be after open_time")
        return self


class OperatingHoursUpdate(BaseModel):
    operating_hours: list[OperatingHoursEntry] = Field(..., min_length=1)


class OperatingHoursResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    day_of_week: int
    open_time: time
    close_time: time
    is_closed: bool


class FacilityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    building_id: uuid.UUID
    name: str
    description: str | None = None
    type: str | None = None
    floor_number: int | None = None
    capacity: int | None = None
    is_active: bool
    operating_hours: list[OperatingHoursResponse] = []


class ReservationCreate(BaseModel):
    household_id: uuid.UUID
    start_time: datetime
    end_time: datetime
    purpose: str | None = Field(None, max_length=255)
    notes: str | None = None


class ReservationReject(BaseModel):
    reason: str | None = None


class ReservationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    facility_id: uuid.UUID
    household_id: uuid.UUID
    requested_by: uuid.UUID | None = None
    start_time: datetime
    end_time: datetime
    purpose: str | None = None
    notes: str | None = None
    status: str
    approved_by: uuid.UUID | None = None
    approved_at: datetime | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None
    access_code: str | None = None
    created_at: datetime
