"""
IoT Module - Pydantic Schemas
"""
import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.modules.iot.models import DeviceVendor


class DeviceCreate(BaseModel):
    household_id: uuid.UUID
    room_id: uuid.UUID | None = None
    name: str = Field(..., min_length=1, max_length=255, examples=["Living room AC"])
    vendor: DeviceVendor
    device_type: str | None = Field(None, max_length=50, examples=["air_conditioner"])
    external_id: str = Field(..., min_length=1, max_length=255, description="Device id on the vendor side")
    base_url: str | None = Field(None, description="Bridge or cloud API base URL (REST vendors)")
    api_key: str | None = Field(None, max_length=255)


class DeviceUpdate(BaseModel):
    room_id: uuid.UUID | None = None
    name: str | None = Field(None, min_length=1, max_length=255)
    device_type: str | None = Field(None, max_length=50)
    base_url: str | None = None
    api_key: str | None = Field(None, max_length=255)


class DeviceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    household_id: uuid.UUID
    room_id: uuid.UUID | None = None
    name: str
    vendor: str
    device_type: str | None = None
    external_id: str
    connection_type: str
    base_url: str | None = None
    state: dict[str, Any] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="device_metadata")
    status: str
    last_seen_at: datetime | None = None
    created_at: datetime


class DeviceCommandRequest(BaseModel):
    action: str = Field(..., min_length=1, max_length=50, examples=["power_on", "set_temperature"])
    value: Any = None


class DeviceCommandResponse(BaseModel):
    device_id: uuid.UUID
    action: str
    connection_type: str
    sent: bool = True
    state: dict[str, Any] = Field(default_factory=dict)


class StateMessage(BaseModel):
    """Raw state report, as it arrives on the broker."""
    topic: str = Field(..., min_length=3, examples=["esp/kitchen-01/status"])
    payload: Any


class VendorResponse(BaseModel):
    vendor: str
    connection_type: str
