"""
Inventory Module - Pydantic Schemas
"""
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# ============== Locations ==============

class RoomCreate(BaseModel):
    household_id: uuid.UUID
    name: str = Field(..., min_length=1, max_length=255, examples=["Kitchen"])
    description: str | None = None


class RoomResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    household_id: uuid.UUID
    name: str
    description: str | None = None
    created_at: datetime


class CabinetCreate(BaseModel):
    room_id: uuid.UUID
    name: str = Field(..., min_length=1, max_length=255, examples=["Pantry"])
    description: str | None = None


class CabinetResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    room_id: uuid.UUID
    household_id: uuid.UUID
    name: str
    description: str | None = None
    created_at: datetime


class CategoryCreate(BaseModel):
    household_id: uuid.UUID
    name: str = Field(..., min_length=1, max_length=255)
    parent_id: uuid.UUID | None = None


class CategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    household_id: uuid.UUID
    parent_id: uuid.UUID | None = None
    name: str
    level: int
    created_at: datetime


# ============== Items ==============

class ItemCreate(BaseModel):
    household_id: uuid.UUID
    name: str = Field(..., min_length=1, max_length=255, examples=["AA Batteries"])
    description: str | None = None
    quantity: int = Field(default=1, ge=0)
    min_quantity: int = Field(default=0, ge=0)
    barcode: str | None = Field(None, max_length=100)
    image_url: str | None = None
    room_id: uuid.UUID | None = None
    cabinet_id: uuid.UUID | None = None
    category_id: uuid.UUID | None = None


class ItemUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    quantity: int | None = Field(None, ge=0)
    min_quantity: int | None = Field(None, ge=0)
    barcode: str | None = Field(None, max_length=100)
    image_url: str | None = None
    room_id: uuid.UUID | None = None
    cabinet_id: uuid.UUID | None = None
    category_id: uuid.UUID | None = None


class ItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    household_id: uuid.UUID
    name: str
    description: str | None = None
    quantity: int
    min_quantity: int
    barcode: str | None = None
    image_url: str | None = None
    room_id: uuid.UUID | None = None
    cabinet_id: uuid.UUID | None = None
    category_id: uuid.UUID | None = None
    created_at: datetime
    updated_at: datetime


class CheckoutRequest(BaseModel):
    # Range is checked by the service so the error comes back as 400
    quantity: int = 1
    reason: str | None = Field(None, max_length=500)


class MoveRequest(BaseModel):
    room_id: uuid.UUID
    cabinet_id: uuid.UUID | None = None
    category_id: uuid.UUID | None = None
    quantity: int | None = Field(None, description="Defaults to the full quantity")


class ItemHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    item_id: uuid.UUID | None = None
    action: str
    description: str | None = None
    old_room_id: uuid.UUID | None = None
    new_room_id: uuid.UUID | None = None
    old_cabinet_id: uuid.UUID | None = None
    new_cabinet_id: uuid.UUID | None = None
    performed_by: uuid.UUID | None = None
    created_at: datetime
