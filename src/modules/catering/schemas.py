"""
Catering Module - Pydantic Schemas
"""
import uuid
from datetime import datetime, time
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.modules.catering.models import DeliveryType, OrderStatus


# ============== Menu ==============

class CategoryCreate(BaseModel):
    community_id: uuid.UUID
    name: str = Field(..., min_length=1, max_length=255, examples=["Breakfast"])
    description: str | None = None
    sort_order: int = 0


class CategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    community_id: uuid.UUID
    name: str
    description: str | None = None
    sort_order: int
    is_active: bool


class MenuItemCreate(BaseModel):
    community_id: uuid.UUID
    category_id: uuid.UUID | None = None
    name: str = Field(..., min_length=1, max_length=255, examples=["Club Sandwich"])
    description: str | None = None
    price: Decimal = Field(..., ge=0, decimal_places=2)
    quantity_available: int = Field(default=0, ge=0)
    is_active: bool = True
    image_url: str | None = None


class MenuItemUpdate(BaseModel):
    category_id: uuid.UUID | None = None
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    price: Decimal | None = Field(None, ge=0, decimal_places=2)
    quantity_available: int | None = Field(None, ge=0)
    is_active: bool | None = None
    image_url: str | None = None


class MenuItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    community_id: uuid.UUID
    category_id: uuid.UUID | None = None
    name: str
    description: str | None = None
    price: Decimal
    quantity_available: int
    is_active: bool
    image_url: str | None = None
    available_now: bool | None = None


class TimeSlotCreate(BaseModel):
    category_id: uuid.UUID | None = None
    menu_item_id: uuid.UUID | None = None
    day_of_week: int = Field(default=-1, ge=-1, le=6, description="0=Sunday..6=Saturday, -1=every day")
    start_time: time
    end_time: time

    @model_validator(mode="after")
    def exactly_one_target(self) -> "TimeSlotCreate":
        if (self.category_id is None) == (self.menu_item_id is None):
            raise ValueError("Provide exactly one of category_id or menu_item_id")
        return self


class TimeSlotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    category_id: uuid.UUID | None = None
    menu_item_id: uuid.UUID | None = None
    day_of_week: int
    start_time: time
    end_time: time


# ============== Orders ==============

class OrderItemCreate(BaseModel):
    menu_item_id: uuid.UUID
    quantity: int = Field(default=1, ge=1)


class OrderCreate(BaseModel):
    household_id: uuid.UUID
    items: list[OrderItemCreate]
    delivery_type: DeliveryType = DeliveryType.IMMEDIATE
    scheduled_time: datetime | None = None
    notes: str | None = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    menu_item_id: uuid.UUID | None = None
    name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_number: str
    household_id: uuid.UUID
    community_id: uuid.UUID | None = None
    ordered_by: uuid.UUID | None = None
    ticket_id: uuid.UUID | None = None
    delivery_type: str
    scheduled_time: datetime | None = None
    status: str
    total_amount: Decimal
    notes: str | None = None
    confirmed_at: datetime | None = None
    prepared_at: datetime | None = None
    delivered_at: datetime | None = None
    cancelled_at: datetime | None = None
    created_at: datetime
    items: list[OrderItemResponse] = []
