"""
Maintenance Module - Pydantic Schemas
"""
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from src.modules.maintenance.models import (
    RoutingType,
    SignoffType,
    TicketCategory,
    TicketPriority,
    TicketStatus,
)


class TicketCreate(BaseModel):
    household_id: uuid.UUID
    title: str = Field(..., min_length=1, max_length=255, examples=["Kitchen sink leaking"])
    description: str | None = None
    category: TicketCategory
    priority: TicketPriority = TicketPriority.NORMAL
    location: str | None = Field(None, max_length=255)
    photos: list[str] | None = None


class TicketUpdate(BaseModel):
    """Evaluation, crew assignment and status changes by building staff."""
    status: TicketStatus | None = None
    priority: TicketPriority | None = None
    routing_type: RoutingType | None = None
    assigned_crew_id: uuid.UUID | None = None
    assigned_supplier_name: str | None = Field(None, max_length=255)
    work_notes: str | None = None


class TicketComplete(BaseModel):
    work_notes: str | None = None


class TicketSignoff(BaseModel):
    type: SignoffType
    comments: str | None = None
    rating: int | None = Field(None, ge=1, le=5)


class TicketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    ticket_number: str
    household_id: uuid.UUID
    building_id: uuid.UUID | None = None
    community_id: uuid.UUID | None = None
    requested_by: uuid.UUID | None = None
    title: str
    description: str | None = None
    category: str
    priority: str
    location: str | None = None
    photos: list[str] | None = None
    routing_type: str
    assigned_crew_id: uuid.UUID | None = None
    assigned_supplier_name: str | None = None
    status: str
    work_notes: str | None = None
    completed_at: datetime | None = None
    closed_at: datetime | None = None
    crew_signoff_at: datetime | None = None
    supplier_signoff_at: datetime | None = None
    household_signoff_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
