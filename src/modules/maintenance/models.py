"""
Maintenance Module - Database Models
"""
import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.core.models import Base, JSONType


class TicketCategory(str, Enum):
    BUILDING_MAINTENANCE = "BUILDING_MAINTENANCE"
    MAIL_SERVICE = "MAIL_SERVICE"
    PACKAGE_SERVICE = "PACKAGE_SERVICE"
    DOORBELL_SERVICE = "DOORBELL_SERVICE"
    HOUSE_CLEANING = "HOUSE_CLEANING"
    FOOD_ORDER = "FOOD_ORDER"
    CAR_SERVICE = "CAR_SERVICE"
    APPLIANCE_REPAIR = "APPLIANCE_REPAIR"
    WATER_FILTER = "WATER_FILTER"
    SMART_HOME = "SMART_HOME"
    OTHER = "OTHER"


class TicketPriority(str, Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"


class RoutingType(str, Enum):
    INTERNAL_BUILDING = "INTERNAL_BUILDING"
    INTERNAL_COMMUNITY = "INTERNAL_COMMUNITY"
    EXTERNAL_SUPPLIER = "EXTERNAL_SUPPLIER"


class TicketStatus(str, Enum):
    PENDING_EVALUATION = "PENDING_EVALUATION"
    EVALUATED = "EVALUATED"
    ASSIGNED = "ASSIGNED"
    IN_PROGRESS = "IN_PROGRESS"
    WORK_COMPLETED = "WORK_COMPLETED"
    SIGNED_OFF_BY_CREW = "SIGNED_OFF_BY_CREW"
    SIGNED_OFF_BY_SUPPLIER = "SIGNED_OFF_BY_SUPPLIER"
    CLOSED = "CLOSED"
    CANCELLED = "CANCELLED"


class SignoffType(str, Enum):
    CREW_LEAD = "CREW_LEAD"
    SUPPLIER_LEAD = "SUPPLIER_LEAD"
    HOUSEHOLD = "HOUSEHOLD"


class MaintenanceTicket(Base):
    __tablename__ = "maintenance_ticket"

    __table_args__ = (
        Index("ix_maintenance_ticket_household_status", "household_id", "status"),
    )

    ticket_number: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)

    household_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("household.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    building_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("building.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    community_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("community.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    requested_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("user.id", ondelete="SET NULL"),
        nullable=True,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(30), nullable=False)
    priority: Mapped[str] = mapped_column(String(10), default=TicketPriority.NORMAL.value, nullable=False)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    photos: Mapped[list | None] = mapped_column(JSONType, nullable=True)

    routing_type: Mapped[str] = mapped_column(String(30), nullable=False)
    assigned_crew_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("working_group.id", ondelete="SET NULL"),
        nullable=True,
    )
    assigned_supplier_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    status: Mapped[str] = mapped_column(
        String(30),
        default=TicketStatus.PENDING_EVALUATION.value,
        nullable=False,
        index=True,
    )
    work_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    crew_signoff_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    supplier_signoff_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    household_signoff_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class MaintenanceTicketSignoff(Base):
    """One sign-off by crew lead, supplier or household, with optional feedback."""
    __tablename__ = "maintenance_ticket_signoff"

    ticket_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("maintenance_ticket.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    signoff_type: Mapped[str] = mapped_column(String(20), nullable=False)
    signed_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("user.id", ondelete="SET NULL"),
        nullable=True,
    )
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
