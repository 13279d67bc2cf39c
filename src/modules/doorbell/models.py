"""
Doorbell Module - Database Models
"""
import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.core.models import Base


class DoorBellCallStatus(str, Enum):
    RINGING = "ringing"
    CONNECTED = "connected"
    ENDED = "ended"


class DoorBell(Base):
    __tablename__ = "door_bell"

    __table_args__ = (
        UniqueConstraint("building_id", "door_bell_number", name="uq_door_bell_building_number"),
    )

    building_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("building.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    household_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("household.id", ondelete="SET NULL"),
        nullable=True,
    )
    door_bell_number: Mapped[str] = mapped_column(String(20), nullable=False)
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_rung_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class DoorBellCallSession(Base):
    __tablename__ = "door_bell_call_session"

    __table_args__ = (
        Index("ix_door_bell_call_session_building_status", "building_id", "status", "started_at"),
    )

    door_bell_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("door_bell.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    building_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("building.id", ondelete="CASCADE"),
        nullable=False,
    )
    household_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("household.id", ondelete="SET NULL"),
        nullable=True,
    )
    rung_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("user.id", ondelete="SET NULL"),
        nullable=True,
    )
    status: Mapped[str] = mapped_column(String(20), default=DoorBellCallStatus.RINGING.value, nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    connected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    routed_to_front_desk: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    routed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
