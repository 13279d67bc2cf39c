"""
Announcements Module - Database Models
"""
import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.core.models import Base


class AnnouncementSource(str, Enum):
    """Who is speaking."""
    SYSTEM = "SYSTEM"
    COMMUNITY = "COMMUNITY"
    BUILDING = "BUILDING"


class AnnouncementTarget(str, Enum):
    """Who is listening."""
    ALL_HOUSEHOLDS = "ALL_HOUSEHOLDS"
    COMMUNITY = "COMMUNITY"
    BUILDING = "BUILDING"
    SPECIFIC_HOUSEHOLD = "SPECIFIC_HOUSEHOLD"


class Announcement(Base):
    __tablename__ = "announcement"

    __table_args__ = (
        Index("ix_announcement_target", "target_type", "target_id"),
    )

    source: Mapped[str] = mapped_column(String(20), nullable=False)
    source_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        nullable=True,
        comment="Community or building id; empty for SYSTEM",
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    target_type: Mapped[str] = mapped_column(String(30), default=AnnouncementTarget.ALL_HOUSEHOLDS.value, nullable=False)
    target_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("user.id", ondelete="SET NULL"),
        nullable=True,
    )
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class AnnouncementRead(Base):
    __tablename__ = "announcement_read"

    __table_args__ = (
        UniqueConstraint("announcement_id", "user_id", name="uq_announcement_read_user"),
    )

    announcement_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("announcement.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    household_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("household.id", ondelete="SET NULL"),
        nullable=True,
    )
