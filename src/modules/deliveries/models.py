"""
Deliveries Module - Database Models
"""
import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.core.models import Base


class PackageStatus(str, Enum):
    PENDING = "pending"
    PICKED_UP = "picked_up"


class PackageLocker(Base):
    __tablename__ = "package_locker"

    __table_args__ = (
        UniqueConstraint("building_id", "locker_number", name="uq_package_locker_building_number"),
    )

    building_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("building.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    locker_number: Mapped[str] = mapped_column(String(20), nullable=False)
    size: Mapped[str | None] = mapped_column(String(20), nullable=True)
    is_occupied: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class Package(Base):
    __tablename__ = "package"

    building_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("building.id", ondelete="CASCADE"),
        nullable=False,
    )
    locker_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("package_locker.id", ondelete="SET NULL"),
        nullable=True,
    )
    household_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("household.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    package_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=PackageStatus.PENDING.value, nullable=False)
    checked_in_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("user.id", ondelete="SET NULL"),
        nullable=True,
    )
    picked_up_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("user.id", ondelete="SET NULL"),
        nullable=True,
    )
    picked_up_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class Mailbox(Base):
    __tablename__ = "mailbox"

    __table_args__ = (
        UniqueConstraint("building_id", "mailbox_number", name="uq_mailbox_building_number"),
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
    mailbox_number: Mapped[str] = mapped_column(String(20), nullable=False)
    has_mail: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    last_mail_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
