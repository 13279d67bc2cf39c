"""
Notification Module - Database Models
In-app notifications shown in the bell menu.
"""
import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.core.models import Base, JSONType


class NotificationType(str, Enum):
    """What produced the notification."""
    DOOR_BELL_RUNG = "DOOR_BELL_RUNG"
    DOORBELL_ROUTED = "DOORBELL_ROUTED"
    LOW_INVENTORY = "LOW_INVENTORY"
    TICKET_UPDATE = "TICKET_UPDATE"
    ORDER_UPDATE = "ORDER_UPDATE"
    WORKFLOW_UPDATE = "WORKFLOW_UPDATE"
    MESSAGE = "MESSAGE"
    FACILITY_RESERVATION = "FACILITY_RESERVATION"
    PACKAGE_RECEIVED = "PACKAGE_RECEIVED"
    MAIL_RECEIVED = "MAIL_RECEIVED"
    JOIN_REQUEST = "JOIN_REQUEST"
    SYSTEM = "SYSTEM"


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class Notification(Base):
    """In-app notification addressed to a single user."""
    __tablename__ = "notification"

    __table_args__ = (
        Index("idx_notification_user_read", "user_id", "is_read", "created_at"),
        Index("idx_notification_user_type", "user_id", "type"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    type: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default=NotificationType.SYSTEM.value,
    )
    priority: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=NotificationPriority.MEDIUM.value,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)

    data: Mapped[dict | None] = mapped_column(
        JSONType,
        nullable=True,
        comment="Deep links and ids of the related entity",
    )

    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Source entity (doorbell_session, item, ticket, order, workflow...)
    source_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    source_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
