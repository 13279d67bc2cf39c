"""
IoT Module - Database Models

One row per physical device. MQTT vendors (tuya, esp, midea) report state on
broker topics; REST vendors (philips, panasonic) are polled through their
bridge or cloud API.
"""
import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.core.models import Base, JSONType


class DeviceVendor(str, Enum):
    TUYA = "tuya"
    ESP = "esp"
    MIDEA = "midea"
    PHILIPS = "philips"
    PANASONIC = "panasonic"


class ConnectionType(str, Enum):
    MQTT = "mqtt"
    RESTFUL = "restful"


class DeviceStatus(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    UNKNOWN = "unknown"


class IoTDevice(Base):
    __tablename__ = "iot_device"

    __table_args__ = (
        UniqueConstraint("vendor", "external_id", name="uq_iot_device_vendor_external"),
    )

    household_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("household.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    room_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("room.id", ondelete="SET NULL"),
        nullable=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    vendor: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    device_type: Mapped[str | None] = mapped_column(String(50), nullable=True, comment="light, air_conditioner, plug...")
    external_id: Mapped[str] = mapped_column(String(255), nullable=False, comment="Vendor side device id")
    connection_type: Mapped[str] = mapped_column(String(20), default=ConnectionType.MQTT.value, nullable=False)
    base_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    api_key: Mapped[str | None] = mapped_column(String(255), nullable=True)
    state: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict, nullable=False)
    device_metadata: Mapped[dict[str, Any]] = mapped_column("metadata", JSONType, default=dict, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=DeviceStatus.UNKNOWN.value, nullable=False)
    last_seen_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
