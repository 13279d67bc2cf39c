"""
IoT Module - Business Logic Service

Devices belong to a household. Any household member may read them; sending
commands needs a role above VISITOR.
"""
import uuid
from typing import Any, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from src.core.logging import get_logger
from src.core.metrics import record_iot_command
from src.core.models import utc_now
from src.modules.auth.models import User
from src.modules.inventory.models import Room
from src.modules.iot.adapters import DeviceInfo, RestAdapter
from src.modules.iot.factory import detect_vendor_from_topic, get_adapter, get_connection_type
from src.modules.iot.models import DeviceStatus, IoTDevice
from src.modules.iot.schemas import DeviceCreate, DeviceUpdate
from src.modules.iot.transport import MQTTPublisher, RestTransport
from src.modules.property.models import HouseholdRole
from src.modules.property.permissions import get_household_role, get_household_role_level

logger = get_logger(__name__)


async def ingest_state_message(db: AsyncSession, topic: str, payload: Any) -> IoTDevice | None:
    """Apply a vendor state report to the matching device.

    Returns None when the topic belongs to no known vendor or device, or the
    payload cannot be parsed. Flushes only; the caller commits.
    """
    vendor = detect_vendor_from_topic(topic)
    if vendor is None:
        logger.debug("State message for unknown vendor", topic=topic)
        return None

    adapter = get_adapter(vendor)
    parts = topic.split("/")
    external_id = parts[1] if len(parts) >= 2 else None
    if not external_id:
        return None

    device = await db.scalar(
        select(IoTDevice).where(IoTDevice.vendor == vendor, IoTDevice.external_id == external_id)
    )
    if device is None:
        logger.debug("State message for unregistered device", vendor=vendor, external_id=external_id)
        return None

    state = adapter.parse_state(payload)
    if state is None:
        logger.warning("Unparseable state payload", vendor=vendor, external_id=external_id)
        return None

    device.state = {**(device.state or {}), **state}
    device.status = DeviceStatus.ONLINE.value
    device.last_seen_at = utc_now()
    await db.flush()
    return device


class IoTService:
    """Device registry and command dispatch."""

    def __init__(
        self,
        db: AsyncSession,
        user: User,
        publisher: MQTTPublisher | None = None,
        rest: RestTransport | None = None,
    ):
        self.db = db
        self.user = user
        self.publisher = publisher or MQTTPublisher()
        self.rest = rest or RestTransport()

    # ============== Access ==============

    async def _household_role(self, household_id: uuid.UUID) -> str | None:
        if self.user.is_admin:
            return HouseholdRole.OWNER.value
        return await get_household_role(self.db, self.user.id, household_id)

    async def _require_member(self, household_id: uuid.UUID) -> str:
        role = await self._household_role(household_id)
        if role is None:
            raise ForbiddenError("You are not a member of this household")
        return role

    async def _require_operator(self, household_id: uuid.UUID) -> None:
        role = await self._require_member(household_id)
        if get_household_role_level(role) <= get_household_role_level(HouseholdRole.VISITOR.value):
            raise ForbiddenError("Visitors cannot control devices")

    # ============== Devices ==============

    async def register_device(self, data: DeviceCreate) -> IoTDevice:
        await self._require_operator(data.household_id)

        if data.room_id is not None:
            room = await self.db.get(Room, data.room_id)
            if not room or room.household_id != data.household_id:
                raise ValidationError("Room does not belong to this household")

        vendor = data.vendor.value
        existing = await self.db.scalar(
            select(IoTDevice.id).where(IoTDevice.vendor == vendor, IoTDevice.external_id == data.external_id)
        )
        if existing is not None:
            raise ConflictError(f"Device {vendor}/{data.external_id} is already registered")

        adapter = get_adapter(vendor)
        initial = adapter.create_device(
            DeviceInfo(
                external_id=data.external_id,
                name=data.name,
                base_url=data.base_url,
                api_key=data.api_key,
            )
        )
        device = IoTDevice(
            household_id=data.household_id,
            room_id=data.room_id,
            name=data.name,
            vendor=vendor,
            device_type=data.device_type,
            external_id=data.external_id,
            connection_type=get_connection_type(vendor).value,
            base_url=data.base_url,
            api_key=data.api_key,
            **initial,
        )
        self.db.add(device)
        await self.db.commit()
        await self.db.refresh(device)

        logger.info("IoT device registered", device_id=str(device.id), vendor=vendor)
        return device

    async def list_devices(self, household_id: uuid.UUID) -> Sequence[IoTDevice]:
        await self._require_member(household_id)
        result = await self.db.execute(
            select(IoTDevice).where(IoTDevice.household_id == household_id).order_by(IoTDevice.name)
        )
        return result.scalars().all()

    async def get_device(self, device_id: uuid.UUID) -> IoTDevice:
        device = await self.db.get(IoTDevice, device_id)
        if not device:
            raise NotFoundError("IoTDevice", device_id)
        await self._require_member(device.household_id)
        return device

    async def update_device(self, device_id: uuid.UUID, data: DeviceUpdate) -> IoTDevice:
        device = await self.get_device(device_id)
        await self._require_operator(device.household_id)

        changes = data.model_dump(exclude_unset=True)
        if changes.get("room_id") is not None:
            room = await self.db.get(Room, changes["room_id"])
            if not room or room.household_id != device.household_id:
                raise ValidationError("Room does not belong to this household")
        for field, value in changes.items():
            setattr(device, field, value)

        await self.db.commit()
        await self.db.refresh(device)
        return device

    async def delete_device(self, device_id: uuid.UUID) -> None:
        device = await self.get_device(device_id)
        await self._require_operator(device.household_id)
        await self.db.delete(device)
        await self.db.commit()
        logger.info("IoT device deleted", device_id=str(device_id))

    # ============== Commands & state ==============

    async def send_command(self, device_id: uuid.UUID, action: str, value: Any = None) -> IoTDevice:
        """
        Build the vendor command and send it.

        The stored state is updated optimistically from the action since
        neither transport reports what the device actually did.
        """
        device = await self.get_device(device_id)
        await self._require_operator(device.household_id)
        adapter = get_adapter(device.vendor)
        command = adapter.create_command(device.external_id, action, value)

        try:
            if isinstance(adapter, RestAdapter):
                request = adapter.command_request(device.external_id, command, device.base_url, device.api_key)
                await self.rest.send(request, device_id=str(device.id))
            else:
                await self.publisher.publish(command)
        except Exception:
            record_iot_command(device.vendor, "failed")
            raise

        device.state = {**(device.state or {}), **adapter.optimistic_state(action, value)}
        device.last_seen_at = utc_now()
        await self.db.commit()
        await self.db.refresh(device)

        record_iot_command(device.vendor, "sent")
        logger.info("IoT command sent", device_id=str(device.id), vendor=device.vendor, action=action)
        return device

    async def get_state(self, device_id: uuid.UUID) -> IoTDevice:
        """Fresh state for REST devices, last reported state for MQTT ones."""
        device = await self.get_device(device_id)
        adapter = get_adapter(device.vendor)
        if not isinstance(adapter, RestAdapter):
            return device
        request = adapter.state_request(device.external_id, device.base_url, device.api_key)
        payload = await self.rest.send(request, device_id=str(device.id))
        state = adapter.parse_state(payload)
        if state is not None:
            device.state = state
            device.status = DeviceStatus.ONLINE.value
            device.last_seen_at = utc_now()
            await self.db.commit()
            await self.db.refresh(device)
        return device

    async def ingest_state(self, topic: str, payload: Any) -> IoTDevice:
        vendor = detect_vendor_from_topic(topic)
        if vendor is None:
            raise ValidationError(f"Cannot detect vendor from topic '{topic}'")
        parts = topic.split("/")
        device = await self.db.scalar(
            select(IoTDevice).where(IoTDevice.vendor == vendor, IoTDevice.external_id == parts[1])
        )
        if device is None:
            raise NotFoundError("IoTDevice", f"{vendor}/{parts[1]}")
        await self._require_operator(device.household_id)

        updated = await ingest_state_message(self.db, topic, payload)
        if updated is None:
            raise ValidationError("State payload could not be parsed")
        await self.db.commit()
        await self.db.refresh(updated)
        return updated

