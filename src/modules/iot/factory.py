"""
Adapter lookup by vendor name.
"""
from src.core.exceptions import ValidationError
from src.modules.iot.adapters import (
    DeviceAdapter,
    ESPAdapter,
    MideaAdapter,
    MQTTAdapter,
    PanasonicAdapter,
    PhilipsAdapter,
    TuyaAdapter,
)
from src.modules.iot.models import ConnectionType, DeviceVendor

_ADAPTERS: dict[str, DeviceAdapter] = {
    DeviceVendor.TUYA.value: TuyaAdapter(),
    DeviceVendor.ESP.value: ESPAdapter(),
    DeviceVendor.MIDEA.value: MideaAdapter(),
    DeviceVendor.PHILIPS.value: PhilipsAdapter(),
    DeviceVendor.PANASONIC.value: PanasonicAdapter(),
}


def get_adapter(vendor: str) -> DeviceAdapter:
    adapter = _ADAPTERS.get((vendor or "").lower())
    if adapter is None:
        raise ValidationError(
            f"Unsupported vendor: {vendor}",
            details={"supported": supported_vendors()},
        )
    return adapter


def get_connection_type(vendor: str) -> ConnectionType:
    adapter = _ADAPTERS.get((vendor or "").lower())
    return adapter.connection_type if adapter else ConnectionType.MQTT


def detect_vendor_from_topic(topic: str) -> str | None:
    for vendor in _ADAPTERS:
        if topic.startswith(f"{vendor}/"):
            return vendor
    return None


def supported_vendors() -> list[str]:
    return list(_ADAPTERS)


def mqtt_adapters() -> list[MQTTAdapter]:
    return [a for a in _ADAPTERS.values() if isinstance(a, MQTTAdapter)]
