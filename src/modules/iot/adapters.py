"""
Vendor adapters.

Each adapter translates between the API's generic actions (power_on,
set_temperature...) and one vendor's wire format. Adapters are pure: MQTT
adapters return the topic and payload to publish, REST adapters return the
request body plus the URL to send it to. Sending is done by the transports.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import orjson

from src.core.exceptions import ValidationError
from src.core.models import utc_now
from src.modules.iot.models import ConnectionType, DeviceStatus, DeviceVendor


@dataclass(frozen=True)
class DeviceInfo:
    external_id: str
    name: str
    base_url: str | None = None
    api_key: str | None = None


@dataclass(frozen=True)
class MQTTCommand:
    topic: str
    payload: str
    qos: int = 1


@dataclass(frozen=True)
class RestRequest:
    method: str
    url: str
    json: dict[str, Any] | None = None
    headers: dict[str, str] = field(default_factory=dict)


def _decode(payload: Any) -> Any:
    """bytes or str to a JSON value; raw text when it is not JSON."""
    if isinstance(payload, (bytes, bytearray)):
        payload = payload.decode("utf-8", errors="replace")
    if isinstance(payload, str):
        try:
            return orjson.loads(payload)
        except orjson.JSONDecodeError:
            return payload
    return payload


def _unsupported(vendor: str, action: str) -> ValidationError:
    return ValidationError(
        f"Action '{action}' is not supported by {vendor} devices",
        details={"vendor": vendor, "action": action},
    )


class DeviceAdapter(ABC):
    vendor: DeviceVendor
    connection_type: ConnectionType

    def create_device(self, info: DeviceInfo) -> dict[str, Any]:
        """Initial attributes for a newly registered device."""
        return {
            "status": DeviceStatus.OFFLINE.value,
            "state": {},
            "device_metadata": {"connection_type": self.connection_type.value},
        }

    def optimistic_state(self, action: str, value: Any = None) -> dict[str, Any]:
        """State fields an accepted command is expected to change."""
        if action in ("power_on", "power_off"):
            return {"power": action == "power_on"}
        if action.startswith("set_") and value is not None:
            return {action[4:]: value}
        return {}

    @abstractmethod
    def create_command(self, device_id: str, action: str, value: Any = None) -> Any:
        ...

    @abstractmethod
    def parse_state(self, payload: Any) -> dict[str, Any] | None:
        ...


# ============== MQTT vendors ==============

class MQTTAdapter(DeviceAdapter):
    connection_type = ConnectionType.MQTT
    status_suffix = "status"

    def topic(self, device_id: str, suffix: str) -> str:
        return f"{self.vendor.value}/{device_id}/{suffix}"

    def status_topic(self, device_id: str) -> str:
        return self.topic(device_id, self.status_suffix)

    def subscription(self) -> str:
        return f"{self.vendor.value}/+/{self.status_suffix}"

    def topics(self, device_id: str) -> dict[str, str]:
        return {"status_topic": self.status_topic(device_id)}

    def create_device(self, info: DeviceInfo) -> dict[str, Any]:
        device = super().create_device(info)
        device["device_metadata"].update(self.topics(info.external_id))
        return device


class ESPAdapter(MQTTAdapter):
    """ESP32/ESP8266 firmware speaking plain strings or small JSON documents."""
    vendor = DeviceVendor.ESP

    def topics(self, device_id: str) -> dict[str, str]:
        return {
            "status_topic": self.status_topic(device_id),
            "control_topic": self.topic(device_id, "control"),
            "set_topic": self.topic(device_id, "set"),
        }

    def create_command(self, device_id: str, action: str, value: Any = None) -> MQTTCommand:
        if action == "power_on":
            payload = "ON"
        elif action == "power_off":
            payload = "OFF"
        elif value is not None:
            payload = orjson.dumps({"command": action, "value": value}).decode()
        else:
            payload = action
        return MQTTCommand(topic=self.topic(device_id, "set"), payload=payload, qos=1)

    def parse_state(self, payload: Any) -> dict[str, Any] | None:
        data = _decode(payload)
        if isinstance(data, dict):
            return data
        raw = str(data).strip()
        if raw in ("ON", "1"):
            return {"power": True}
        if raw in ("OFF", "0"):
            return {"power": False}
        return {"state": raw}


class TuyaAdapter(MQTTAdapter):
    """Tuya data points (DPs) over a local MQTT bridge."""
    vendor = DeviceVendor.TUYA
    status_suffix = "state"

    DP_FIELDS = {
        "1": "power",
        "2": "brightness",
        "3": "color_temperature",
        "4": "mode",
    }
    ACTION_DPS = {
        "set_brightness": "2",
        "set_color_temperature": "3",
        "set_mode": "4",
    }

    def topics(self, device_id: str) -> dict[str, str]:
        return {
            "status_topic": self.status_topic(device_id),
            "command_topic": self.topic(device_id, "command"),
        }

    def create_command(self, device_id: str, action: str, value: Any = None) -> MQTTCommand:
        if action in ("power_on", "power_off"):
            dps = {"1": action == "power_on"}
        elif action in self.ACTION_DPS:
            dps = {self.ACTION_DPS[action]: value}
        elif action == "set_dps" and isinstance(value, dict):
            dps = {str(k): v for k, v in value.items()}
        else:
            raise _unsupported(self.vendor.value, action)
        payload = orjson.dumps({"dps": dps}).decode()
        return MQTTCommand(topic=self.topic(device_id, "command"), payload=payload, qos=1)

    def optimistic_state(self, action: str, value: Any = None) -> dict[str, Any]:
        if action == "set_dps" and isinstance(value, dict):
            return self.parse_state({"dps": value}) or {}
        return super().optimistic_state(action, value)

    def parse_state(self, payload: Any) -> dict[str, Any] | None:
        data = _decode(payload)
        if not isinstance(data, dict):
            return None
        dps = data.get("dps", data)
        if not isinstance(dps, dict):
            return None
        state: dict[str, Any] = {}
        for dp, dp_value in dps.items():
            name = self.DP_FIELDS.get(str(dp), f"dp_{dp}")
            state[name] = bool(dp_value) if name == "power" else dp_value
        return state


class MideaAdapter(MQTTAdapter):
    """Midea air conditioners behind an MQTT gateway."""
    vendor = DeviceVendor.MIDEA

    def topics(self, device_id: str) -> dict[str, str]:
        return {
            "status_topic": self.status_topic(device_id),
            "command_topic": self.topic(device_id, "command"),
        }

    def _cmd(self, action: str, value: Any) -> tuple[str, dict[str, Any]]:
        if action in ("power_on", "power_off"):
            return "power", {"power": action == "power_on"}
        if action == "set_temperature":
            return "set_temp", {"temp": value}
        if action == "set_mode":
            return "set_mode", {"mode": value}
        if action == "set_fan_speed":
            return "set_fan", {"speed": value}
        if action == "set_swing":
            return "set_swing", {"swing": bool(value)}
        raise _unsupported(self.vendor.value, action)

    def create_command(self, device_id: str, action: str, value: Any = None) -> MQTTCommand:
        cmd, data = self._cmd(action, value)
        payload = orjson.dumps({
            "cmd": cmd,
            "data": data,
            "timestamp": int(utc_now().timestamp() * 1000),
        }).decode()
        return MQTTCommand(topic=self.topic(device_id, "command"), payload=payload, qos=1)

    def parse_state(self, payload: Any) -> dict[str, Any] | None:
        data = _decode(payload)
        return data if isinstance(data, dict) else None


# ============== REST vendors ==============

class RestAdapter(DeviceAdapter):
    connection_type = ConnectionType.RESTFUL

    def create_device(self, info: DeviceInfo) -> dict[str, Any]:
        if not info.base_url:
            raise ValidationError(f"{self.vendor.value} devices require base_url")
        return super().create_device(info)

    @abstractmethod
    def state_request(self, device_id: str, base_url: str | None, api_key: str | None) -> RestRequest:
        ...

    @abstractmethod
    def command_request(
        self,
        device_id: str,
        body: dict[str, Any],
        base_url: str | None,
        api_key: str | None,
    ) -> RestRequest:
        ...


class PanasonicAdapter(RestAdapter):
    """Panasonic Comfort Cloud style API."""
    vendor = DeviceVendor.PANASONIC

    ACTION_FIELDS = {
        "set_temperature": "temperature",
        "set_mode": "mode",
        "set_fan_speed": "fanSpeed",
        "set_swing": "swing",
        "set_eco": "eco",
    }

    def create_command(self, device_id: str, action: str, value: Any = None) -> dict[str, Any]:
        if action in ("power_on", "power_off"):
            return {"power": action == "power_on"}
        if action in self.ACTION_FIELDS:
            return {self.ACTION_FIELDS[action]: value}
        if isinstance(value, dict):
            return dict(value)
        raise _unsupported(self.vendor.value, action)

    def parse_state(self, payload: Any) -> dict[str, Any] | None:
        data = _decode(payload)
        if not isinstance(data, dict):
            return None
        state = data.get("state") or data.get("parameters") or data
        if not isinstance(state, dict):
            return None
        return {
            "power": state.get("power") in ("on", True) or state.get("powerState") == "on",
            "mode": state.get("mode") or state.get("operationMode"),
            "temperature": state.get("temperature") or state.get("currentTemperature"),
            "target_temperature": state.get("targetTemperature") or state.get("setTemperature"),
            "fan_speed": state.get("fanSpeed") or state.get("fanLevel"),
            "swing": state.get("swing") in ("on", True),
            "eco": state.get("eco") in ("on", True),
        }

    @staticmethod
    def _headers(api_key: str | None) -> dict[str, str]:
        return {"X-API-Key": api_key} if api_key else {}

    def state_request(self, device_id: str, base_url: str | None, api_key: str | None) -> RestRequest:
        if not base_url:
            raise ValidationError("Panasonic devices require base_url")
        return RestRequest("GET", f"{base_url.rstrip('/')}/devices/{device_id}/status", headers=self._headers(api_key))

    def command_request(
        self,
        device_id: str,
        body: dict[str, Any],
        base_url: str | None,
        api_key: str | None,
    ) -> RestRequest:
        if not base_url:
            raise ValidationError("Panasonic devices require base_url")
        return RestRequest(
            "POST",
            f"{base_url.rstrip('/')}/devices/{device_id}/control",
            json=body,
            headers=self._headers(api_key),
        )


class PhilipsAdapter(RestAdapter):
    """Philips Hue bridge, v1 REST API."""
    vendor = DeviceVendor.PHILIPS

    def create_device(self, info: DeviceInfo) -> dict[str, Any]:
        if not info.api_key:
            raise ValidationError("philips devices require api_key (bridge username)")
        return super().create_device(info)

    def create_command(self, device_id: str, action: str, value: Any = None) -> dict[str, Any]:
        if action in ("power_on", "power_off"):
            return {"on": action == "power_on"}
        if action == "set_brightness":
            return {"bri": value}
        if action == "set_color":
            if not isinstance(value, dict):
                raise ValidationError("set_color expects an object with hue, sat or xy")
            return {key: value[key] for key in ("hue", "sat", "xy") if value.get(key) is not None}
        if action == "set_color_temperature":
            return {"ct": value}
        if action == "set_effect":
            return {"effect": value}
        raise _unsupported(self.vendor.value, action)

    def parse_state(self, payload: Any) -> dict[str, Any] | None:
        data = _decode(payload)
        if not isinstance(data, dict):
            return None
        state = data.get("state", data)
        if not isinstance(state, dict):
            return None
        return {
            "power": bool(state.get("on", False)),
            "brightness": state.get("bri"),
            "xy": state.get("xy"),
            "color_temperature": state.get("ct"),
            "reachable": state.get("reachable"),
        }

    @staticmethod
    def _light_url(device_id: str, base_url: str | None, api_key: str | None) -> str:
        if not base_url or not api_key:
            raise ValidationError("Philips devices require base_url and api_key")
        return f"{base_url.rstrip('/')}/api/{api_key}/lights/{device_id}"

    def state_request(self, device_id: str, base_url: str | None, api_key: str | None) -> RestRequest:
        return RestRequest("GET", self._light_url(device_id, base_url, api_key))

    def command_request(
        self,
        device_id: str,
        body: dict[str, Any],
        base_url: str | None,
        api_key: str | None,
    ) -> RestRequest:
        return RestRequest("PUT", f"{self._light_url(device_id, base_url, api_key)}/state", json=body)
