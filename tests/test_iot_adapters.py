"""
Vendor adapters and adapter lookup.
"""
import orjson
import pytest

from src.core.exceptions import ValidationError
from src.modules.iot.adapters import DeviceInfo
from src.modules.iot.factory import (
    detect_vendor_from_topic,
    get_adapter,
    get_connection_type,
    supported_vendors,
)
from src.modules.iot.models import ConnectionType


# ============== Factory ==============

def test_supported_vendors():
    assert set(supported_vendors()) == {"tuya", "esp", "midea", "philips", "panasonic"}


def test_unknown_vendor_rejected():
    with pytest.raises(ValidationError):
        get_adapter("shelly")


def test_connection_types():
    assert get_connection_type("tuya") == ConnectionType.MQTT
    assert get_connection_type("esp") == ConnectionType.MQTT
    assert get_connection_type("philips") == ConnectionType.RESTFUL
    assert get_connection_type("panasonic") == ConnectionType.RESTFUL
    assert get_connection_type("unknown") == ConnectionType.MQTT


def test_detect_vendor_from_topic():
    assert detect_vendor_from_topic("esp/kitchen/status") == "esp"
    assert detect_vendor_from_topic("midea/ac-1/status") == "midea"
    assert detect_vendor_from_topic("zigbee2mqtt/lamp") is None


# ============== ESP ==============

def test_esp_power_commands_are_plain_strings():
    esp = get_adapter("esp")
    command = esp.create_command("node-1", "power_on")
    assert command.topic == "esp/node-1/set"
    assert command.payload == "ON"
    assert command.qos == 1
    assert esp.create_command("node-1", "power_off").payload == "OFF"


def test_esp_value_commands_are_json():
    command = get_adapter("esp").create_command("node-1", "SET_TEMP", 23)
    assert orjson.loads(command.payload) == {"command": "SET_TEMP", "value": 23}


def test_esp_bare_command():
    assert get_adapter("esp").create_command("node-1", "REBOOT").payload == "REBOOT"


def test_esp_parse_state():
    esp = get_adapter("esp")
    assert esp.parse_state(b'{"temperature": 21.5}') == {"temperature": 21.5}
    assert esp.parse_state(b"ON") == {"power": True}
    assert esp.parse_state("0") == {"power": False}
    assert esp.parse_state("standby") == {"state": "standby"}


def test_esp_create_device_lists_topics():
    device = get_adapter("esp").create_device(DeviceInfo(external_id="node-1", name="Fan"))
    assert device["status"] == "offline"
    assert device["device_metadata"]["set_topic"] == "esp/node-1/set"
    assert device["device_metadata"]["status_topic"] == "esp/node-1/status"


# ============== Tuya ==============

def test_tuya_commands_use_data_points():
    tuya = get_adapter("tuya")
    command = tuya.create_command("bulb", "power_on")
    assert command.topic == "tuya/bulb/command"
    assert orjson.loads(command.payload) == {"dps": {"1": True}}
    assert orjson.loads(tuya.create_command("bulb", "set_brightness", 500).payload) == {"dps": {"2": 500}}


def test_tuya_unsupported_action():
    with pytest.raises(ValidationError):
        get_adapter("tuya").create_command("bulb", "set_swing", True)


def test_tuya_parse_state_maps_data_points():
    state = get_adapter("tuya").parse_state(b'{"dps": {"1": 1, "2": 300, "4": "white", "20": 5}}')
    assert state == {"power": True, "brightness": 300, "mode": "white", "dp_20": 5}


# ============== Midea ==============

def test_midea_command_envelope():
    command = get_adapter("midea").create_command("ac-1", "set_temperature", 24)
    body = orjson.loads(command.payload)
    assert command.topic == "midea/ac-1/command"
    assert body["cmd"] == "set_temp"
    assert body["data"] == {"temp": 24}
    assert isinstance(body["timestamp"], int)


def test_midea_parse_state_requires_json_object():
    midea = get_adapter("midea")
    assert midea.parse_state(b'{"power": true, "mode": "cool"}') == {"power": True, "mode": "cool"}
    assert midea.parse_state(b"not json") is None


# ============== Panasonic ==============

def test_panasonic_commands():
    panasonic = get_adapter("panasonic")
    assert panasonic.create_command("ac", "power_on") == {"power": True}
    assert panasonic.create_command("ac", "set_fan_speed", "high") == {"fanSpeed": "high"}
    assert panasonic.create_command("ac", "set_eco", True) == {"eco": True}


def test_panasonic_parse_state_normalises():
    state = get_adapter("panasonic").parse_state({"parameters": {"power": "on", "operationMode": "cool", "swing": "off"}})
    assert state["power"] is True
    assert state["mode"] == "cool"
    assert state["swing"] is False


def test_panasonic_requests():
    panasonic = get_adapter("panasonic")
    request = panasonic.command_request("ac", {"power": True}, "https://cloud.example.com/", "k1")
    assert request.method == "POST"
    assert request.url == "https://cloud.example.com/devices/ac/control"
    assert request.headers == {"X-API-Key": "k1"}


# ============== Philips Hue ==============

def test_philips_commands():
    hue = get_adapter("philips")
    assert hue.create_command("3", "power_off") == {"on": False}
    assert hue.create_command("3", "set_brightness", 200) == {"bri": 200}
    assert hue.create_command("3", "set_color", {"hue": 1000, "sat": 200}) == {"hue": 1000, "sat": 200}
    assert hue.create_command("3", "set_color_temperature", 366) == {"ct": 366}


def test_philips_urls():
    hue = get_adapter("philips")
    assert hue.state_request("3", "http://bridge", "user").url == "http://bridge/api/user/lights/3"
    put = hue.command_request("3", {"on": True}, "http://bridge", "user")
    assert put.method == "PUT"
    assert put.url == "http://bridge/api/user/lights/3/state"


def test_philips_needs_bridge_credentials():
    with pytest.raises(ValidationError):
        get_adapter("philips").create_device(DeviceInfo(external_id="3", name="Lamp", base_url="http://bridge"))


def test_philips_parse_state():
    state = get_adapter("philips").parse_state({"state": {"on": True, "bri": 254, "ct": 300, "reachable": True}})
    assert state["power"] is True
    assert state["brightness"] == 254
    assert state["color_temperature"] == 300
    assert state["reachable"] is True


@pytest.mark.parametrize(
    "vendor, payload",
    [
        ("tuya", {"dps": None}),
        ("tuya", {"dps": [1]}),
        ("tuya", '{"dps": "on"}'),
        ("panasonic", {"state": "on"}),
        ("panasonic", {"parameters": [1, 2]}),
        ("philips", {"state": "on"}),
        ("philips", {"state": None}),
    ],
)
def test_parse_state_rejects_non_object_nesting(vendor, payload):
    assert get_adapter(vendor).parse_state(payload) is None
