"""
IoT device API with the broker and vendor HTTP calls faked out.
"""
import httpx
import orjson
import pytest

from src.core.exceptions import ServiceUnavailableError
from src.main import app
from src.modules.iot.dependencies import get_mqtt_publisher, get_rest_transport
from src.modules.iot.transport import RestTransport
from tests.conftest import API, auth_headers

IOT = f"{API}/iot"


class RecordingPublisher:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.published = []

    async def publish(self, command) -> None:
        if self.fail:
            raise ServiceUnavailableError("MQTT broker", "connection refused")
        self.published.append(command)


@pytest.fixture
def publisher(client):
    recorder = RecordingPublisher()
    app.dependency_overrides[get_mqtt_publisher] = lambda: recorder
    return recorder


@pytest.fixture
def vendor_api(client):
    """A fake Panasonic cloud answering through httpx.MockTransport."""
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.method == "GET":
            return httpx.Response(200, json={"parameters": {"power": "on", "mode": "cool", "targetTemperature": 23}})
        return httpx.Response(200, json={"ok": True})

    transport = RestTransport(transport=httpx.MockTransport(handler))
    app.dependency_overrides[get_rest_transport] = lambda: transport
    return requests


async def _register(client, user, household_id, **fields):
    body = {"household_id": household_id, "name": "Desk lamp", "vendor": "tuya", "external_id": "bf01"}
    body.update(fields)
    return await client.post(f"{IOT}/devices", json=body, headers=auth_headers(user))


async def test_vendors_are_listed(client, make_user):
    user = await make_user()
    response = await client.get(f"{IOT}/vendors", headers=auth_headers(user))
    assert response.status_code == 200
    kinds = {row["vendor"]: row["connection_type"] for row in response.json()}
    assert kinds == {
        "tuya": "mqtt",
        "esp": "mqtt",
        "midea": "mqtt",
        "philips": "restful",
        "panasonic": "restful",
    }


async def test_register_and_duplicate(client, make_user, create_household, publisher):
    owner = await make_user()
    household = await create_household(owner)

    response = await _register(client, owner, household["id"])
    assert response.status_code == 201, response.text
    device = response.json()
    assert device["connection_type"] == "mqtt"
    assert device["status"] == "offline"
    assert device["state"] == {}
    assert device["metadata"]["connection_type"] == "mqtt"

    response = await _register(client, owner, household["id"])
    assert response.status_code == 409


async def test_mqtt_command_updates_state_optimistically(client, make_user, create_household, publisher):
    owner = await make_user()
    household = await create_household(owner)
    device = (await _register(client, owner, household["id"])).json()

    response = await client.post(
        f"{IOT}/devices/{device['id']}/commands",
        json={"action": "set_brightness", "value": 80},
        headers=auth_headers(owner),
    )
    assert response.status_code == 200, response.text
    assert response.json()["sent"] is True
    assert response.json()["state"] == {"brightness": 80}

    (command,) = publisher.published
    assert command.topic == "tuya/bf01/command"
    assert orjson.loads(command.payload) == {"dps": {"2": 80}}


async def test_unsupported_action(client, make_user, create_household, publisher):
    owner = await make_user()
    household = await create_household(owner)
    device = (await _register(client, owner, household["id"])).json()

    response = await client.post(
        f"{IOT}/devices/{device['id']}/commands", json={"action": "self_destruct"}, headers=auth_headers(owner),
    )
    assert response.status_code == 422
    assert publisher.published == []


async def test_broker_failure_keeps_state(client, make_user, create_household):
    app.dependency_overrides[get_mqtt_publisher] = lambda: RecordingPublisher(fail=True)
    owner = await make_user()
    household = await create_household(owner)
    device = (await _register(client, owner, household["id"])).json()

    response = await client.post(
        f"{IOT}/devices/{device['id']}/commands", json={"action": "power_on"}, headers=auth_headers(owner),
    )
    assert response.status_code == 503
    assert response.json()["error"]["code"] == "SERVICE_UNAVAILABLE"

    response = await client.get(f"{IOT}/devices/{device['id']}", headers=auth_headers(owner))
    assert response.json()["state"] == {}


async def test_visitor_cannot_control(client, make_user, create_household, add_household_member, publisher):
    owner = await make_user()
    guest = await make_user()
    household = await create_household(owner)
    await add_household_member(owner, household["id"], guest, role="VISITOR")
    device = (await _register(client, owner, household["id"])).json()

    response = await client.get(f"{IOT}/devices/{device['id']}", headers=auth_headers(guest))
    assert response.status_code == 200

    response = await client.post(
        f"{IOT}/devices/{device['id']}/commands", json={"action": "power_off"}, headers=auth_headers(guest),
    )
    assert response.status_code == 403


async def test_rest_device_command_and_state(client, make_user, create_household, vendor_api):
    owner = await make_user()
    household = await create_household(owner)

    response = await _register(
        client, owner, household["id"], vendor="panasonic", external_id="AC-1", name="Bedroom AC",
    )
    assert response.status_code == 422

    response = await _register(
        client,
        owner,
        household["id"],
        vendor="panasonic",
        external_id="AC-1",
        name="Bedroom AC",
        base_url="https://cloud.example.com/api/",
        api_key="secret",
    )
    assert response.status_code == 201, response.text
    device = response.json()
    assert device["connection_type"] == "restful"

    response = await client.post(
        f"{IOT}/devices/{device['id']}/commands",
        json={"action": "set_temperature", "value": 22},
        headers=auth_headers(owner),
    )
    assert response.status_code == 200, response.text
    assert response.json()["state"] == {"temperature": 22}

    sent = vendor_api[0]
    assert sent.method == "POST"
    assert str(sent.url) == "https://cloud.example.com/api/devices/AC-1/control"
    assert sent.headers["X-API-Key"] == "secret"
    assert orjson.loads(sent.content) == {"temperature": 22}

    response = await client.get(f"{IOT}/devices/{device['id']}/state", headers=auth_headers(owner))
    assert response.status_code == 200
    state = response.json()["state"]
    assert state["power"] is True
    assert state["mode"] == "cool"
    assert state["target_temperature"] == 23
    assert response.json()["status"] == "online"


async def test_state_ingestion(client, make_user, create_household, publisher):
    owner = await make_user()
    household = await create_household(owner)
    device = (await _register(client, owner, household["id"], vendor="esp", external_id="node-7")).json()
    headers = auth_headers(owner)

    response = await client.post(f"{IOT}/state", json={"topic": "esp/node-7/status", "payload": "ON"}, headers=headers)
    assert response.status_code == 200, response.text
    assert response.json()["id"] == device["id"]
    assert response.json()["state"] == {"power": True}
    assert response.json()["status"] == "online"
    assert response.json()["last_seen_at"] is not None

    response = await client.post(
        f"{IOT}/state", json={"topic": "nest/node-7/status", "payload": "ON"}, headers=headers,
    )
    assert response.status_code == 422

    response = await client.post(
        f"{IOT}/state", json={"topic": "esp/unknown/status", "payload": "ON"}, headers=headers,
    )
    assert response.status_code == 404


async def test_malformed_state_report_is_rejected(client, make_user, create_household, publisher):
    owner = await make_user()
    household = await create_household(owner)
    device = (await _register(client, owner, household["id"], external_id="t-1")).json()

    response = await client.post(
        f"{IOT}/state", json={"topic": "tuya/t-1/state", "payload": {"dps": None}}, headers=auth_headers(owner),
    )
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    response = await client.get(f"{IOT}/devices/{device['id']}", headers=auth_headers(owner))
    assert response.json()["state"] == {}


async def test_outsider_cannot_see_devices(client, make_user, create_household, publisher):
    owner = await make_user()
    outsider = await make_user()
    household = await create_household(owner)
    device = (await _register(client, owner, household["id"])).json()

    response = await client.get(f"{IOT}/devices/{device['id']}", headers=auth_headers(outsider))
    assert response.status_code == 403

    response = await client.get(f"{IOT}/devices", params={"household_id": household["id"]}, headers=auth_headers(outsider))
    assert response.status_code == 403

    response = await client.delete(f"{IOT}/devices/{device['id']}", headers=auth_headers(owner))
    assert response.status_code == 204
    response = await client.get(f"{IOT}/devices/{device['id']}", headers=auth_headers(owner))
    assert response.status_code == 404


async def test_unexpected_vendor_state_leaves_device_alone(client, make_user, create_household):
    transport = RestTransport(
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"state": "on"}))
    )
    app.dependency_overrides[get_rest_transport] = lambda: transport
    owner = await make_user()
    household = await create_household(owner)
    device = (await _register(
        client, owner, household["id"], vendor="philips", external_id="3", name="Hall light",
        base_url="http://bridge.local", api_key="hue-user",
    )).json()

    response = await client.get(f"{IOT}/devices/{device['id']}/state", headers=auth_headers(owner))
    assert response.status_code == 200
    assert response.json()["state"] == {}
    assert response.json()["status"] == "offline"
