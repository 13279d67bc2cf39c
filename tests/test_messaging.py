"""
Household conversations, messages and calls.
"""
import uuid

from sqlalchemy import select

from src.modules.messaging.models import CallSession
from tests.conftest import API, auth_headers

CONVERSATIONS = f"{API}/conversations"


async def _open(client, user, household_id):
    response = await client.post(CONVERSATIONS, json={"household_id": household_id}, headers=auth_headers(user))
    assert response.status_code == 200, response.text
    return response.json()


async def test_front_desk_conversation_is_reused(client, estate, make_user, create_working_group):
    clerk = await make_user()
    await create_working_group(
        estate.manager, estate.community_id, "FRONT_DOOR_TEAM", members=[clerk], scope="ALL_BUILDINGS",
    )

    first = await _open(client, clerk, estate.household_id)
    assert first["type"] == "front_desk"
    assert first["building_id"] == estate.building_id

    second = await _open(client, estate.resident, estate.household_id)
    assert second["id"] == first["id"]


async def test_outsider_cannot_open_conversation(client, estate, make_user):
    outsider = await make_user()
    response = await client.post(
        CONVERSATIONS, json={"household_id": estate.household_id}, headers=auth_headers(outsider),
    )
    assert response.status_code == 403


async def test_messages_notify_and_mark_read(client, estate):
    conversation = await _open(client, estate.manager, estate.household_id)
    url = f"{CONVERSATIONS}/{conversation['id']}"

    response = await client.post(
        f"{url}/messages",
        json={"content": "  Package at the desk  ", "metadata": {"parcel": "A1"}},
        headers=auth_headers(estate.manager),
    )
    assert response.status_code == 201, response.text
    assert response.json()["content"] == "Package at the desk"
    assert response.json()["metadata"] == {"parcel": "A1"}

    response = await client.get(CONVERSATIONS, headers=auth_headers(estate.resident))
    assert response.json()[0]["unread_count"] == 1

    response = await client.get(f"{API}/notifications", headers=auth_headers(estate.resident))
    assert response.json()["items"][0]["type"] == "MESSAGE"

    response = await client.patch(f"{url}/read", headers=auth_headers(estate.resident))
    assert response.json() == {"marked": 1}

    response = await client.get(CONVERSATIONS, headers=auth_headers(estate.resident))
    assert response.json()[0]["unread_count"] == 0


async def test_blank_message_is_rejected(client, estate):
    conversation = await _open(client, estate.resident, estate.household_id)
    response = await client.post(
        f"{CONVERSATIONS}/{conversation['id']}/messages",
        json={"content": "   "},
        headers=auth_headers(estate.resident),
    )
    assert response.status_code == 400


async def test_second_call_is_auto_rejected(client, db, estate):
    conversation = await _open(client, estate.manager, estate.household_id)
    url = f"{CONVERSATIONS}/{conversation['id']}/calls"

    response = await client.post(url, json={"call_type": "video"}, headers=auth_headers(estate.manager))
    assert response.status_code == 201, response.text
    first_call = response.json()
    assert first_call["status"] == "ringing"

    response = await client.post(url, json={"call_type": "audio"}, headers=auth_headers(estate.resident))
    assert response.status_code == 409
    error = response.json()["error"]
    assert error["code"] == "CALL_OCCUPIED"
    assert error["details"]["active_call_id"] == first_call["id"]
    assert error["details"]["active_call_type"] == "video"

    rejected = await db.scalar(
        select(CallSession).where(CallSession.id == uuid.UUID(error["details"]["call_session_id"]))
    )
    assert rejected is not None
    assert rejected.status == "auto-rejected"
    assert rejected.rejection_reason == "Call already active"


async def test_call_transitions(client, estate):
    conversation = await _open(client, estate.manager, estate.household_id)
    url = f"{CONVERSATIONS}/{conversation['id']}/calls"
    call = (await client.post(url, json={}, headers=auth_headers(estate.manager))).json()

    response = await client.patch(
        f"{url}/{call['id']}", json={"action": "answer"}, headers=auth_headers(estate.resident),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "answered"
    assert response.json()["receiver_id"] == str(estate.resident.id)

    response = await client.patch(
        f"{url}/{call['id']}", json={"action": "reject"}, headers=auth_headers(estate.resident),
    )
    assert response.status_code == 400

    response = await client.patch(
        f"{url}/{call['id']}", json={"action": "end"}, headers=auth_headers(estate.manager),
    )
    assert response.json()["status"] == "ended"
    assert response.json()["duration"] >= 0

    # a new call can start once the previous one ended
    response = await client.post(url, json={"call_type": "audio"}, headers=auth_headers(estate.resident))
    assert response.status_code == 201


async def test_unknown_call_type(client, estate):
    conversation = await _open(client, estate.resident, estate.household_id)
    response = await client.post(
        f"{CONVERSATIONS}/{conversation['id']}/calls",
        json={"call_type": "hologram"},
        headers=auth_headers(estate.resident),
    )
    assert response.status_code == 400
