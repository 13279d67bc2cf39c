"""
Doorbells, ringing sessions and front desk routing of unanswered calls.
"""
import uuid
from datetime import timedelta

from src.core.models import as_utc, utc_now
from src.modules.doorbell.models import DoorBellCallSession
from src.modules.doorbell.routing import check_and_route_timed_out_calls
from tests.conftest import API, auth_headers


async def _doorbell(client, estate, number="12B", **fields):
    body = {"household_id": estate.household_id, "door_bell_number": number}
    body.update(fields)
    response = await client.post(
        f"{API}/buildings/{estate.building_id}/doorbells", json=body, headers=auth_headers(estate.manager),
    )
    assert response.status_code == 201, response.text
    return response.json()


async def _ring(client, user, estate, **fields):
    body = {"building_id": estate.building_id, "door_bell_number": "12B"}
    body.update(fields)
    return await client.post(f"{API}/doorbell/ring", json=body, headers=auth_headers(user))


async def test_ring_notifies_household(client, estate, make_user):
    visitor = await make_user()
    bell = await _doorbell(client, estate)

    response = await _ring(client, visitor, estate)
    assert response.status_code == 201, response.text
    session = response.json()
    assert session["status"] == "ringing"
    assert session["door_bell_id"] == bell["id"]
    assert session["routed_to_front_desk"] is False

    response = await client.get(f"{API}/notifications", headers=auth_headers(estate.resident))
    item = response.json()["items"][0]
    assert item["type"] == "DOOR_BELL_RUNG"
    assert item["priority"] == "high"
    assert item["message"] == "Someone is at the door (12B)"

    response = await client.get(
        f"{API}/buildings/{estate.building_id}/doorbells", headers=auth_headers(estate.manager),
    )
    assert response.json()[0]["last_rung_at"] is not None


async def test_duplicate_doorbell_number(client, estate):
    await _doorbell(client, estate)
    response = await client.post(
        f"{API}/buildings/{estate.building_id}/doorbells",
        json={"door_bell_number": "12B"},
        headers=auth_headers(estate.manager),
    )
    assert response.status_code == 409


async def test_residents_cannot_manage_doorbells(client, estate):
    response = await client.post(
        f"{API}/buildings/{estate.building_id}/doorbells",
        json={"door_bell_number": "1A"},
        headers=auth_headers(estate.resident),
    )
    assert response.status_code == 403


async def test_ring_rejects_unusable_bells(client, estate):
    bell = await _doorbell(client, estate, is_enabled=False)
    response = await _ring(client, estate.resident, estate)
    assert response.status_code == 400

    await _doorbell(client, estate, number="LOBBY", household_id=None)
    response = await _ring(client, estate.resident, estate, door_bell_number="LOBBY")
    assert response.status_code == 400

    response = await _ring(client, estate.resident, estate, door_bell_number="99Z")
    assert response.status_code == 404

    response = await client.patch(
        f"{API}/doorbells/{bell['id']}", json={"is_enabled": True}, headers=auth_headers(estate.manager),
    )
    assert response.json()["is_enabled"] is True
    response = await _ring(client, estate.resident, estate, door_bell_id=bell["id"], door_bell_number=None)
    assert response.status_code == 201


async def test_ring_needs_a_bell_reference(client, estate):
    response = await client.post(
        f"{API}/doorbell/ring", json={"building_id": estate.building_id}, headers=auth_headers(estate.resident),
    )
    assert response.status_code == 422


async def test_session_connect_and_end(client, estate, make_user):
    visitor = await make_user()
    await _doorbell(client, estate)
    session = (await _ring(client, visitor, estate)).json()
    url = f"{API}/doorbell/sessions/{session['id']}"
    resident = auth_headers(estate.resident)

    response = await client.patch(url, json={"action": "connect"}, headers=resident)
    assert response.status_code == 200
    assert response.json()["status"] == "connected"
    assert response.json()["connected_at"] is not None

    response = await client.patch(url, json={"action": "connect"}, headers=resident)
    assert response.status_code == 400

    response = await client.patch(url, json={"action": "end"}, headers=resident)
    assert response.json()["status"] == "ended"

    response = await client.patch(url, json={"action": "end"}, headers=resident)
    assert response.status_code == 400

    response = await client.get(url, headers=auth_headers(visitor))
    assert response.status_code == 403


async def test_unanswered_call_routes_to_front_desk(client, db, estate, make_user, create_working_group):
    clerk = await make_user()
    await create_working_group(
        estate.manager, estate.community_id, "FRONT_DOOR_TEAM", members=[clerk], scope="ALL_BUILDINGS",
    )
    await _doorbell(client, estate)
    session = (await _ring(client, estate.manager, estate)).json()

    # still inside the 30 second window
    assert await check_and_route_timed_out_calls(db) == 0

    later = utc_now() + timedelta(seconds=31)
    assert await check_and_route_timed_out_calls(db, now=later) == 1
    await db.commit()
    assert await check_and_route_timed_out_calls(db, now=later) == 0

    response = await client.get(f"{API}/doorbell/sessions/{session['id']}", headers=auth_headers(clerk))
    assert response.status_code == 200
    assert response.json()["routed_to_front_desk"] is True
    assert response.json()["status"] == "ringing"

    response = await client.get(f"{API}/notifications", headers=auth_headers(clerk))
    item = response.json()["items"][0]
    assert item["type"] == "DOORBELL_ROUTED"
    assert item["data"]["routed_to_front_desk"] is True


async def test_front_desk_scoped_to_other_building_is_not_notified(
    client, db, estate, make_user, create_working_group,
):
    clerk = await make_user()
    response = await client.post(
        f"{API}/communities/{estate.community_id}/buildings",
        json={"name": "Tower B"},
        headers=auth_headers(estate.manager),
    )
    other_building = response.json()["id"]
    await create_working_group(
        estate.manager,
        estate.community_id,
        "FRONT_DOOR_TEAM",
        members=[clerk],
        scope="SPECIFIC_BUILDING",
        scope_id=other_building,
    )
    await _doorbell(client, estate)
    await _ring(client, estate.manager, estate)

    assert await check_and_route_timed_out_calls(db, now=utc_now() + timedelta(minutes=5)) == 1
    await db.commit()

    response = await client.get(f"{API}/notifications/unread-count", headers=auth_headers(clerk))
    assert response.json()["unread_count"] == 0


async def _started_at(db, session_id):
    session = await db.get(DoorBellCallSession, uuid.UUID(session_id), populate_existing=True)
    return as_utc(session.started_at)


async def _is_routed(db, session_id):
    session = await db.get(DoorBellCallSession, uuid.UUID(session_id), populate_existing=True)
    return session.routed_to_front_desk


async def test_building_timeout_overrides_default(client, db, estate):
    response = await client.patch(
        f"{API}/buildings/{estate.building_id}",
        json={"doorbell_timeout_seconds": 60},
        headers=auth_headers(estate.manager),
    )
    assert response.status_code == 200, response.text
    await _doorbell(client, estate)
    session = (await _ring(client, estate.manager, estate)).json()
    started = await _started_at(db, session["id"])

    assert await check_and_route_timed_out_calls(db, now=started + timedelta(seconds=31)) == 0
    assert await check_and_route_timed_out_calls(db, now=started + timedelta(seconds=59)) == 0
    assert await check_and_route_timed_out_calls(db, now=started + timedelta(seconds=60)) == 1
    await db.commit()
    assert await _is_routed(db, session["id"])


async def test_timeout_boundary_is_inclusive(client, db, estate):
    await _doorbell(client, estate)
    session = (await _ring(client, estate.manager, estate)).json()
    started = await _started_at(db, session["id"])

    assert await check_and_route_timed_out_calls(db, now=started + timedelta(seconds=29)) == 0
    assert await check_and_route_timed_out_calls(db, now=started + timedelta(seconds=30)) == 1


async def test_each_building_uses_its_own_timeout(client, db, estate):
    headers = auth_headers(estate.manager)
    response = await client.post(
        f"{API}/communities/{estate.community_id}/buildings",
        json={"name": "Tower B", "doorbell_timeout_seconds": 90},
        headers=headers,
    )
    tower_b = response.json()["id"]
    response = await client.post(
        f"{API}/households", json={"name": "3C", "building_id": tower_b, "apartment_no": "3C"}, headers=headers,
    )
    household_b = response.json()["id"]
    response = await client.post(
        f"{API}/buildings/{tower_b}/doorbells",
        json={"household_id": household_b, "door_bell_number": "3C"},
        headers=headers,
    )
    assert response.status_code == 201, response.text

    await _doorbell(client, estate)
    call_a = (await _ring(client, estate.manager, estate)).json()
    response = await client.post(
        f"{API}/doorbell/ring", json={"building_id": tower_b, "door_bell_number": "3C"}, headers=headers,
    )
    assert response.status_code == 201, response.text
    call_b = response.json()

    started_b = await _started_at(db, call_b["id"])
    assert await check_and_route_timed_out_calls(db, now=started_b + timedelta(seconds=45)) == 1
    await db.commit()
    assert await _is_routed(db, call_a["id"])
    assert not await _is_routed(db, call_b["id"])

    assert await check_and_route_timed_out_calls(db, now=started_b + timedelta(seconds=90)) == 1
    await db.commit()
    assert await _is_routed(db, call_b["id"])


async def test_check_timeouts_endpoint(client, estate):
    response = await client.post(f"{API}/doorbell/check-timeouts", headers=auth_headers(estate.resident))
    assert response.status_code == 403

    response = await client.post(f"{API}/doorbell/check-timeouts", headers=auth_headers(estate.manager))
    assert response.status_code == 200
    assert response.json() == {"routed": 0}


async def test_active_sessions_for_managers(client, estate):
    await _doorbell(client, estate)
    await _ring(client, estate.resident, estate)

    response = await client.get(
        f"{API}/buildings/{estate.building_id}/doorbell-sessions", headers=auth_headers(estate.manager),
    )
    assert response.status_code == 200
    assert len(response.json()) == 1

    response = await client.get(
        f"{API}/buildings/{estate.building_id}/doorbell-sessions", headers=auth_headers(estate.resident),
    )
    assert response.status_code == 403
