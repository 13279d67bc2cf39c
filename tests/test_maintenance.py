"""
Maintenance tickets: creation, crew assignment, completion and sign-off.
"""
import re

from tests.conftest import API, auth_headers

TICKETS = f"{API}/maintenance/tickets"


async def _open_ticket(client, user, household_id, **fields):
    body = {
        "household_id": household_id,
        "title": "Kitchen sink leaking",
        "category": "BUILDING_MAINTENANCE",
        "priority": "HIGH",
    }
    body.update(fields)
    response = await client.post(TICKETS, json=body, headers=auth_headers(user))
    assert response.status_code == 201, response.text
    return response.json()


async def test_ticket_lifecycle(client, estate, make_user, create_working_group):
    plumber = await make_user(full_name="Plumber")
    crew_id = await create_working_group(
        estate.manager, estate.community_id, "MAINTENANCE", members=[plumber], leader=plumber,
    )

    ticket = await _open_ticket(client, estate.resident, estate.household_id)
    assert re.fullmatch(r"MT-\d{8}-0001", ticket["ticket_number"])
    assert ticket["status"] == "PENDING_EVALUATION"
    assert ticket["building_id"] == estate.building_id
    assert ticket["community_id"] == estate.community_id

    response = await client.patch(
        f"{TICKETS}/{ticket['id']}",
        json={"assigned_crew_id": crew_id},
        headers=auth_headers(estate.manager),
    )
    assert response.status_code == 200, response.text
    assert response.json()["status"] == "ASSIGNED"

    response = await client.post(
        f"{TICKETS}/{ticket['id']}/complete",
        json={"work_notes": "Replaced the trap"},
        headers=auth_headers(plumber),
    )
    assert response.status_code == 200, response.text
    assert response.json()["status"] == "WORK_COMPLETED"
    assert response.json()["completed_at"] is not None

    response = await client.post(
        f"{TICKETS}/{ticket['id']}/signoff",
        json={"type": "HOUSEHOLD", "rating": 5},
        headers=auth_headers(estate.resident),
    )
    assert response.status_code == 200, response.text
    assert response.json()["status"] == "CLOSED"
    assert response.json()["closed_at"] is not None

    response = await client.patch(
        f"{TICKETS}/{ticket['id']}",
        json={"priority": "LOW"},
        headers=auth_headers(estate.manager),
    )
    assert response.status_code == 400

    # the resident was told about the status changes made by staff
    response = await client.get(f"{API}/notifications", headers=auth_headers(estate.resident))
    types = {item["type"] for item in response.json()["items"]}
    assert "TICKET_UPDATE" in types


async def test_household_signoff_requires_completed_work(client, estate):
    ticket = await _open_ticket(client, estate.resident, estate.household_id)

    response = await client.post(
        f"{TICKETS}/{ticket['id']}/signoff",
        json={"type": "HOUSEHOLD"},
        headers=auth_headers(estate.resident),
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "BAD_REQUEST"


async def test_crew_signoff_needs_leader(client, estate, make_user, create_working_group):
    leader = await make_user()
    helper = await make_user()
    crew_id = await create_working_group(
        estate.manager, estate.community_id, "MAINTENANCE", members=[leader, helper], leader=leader,
    )
    ticket = await _open_ticket(client, estate.resident, estate.household_id)
    await client.patch(
        f"{TICKETS}/{ticket['id']}",
        json={"assigned_crew_id": crew_id},
        headers=auth_headers(estate.manager),
    )

    response = await client.post(
        f"{TICKETS}/{ticket['id']}/signoff",
        json={"type": "CREW_LEAD"},
        headers=auth_headers(helper),
    )
    assert response.status_code == 403

    response = await client.post(
        f"{TICKETS}/{ticket['id']}/signoff",
        json={"type": "CREW_LEAD", "comments": "Checked"},
        headers=auth_headers(leader),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "SIGNED_OFF_BY_CREW"
    assert response.json()["crew_signoff_at"] is not None


async def test_only_managers_update_tickets(client, estate):
    ticket = await _open_ticket(client, estate.resident, estate.household_id)

    response = await client.patch(
        f"{TICKETS}/{ticket['id']}",
        json={"status": "CLOSED"},
        headers=auth_headers(estate.resident),
    )
    assert response.status_code == 403


async def test_crew_must_belong_to_ticket_community(client, estate, make_user, create_working_group):
    other_manager = await make_user()
    response = await client.post(
        f"{API}/communities", json={"name": "Elsewhere"}, headers=auth_headers(other_manager),
    )
    foreign_crew = await create_working_group(other_manager, response.json()["id"], "MAINTENANCE")
    ticket = await _open_ticket(client, estate.resident, estate.household_id)

    response = await client.patch(
        f"{TICKETS}/{ticket['id']}",
        json={"assigned_crew_id": foreign_crew},
        headers=auth_headers(estate.manager),
    )
    assert response.status_code == 400


async def test_outsider_cannot_open_or_view_tickets(client, estate, make_user):
    outsider = await make_user()
    ticket = await _open_ticket(client, estate.resident, estate.household_id)

    response = await client.post(
        TICKETS,
        json={"household_id": estate.household_id, "title": "x", "category": "OTHER"},
        headers=auth_headers(outsider),
    )
    assert response.status_code == 403

    response = await client.get(f"{TICKETS}/{ticket['id']}", headers=auth_headers(outsider))
    assert response.status_code == 403

    response = await client.get(TICKETS, headers=auth_headers(outsider))
    assert response.status_code == 200
    assert response.json() == []


async def test_community_member_can_raise_ticket_viewer_cannot(client, estate, make_user):
    member = await make_user()
    viewer = await make_user()
    for user, role in ((member, "MEMBER"), (viewer, "VIEWER")):
        response = await client.post(
            f"{API}/communities/{estate.community_id}/members",
            json={"user_id": str(user.id), "role": role},
            headers=auth_headers(estate.manager),
        )
        assert response.status_code == 201, response.text

    ticket = await _open_ticket(client, member, estate.household_id, category="HOUSE_CLEANING")
    assert ticket["household_id"] == estate.household_id

    response = await client.post(
        TICKETS,
        json={"household_id": estate.household_id, "title": "x", "category": "OTHER"},
        headers=auth_headers(viewer),
    )
    assert response.status_code == 403


async def test_ticket_numbers_increment(client, estate):
    first = await _open_ticket(client, estate.resident, estate.household_id)
    second = await _open_ticket(client, estate.resident, estate.household_id, category="SMART_HOME")
    assert first["ticket_number"][:-4] == second["ticket_number"][:-4]
    assert second["ticket_number"].endswith("0002")
