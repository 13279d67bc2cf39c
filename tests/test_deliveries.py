"""
Package lockers, parcel check-in and mailbox notices.
"""
from tests.conftest import API, auth_headers


async def _locker(client, estate, number="L-01"):
    response = await client.post(
        f"{API}/buildings/{estate.building_id}/lockers",
        json={"locker_number": number, "size": "M"},
        headers=auth_headers(estate.manager),
    )
    assert response.status_code == 201, response.text
    return response.json()


async def _check_in(client, estate, locker, **fields):
    body = {"locker_id": locker["id"], "household_id": estate.household_id}
    body.update(fields)
    return await client.post(
        f"{API}/buildings/{estate.building_id}/packages/check-in",
        json=body,
        headers=auth_headers(estate.manager),
    )


async def test_check_in_notifies_household(client, estate, make_user, add_household_member):
    partner = await make_user()
    await add_household_member(estate.resident, estate.household_id, partner)
    locker = await _locker(client, estate)

    response = await _check_in(client, estate, locker, package_number="TRK-42")
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["notifications_sent"] == 2
    assert body["locker"]["is_occupied"] is True
    assert body["package"]["status"] == "pending"

    response = await client.get(f"{API}/notifications", headers=auth_headers(partner))
    item = response.json()["items"][0]
    assert item["type"] == "PACKAGE_RECEIVED"
    assert item["message"] == "You have a package in locker L-01 (TRK-42)"


async def test_occupied_locker_is_refused(client, estate):
    locker = await _locker(client, estate)
    assert (await _check_in(client, estate, locker)).status_code == 201

    response = await _check_in(client, estate, locker)
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Locker is already occupied"


async def test_pickup_frees_locker(client, estate):
    locker = await _locker(client, estate)
    package = (await _check_in(client, estate, locker)).json()["package"]

    response = await client.post(f"{API}/packages/{package['id']}/pickup", headers=auth_headers(estate.resident))
    assert response.status_code == 200, response.text
    assert response.json()["status"] == "picked_up"
    assert response.json()["picked_up_by"] == str(estate.resident.id)

    response = await client.get(f"{API}/buildings/{estate.building_id}/lockers", headers=auth_headers(estate.manager))
    assert response.json()[0]["is_occupied"] is False

    response = await client.post(f"{API}/packages/{package['id']}/pickup", headers=auth_headers(estate.resident))
    assert response.status_code == 400

    response = await client.get(
        f"{API}/households/{estate.household_id}/packages",
        params={"status": "picked_up"},
        headers=auth_headers(estate.resident),
    )
    assert [p["id"] for p in response.json()] == [package["id"]]


async def test_strangers_cannot_pick_up(client, estate, make_user):
    locker = await _locker(client, estate)
    package = (await _check_in(client, estate, locker)).json()["package"]
    stranger = await make_user()

    response = await client.post(f"{API}/packages/{package['id']}/pickup", headers=auth_headers(stranger))
    assert response.status_code == 403


async def test_check_in_validates_locker_and_household(client, estate):
    locker = await _locker(client, estate)

    response = await _check_in(client, estate, {"id": "00000000-0000-0000-0000-000000000000"})
    assert response.status_code == 404

    response = await client.post(
        f"{API}/communities/{estate.community_id}/buildings",
        json={"name": "Tower B"},
        headers=auth_headers(estate.manager),
    )
    other_building = response.json()["id"]
    response = await client.post(
        f"{API}/buildings/{other_building}/packages/check-in",
        json={"locker_id": locker["id"], "household_id": estate.household_id},
        headers=auth_headers(estate.manager),
    )
    assert response.status_code == 400

    response = await client.post(
        f"{API}/buildings/{estate.building_id}/packages/check-in",
        json={"locker_id": locker["id"], "household_id": estate.household_id},
        headers=auth_headers(estate.resident),
    )
    assert response.status_code == 403


async def test_duplicate_locker_number(client, estate):
    await _locker(client, estate)
    response = await client.post(
        f"{API}/buildings/{estate.building_id}/lockers",
        json={"locker_number": "L-01"},
        headers=auth_headers(estate.manager),
    )
    assert response.status_code == 409


async def test_mail_notice_and_collection(client, estate):
    headers = auth_headers(estate.manager)
    response = await client.post(
        f"{API}/buildings/{estate.building_id}/mailboxes",
        json={"mailbox_number": "12", "household_id": estate.household_id},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    mailbox = response.json()
    assert mailbox["has_mail"] is False

    response = await client.post(
        f"{API}/buildings/{estate.building_id}/mailboxes/{mailbox['id']}/notify", headers=headers,
    )
    assert response.status_code == 200, response.text
    assert response.json()["notifications_sent"] == 1
    assert response.json()["mailbox"]["has_mail"] is True
    assert response.json()["mailbox"]["last_mail_at"] is not None

    response = await client.get(f"{API}/notifications", headers=auth_headers(estate.resident))
    item = response.json()["items"][0]
    assert item["type"] == "MAIL_RECEIVED"
    assert item["message"].startswith("Mailbox 12 has new mail")

    response = await client.post(f"{API}/mailboxes/{mailbox['id']}/collected", headers=auth_headers(estate.resident))
    assert response.status_code == 200
    assert response.json()["has_mail"] is False


async def test_unassigned_mailbox_cannot_be_notified(client, estate):
    headers = auth_headers(estate.manager)
    response = await client.post(
        f"{API}/buildings/{estate.building_id}/mailboxes", json={"mailbox_number": "99"}, headers=headers,
    )
    mailbox = response.json()

    response = await client.post(
        f"{API}/buildings/{estate.building_id}/mailboxes/{mailbox['id']}/notify", headers=headers,
    )
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Mailbox is not linked to a household"
