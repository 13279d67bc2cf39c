"""
Join requests, invitation codes and the memberships they cascade.
"""
from tests.conftest import API, auth_headers


async def _request(client, user, type, target_id, **fields):
    return await client.post(
        f"{API}/join-requests",
        json={"type": type, "target_id": target_id, **fields},
        headers=auth_headers(user),
    )


async def _community_role(client, estate, user):
    """Community role of ``user`` as seen by the estate manager."""
    headers = auth_headers(estate.manager)
    response = await client.get(f"{API}/communities/{estate.community_id}/members", headers=headers)
    roles = {m["user_id"]: m["role"] for m in response.json()}
    return roles.get(str(user.id))


async def test_household_request_approved_by_owner(client, estate, make_user):
    newcomer = await make_user(full_name="New Neighbour")

    response = await _request(client, newcomer, "household", estate.household_id, message="I moved in")
    assert response.status_code == 201, response.text
    request = response.json()
    assert request["status"] == "pending"
    assert request["role"] == "USER"

    response = await client.get(f"{API}/notifications", headers=auth_headers(estate.resident))
    item = response.json()["items"][0]
    assert item["type"] == "JOIN_REQUEST"
    assert item["message"] == "New Neighbour asked to join 12B"

    response = await client.get(
        f"{API}/join-requests",
        params={"type": "household", "target_id": estate.household_id, "status": "pending"},
        headers=auth_headers(estate.resident),
    )
    assert [r["id"] for r in response.json()] == [request["id"]]

    response = await client.post(
        f"{API}/join-requests/{request['id']}/approve", json={}, headers=auth_headers(estate.resident),
    )
    assert response.status_code == 200, response.text
    assert response.json()["status"] == "approved"
    assert response.json()["reviewed_by"] == str(estate.resident.id)

    response = await client.get(f"{API}/households/{estate.household_id}", headers=auth_headers(newcomer))
    assert response.status_code == 200

    # Joining a household also joins its community as MEMBER
    assert await _community_role(client, estate, newcomer) == "MEMBER"

    response = await client.get(f"{API}/notifications", headers=auth_headers(newcomer))
    assert response.json()["items"][0]["message"] == "You are now a USER of 12B"


async def test_duplicate_and_member_requests_conflict(client, estate, make_user):
    newcomer = await make_user()
    assert (await _request(client, newcomer, "household", estate.household_id)).status_code == 201

    response = await _request(client, newcomer, "household", estate.household_id)
    assert response.status_code == 409

    response = await _request(client, estate.resident, "household", estate.household_id)
    assert response.status_code == 409


async def test_request_validation(client, estate, make_user):
    newcomer = await make_user()
    response = await _request(client, newcomer, "household", estate.household_id, role="OWNER")
    assert response.status_code == 422

    response = await _request(client, newcomer, "community", estate.community_id, role="ADMIN")
    assert response.status_code == 422

    response = await _request(client, newcomer, "building", "00000000-0000-0000-0000-000000000000")
    assert response.status_code == 404


async def test_building_request_cascades_to_community(client, estate, make_user):
    newcomer = await make_user()
    response = await _request(client, newcomer, "building", estate.building_id, role="VIEWER")
    request = response.json()

    response = await client.post(
        f"{API}/join-requests/{request['id']}/approve", json={}, headers=auth_headers(estate.resident),
    )
    assert response.status_code == 403

    response = await client.post(
        f"{API}/join-requests/{request['id']}/approve", json={}, headers=auth_headers(estate.manager),
    )
    assert response.status_code == 200, response.text
    assert await _community_role(client, estate, newcomer) == "MEMBER"

    response = await client.post(
        f"{API}/join-requests/{request['id']}/approve", json={}, headers=auth_headers(estate.manager),
    )
    assert response.status_code == 400


async def test_manager_cannot_grant_own_level(client, estate, make_user):
    deputy = await make_user()
    response = await client.post(
        f"{API}/communities/{estate.community_id}/members",
        json={"user_id": str(deputy.id), "role": "MANAGER"},
        headers=auth_headers(estate.manager),
    )
    assert response.status_code == 201, response.text

    newcomer = await make_user()
    request = (await _request(client, newcomer, "community", estate.community_id)).json()

    response = await client.post(
        f"{API}/join-requests/{request['id']}/approve", json={"role": "MANAGER"}, headers=auth_headers(deputy),
    )
    assert response.status_code == 403

    response = await client.post(
        f"{API}/join-requests/{request['id']}/approve", json={"role": "MEMBER"}, headers=auth_headers(deputy),
    )
    assert response.status_code == 200
    assert await _community_role(client, estate, newcomer) == "MEMBER"


async def test_rejection_records_reason(client, estate, make_user):
    newcomer = await make_user()
    request = (await _request(client, newcomer, "community", estate.community_id)).json()

    response = await client.post(
        f"{API}/join-requests/{request['id']}/reject",
        json={"reason": "Residents only"},
        headers=auth_headers(estate.manager),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "rejected"
    assert response.json()["rejection_reason"] == "Residents only"

    response = await client.get(f"{API}/join-requests", headers=auth_headers(newcomer))
    assert [r["status"] for r in response.json()] == ["rejected"]

    response = await client.get(f"{API}/notifications", headers=auth_headers(newcomer))
    assert response.json()["items"][0]["message"].endswith("Reason: Residents only")

    # A fresh request is allowed once the old one is closed
    assert (await _request(client, newcomer, "community", estate.community_id)).status_code == 201


# ============== Invitation codes ==============

async def test_join_household_with_invitation_code(client, estate, make_user):
    response = await client.get(f"{API}/households/{estate.household_id}", headers=auth_headers(estate.resident))
    code = response.json()["invitation_code"]
    assert len(code) == 8

    guest = await make_user()
    response = await client.get(f"{API}/households/join", params={"code": code.lower()}, headers=auth_headers(guest))
    assert response.status_code == 200, response.text
    assert response.json()["name"] == "12B"
    assert response.json()["member_count"] == 1

    response = await client.post(
        f"{API}/households/join", json={"invitation_code": code, "role": "VISITOR"}, headers=auth_headers(guest),
    )
    assert response.status_code == 201, response.text
    assert response.json()["role"] == "VISITOR"
    assert await _community_role(client, estate, guest) == "MEMBER"

    response = await client.post(
        f"{API}/households/join", json={"invitation_code": code}, headers=auth_headers(guest),
    )
    assert response.status_code == 409


async def test_invitation_code_cannot_grant_owner(client, estate, make_user):
    response = await client.get(f"{API}/households/{estate.household_id}", headers=auth_headers(estate.resident))
    code = response.json()["invitation_code"]
    guest = await make_user()

    response = await client.post(
        f"{API}/households/join", json={"invitation_code": code, "role": "OWNER"}, headers=auth_headers(guest),
    )
    assert response.status_code == 422

    response = await client.post(
        f"{API}/households/join", json={"invitation_code": "NOPE1234"}, headers=auth_headers(guest),
    )
    assert response.status_code == 404


async def test_regenerated_code_replaces_the_old_one(client, estate, make_user, add_household_member):
    response = await client.get(f"{API}/households/{estate.household_id}", headers=auth_headers(estate.resident))
    old_code = response.json()["invitation_code"]

    member = await make_user()
    await add_household_member(estate.resident, estate.household_id, member)
    response = await client.post(
        f"{API}/households/{estate.household_id}/invitation-code", headers=auth_headers(member),
    )
    assert response.status_code == 403

    response = await client.post(
        f"{API}/households/{estate.household_id}/invitation-code", headers=auth_headers(estate.resident),
    )
    assert response.status_code == 200
    new_code = response.json()["invitation_code"]
    assert new_code != old_code

    guest = await make_user()
    response = await client.get(f"{API}/households/join", params={"code": old_code}, headers=auth_headers(guest))
    assert response.status_code == 404
