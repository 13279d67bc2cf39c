"""
Communities, buildings, households and working groups over HTTP.
"""
from tests.conftest import API, auth_headers


async def test_creator_becomes_community_admin(client, make_user):
    owner = await make_user()
    response = await client.post(f"{API}/communities", json={"name": "Lakeside"}, headers=auth_headers(owner))
    assert response.status_code == 201
    community_id = response.json()["id"]

    response = await client.get(f"{API}/communities/{community_id}/members", headers=auth_headers(owner))
    assert [m["role"] for m in response.json()] == ["ADMIN"]

    response = await client.get(f"{API}/communities/{community_id}/assignable-roles", headers=auth_headers(owner))
    body = response.json()
    assert body["role"] == "ADMIN"
    assert body["permissions"]["can_manage_community"] is True


async def test_non_member_cannot_read_community(client, make_user, estate):
    stranger = await make_user()
    response = await client.get(f"{API}/communities/{estate.community_id}", headers=auth_headers(stranger))
    assert response.status_code == 403


async def test_manager_cannot_promote_to_manager(client, make_user, estate):
    deputy = await make_user()
    other = await make_user()
    admin_headers = auth_headers(estate.manager)
    response = await client.post(
        f"{API}/communities/{estate.community_id}/members",
        json={"user_id": str(deputy.id), "role": "MANAGER"},
        headers=admin_headers,
    )
    assert response.status_code == 201

    response = await client.post(
        f"{API}/communities/{estate.community_id}/members",
        json={"user_id": str(other.id), "role": "MANAGER"},
        headers=auth_headers(deputy),
    )
    assert response.status_code == 403

    response = await client.post(
        f"{API}/communities/{estate.community_id}/members",
        json={"user_id": str(other.id), "role": "MEMBER"},
        headers=auth_headers(deputy),
    )
    assert response.status_code == 201


async def test_duplicate_community_member_conflicts(client, estate):
    response = await client.post(
        f"{API}/communities/{estate.community_id}/members",
        json={"user_id": str(estate.manager.id), "role": "MEMBER"},
        headers=auth_headers(estate.manager),
    )
    assert response.status_code == 409


async def test_member_cannot_create_building(client, make_user, estate):
    member = await make_user()
    await client.post(
        f"{API}/communities/{estate.community_id}/members",
        json={"user_id": str(member.id), "role": "MEMBER"},
        headers=auth_headers(estate.manager),
    )
    response = await client.post(
        f"{API}/communities/{estate.community_id}/buildings",
        json={"name": "Tower B"},
        headers=auth_headers(member),
    )
    assert response.status_code == 403


async def test_building_doorbell_timeout_update(client, estate):
    response = await client.patch(
        f"{API}/buildings/{estate.building_id}",
        json={"doorbell_timeout_seconds": 45},
        headers=auth_headers(estate.manager),
    )
    assert response.status_code == 200
    assert response.json()["doorbell_timeout_seconds"] == 45


async def test_household_visibility(client, make_user, estate):
    stranger = await make_user()
    response = await client.get(f"{API}/households/{estate.household_id}", headers=auth_headers(stranger))
    assert response.status_code == 404

    # Building managers see households without being members
    response = await client.get(f"{API}/households/{estate.household_id}", headers=auth_headers(estate.manager))
    assert response.status_code == 200

    response = await client.get(f"{API}/households", headers=auth_headers(estate.resident))
    assert [h["id"] for h in response.json()] == [estate.household_id]


async def test_last_owner_cannot_leave(client, estate):
    response = await client.delete(
        f"{API}/households/{estate.household_id}/members/{estate.resident.id}",
        headers=auth_headers(estate.resident),
    )
    assert response.status_code == 400


async def test_household_user_cannot_manage_members(client, make_user, add_household_member, estate):
    user = await make_user()
    guest = await make_user()
    await add_household_member(estate.resident, estate.household_id, user, role="USER")
    response = await client.post(
        f"{API}/households/{estate.household_id}/members",
        json={"user_id": str(guest.id), "role": "VISITOR"},
        headers=auth_headers(user),
    )
    assert response.status_code == 403


async def test_working_group_permission_scope(client, create_working_group, estate):
    group_id = await create_working_group(estate.manager, estate.community_id, "FRONT_DOOR_TEAM")
    headers = auth_headers(estate.manager)

    response = await client.post(
        f"{API}/working-groups/{group_id}/permissions",
        json={"permission": "view", "scope": "SPECIFIC_BUILDING"},
        headers=headers,
    )
    assert response.status_code == 400

    response = await client.post(
        f"{API}/working-groups/{group_id}/permissions",
        json={"permission": "view", "scope": "SPECIFIC_BUILDING", "scope_id": estate.building_id},
        headers=headers,
    )
    assert response.status_code == 201
    assert response.json()["permission"] == "VIEW"

    response = await client.get(f"{API}/working-groups/{group_id}/permissions", headers=headers)
    assert len(response.json()) == 1
