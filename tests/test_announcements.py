"""
Announcement publishing, household visibility and read tracking.
"""
from datetime import timedelta

from src.core.models import utc_now
from tests.conftest import API, auth_headers


async def _publish(client, user, **body):
    body.setdefault("title", "Notice")
    body.setdefault("message", "Please read")
    return await client.post(f"{API}/announcements", json=body, headers=auth_headers(user))


async def _feed(client, user, household_id, **params):
    response = await client.get(
        f"{API}/announcements", params={"household_id": household_id, **params}, headers=auth_headers(user),
    )
    assert response.status_code == 200, response.text
    return response.json()


async def _other_building(client, estate):
    response = await client.post(
        f"{API}/communities/{estate.community_id}/buildings",
        json={"name": "Tower B"},
        headers=auth_headers(estate.manager),
    )
    assert response.status_code == 201, response.text
    return response.json()["id"]


async def test_household_sees_announcements_that_reach_it(client, estate, make_user):
    admin = await make_user(is_admin=True)
    tower_b = await _other_building(client, estate)

    response = await _publish(client, admin, source="SYSTEM", title="Platform upgrade")
    assert response.status_code == 201, response.text
    await _publish(client, estate.manager, source="COMMUNITY", source_id=estate.community_id, title="Garden party")
    await _publish(client, estate.manager, source="BUILDING", source_id=estate.building_id, title="Lift repair")
    await _publish(client, estate.manager, source="BUILDING", source_id=tower_b, title="Tower B only")
    await _publish(
        client, estate.manager,
        source="COMMUNITY", source_id=estate.community_id,
        target_type="SPECIFIC_HOUSEHOLD", target_id=estate.household_id,
        title="Your parking permit",
    )

    feed = await _feed(client, estate.resident, estate.household_id)
    titles = {a["title"] for a in feed["announcements"]}
    assert titles == {"Platform upgrade", "Garden party", "Lift repair", "Your parking permit"}
    assert feed["unread_count"] == 4
    assert {a["title"] for a in feed["grouped"]["BUILDING"]} == {"Lift repair"}
    assert len(feed["grouped"]["COMMUNITY"]) == 2
    assert len(feed["grouped"]["SYSTEM"]) == 1

    feed = await _feed(client, estate.resident, estate.household_id, source="SYSTEM")
    assert [a["title"] for a in feed["announcements"]] == ["Platform upgrade"]


async def test_mark_read_updates_unread_count(client, estate):
    response = await _publish(client, estate.manager, source="BUILDING", source_id=estate.building_id)
    announcement_id = response.json()["id"]

    response = await client.post(
        f"{API}/announcements/{announcement_id}/read",
        params={"household_id": estate.household_id},
        headers=auth_headers(estate.resident),
    )
    assert response.status_code == 200, response.text
    assert response.json()["is_read"] is True

    # Marking twice is harmless
    response = await client.post(f"{API}/announcements/{announcement_id}/read", headers=auth_headers(estate.resident))
    assert response.status_code == 200

    feed = await _feed(client, estate.resident, estate.household_id)
    assert feed["unread_count"] == 0
    assert feed["announcements"][0]["is_read"] is True


async def test_expired_and_removed_announcements_are_hidden(client, estate):
    await _publish(
        client, estate.manager,
        source="BUILDING", source_id=estate.building_id, title="Old news",
        expires_at=(utc_now() - timedelta(hours=1)).isoformat(),
    )
    await _publish(
        client, estate.manager,
        source="BUILDING", source_id=estate.building_id, title="Still current",
        expires_at=(utc_now() + timedelta(days=1)).isoformat(),
    )
    response = await _publish(client, estate.manager, source="BUILDING", source_id=estate.building_id, title="Removed")
    removed_id = response.json()["id"]

    response = await client.delete(f"{API}/announcements/{removed_id}", headers=auth_headers(estate.manager))
    assert response.status_code == 204

    feed = await _feed(client, estate.resident, estate.household_id)
    assert [a["title"] for a in feed["announcements"]] == ["Still current"]


async def test_only_managers_publish_for_their_scope(client, estate, make_user):
    response = await _publish(client, estate.resident, source="BUILDING", source_id=estate.building_id)
    assert response.status_code == 403

    response = await _publish(client, estate.manager, source="SYSTEM")
    assert response.status_code == 403

    other_manager = await make_user()
    response = await client.post(f"{API}/communities", json={"name": "Elsewhere"}, headers=auth_headers(other_manager))
    elsewhere = response.json()["id"]
    response = await _publish(client, other_manager, source="COMMUNITY", source_id=estate.community_id)
    assert response.status_code == 403

    response = await _publish(client, other_manager, source="COMMUNITY", source_id=elsewhere)
    assert response.status_code == 201


async def test_target_must_sit_under_the_source(client, estate):
    tower_b = await _other_building(client, estate)
    response = await _publish(
        client, estate.manager,
        source="BUILDING", source_id=tower_b,
        target_type="SPECIFIC_HOUSEHOLD", target_id=estate.household_id,
    )
    assert response.status_code == 400

    response = await _publish(
        client, estate.manager,
        source="COMMUNITY", source_id=estate.community_id,
        target_type="BUILDING", target_id=tower_b,
    )
    assert response.status_code == 201


async def test_missing_ids_are_rejected(client, estate):
    response = await _publish(client, estate.manager, source="COMMUNITY")
    assert response.status_code == 422

    response = await _publish(
        client, estate.manager, source="COMMUNITY", source_id=estate.community_id, target_type="BUILDING",
    )
    assert response.status_code == 422


async def test_feed_is_for_household_members(client, estate, make_user):
    stranger = await make_user()
    response = await client.get(
        f"{API}/announcements", params={"household_id": estate.household_id}, headers=auth_headers(stranger),
    )
    assert response.status_code == 403
