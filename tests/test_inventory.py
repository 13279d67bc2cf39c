"""
Household inventory: items, checkout, moves and history.
"""
from tests.conftest import API, auth_headers


async def _room(client, user, household_id, name):
    response = await client.post(
        f"{API}/rooms",
        json={"household_id": household_id, "name": name},
        headers=auth_headers(user),
    )
    assert response.status_code == 201, response.text
    return response.json()["id"]


async def _item(client, user, household_id, **fields):
    body = {"household_id": household_id, "name": "AA Batteries", "quantity": 10, "min_quantity": 2}
    body.update(fields)
    response = await client.post(f"{API}/items", json=body, headers=auth_headers(user))
    assert response.status_code == 201, response.text
    return response.json()


async def test_checkout_decrements_and_records_history(client, make_user, create_household):
    owner = await make_user()
    household = await create_household(owner)
    item = await _item(client, owner, household["id"])

    response = await client.post(
        f"{API}/items/{item['id']}/checkout",
        json={"quantity": 3, "reason": "remote"},
        headers=auth_headers(owner),
    )
    assert response.status_code == 200
    assert response.json()["quantity"] == 7

    response = await client.get(f"{API}/items/{item['id']}/history", headers=auth_headers(owner))
    actions = [entry["action"] for entry in response.json()]
    assert set(actions) == {"created", "checkout"}


async def test_checkout_validates_quantity(client, make_user, create_household):
    owner = await make_user()
    household = await create_household(owner)
    item = await _item(client, owner, household["id"], quantity=2)
    headers = auth_headers(owner)

    response = await client.post(f"{API}/items/{item['id']}/checkout", json={"quantity": 3}, headers=headers)
    assert response.status_code == 400
    assert response.json()["error"]["details"] == {"available": 2, "requested": 3}

    response = await client.post(f"{API}/items/{item['id']}/checkout", json={"quantity": 0}, headers=headers)
    assert response.status_code == 400


async def test_low_stock_notifies_household(client, make_user, create_household, add_household_member):
    owner = await make_user()
    partner = await make_user()
    household = await create_household(owner)
    await add_household_member(owner, household["id"], partner)
    item = await _item(client, owner, household["id"], quantity=3, min_quantity=2)

    await client.post(f"{API}/items/{item['id']}/checkout", json={"quantity": 1}, headers=auth_headers(owner))

    response = await client.get(f"{API}/notifications", headers=auth_headers(partner))
    types = [n["type"] for n in response.json()["items"]]
    assert types == ["LOW_INVENTORY"]


async def test_visitor_cannot_modify_items(client, make_user, create_household, add_household_member):
    owner = await make_user()
    visitor = await make_user()
    household = await create_household(owner)
    await add_household_member(owner, household["id"], visitor, role="VISITOR")
    item = await _item(client, owner, household["id"])

    response = await client.get(f"{API}/items/{item['id']}", headers=auth_headers(visitor))
    assert response.status_code == 200
    response = await client.post(
        f"{API}/items/{item['id']}/checkout",
        json={"quantity": 1},
        headers=auth_headers(visitor),
    )
    assert response.status_code == 403


async def test_outsider_gets_not_found(client, make_user, create_household):
    owner = await make_user()
    outsider = await make_user()
    household = await create_household(owner)
    item = await _item(client, owner, household["id"])
    response = await client.get(f"{API}/items/{item['id']}", headers=auth_headers(outsider))
    assert response.status_code == 404


async def test_partial_move_splits_item(client, make_user, create_household):
    owner = await make_user()
    household = await create_household(owner)
    kitchen = await _room(client, owner, household["id"], "Kitchen")
    garage = await _room(client, owner, household["id"], "Garage")
    item = await _item(client, owner, household["id"], room_id=kitchen)
    headers = auth_headers(owner)

    response = await client.put(
        f"{API}/items/{item['id']}/move",
        json={"room_id": garage, "quantity": 4},
        headers=headers,
    )
    assert response.status_code == 200
    moved = response.json()
    assert moved["id"] != item["id"]
    assert moved["room_id"] == garage
    assert moved["quantity"] == 4

    response = await client.get(f"{API}/items/{item['id']}", headers=headers)
    assert response.json()["quantity"] == 6


async def test_move_merges_into_existing_stock(client, make_user, create_household):
    owner = await make_user()
    household = await create_household(owner)
    kitchen = await _room(client, owner, household["id"], "Kitchen")
    garage = await _room(client, owner, household["id"], "Garage")
    source = await _item(client, owner, household["id"], room_id=kitchen, quantity=5)
    target = await _item(client, owner, household["id"], room_id=garage, quantity=2)
    headers = auth_headers(owner)

    response = await client.put(f"{API}/items/{source['id']}/move", json={"room_id": garage}, headers=headers)
    assert response.status_code == 200
    assert response.json()["id"] == target["id"]
    assert response.json()["quantity"] == 7

    response = await client.get(f"{API}/items/{source['id']}", headers=headers)
    assert response.status_code == 404

    response = await client.get(f"{API}/items/{target['id']}/history", headers=headers)
    actions = sorted(entry["action"] for entry in response.json())
    assert actions == ["created", "created", "merged", "moved"]


async def test_move_rejects_foreign_room(client, make_user, create_household):
    owner = await make_user()
    household = await create_household(owner)
    other = await create_household(owner, name="Holiday flat")
    foreign_room = await _room(client, owner, other["id"], "Attic")
    item = await _item(client, owner, household["id"])

    response = await client.put(
        f"{API}/items/{item['id']}/move",
        json={"room_id": foreign_room},
        headers=auth_headers(owner),
    )
    assert response.status_code == 404
