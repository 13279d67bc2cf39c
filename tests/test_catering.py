"""
Catering menu and orders.
"""
from decimal import Decimal

from tests.conftest import API, auth_headers

CATERING = f"{API}/catering"


async def _menu_item(client, estate, **fields):
    body = {
        "community_id": estate.community_id,
        "name": "Club Sandwich",
        "price": "12.50",
        "quantity_available": 5,
    }
    body.update(fields)
    response = await client.post(f"{CATERING}/menu", json=body, headers=auth_headers(estate.manager))
    assert response.status_code == 201, response.text
    return response.json()


async def _order(client, user, household_id, item_id, quantity):
    return await client.post(
        f"{CATERING}/orders",
        json={"household_id": household_id, "items": [{"menu_item_id": item_id, "quantity": quantity}]},
        headers=auth_headers(user),
    )


async def test_order_reserves_stock_and_opens_ticket(client, estate, make_user, create_working_group):
    cook = await make_user()
    await create_working_group(estate.manager, estate.community_id, "KITCHEN", members=[cook])
    item = await _menu_item(client, estate)

    response = await _order(client, estate.resident, estate.household_id, item["id"], 2)
    assert response.status_code == 201, response.text
    order = response.json()
    assert order["status"] == "submitted"
    assert order["order_number"].startswith("ORD-")
    assert Decimal(str(order["total_amount"])) == Decimal("25.00")
    assert order["items"][0]["name"] == "Club Sandwich"
    assert order["ticket_id"] is not None

    response = await client.get(
        f"{API}/maintenance/tickets/{order['ticket_id']}", headers=auth_headers(estate.resident),
    )
    assert response.status_code == 200
    assert response.json()["category"] == "FOOD_ORDER"

    response = await client.get(
        f"{CATERING}/menu",
        params={"community_id": estate.community_id},
        headers=auth_headers(estate.resident),
    )
    assert response.status_code == 200
    assert response.json()[0]["quantity_available"] == 3
    assert response.json()[0]["available_now"] is True

    response = await client.get(f"{API}/notifications/unread-count", headers=auth_headers(cook))
    assert response.json()["unread_count"] == 1


async def test_insufficient_stock_is_rejected(client, estate):
    item = await _menu_item(client, estate, quantity_available=1)

    response = await _order(client, estate.resident, estate.household_id, item["id"], 2)
    assert response.status_code == 400
    assert response.json()["error"]["details"] == {"available": 1, "requested": 2}


async def test_household_cancel_restores_stock(client, estate):
    item = await _menu_item(client, estate)
    order = (await _order(client, estate.resident, estate.household_id, item["id"], 4)).json()

    response = await client.patch(
        f"{CATERING}/orders/{order['id']}/status",
        json={"status": "cancelled"},
        headers=auth_headers(estate.resident),
    )
    assert response.status_code == 200, response.text
    assert response.json()["status"] == "cancelled"
    assert response.json()["cancelled_at"] is not None

    response = await client.get(
        f"{CATERING}/menu",
        params={"community_id": estate.community_id},
        headers=auth_headers(estate.manager),
    )
    assert response.json()[0]["quantity_available"] == 5

    response = await client.patch(
        f"{CATERING}/orders/{order['id']}/status",
        json={"status": "preparing"},
        headers=auth_headers(estate.manager),
    )
    assert response.status_code == 400


async def test_household_cannot_advance_order(client, estate):
    item = await _menu_item(client, estate)
    order = (await _order(client, estate.resident, estate.household_id, item["id"], 1)).json()

    response = await client.patch(
        f"{CATERING}/orders/{order['id']}/status",
        json={"status": "delivered"},
        headers=auth_headers(estate.resident),
    )
    assert response.status_code == 403


async def test_item_outside_serving_window(client, estate):
    response = await client.post(
        f"{CATERING}/categories",
        json={"community_id": estate.community_id, "name": "Breakfast"},
        headers=auth_headers(estate.manager),
    )
    category_id = response.json()["id"]
    item = await _menu_item(client, estate, category_id=category_id)

    response = await client.post(
        f"{CATERING}/time-slots",
        json={"category_id": category_id, "day_of_week": -1, "start_time": "00:00", "end_time": "00:00"},
        headers=auth_headers(estate.manager),
    )
    assert response.status_code == 201, response.text

    response = await client.get(
        f"{CATERING}/menu",
        params={"community_id": estate.community_id, "at": "2026-03-01T12:00:00+00:00"},
        headers=auth_headers(estate.resident),
    )
    assert response.json()[0]["available_now"] is False


async def test_only_managers_edit_menu(client, estate):
    response = await client.post(
        f"{CATERING}/menu",
        json={"community_id": estate.community_id, "name": "Soup", "price": "4.00"},
        headers=auth_headers(estate.resident),
    )
    assert response.status_code == 403


async def test_time_slot_needs_one_target(client, estate):
    response = await client.post(
        f"{CATERING}/time-slots",
        json={"start_time": "08:00", "end_time": "10:00"},
        headers=auth_headers(estate.manager),
    )
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"
