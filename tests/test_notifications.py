"""
In-app notifications API.
"""
import uuid

from src.modules.notifications.models import NotificationPriority, NotificationType
from src.modules.notifications.service import NotificationService
from tests.conftest import API, auth_headers

NOTIFICATIONS = f"{API}/notifications"


async def _seed(db, user, count):
    service = NotificationService(db)
    sent = []
    for index in range(count):
        sent.append(await service.send_notification(
            user_id=user.id,
            title=f"Notice {index}",
            message="Water off tomorrow",
            type=NotificationType.SYSTEM,
            priority=NotificationPriority.LOW,
        ))
    await db.commit()
    return sent


async def test_send_bulk_skips_duplicates(db, make_user):
    user = await make_user()
    other = await make_user()
    sent = await NotificationService(db).send_bulk([user.id, other.id, user.id], title="t", message="m")
    await db.commit()
    assert [n.user_id for n in sent] == [user.id, other.id]


async def test_list_is_paginated(client, db, make_user):
    user = await make_user()
    await _seed(db, user, 3)

    response = await client.get(NOTIFICATIONS, params={"page_size": 2}, headers=auth_headers(user))
    body = response.json()
    assert response.status_code == 200
    assert body["total"] == 3
    assert len(body["items"]) == 2
    assert body["has_more"] is True
    assert body["unread_count"] == 3

    response = await client.get(NOTIFICATIONS, params={"page": 2, "page_size": 2}, headers=auth_headers(user))
    assert response.json()["has_more"] is False


async def test_mark_read_and_unread_count(client, db, make_user):
    user = await make_user()
    first, second, _ = await _seed(db, user, 3)
    headers = auth_headers(user)

    response = await client.patch(
        f"{NOTIFICATIONS}/read",
        json={"notification_ids": [str(first.id), str(second.id)]},
        headers=headers,
    )
    assert response.json() == {"updated": 2}

    response = await client.get(f"{NOTIFICATIONS}/unread-count", headers=headers)
    assert response.json() == {"unread_count": 1}

    response = await client.get(NOTIFICATIONS, params={"unread_only": True}, headers=headers)
    assert response.json()["total"] == 1

    response = await client.patch(f"{NOTIFICATIONS}/read-all", headers=headers)
    assert response.json() == {"updated": 1}


async def test_users_only_touch_their_own(client, db, make_user):
    owner = await make_user()
    other = await make_user()
    (notification,) = await _seed(db, owner, 1)

    response = await client.patch(
        f"{NOTIFICATIONS}/read", json={"notification_ids": [str(notification.id)]}, headers=auth_headers(other),
    )
    assert response.json() == {"updated": 0}

    response = await client.delete(f"{NOTIFICATIONS}/{notification.id}", headers=auth_headers(other))
    assert response.status_code == 404

    response = await client.delete(f"{NOTIFICATIONS}/{notification.id}", headers=auth_headers(owner))
    assert response.status_code == 204

    response = await client.delete(f"{NOTIFICATIONS}/{uuid.uuid4()}", headers=auth_headers(owner))
    assert response.status_code == 404


async def test_mark_read_needs_ids(client, make_user):
    user = await make_user()
    response = await client.patch(f"{NOTIFICATIONS}/read", json={"notification_ids": []}, headers=auth_headers(user))
    assert response.status_code == 422
