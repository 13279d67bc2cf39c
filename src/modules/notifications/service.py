"""
Notification Service

Every notification is an in-app row. Sending only adds and flushes: the
caller's unit of work (request session or background job) commits it
together with the change that triggered it.

Usage:
    service = NotificationService(db)
    await service.send_notification(
        user_id=member.user_id,
        type=NotificationType.DOOR_BELL_RUNG,
        title="Doorbell",
        message="Someone is at the door (12)",
    )
"""
import uuid
from collections.abc import Iterable
from datetime import datetime, timezone

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import NotFoundError
from src.core.logging import get_logger
from src.core.metrics import record_notification
from src.modules.notifications.models import (
    Notification,
    NotificationPriority,
    NotificationType,
)
from src.modules.notifications.schemas import (
    NotificationListResponse,
    NotificationResponse,
)

logger = get_logger(__name__)


class NotificationService:
    """In-app notification service."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ============== SEND ==============

    async def send_notification(
        self,
        user_id: uuid.UUID,
        title: str,
        message: str,
        type: NotificationType = NotificationType.SYSTEM,
        priority: NotificationPriority = NotificationPriority.MEDIUM,
        data: dict | None = None,
        source_type: str | None = None,
        source_id: uuid.UUID | None = None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            type=type.value,
            priority=priority.value,
            title=title,
            message=message,
            data=data,
            source_type=source_type,
            source_id=source_id,
            is_read=False,
        )
        self.db.add(notification)
        await self.db.flush()

        record_notification(type.value)
        logger.info(
            "Notification created",
            notification_id=str(notification.id),
            user_id=str(user_id),
            type=type.value,
        )
        return notification

    async def send_bulk(
        self,
        user_ids: Iterable[uuid.UUID],
        title: str,
        message: str,
        type: NotificationType = NotificationType.SYSTEM,
        priority: NotificationPriority = NotificationPriority.MEDIUM,
        data: dict | None = None,
        source_type: str | None = None,
        source_id: uuid.UUID | None = None,
    ) -> list[Notification]:
        """Send the same notification to several users, once per user."""
        sent: list[Notification] = []
        seen: set[uuid.UUID] = set()
        for user_id in user_ids:
            if user_id in seen:
                continue
            seen.add(user_id)
            sent.append(
                await self.send_notification(
                    user_id=user_id,
                    title=title,
                    message=message,
                    type=type,
                    priority=priority,
                    data=data,
                    source_type=source_type,
                    source_id=source_id,
                )
            )
        return sent

    # ============== IN-APP ==============

    async def get_notifications(
        self,
        user_id: uuid.UUID,
        page: int = 1,
        page_size: int = 10,
        unread_only: bool = False,
    ) -> NotificationListResponse:
        stmt = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            stmt = stmt.where(Notification.is_read.is_(False))

        total = await self.db.scalar(select(func.count()).select_from(stmt.subquery())) or 0
        unread_count = await self.get_unread_count(user_id)

        stmt = stmt.order_by(Notification.created_at.desc())
        stmt = stmt.offset((page - 1) * page_size).limit(page_size)
        result = await self.db.execute(stmt)
        notifications = result.scalars().all()

        return NotificationListResponse(
            items=[NotificationResponse.model_validate(n) for n in notifications],
            total=total,
            page=page,
            page_size=page_size,
            has_more=(page * page_size) < total,
            unread_count=unread_count,
        )

    async def get_unread_count(self, user_id: uuid.UUID) -> int:
        stmt = select(func.count()).where(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        )
        return await self.db.scalar(stmt) or 0

    async def mark_as_read(self, user_id: uuid.UUID, notification_ids: list[uuid.UUID]) -> int:
        stmt = (
            update(Notification)
            .where(
                Notification.user_id == user_id,
                Notification.id.in_(notification_ids),
                Notification.is_read.is_(False),
            )
            .values(is_read=True, read_at=datetime.now(timezone.utc))
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        return result.rowcount

    async def mark_all_as_read(self, user_id: uuid.UUID) -> int:
        stmt = (
            update(Notification)
            .where(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
            .values(is_read=True, read_at=datetime.now(timezone.utc))
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        return result.rowcount

    async def delete_notification(self, user_id: uuid.UUID, notification_id: uuid.UUID) -> None:
        result = await self.db.execute(
            delete(Notification).where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
            )
        )
        if result.rowcount == 0:
            raise NotFoundError("Notification", notification_id)
        await self.db.commit()
