"""
Notifications Module - API Router

- GET    /api/v1/notifications              - Paginated list
- GET    /api/v1/notifications/unread-count - Unread badge count
- PATCH  /api/v1/notifications/read         - Mark given ids as read
- PATCH  /api/v1/notifications/read-all     - Mark everything as read
- DELETE /api/v1/notifications/{id}         - Delete one
"""
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_db
from src.modules.auth.dependencies import CurrentUser
from src.modules.notifications.schemas import (
    MarkReadResponse,
    NotificationListResponse,
    NotificationMarkReadRequest,
    UnreadCountResponse,
)
from src.modules.notifications.service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


# ============== Dependencies ==============

async def get_notification_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> NotificationService:
    return NotificationService(db)


NotificationServiceDep = Annotated[NotificationService, Depends(get_notification_service)]


@router.get("", response_model=NotificationListResponse, summary="List notifications")
async def list_notifications(
    current_user: CurrentUser,
    service: NotificationServiceDep,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=50),
    unread_only: bool = Query(default=False),
) -> NotificationListResponse:
    return await service.get_notifications(
        user_id=current_user.id,
        page=page,
        page_size=page_size,
        unread_only=unread_only,
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(current_user: CurrentUser, service: NotificationServiceDep) -> UnreadCountResponse:
    return UnreadCountResponse(unread_count=await service.get_unread_count(current_user.id))


@router.patch("/read", response_model=MarkReadResponse)
async def mark_read(
    data: NotificationMarkReadRequest,
    current_user: CurrentUser,
    service: NotificationServiceDep,
) -> MarkReadResponse:
    updated = await service.mark_as_read(current_user.id, data.notification_ids)
    return MarkReadResponse(updated=updated)


@router.patch("/read-all", response_model=MarkReadResponse)
async def mark_all_read(current_user: CurrentUser, service: NotificationServiceDep) -> MarkReadResponse:
    return MarkReadResponse(updated=await service.mark_all_as_read(current_user.id))


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: uuid.UUID,
    current_user: CurrentUser,
    service: NotificationServiceDep,
) -> None:
    await service.delete_notification(current_user.id, notification_id)
