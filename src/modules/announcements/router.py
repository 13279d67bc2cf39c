"""
Announcements Module - API Router
"""
import uuid

from fastapi import APIRouter, status

from src.modules.announcements.dependencies import AnnouncementServiceDep
from src.modules.announcements.models import AnnouncementSource
from src.modules.announcements.schemas import AnnouncementCreate, AnnouncementFeed, AnnouncementResponse
from src.modules.announcements.service import group_by_source

router = APIRouter(prefix="/announcements", tags=["Announcements"])


@router.post("", response_model=AnnouncementResponse, status_code=status.HTTP_201_CREATED)
async def create_announcement(data: AnnouncementCreate, service: AnnouncementServiceDep) -> AnnouncementResponse:
    """
    Publish an announcement.

    SYSTEM announcements need a platform admin, COMMUNITY ones a community
    admin or manager, BUILDING ones a building or community manager.
    """
    return AnnouncementResponse.model_validate(await service.create_announcement(data))


@router.get("", response_model=AnnouncementFeed)
async def list_announcements(
    household_id: uuid.UUID,
    service: AnnouncementServiceDep,
    source: AnnouncementSource | None = None,
) -> AnnouncementFeed:
    announcements, read_ids = await service.list_for_household(household_id, source)
    items = [
        AnnouncementResponse.model_validate(a).model_copy(update={"is_read": a.id in read_ids})
        for a in announcements
    ]
    return AnnouncementFeed(
        announcements=items,
        grouped=group_by_source(items),
        unread_count=sum(1 for item in items if not item.is_read),
    )


@router.post("/{announcement_id}/read", response_model=AnnouncementResponse)
async def mark_announcement_read(
    announcement_id: uuid.UUID,
    service: AnnouncementServiceDep,
    household_id: uuid.UUID | None = None,
) -> AnnouncementResponse:
    announcement = await service.mark_read(announcement_id, household_id)
    return AnnouncementResponse.model_validate(announcement).model_copy(update={"is_read": True})


@router.delete("/{announcement_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_announcement(announcement_id: uuid.UUID, service: AnnouncementServiceDep) -> None:
    await service.deactivate(announcement_id)
