"""
Announcements Module - FastAPI Dependencies
"""
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_db
from src.modules.announcements.service import AnnouncementService
from src.modules.auth.dependencies import CurrentUser


async def get_announcement_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
) -> AnnouncementService:
    return AnnouncementService(db, current_user)


AnnouncementServiceDep = Annotated[AnnouncementService, Depends(get_announcement_service)]
