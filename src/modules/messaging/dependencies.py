"""
Messaging Module - FastAPI Dependencies
"""
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_db
from src.modules.auth.dependencies import CurrentUser
from src.modules.messaging.service import MessagingService


async def get_messaging_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
) -> MessagingService:
    return MessagingService(db, current_user)


MessagingServiceDep = Annotated[MessagingService, Depends(get_messaging_service)]
