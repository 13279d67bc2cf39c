"""
Doorbell Module - FastAPI Dependencies
"""
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_db
from src.modules.auth.dependencies import CurrentUser
from src.modules.doorbell.service import DoorbellService


async def get_doorbell_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
) -> DoorbellService:
    return DoorbellService(db, current_user)


DoorbellServiceDep = Annotated[DoorbellService, Depends(get_doorbell_service)]
