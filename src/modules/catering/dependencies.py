"""
Catering Module - FastAPI Dependencies
"""
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_db
from src.modules.auth.dependencies import CurrentUser
from src.modules.catering.service import CateringService


async def get_catering_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
) -> CateringService:
    return CateringService(db, current_user)


CateringServiceDep = Annotated[CateringService, Depends(get_catering_service)]
