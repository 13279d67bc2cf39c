"""
Facilities Module - FastAPI Dependencies
"""
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_db
from src.modules.auth.dependencies import CurrentUser
from src.modules.facilities.service import FacilityService


async def get_facility_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
) -> FacilityService:
    return FacilityService(db, current_user)


FacilityServiceDep = Annotated[FacilityService, Depends(get_facility_service)]
