"""
Maintenance Module - FastAPI Dependencies
"""
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_db
from src.modules.auth.dependencies import CurrentUser
from src.modules.maintenance.service import MaintenanceService


async def get_maintenance_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
) -> MaintenanceService:
    return MaintenanceService(db, current_user)


MaintenanceServiceDep = Annotated[MaintenanceService, Depends(get_maintenance_service)]
