"""
Deliveries Module - FastAPI Dependencies
"""
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_db
from src.modules.auth.dependencies import CurrentUser
from src.modules.deliveries.service import DeliveryService


async def get_delivery_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
) -> DeliveryService:
    return DeliveryService(db, current_user)


DeliveryServiceDep = Annotated[DeliveryService, Depends(get_delivery_service)]
