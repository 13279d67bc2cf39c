"""
Inventory Module - FastAPI Dependencies
"""
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_db
from src.modules.auth.dependencies import CurrentUser
from src.modules.inventory.service import InventoryService


async def get_inventory_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
) -> InventoryService:
    return InventoryService(db, current_user)


InventoryServiceDep = Annotated[InventoryService, Depends(get_inventory_service)]
