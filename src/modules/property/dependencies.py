"""
Property Module - FastAPI Dependencies
"""
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_db
from src.modules.auth.dependencies import CurrentUser
from src.modules.property.service import PropertyService


async def get_property_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
) -> PropertyService:
    """Get PropertyService bound to the authenticated user."""
    return PropertyService(db, current_user)


# Type alias
PropertyServiceDep = Annotated[PropertyService, Depends(get_property_service)]
