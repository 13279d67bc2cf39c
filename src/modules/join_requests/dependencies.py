"""
Join Requests Module - FastAPI Dependencies
"""
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_db
from src.modules.auth.dependencies import CurrentUser
from src.modules.join_requests.service import JoinRequestService


async def get_join_request_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
) -> JoinRequestService:
    return JoinRequestService(db, current_user)


JoinRequestServiceDep = Annotated[JoinRequestService, Depends(get_join_request_service)]
