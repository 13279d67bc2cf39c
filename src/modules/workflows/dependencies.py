"""
Workflows Module - FastAPI Dependencies
"""
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_db
from src.modules.auth.dependencies import CurrentUser
from src.modules.workflows.service import WorkflowService


async def get_workflow_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
) -> WorkflowService:
    return WorkflowService(db, current_user)


WorkflowServiceDep = Annotated[WorkflowService, Depends(get_workflow_service)]
