"""
Join Requests Module - API Router
"""
import uuid

from fastapi import APIRouter, status

from src.modules.join_requests.dependencies import JoinRequestServiceDep
from src.modules.join_requests.models import JoinRequestStatus, JoinRequestType
from src.modules.join_requests.schemas import (
    JoinRequestApprove,
    JoinRequestCreate,
    JoinRequestReject,
    JoinRequestResponse,
)

router = APIRouter(prefix="/join-requests", tags=["Join Requests"])


@router.post("", response_model=JoinRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_join_request(data: JoinRequestCreate, service: JoinRequestServiceDep) -> JoinRequestResponse:
    return JoinRequestResponse.model_validate(await service.create_request(data))


@router.get("", response_model=list[JoinRequestResponse])
async def list_join_requests(
    service: JoinRequestServiceDep,
    type: JoinRequestType | None = None,
    target_id: uuid.UUID | None = None,
    status: JoinRequestStatus | None = None,
) -> list[JoinRequestResponse]:
    """
    With `type` and `target_id`, lists requests for a target you review.
    Otherwise lists your own requests.
    """
    requests = await service.list_requests(type, target_id, status)
    return [JoinRequestResponse.model_validate(r) for r in requests]


@router.post("/{request_id}/approve", response_model=JoinRequestResponse)
async def approve_join_request(
    request_id: uuid.UUID,
    data: JoinRequestApprove,
    service: JoinRequestServiceDep,
) -> JoinRequestResponse:
    return JoinRequestResponse.model_validate(await service.approve(request_id, data.role))


@router.post("/{request_id}/reject", response_model=JoinRequestResponse)
async def reject_join_request(
    request_id: uuid.UUID,
    data: JoinRequestReject,
    service: JoinRequestServiceDep,
) -> JoinRequestResponse:
    return JoinRequestResponse.model_validate(await service.reject(request_id, data.reason))
