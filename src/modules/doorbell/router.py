"""
Doorbell Module - API Router
"""
import uuid

from fastapi import APIRouter, status

from src.modules.doorbell.dependencies import DoorbellServiceDep
from src.modules.doorbell.schemas import (
    CallSessionActionRequest,
    DoorBellCallSessionResponse,
    DoorBellCreate,
    DoorBellResponse,
    DoorBellUpdate,
    RingRequest,
    TimeoutCheckResponse,
)

router = APIRouter(tags=["Doorbell"])


@router.post(
    "/buildings/{building_id}/doorbells",
    response_model=DoorBellResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_doorbell(
    building_id: uuid.UUID,
    data: DoorBellCreate,
    service: DoorbellServiceDep,
) -> DoorBellResponse:
    bell = await service.create_doorbell(building_id, data)
    return DoorBellResponse.model_validate(bell)


@router.get("/buildings/{building_id}/doorbells", response_model=list[DoorBellResponse])
async def list_doorbells(building_id: uuid.UUID, service: DoorbellServiceDep) -> list[DoorBellResponse]:
    bells = await service.list_doorbells(building_id)
    return [DoorBellResponse.model_validate(b) for b in bells]


@router.patch("/doorbells/{door_bell_id}", response_model=DoorBellResponse)
async def update_doorbell(
    door_bell_id: uuid.UUID,
    data: DoorBellUpdate,
    service: DoorbellServiceDep,
) -> DoorBellResponse:
    bell = await service.update_doorbell(door_bell_id, data)
    return DoorBellResponse.model_validate(bell)


@router.post("/doorbell/ring", response_model=DoorBellCallSessionResponse, status_code=status.HTTP_201_CREATED)
async def ring_doorbell(data: RingRequest, service: DoorbellServiceDep) -> DoorBellCallSessionResponse:
    """Ring a doorbell by id or by number within a building."""
    session = await service.ring(data)
    return DoorBellCallSessionResponse.model_validate(session)


@router.get(
    "/buildings/{building_id}/doorbell-sessions",
    response_model=list[DoorBellCallSessionResponse],
)
async def list_active_sessions(
    building_id: uuid.UUID,
    service: DoorbellServiceDep,
) -> list[DoorBellCallSessionResponse]:
    sessions = await service.list_active_sessions(building_id)
    return [DoorBellCallSessionResponse.model_validate(s) for s in sessions]


@router.get("/doorbell/sessions/{session_id}", response_model=DoorBellCallSessionResponse)
async def get_session(session_id: uuid.UUID, service: DoorbellServiceDep) -> DoorBellCallSessionResponse:
    session = await service.get_session(session_id)
    return DoorBellCallSessionResponse.model_validate(session)


@router.patch("/doorbell/sessions/{session_id}", response_model=DoorBellCallSessionResponse)
async def update_session(
    session_id: uuid.UUID,
    data: CallSessionActionRequest,
    service: DoorbellServiceDep,
) -> DoorBellCallSessionResponse:
    session = await service.update_session(session_id, data.action)
    return DoorBellCallSessionResponse.model_validate(session)


@router.post("/doorbell/check-timeouts", response_model=TimeoutCheckResponse)
async def check_timeouts(service: DoorbellServiceDep) -> TimeoutCheckResponse:
    """Route unanswered calls to the front desk now instead of waiting for the scheduler."""
    routed = await service.check_timeouts()
    return TimeoutCheckResponse(routed=routed)
