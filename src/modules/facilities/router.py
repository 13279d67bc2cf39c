"""
Facilities Module - API Router
"""
import uuid

from fastapi import APIRouter, status

from src.modules.facilities.dependencies import FacilityServiceDep
from src.modules.facilities.models import Facility, FacilityOperatingHours, ReservationStatus
from src.modules.facilities.schemas import (
    FacilityCreate,
    FacilityResponse,
    FacilityUpdate,
    OperatingHoursResponse,
    OperatingHoursUpdate,
    ReservationCreate,
    ReservationReject,
    ReservationResponse,
)

router = APIRouter(tags=["Facilities"])


def _facility_response(facility: Facility, hours: list[FacilityOperatingHours]) -> FacilityResponse:
    return FacilityResponse.model_validate(facility).model_copy(
        update={"operating_hours": [OperatingHoursResponse.model_validate(h) for h in hours]}
    )


# ============== Facilities ==============

@router.post(
    "/buildings/{building_id}/facilities",
    response_model=FacilityResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_facility(building_id: uuid.UUID, data: FacilityCreate, service: FacilityServiceDep) -> FacilityResponse:
    return _facility_response(*await service.create_facility(building_id, data))


@router.get("/buildings/{building_id}/facilities", response_model=list[FacilityResponse])
async def list_facilities(building_id: uuid.UUID, service: FacilityServiceDep) -> list[FacilityResponse]:
    return [_facility_response(f, hours) for f, hours in await service.list_facilities(building_id)]


@router.patch("/facilities/{facility_id}", response_model=FacilityResponse)
async def update_facility(facility_id: uuid.UUID, data: FacilityUpdate, service: FacilityServiceDep) -> FacilityResponse:
    return _facility_response(*await service.update_facility(facility_id, data))


@router.get("/facilities/{facility_id}/operating-hours", response_model=list[OperatingHoursResponse])
async def get_operating_hours(facility_id: uuid.UUID, service: FacilityServiceDep) -> list[OperatingHoursResponse]:
    hours = await service.get_operating_hours(facility_id)
    return [OperatingHoursResponse.model_validate(h) for h in hours]


@router.put("/facilities/{facility_id}/operating-hours", response_model=list[OperatingHoursResponse])
async def set_operating_hours(
    facility_id: uuid.UUID,
    data: OperatingHoursUpdate,
    service: FacilityServiceDep,
) -> list[OperatingHoursResponse]:
    hours = await service.set_operating_hours(facility_id, data.operating_hours)
    return [OperatingHoursResponse.model_validate(h) for h in hours]


# ============== Reservations ==============

@router.post(
    "/facilities/{facility_id}/reservations",
    response_model=ReservationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_reservation(
    facility_id: uuid.UUID,
    data: ReservationCreate,
    service: FacilityServiceDep,
) -> ReservationResponse:
    """Request a booking. It holds the slot until a building admin approves or rejects it."""
    reservation = await service.create_reservation(facility_id, data)
    return ReservationResponse.model_validate(reservation)


@router.get("/facilities/{facility_id}/reservations", response_model=list[ReservationResponse])
async def list_reservations(
    facility_id: uuid.UUID,
    service: FacilityServiceDep,
    status: ReservationStatus | None = None,
    household_id: uuid.UUID | None = None,
) -> list[ReservationResponse]:
    reservations = await service.list_reservations(facility_id, status, household_id)
    return [ReservationResponse.model_validate(r) for r in reservations]


@router.post("/facility-reservations/{reservation_id}/approve", response_model=ReservationResponse)
async def approve_reservation(reservation_id: uuid.UUID, service: FacilityServiceDep) -> ReservationResponse:
    reservation = await service.approve_reservation(reservation_id)
    return ReservationResponse.model_validate(reservation)


@router.post("/facility-reservations/{reservation_id}/reject", response_model=ReservationResponse)
async def reject_reservation(
    reservation_id: uuid.UUID,
    data: ReservationReject,
    service: FacilityServiceDep,
) -> ReservationResponse:
    reservation = await service.reject_reservation(reservation_id, data.reason)
    return ReservationResponse.model_validate(reservation)
