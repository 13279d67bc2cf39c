"""
Facilities Module - Business Logic Service

Building managers run facilities and approve bookings; household members
book them for their household.
"""
import secrets
import string
import uuid
from datetime import datetime
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import BadRequestError, ForbiddenError, NotFoundError
from src.core.logging import get_logger
from src.core.models import as_utc, utc_now
from src.modules.auth.models import User
from src.modules.catering.availability import sunday_based_weekday
from src.modules.facilities.models import (
    BLOCKING_STATUSES,
    Facility,
    FacilityOperatingHours,
    FacilityReservation,
    ReservationStatus,
)
from src.modules.facilities.schedule import DEFAULT_CLOSE, DEFAULT_DAYS, DEFAULT_OPEN, operating_hours_violation
from src.modules.facilities.schemas import (
    FacilityCreate,
    FacilityUpdate,
    OperatingHoursEntry,
    ReservationCreate,
)
from src.modules.notifications.models import NotificationType
from src.modules.notifications.service import NotificationService
from src.modules.property.models import Building, Household, HouseholdMember
from src.modules.property.permissions import (
    get_building_role,
    get_community_role,
    get_household_member_ids,
    get_household_role,
    is_building_or_community_manager,
)

logger = get_logger(__name__)

_ACCESS_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_access_code(length: int = 8) -> str:
    return "".join(secrets.choice(_ACCESS_CODE_ALPHABET) for _ in range(length))


class FacilityService:
    def __init__(self, db: AsyncSession, user: User):
        self.db = db
        self.user = user

    # ============== Access ==============

    async def _get_building(self, building_id: uuid.UUID) -> Building:
        building = await self.db.get(Building, building_id)
        if not building:
            raise NotFoundError("Building", building_id)
        return building

    async def _require_manager(self, building_id: uuid.UUID) -> None:
        if not await is_building_or_community_manager(self.db, self.user, building_id):
            raise ForbiddenError("Only building admins or managers can manage facilities")

    async def _require_viewer(self, building: Building) -> None:
        """Building or community members, residents of the building, and managers."""
        if self.user.is_admin:
            return
        if await get_building_role(self.db, self.user.id, building.id) is not None:
            return
        if await get_community_role(self.db, self.user.id, building.community_id) is not None:
            return
        resident = await self.db.scalar(
            select(HouseholdMember.id)
            .join(Household, Household.id == HouseholdMember.household_id)
            .where(Household.building_id == building.id, HouseholdMember.user_id == self.user.id)
            .limit(1)
        )
        if resident is None:
            raise ForbiddenError("Insufficient permissions")

    async def _get_facility(self, facility_id: uuid.UUID) -> Facility:
        facility = await self.db.get(Facility, facility_id)
        if not facility:
            raise NotFoundError("Facility", facility_id)
        return facility

    async def _hours(self, facility_id: uuid.UUID) -> list[FacilityOperatingHours]:
        result = await self.db.execute(
            select(FacilityOperatingHours)
            .where(FacilityOperatingHours.facility_id == facility_id)
            .order_by(FacilityOperatingHours.day_of_week)
        )
        return list(result.scalars().all())

    # ============== Facilities ==============

    async def create_facility(
        self,
        building_id: uuid.UUID,
        data: FacilityCreate,
    ) -> tuple[Facility, list[FacilityOperatingHours]]:
        """New facilities open Monday to Friday, 06:00-22:00."""
        building = await self._get_building(building_id)
        await self._require_manager(building.id)

        facility = Facility(building_id=building.id, **data.model_dump())
        self.db.add(facility)
        await self.db.flush()
        for day in DEFAULT_DAYS:
            self.db.add(FacilityOperatingHours(
                facility_id=facility.id,
                day_of_week=day,
                open_time=DEFAULT_OPEN,
                close_time=DEFAULT_CLOSE,
            ))
        await self.db.commit()
        await self.db.refresh(facility)

        logger.info("Facility created", facility_id=str(facility.id), building_id=str(building.id))
        return facility, await self._hours(facility.id)

    async def list_facilities(self, building_id: uuid.UUID) -> list[tuple[Facility, list[FacilityOperatingHours]]]:
        building = await self._get_building(building_id)
        await self._require_viewer(building)
        result = await self.db.execute(
            select(Facility).where(Facility.building_id == building.id).order_by(Facility.name)
        )
        return [(facility, await self._hours(facility.id)) for facility in result.scalars().all()]

    async def update_facility(
        self,
        facility_id: uuid.UUID,
        data: FacilityUpdate,
    ) -> tuple[Facility, list[FacilityOperatingHours]]:
        facility = await self._get_facility(facility_id)
        await self._require_manager(facility.building_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(facility, field, value)
        await self.db.commit()
        await self.db.refresh(facility)
        return facility, await self._hours(facility.id)

    async def get_operating_hours(self, facility_id: uuid.UUID) -> list[FacilityOperatingHours]:
        facility = await self._get_facility(facility_id)
        await self._require_viewer(await self._get_building(facility.building_id))
        return await self._hours(facility.id)

    async def set_operating_hours(
        self,
        facility_id: uuid.UUID,
        entries: list[OperatingHoursEntry],
    ) -> list[FacilityOperatingHours]:
        """Upsert hours for the given weekdays; other weekdays are left as they are."""
        facility = await self._get_facility(facility_id)
        await self._require_manager(facility.building_id)

        existing = {row.day_of_week: row for row in await self._hours(facility.id)}
        for entry in entries:
            row = existing.get(entry.day_of_week)
            if row is None:
                row = FacilityOperatingHours(facility_id=facility.id, day_of_week=entry.day_of_week)
                self.db.add(row)
                existing[entry.day_of_week] = row
            row.open_time = entry.open_time
            row.close_time = entry.close_time
            row.is_closed = entry.is_closed
        await self.db.commit()

        logger.info("Facility hours updated", facility_id=str(facility.id), days=len(entries))
        return await self._hours(facility.id)

    # ============== Reservations ==============

    async def _conflicting(
        self,
        reservation_id: uuid.UUID | None,
        facility_id: uuid.UUID,
        start: datetime,
        end: datetime,
    ) -> uuid.UUID | None:
        # Half-open intervals, so back to back bookings do not clash
        query = select(FacilityReservation.id).where(
            FacilityReservation.facility_id == facility_id,
            FacilityReservation.status.in_(BLOCKING_STATUSES),
            FacilityReservation.start_time < end,
            FacilityReservation.end_time > start,
        )
        if reservation_id is not None:
            query = query.where(FacilityReservation.id != reservation_id)
        return await self.db.scalar(query.limit(1))

    async def create_reservation(self, facility_id: uuid.UUID, data: ReservationCreate) -> FacilityReservation:
        facility = await self._get_facility(facility_id)
        if not facility.is_active:
            raise BadRequestError("Facility is not accepting reservations")

        household = await self.db.get(Household, data.household_id)
        if not household:
            raise NotFoundError("Household", data.household_id)
        if await get_household_role(self.db, self.user.id, household.id) is None:
            raise ForbiddenError("You must be a member of the household to make a reservation")
        if household.building_id != facility.building_id:
            raise BadRequestError("Household is not in this facility's building")

        start, end = as_utc(data.start_time), as_utc(data.end_time)
        if start >= end:
            raise BadRequestError("End time must be after start time")
        if start < utc_now():
            raise BadRequestError("Start time must be in the future")

        if await self._conflicting(None, facility.id, start, end) is not None:
            raise BadRequestError("Time slot is already reserved")

        hours = await self.db.scalar(
            select(FacilityOperatingHours).where(
                FacilityOperatingHours.facility_id == facility.id,
                FacilityOperatingHours.day_of_week == sunday_based_weekday(start),
            )
        )
        violation = operating_hours_violation(hours, start, end)
        if violation:
            raise BadRequestError(violation)

        reservation = FacilityReservation(
            facility_id=facility.id,
            household_id=household.id,
            requested_by=self.user.id,
            start_time=start,
            end_time=end,
            purpose=data.purpose,
            notes=data.notes,
            status=ReservationStatus.PENDING.value,
        )
        self.db.add(reservation)
        await self.db.commit()
        await self.db.refresh(reservation)

        logger.info(
            "Facility reservation requested",
            reservation_id=str(reservation.id),
            facility_id=str(facility.id),
            household_id=str(household.id),
        )
        return reservation

    async def list_reservations(
        self,
        facility_id: uuid.UUID,
        status: ReservationStatus | None = None,
        household_id: uuid.UUID | None = None,
    ) -> Sequence[FacilityReservation]:
        facility = await self._get_facility(facility_id)
        await self._require_viewer(await self._get_building(facility.building_id))

        query = select(FacilityReservation).where(FacilityReservation.facility_id == facility.id)
        if status is not None:
            query = query.where(FacilityReservation.status == status.value)
        if household_id is not None:
            query = query.where(FacilityReservation.household_id == household_id)
        result = await self.db.execute(query.order_by(FacilityReservation.start_time))
        return result.scalars().all()

    async def _pending_for_review(self, reservation_id: uuid.UUID) -> tuple[FacilityReservation, Facility]:
        reservation = await self.db.get(FacilityReservation, reservation_id)
        if not reservation:
            raise NotFoundError("FacilityReservation", reservation_id)
        facility = await self._get_facility(reservation.facility_id)
        if reservation.status != ReservationStatus.PENDING.value:
            raise BadRequestError("Reservation is not pending")
        if not await is_building_or_community_manager(self.db, self.user, facility.building_id):
            raise ForbiddenError("Only building admins can review reservations")
        return reservation, facility

    async def _notify_household(self, reservation: FacilityReservation, title: str, message: str) -> None:
        await NotificationService(self.db).send_bulk(
            await get_household_member_ids(self.db, reservation.household_id),
            title=title,
            message=message,
            type=NotificationType.FACILITY_RESERVATION,
            data={"reservation_id": str(reservation.id), "status": reservation.status},
            source_type="facility_reservation",
            source_id=reservation.id,
        )

    async def approve_reservation(self, reservation_id: uuid.UUID) -> FacilityReservation:
        reservation, facility = await self._pending_for_review(reservation_id)
        start, end = as_utc(reservation.start_time), as_utc(reservation.end_time)
        if await self._conflicting(reservation.id, facility.id, start, end) is not None:
            raise BadRequestError("Time slot is no longer available")

        reservation.status = ReservationStatus.APPROVED.value
        reservation.approved_by = self.user.id
        reservation.approved_at = utc_now()
        reservation.access_code = generate_access_code()
        await self._notify_household(
            reservation,
            "Reservation Approved",
            f"Your reservation for {facility.name} has been approved. Access code: {reservation.access_code}",
        )
        await self.db.commit()
        await self.db.refresh(reservation)

        logger.info("Facility reservation approved", reservation_id=str(reservation.id))
        return reservation

    async def reject_reservation(self, reservation_id: uuid.UUID, reason: str | None) -> FacilityReservation:
        reservation, facility = await self._pending_for_review(reservation_id)

        reservation.status = ReservationStatus.REJECTED.value
        reservation.rejected_at = utc_now()
        reservation.rejection_reason = reason
        message = f"Your reservation for {facility.name} has been rejected."
        if reason:
            message += f" Reason: {reason}"
        await self._notify_household(reservation, "Reservation Rejected", message)
        await self.db.commit()
        await self.db.refresh(reservation)

        logger.info("Facility reservation rejected", reservation_id=str(reservation.id))
        return reservation
