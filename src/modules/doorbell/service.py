"""
Doorbell Module - Business Logic Service
"""
import uuid
from typing import Sequence

from sqlalchemy import exists, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from src.core.logging import get_logger
from src.core.metrics import record_doorbell_ring
from src.core.models import utc_now
from src.modules.auth.models import User
from src.modules.doorbell.models import DoorBell, DoorBellCallSession, DoorBellCallStatus
from src.modules.doorbell.routing import check_and_route_timed_out_calls
from src.modules.doorbell.schemas import CallSessionAction, DoorBellCreate, DoorBellUpdate, RingRequest
from src.modules.notifications.models import NotificationPriority, NotificationType
from src.modules.notifications.service import NotificationService
from src.modules.property.models import Building, BuildingMember, CommunityMember, Household
from src.modules.property.permissions import (
    MANAGER_ROLES,
    can_message_household,
    get_household_member_ids,
    get_household_role,
    is_building_or_community_manager,
)

logger = get_logger(__name__)


class DoorbellService:
    def __init__(self, db: AsyncSession, user: User):
        self.db = db
        self.user = user

    # ============== Doorbells ==============

    async def _get_building(self, building_id: uuid.UUID) -> Building:
        building = await self.db.get(Building, building_id)
        if not building:
            raise NotFoundError("Building", building_id)
        return building

    async def _require_manager(self, building: Building) -> None:
        if not await is_building_or_community_manager(self.db, self.user, building.id, building.community_id):
            raise ForbiddenError("Only building admins or managers can manage doorbells")

    async def _validate_household(self, building: Building, household_id: uuid.UUID | None) -> None:
        if household_id is None:
            return
        household = await self.db.get(Household, household_id)
        if not household or household.building_id != building.id:
            raise BadRequestError("Household does not belong to this building")

    async def create_doorbell(self, building_id: uuid.UUID, data: DoorBellCreate) -> DoorBell:
        building = await self._get_building(building_id)
        await self._require_manager(building)
        await self._validate_household(building, data.household_id)

        duplicate = await self.db.scalar(
            select(DoorBell.id).where(
                DoorBell.building_id == building.id,
                DoorBell.door_bell_number == data.door_bell_number,
            )
        )
        if duplicate is not None:
            raise ConflictError(f"Doorbell {data.door_bell_number} already exists in this building")

        bell = DoorBell(building_id=building.id, **data.model_dump())
        self.db.add(bell)
        await self.db.commit()
        await self.db.refresh(bell)
        logger.info("Doorbell created", door_bell_id=str(bell.id), building_id=str(building.id))
        return bell

    async def list_doorbells(self, building_id: uuid.UUID) -> Sequence[DoorBell]:
        building = await self._get_building(building_id)
        await self._require_manager(building)
        result = await self.db.execute(
            select(DoorBell).where(DoorBell.building_id == building.id).order_by(DoorBell.door_bell_number)
        )
        return result.scalars().all()

    async def update_doorbell(self, door_bell_id: uuid.UUID, data: DoorBellUpdate) -> DoorBell:
        bell = await self.db.get(DoorBell, door_bell_id)
        if not bell:
            raise NotFoundError("DoorBell", door_bell_id)
        building = await self._get_building(bell.building_id)
        await self._require_manager(building)

        changes = data.model_dump(exclude_unset=True)
        if "household_id" in changes:
            await self._validate_household(building, changes["household_id"])
        for field, value in changes.items():
            setattr(bell, field, value)
        await self.db.commit()
        await self.db.refresh(bell)
        return bell

    # ============== Ring ==============

    async def ring(self, data: RingRequest) -> DoorBellCallSession:
        """Start a ringing session and notify everyone in the household."""
        if data.door_bell_id is not None:
            bell = await self.db.get(DoorBell, data.door_bell_id)
        else:
            bell = await self.db.scalar(
                select(DoorBell).where(
                    DoorBell.building_id == data.building_id,
                    DoorBell.door_bell_number == data.door_bell_number,
                )
            )
        if not bell:
            raise NotFoundError("DoorBell", data.door_bell_id or data.door_bell_number)
        if bell.building_id != data.building_id:
            raise BadRequestError("Doorbell does not belong to this building")
        if not bell.is_enabled:
            raise BadRequestError("Doorbell is disabled")
        if bell.household_id is None:
            raise BadRequestError("Doorbell is not linked to a household")

        now = utc_now()
        session = DoorBellCallSession(
            door_bell_id=bell.id,
            building_id=bell.building_id,
            household_id=bell.household_id,
            rung_by=self.user.id,
            status=DoorBellCallStatus.RINGING.value,
            started_at=now,
        )
        bell.last_rung_at = now
        self.db.add(session)
        await self.db.flush()

        await NotificationService(self.db).send_bulk(
            await get_household_member_ids(self.db, bell.household_id),
            title="Doorbell",
            message=f"Someone is at the door ({bell.door_bell_number})",
            type=NotificationType.DOOR_BELL_RUNG,
            priority=NotificationPriority.HIGH,
            data={
                "door_bell_id": str(bell.id),
                "building_id": str(bell.building_id),
                "call_session_id": str(session.id),
            },
            source_type="door_bell_call_session",
            source_id=session.id,
        )
        await self.db.commit()
        await self.db.refresh(session)

        record_doorbell_ring()
        logger.info("Doorbell rung", door_bell_id=str(bell.id), call_session_id=str(session.id))
        return session

    # ============== Sessions ==============

    async def get_session(self, session_id: uuid.UUID) -> DoorBellCallSession:
        session = await self.db.get(DoorBellCallSession, session_id)
        if not session:
            raise NotFoundError("DoorBellCallSession", session_id)
        if session.household_id and await get_household_role(self.db, self.user.id, session.household_id):
            return session
        household = await self.db.get(Household, session.household_id) if session.household_id else None
        if household is not None and await can_message_household(self.db, self.user, household):
            return session
        if await is_building_or_community_manager(self.db, self.user, session.building_id):
            return session
        raise ForbiddenError("You cannot access this doorbell call")

    async def list_active_sessions(self, building_id: uuid.UUID) -> Sequence[DoorBellCallSession]:
        """Calls still ringing or connected in a building, for front desk screens."""
        building = await self._get_building(building_id)
        await self._require_manager(building)
        result = await self.db.execute(
            select(DoorBellCallSession)
            .where(
                DoorBellCallSession.building_id == building.id,
                DoorBellCallSession.status != DoorBellCallStatus.ENDED.value,
            )
            .order_by(DoorBellCallSession.started_at.desc())
        )
        return result.scalars().all()

    async def update_session(self, session_id: uuid.UUID, action: CallSessionAction) -> DoorBellCallSession:
        session = await self.get_session(session_id)
        now = utc_now()
        if action == CallSessionAction.CONNECT:
            if session.status != DoorBellCallStatus.RINGING.value:
                raise BadRequestError(f"Cannot connect a call that is {session.status}")
            session.status = DoorBellCallStatus.CONNECTED.value
            session.connected_at = now
        else:
            if session.status == DoorBellCallStatus.ENDED.value:
                raise BadRequestError("Call has already ended")
            session.status = DoorBellCallStatus.ENDED.value
            session.ended_at = now

        await self.db.commit()
        await self.db.refresh(session)
        logger.info("Doorbell call updated", call_session_id=str(session.id), status=session.status)
        return session

    # ============== Timeouts ==============

    async def check_timeouts(self) -> int:
        """Run the timeout scan on demand. Building or community managers only."""
        if not self.user.is_admin:
            manages = await self.db.scalar(select(or_(
                exists().where(
                    BuildingMember.user_id == self.user.id,
                    BuildingMember.role.in_(MANAGER_ROLES),
                ),
                exists().where(
                    CommunityMember.user_id == self.user.id,
                    CommunityMember.role.in_(MANAGER_ROLES),
                ),
            )))
            if not manages:
                raise ForbiddenError("Only building admins can trigger the timeout check")

        routed = await check_and_route_timed_out_calls(self.db)
        await self.db.commit()
        return routed
