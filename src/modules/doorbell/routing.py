"""
Front desk routing of unanswered doorbell calls.

Used both by the API and by the Celery beat job, so nothing here depends on
a request user. Functions flush only; the caller commits.
"""
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import settings
from src.core.logging import get_logger
from src.core.metrics import record_doorbell_routed
from src.core.models import utc_now
from src.modules.doorbell.models import DoorBell, DoorBellCallSession, DoorBellCallStatus
from src.modules.notifications.models import NotificationPriority, NotificationType
from src.modules.notifications.service import NotificationService
from src.modules.property.models import Building, Household
from src.modules.property.permissions import get_front_desk_user_ids

logger = get_logger(__name__)


async def route_call_to_front_desk(
    db: AsyncSession,
    session: DoorBellCallSession,
    now: datetime | None = None,
) -> bool:
    """Flag a ringing call as routed and notify the building's front desk staff.

    Returns False without changes when the call is no longer ringing or was
    already routed.
    """
    if session.status != DoorBellCallStatus.RINGING.value or session.routed_to_front_desk:
        return False

    session.routed_to_front_desk = True
    session.routed_at = now or utc_now()

    building = await db.get(Building, session.building_id)
    bell = await db.get(DoorBell, session.door_bell_id)
    household = await db.get(Household, session.household_id) if session.household_id else None
    household_name = household.name if household else "Unknown"
    bell_number = bell.door_bell_number if bell else "?"

    members = await get_front_desk_user_ids(db, building) if building else []
    if not members:
        logger.warning("No front desk members for building", building_id=str(session.building_id))

    await NotificationService(db).send_bulk(
        members,
        title="Doorbell Call Routed",
        message=(
            f"Doorbell {bell_number} ({household_name}) was not answered "
            "and has been routed to front desk"
        ),
        type=NotificationType.DOORBELL_ROUTED,
        priority=NotificationPriority.HIGH,
        data={
            "door_bell_id": str(session.door_bell_id),
            "building_id": str(session.building_id),
            "call_session_id": str(session.id),
            "routed_to_front_desk": True,
        },
        source_type="door_bell_call_session",
        source_id=session.id,
    )
    await db.flush()

    record_doorbell_routed()
    logger.info(
        "Doorbell call routed to front desk",
        call_session_id=str(session.id),
        building_id=str(session.building_id),
        notified=len(members),
    )
    return True


async def check_and_route_timed_out_calls(db: AsyncSession, now: datetime | None = None) -> int:
    """Route every ringing call older than its building's timeout. Returns how many were routed."""
    now = now or utc_now()
    buildings = (await db.execute(select(Building.id, Building.doorbell_timeout_seconds))).all()

    routed = 0
    for building_id, timeout_seconds in buildings:
        threshold = now - timedelta(seconds=timeout_seconds or settings.doorbell_default_timeout_seconds)
        result = await db.execute(
            select(DoorBellCallSession).where(
                DoorBellCallSession.building_id == building_id,
                DoorBellCallSession.status == DoorBellCallStatus.RINGING.value,
                DoorBellCallSession.routed_to_front_desk.is_(False),
                DoorBellCallSession.started_at <= threshold,
            )
        )
        for session in result.scalars().all():
            if await route_call_to_front_desk(db, session, now):
                routed += 1

    if routed:
        logger.info("Timed-out doorbell calls routed", count=routed)
    return routed
