"""
Maintenance Module - Business Logic Service
"""
import uuid
from typing import Sequence

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import BadRequestError, ForbiddenError, NotFoundError
from src.core.logging import get_logger
from src.core.metrics import record_transition
from src.core.models import utc_now
from src.modules.auth.models import User
from src.modules.catering.models import CateringOrder, OrderStatus
from src.modules.maintenance.models import (
    MaintenanceTicket,
    MaintenanceTicketSignoff,
    SignoffType,
    TicketCategory,
    TicketPriority,
    TicketStatus,
)
from src.modules.maintenance.numbering import next_ticket_number
from src.modules.maintenance.routing import COMPLETED_STATUSES, FINAL_STATUSES, default_routing
from src.modules.maintenance.schemas import TicketComplete, TicketCreate, TicketSignoff, TicketUpdate
from src.modules.notifications.models import NotificationType
from src.modules.notifications.service import NotificationService
from src.modules.property.models import Household, WorkingGroup, WorkingGroupRole, WorkingGroupMember
from src.modules.property.permissions import (
    get_building_community_id,
    get_community_role,
    get_household_role,
    get_working_group_member_ids,
    get_working_group_role,
    has_community_permission,
    household_ids_of,
    is_building_or_community_manager,
    is_working_group_member,
    managed_scope_filters,
)

logger = get_logger(__name__)


class MaintenanceService:
    """Service tickets raised by households and worked by crews or suppliers."""

    def __init__(self, db: AsyncSession, user: User):
        self.db = db
        self.user = user
        self.notifications = NotificationService(db)

    # ============== Helpers ==============

    async def _is_manager(self, ticket: MaintenanceTicket) -> bool:
        return await is_building_or_community_manager(self.db, self.user, ticket.building_id, ticket.community_id)

    async def _can_view(self, ticket: MaintenanceTicket) -> bool:
        if self.user.is_admin:
            return True
        if await get_household_role(self.db, self.user.id, ticket.household_id) is not None:
            return True
        if await is_working_group_member(self.db, self.user.id, ticket.assigned_crew_id):
            return True
        return await self._is_manager(ticket)

    async def _notify_requester(self, ticket: MaintenanceTicket, title: str, message: str) -> None:
        if ticket.requested_by is None or ticket.requested_by == self.user.id:
            return
        await self.notifications.send_notification(
            user_id=ticket.requested_by,
            title=title,
            message=message,
            type=NotificationType.TICKET_UPDATE,
            data={"ticket_id": str(ticket.id), "ticket_number": ticket.ticket_number, "status": ticket.status},
            source_type="maintenance_ticket",
            source_id=ticket.id,
        )

    def _set_status(self, ticket: MaintenanceTicket, status: TicketStatus) -> None:
        ticket.status = status.value
        record_transition("ticket", status.value)

    # ============== Create ==============

    async def open_ticket(
        self,
        household: Household,
        title: str,
        category: TicketCategory,
        description: str | None = None,
        priority: TicketPriority = TicketPriority.NORMAL,
        location: str | None = None,
        photos: list[str] | None = None,
    ) -> MaintenanceTicket:
        """Insert a ticket for a household. Flushes only; the caller commits."""
        now = utc_now()
        ticket = MaintenanceTicket(
            ticket_number=await next_ticket_number(self.db, now),
            household_id=household.id,
            building_id=household.building_id,
            community_id=await get_building_community_id(self.db, household.building_id),
            requested_by=self.user.id,
            title=title,
            description=description,
            category=category.value,
            priority=priority.value,
            location=location,
            photos=photos,
            routing_type=default_routing(category).value,
            status=TicketStatus.PENDING_EVALUATION.value,
        )
        self.db.add(ticket)
        await self.db.flush()
        logger.info(
            "Maintenance ticket opened",
            ticket_id=str(ticket.id),
            ticket_number=ticket.ticket_number,
            category=ticket.category,
            routing_type=ticket.routing_type,
        )
        return ticket

    async def _can_raise_ticket(self, household: Household) -> bool:
        """Household members, or community roles granted can_create_tickets."""
        if self.user.is_admin:
            return True
        if await get_household_role(self.db, self.user.id, household.id) is not None:
            return True
        community_id = await get_building_community_id(self.db, household.building_id)
        role = await get_community_role(self.db, self.user.id, community_id)
        return has_community_permission(role, "can_create_tickets")

    async def create_ticket(self, data: TicketCreate) -> MaintenanceTicket:
        household = await self.db.get(Household, data.household_id)
        if not household:
            raise NotFoundError("Household", data.household_id)
        if not await self._can_raise_ticket(household):
            raise ForbiddenError("You cannot raise tickets for this household")

        ticket = await self.open_ticket(
            household,
            title=data.title,
            category=data.category,
            description=data.description,
            priority=data.priority,
            location=data.location,
            photos=data.photos,
        )
        await self.db.commit()
        await self.db.refresh(ticket)
        return ticket

    # ============== Read ==============

    async def list_tickets(
        self,
        status: TicketStatus | None = None,
        household_id: uuid.UUID | None = None,
    ) -> Sequence[MaintenanceTicket]:
        stmt = select(MaintenanceTicket)
        if not self.user.is_admin:
            buildings, communities = managed_scope_filters(self.user.id)
            crews = select(WorkingGroupMember.working_group_id).where(WorkingGroupMember.user_id == self.user.id)
            stmt = stmt.where(or_(
                MaintenanceTicket.household_id.in_(household_ids_of(self.user.id)),
                MaintenanceTicket.building_id.in_(buildings),
                MaintenanceTicket.community_id.in_(communities),
                MaintenanceTicket.assigned_crew_id.in_(crews),
            ))
        if status:
            stmt = stmt.where(MaintenanceTicket.status == status.value)
        if household_id:
            stmt = stmt.where(MaintenanceTicket.household_id == household_id)

        result = await self.db.execute(stmt.order_by(MaintenanceTicket.created_at.desc()))
        return result.scalars().all()

    async def get_ticket(self, ticket_id: uuid.UUID) -> MaintenanceTicket:
        ticket = await self.db.get(MaintenanceTicket, ticket_id)
        if not ticket:
            raise NotFoundError("MaintenanceTicket", ticket_id)
        if not await self._can_view(ticket):
            raise ForbiddenError("You do not have access to this ticket")
        return ticket

    # ============== Update ==============

    async def update_ticket(self, ticket_id: uuid.UUID, data: TicketUpdate) -> MaintenanceTicket:
        ticket = await self.get_ticket(ticket_id)
        if not await self._is_manager(ticket):
            raise ForbiddenError("Only building or community managers can update tickets")
        if ticket.status in FINAL_STATUSES:
            raise BadRequestError(f"Ticket is {ticket.status} and can no longer be updated")

        changes = data.model_dump(exclude_unset=True)
        if changes.get("assigned_crew_id") is not None:
            crew = await self.db.get(WorkingGroup, changes["assigned_crew_id"])
            if not crew or (ticket.community_id is not None and crew.community_id != ticket.community_id):
                raise BadRequestError("Crew must be a working group of the ticket's community")

        old_status = ticket.status
        for field in ("priority", "routing_type", "assigned_crew_id", "assigned_supplier_name", "work_notes"):
            if field in changes:
                value = changes[field]
                setattr(ticket, field, value.value if hasattr(value, "value") else value)

        if data.status is not None:
            self._set_status(ticket, data.status)
            if data.status == TicketStatus.WORK_COMPLETED and ticket.completed_at is None:
                ticket.completed_at = utc_now()
            elif data.status == TicketStatus.CLOSED and ticket.closed_at is None:
                ticket.closed_at = utc_now()
        elif changes.get("assigned_crew_id") and ticket.status in (
            TicketStatus.PENDING_EVALUATION.value,
            TicketStatus.EVALUATED.value,
        ):
            self._set_status(ticket, TicketStatus.ASSIGNED)
        elif ticket.status == TicketStatus.PENDING_EVALUATION.value and (
            "routing_type" in changes or "assigned_supplier_name" in changes
        ):
            self._set_status(ticket, TicketStatus.EVALUATED)

        if ticket.status != old_status:
            await self._notify_requester(
                ticket,
                "Ticket Updated",
                f"Ticket {ticket.ticket_number} is now {ticket.status}",
            )

        await self.db.commit()
        await self.db.refresh(ticket)
        logger.info("Maintenance ticket updated", ticket_id=str(ticket.id), status=ticket.status)
        return ticket

    async def complete_ticket(self, ticket_id: uuid.UUID, data: TicketComplete) -> MaintenanceTicket:
        """Mark the work done. Linked food orders being prepared become ready."""
        ticket = await self.get_ticket(ticket_id)
        is_crew = await is_working_group_member(self.db, self.user.id, ticket.assigned_crew_id)
        if not is_crew and not await self._is_manager(ticket):
            raise ForbiddenError("Only the assigned crew or a manager can complete this ticket")
        if ticket.status in FINAL_STATUSES:
            raise BadRequestError(f"Ticket is {ticket.status} and cannot be completed")

        self._set_status(ticket, TicketStatus.WORK_COMPLETED)
        ticket.completed_at = utc_now()
        if data.work_notes is not None:
            ticket.work_notes = data.work_notes

        if ticket.category == TicketCategory.FOOD_ORDER.value:
            await self.db.execute(
                update(CateringOrder)
                .where(
                    CateringOrder.ticket_id == ticket.id,
                    CateringOrder.status == OrderStatus.PREPARING.value,
                )
                .values(status=OrderStatus.READY.value)
                .execution_options(synchronize_session=False)
            )

        await self._notify_requester(
            ticket,
            "Work Completed",
            f"Ticket {ticket.ticket_number} has been completed. Please review and sign off.",
        )
        await self.db.commit()
        await self.db.refresh(ticket)
        logger.info("Maintenance ticket completed", ticket_id=str(ticket.id))
        return ticket

    # ============== Sign-off ==============

    async def signoff_ticket(self, ticket_id: uuid.UUID, data: TicketSignoff) -> MaintenanceTicket:
        ticket = await self.get_ticket(ticket_id)
        if ticket.status in FINAL_STATUSES:
            raise BadRequestError(f"Ticket is {ticket.status} and cannot be signed off")

        if data.type == SignoffType.CREW_LEAD:
            role = await get_working_group_role(self.db, self.user.id, ticket.assigned_crew_id)
            allowed = self.user.is_admin or role == WorkingGroupRole.LEADER.value
        elif data.type == SignoffType.SUPPLIER_LEAD:
            allowed = self.user.is_admin
        else:
            allowed = await get_household_role(self.db, self.user.id, ticket.household_id) is not None
        if not allowed:
            raise ForbiddenError("Permission denied for this signoff type")

        now = utc_now()
        if data.type == SignoffType.CREW_LEAD:
            ticket.crew_signoff_at = now
            self._set_status(ticket, TicketStatus.SIGNED_OFF_BY_CREW)
        elif data.type == SignoffType.SUPPLIER_LEAD:
            ticket.supplier_signoff_at = now
            self._set_status(ticket, TicketStatus.SIGNED_OFF_BY_SUPPLIER)
        else:
            if ticket.status not in COMPLETED_STATUSES:
                raise BadRequestError("Work must be completed before the household can sign off")
            ticket.household_signoff_at = now
            ticket.closed_at = now
            self._set_status(ticket, TicketStatus.CLOSED)

        self.db.add(MaintenanceTicketSignoff(
            ticket_id=ticket.id,
            signoff_type=data.type.value,
            signed_by=self.user.id,
            comments=data.comments,
            rating=data.rating,
        ))

        if data.type == SignoffType.HOUSEHOLD:
            crew = await get_working_group_member_ids(self.db, ticket.assigned_crew_id)
            await self.notifications.send_bulk(
                [user_id for user_id in crew if user_id != self.user.id],
                title="Ticket Closed",
                message=f"Ticket {ticket.ticket_number} has been closed by household",
                type=NotificationType.TICKET_UPDATE,
                data={"ticket_id": str(ticket.id)},
                source_type="maintenance_ticket",
                source_id=ticket.id,
            )
        else:
            who = "crew lead" if data.type == SignoffType.CREW_LEAD else "supplier"
            await self._notify_requester(
                ticket,
                "Ticket Signed Off",
                f"Ticket {ticket.ticket_number} has been signed off by {who}. Please review and sign off.",
            )

        await self.db.commit()
        await self.db.refresh(ticket)
        logger.info("Maintenance ticket signed off", ticket_id=str(ticket.id), type=data.type.value)
        return ticket
