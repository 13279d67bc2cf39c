"""
Catering Module - Business Logic Service

Orders reserve stock from the menu when placed and give it back when
cancelled. Every order opens a FOOD_ORDER maintenance ticket so the kitchen
crew works it like any other job.
"""
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Sequence

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import BadRequestError, ForbiddenError, NotFoundError
from src.core.logging import get_logger
from src.core.metrics import record_transition
from src.core.models import as_utc, utc_now
from src.modules.auth.models import User
from src.modules.catering.availability import is_item_available
from src.modules.catering.models import (
    FINAL_ORDER_STATUSES,
    CateringCategory,
    CateringMenuItem,
    CateringOrder,
    CateringOrderItem,
    CateringTimeSlot,
    DeliveryType,
    OrderStatus,
)
from src.modules.catering.schemas import (
    CategoryCreate,
    MenuItemCreate,
    MenuItemUpdate,
    OrderCreate,
    TimeSlotCreate,
)
from src.modules.maintenance.models import TicketCategory
from src.modules.maintenance.numbering import next_order_number
from src.modules.maintenance.service import MaintenanceService
from src.modules.notifications.models import NotificationType
from src.modules.notifications.service import NotificationService
from src.modules.property.models import Building, Household, WorkingGroup, WorkingGroupMember, WorkingGroupType
from src.modules.property.permissions import (
    MANAGER_ROLES,
    get_building_community_id,
    get_community_role,
    get_household_role,
    household_ids_of,
    managed_scope_filters,
)

logger = get_logger(__name__)

CATERING_GROUP_TYPES = (
    WorkingGroupType.CATERING.value,
    WorkingGroupType.FOOD_SERVICE.value,
    WorkingGroupType.KITCHEN.value,
    WorkingGroupType.ADMINISTRATION.value,
)

# Status -> timestamp column stamped on entry
_STATUS_TIMESTAMPS = {
    OrderStatus.ACCEPTED.value: "confirmed_at",
    OrderStatus.CONFIRMED.value: "confirmed_at",
    OrderStatus.PREPARING.value: "prepared_at",
    OrderStatus.DELIVERED.value: "delivered_at",
    OrderStatus.CANCELLED.value: "cancelled_at",
}

# Households may withdraw an order the kitchen has not picked up yet
_HOUSEHOLD_CANCELLABLE = frozenset({OrderStatus.SUBMITTED.value, OrderStatus.PENDING.value})


class CateringService:
    def __init__(self, db: AsyncSession, user: User):
        self.db = db
        self.user = user

    # ============== Access ==============

    async def _is_community_manager(self, community_id: uuid.UUID | None) -> bool:
        if self.user.is_admin:
            return True
        return await get_community_role(self.db, self.user.id, community_id) in MANAGER_ROLES

    async def _is_community_member(self, community_id: uuid.UUID | None) -> bool:
        if self.user.is_admin:
            return True
        if await get_community_role(self.db, self.user.id, community_id) is not None:
            return True
        # Residents reach the menu through a household in one of the community's buildings
        found = await self.db.scalar(
            select(Household.id)
            .join(Building, Building.id == Household.building_id)
            .where(
                Household.id.in_(household_ids_of(self.user.id)),
                Building.community_id == community_id,
            )
            .limit(1)
        )
        return found is not None

    async def _catering_staff_ids(self, community_id: uuid.UUID | None) -> list[uuid.UUID]:
        if community_id is None:
            return []
        result = await self.db.execute(
            select(WorkingGroupMember.user_id)
            .join(WorkingGroup, WorkingGroup.id == WorkingGroupMember.working_group_id)
            .where(
                WorkingGroup.community_id == community_id,
                WorkingGroup.type.in_(CATERING_GROUP_TYPES),
            )
        )
        return list(dict.fromkeys(result.scalars().all()))

    async def _is_catering_staff(self, community_id: uuid.UUID | None) -> bool:
        return self.user.id in await self._catering_staff_ids(community_id)

    # ============== Categories ==============

    async def create_category(self, data: CategoryCreate) -> CateringCategory:
        if not await self._is_community_manager(data.community_id):
            raise ForbiddenError("Only community admins or managers can manage the menu")
        category = CateringCategory(**data.model_dump())
        self.db.add(category)
        await self.db.commit()
        await self.db.refresh(category)
        return category

    async def list_categories(self, community_id: uuid.UUID) -> Sequence[CateringCategory]:
        if not await self._is_community_member(community_id):
            raise ForbiddenError("You are not a member of this community")
        result = await self.db.execute(
            select(CateringCategory)
            .where(CateringCategory.community_id == community_id, CateringCategory.is_active.is_(True))
            .order_by(CateringCategory.sort_order, CateringCategory.name)
        )
        return result.scalars().all()

    # ============== Menu items ==============

    async def create_menu_item(self, data: MenuItemCreate) -> CateringMenuItem:
        if not await self._is_community_manager(data.community_id):
            raise ForbiddenError("Only community admins or managers can manage the menu")
        if data.category_id is not None:
            category = await self.db.get(CateringCategory, data.category_id)
            if not category or category.community_id != data.community_id:
                raise BadRequestError("Category does not belong to this community")

        item = CateringMenuItem(**data.model_dump())
        self.db.add(item)
        await self.db.commit()
        await self.db.refresh(item)
        logger.info("Menu item created", menu_item_id=str(item.id), community_id=str(item.community_id))
        return item

    async def get_menu_item(self, item_id: uuid.UUID) -> CateringMenuItem:
        item = await self.db.get(CateringMenuItem, item_id)
        if not item:
            raise NotFoundError("CateringMenuItem", item_id)
        return item

    async def update_menu_item(self, item_id: uuid.UUID, data: MenuItemUpdate) -> CateringMenuItem:
        item = await self.get_menu_item(item_id)
        if not await self._is_community_manager(item.community_id):
            raise ForbiddenError("Only community admins or managers can manage the menu")
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(item, field, value)
        await self.db.commit()
        await self.db.refresh(item)
        return item

    async def _slots_for(self, items: Sequence[CateringMenuItem]) -> list[CateringTimeSlot]:
        item_ids = [i.id for i in items]
        category_ids = [i.category_id for i in items if i.category_id is not None]
        if not item_ids:
            return []
        result = await self.db.execute(
            select(CateringTimeSlot).where(or_(
                CateringTimeSlot.menu_item_id.in_(item_ids),
                CateringTimeSlot.category_id.in_(category_ids),
            ))
        )
        return list(result.scalars().all())

    async def list_menu(
        self,
        community_id: uuid.UUID,
        category_id: uuid.UUID | None = None,
        at: datetime | None = None,
    ) -> list[tuple[CateringMenuItem, bool]]:
        """Active menu items with whether each is served at `at` (default now)."""
        if not await self._is_community_member(community_id):
            raise ForbiddenError("You are not a member of this community")

        stmt = select(CateringMenuItem).where(
            CateringMenuItem.community_id == community_id,
            CateringMenuItem.is_active.is_(True),
        )
        if category_id:
            stmt = stmt.where(CateringMenuItem.category_id == category_id)
        items = (await self.db.execute(stmt.order_by(CateringMenuItem.name))).scalars().all()

        slots = await self._slots_for(items)
        at = at or utc_now()
        return [(item, is_item_available(item, slots, at)) for item in items]

    async def add_time_slot(self, data: TimeSlotCreate) -> CateringTimeSlot:
        if data.menu_item_id is not None:
            community_id = (await self.get_menu_item(data.menu_item_id)).community_id
        else:
            category = await self.db.get(CateringCategory, data.category_id)
            if not category:
                raise NotFoundError("CateringCategory", data.category_id)
            community_id = category.community_id
        if not await self._is_community_manager(community_id):
            raise ForbiddenError("Only community admins or managers can manage the menu")

        slot = CateringTimeSlot(**data.model_dump())
        self.db.add(slot)
        await self.db.commit()
        await self.db.refresh(slot)
        return slot

    # ============== Orders ==============

    async def _load_order(self, order_id: uuid.UUID) -> CateringOrder | None:
        return await self.db.scalar(
            select(CateringOrder)
            .where(CateringOrder.id == order_id)
            .execution_options(populate_existing=True)
        )

    async def create_order(self, data: OrderCreate) -> CateringOrder:
        household = await self.db.get(Household, data.household_id)
        if not household:
            raise NotFoundError("Household", data.household_id)
        if not self.user.is_admin and await get_household_role(self.db, self.user.id, household.id) is None:
            raise ForbiddenError("You are not a member of this household")
        if not data.items:
            raise BadRequestError("Order must contain at least one item")

        now = utc_now()
        if data.delivery_type == DeliveryType.SCHEDULED:
            if data.scheduled_time is None:
                raise BadRequestError("scheduled_time is required for scheduled delivery")
            if as_utc(data.scheduled_time) < now:
                raise BadRequestError("scheduled_time cannot be in the past")
        delivery_at = as_utc(data.scheduled_time) if data.delivery_type == DeliveryType.SCHEDULED else now

        community_id = await get_building_community_id(self.db, household.building_id)

        menu_items: dict[uuid.UUID, CateringMenuItem] = {}
        for line in data.items:
            item = await self.db.get(CateringMenuItem, line.menu_item_id)
            if not item or (community_id is not None and item.community_id != community_id):
                raise BadRequestError(f"Menu item {line.menu_item_id} not found")
            if not item.is_active:
                raise BadRequestError(f'"{item.name}" is not available')
            menu_items[item.id] = item

        requested: dict[uuid.UUID, int] = {}
        for line in data.items:
            requested[line.menu_item_id] = requested.get(line.menu_item_id, 0) + line.quantity
        for item_id, quantity in requested.items():
            item = menu_items[item_id]
            if item.quantity_available < quantity:
                raise BadRequestError(
                    f'Insufficient quantity for "{item.name}"',
                    details={"available": item.quantity_available, "requested": quantity},
                )

        slots = await self._slots_for(list(menu_items.values()))
        for item in menu_items.values():
            if not is_item_available(item, slots, delivery_at):
                raise BadRequestError(f'"{item.name}" is not served at the requested time')

        lines: list[CateringOrderItem] = []
        total = Decimal("0")
        for line in data.items:
            item = menu_items[line.menu_item_id]
            subtotal = Decimal(item.price) * line.quantity
            total += subtotal
            lines.append(CateringOrderItem(
                menu_item_id=item.id,
                name=item.name,
                quantity=line.quantity,
                unit_price=item.price,
                subtotal=subtotal,
            ))
        for item_id, quantity in requested.items():
            menu_items[item_id].quantity_available -= quantity

        order_number = await next_order_number(self.db, now)
        ticket = await MaintenanceService(self.db, self.user).open_ticket(
            household,
            title=f"Food order {order_number}",
            category=TicketCategory.FOOD_ORDER,
            description=data.notes,
        )

        order = CateringOrder(
            order_number=order_number,
            household_id=household.id,
            community_id=community_id,
            ordered_by=self.user.id,
            ticket_id=ticket.id,
            delivery_type=data.delivery_type.value,
            scheduled_time=data.scheduled_time,
            status=OrderStatus.SUBMITTED.value,
            total_amount=total,
            notes=data.notes,
            items=lines,
        )
        self.db.add(order)
        await self.db.flush()

        await NotificationService(self.db).send_bulk(
            await self._catering_staff_ids(community_id),
            title="New Catering Order",
            message=f"Order {order_number} from {household.name}",
            type=NotificationType.ORDER_UPDATE,
            data={"order_id": str(order.id), "order_number": order_number},
            source_type="catering_order",
            source_id=order.id,
        )
        await self.db.commit()

        logger.info(
            "Catering order created",
            order_id=str(order.id),
            order_number=order_number,
            ticket_id=str(ticket.id),
            total=str(total),
        )
        return await self._load_order(order.id)

    async def _can_view_order(self, order: CateringOrder) -> bool:
        if self.user.is_admin:
            return True
        if await get_household_role(self.db, self.user.id, order.household_id) is not None:
            return True
        if await self._is_community_manager(order.community_id):
            return True
        return await self._is_catering_staff(order.community_id)

    async def get_order(self, order_id: uuid.UUID) -> CateringOrder:
        order = await self._load_order(order_id)
        if not order or not await self._can_view_order(order):
            raise NotFoundError("CateringOrder", order_id)
        return order

    async def list_orders(
        self,
        household_id: uuid.UUID | None = None,
        status: OrderStatus | None = None,
    ) -> Sequence[CateringOrder]:
        stmt = select(CateringOrder)
        if not self.user.is_admin:
            _, communities = managed_scope_filters(self.user.id)
            staffed = (
                select(WorkingGroup.community_id)
                .join(WorkingGroupMember, WorkingGroupMember.working_group_id == WorkingGroup.id)
                .where(
                    WorkingGroupMember.user_id == self.user.id,
                    WorkingGroup.type.in_(CATERING_GROUP_TYPES),
                )
            )
            stmt = stmt.where(or_(
                CateringOrder.household_id.in_(household_ids_of(self.user.id)),
                CateringOrder.community_id.in_(communities),
                CateringOrder.community_id.in_(staffed),
            ))
        if household_id:
            stmt = stmt.where(CateringOrder.household_id == household_id)
        if status:
            stmt = stmt.where(CateringOrder.status == status.value)
        result = await self.db.execute(stmt.order_by(CateringOrder.created_at.desc()))
        return result.scalars().all()

    async def update_order_status(self, order_id: uuid.UUID, new_status: OrderStatus) -> CateringOrder:
        order = await self.get_order(order_id)
        if order.status in FINAL_ORDER_STATUSES:
            raise BadRequestError(f"Order is {order.status} and can no longer change")

        is_staff = await self._is_community_manager(order.community_id) or await self._is_catering_staff(
            order.community_id
        )
        household_cancel = (
            new_status == OrderStatus.CANCELLED
            and order.status in _HOUSEHOLD_CANCELLABLE
            and await get_household_role(self.db, self.user.id, order.household_id) is not None
        )
        if not (is_staff or household_cancel):
            raise ForbiddenError("Only catering staff can change the order status")

        order.status = new_status.value
        column = _STATUS_TIMESTAMPS.get(new_status.value)
        if column:
            setattr(order, column, utc_now())

        if new_status == OrderStatus.CANCELLED:
            for line in order.items:
                if line.menu_item_id is None:
                    continue
                item = await self.db.get(CateringMenuItem, line.menu_item_id)
                if item is not None:
                    item.quantity_available += line.quantity

        record_transition("catering_order", new_status.value)
        if order.ordered_by is not None and order.ordered_by != self.user.id:
            await NotificationService(self.db).send_notification(
                user_id=order.ordered_by,
                title="Order Updated",
                message=f"Order {order.order_number} is now {order.status}",
                type=NotificationType.ORDER_UPDATE,
                data={"order_id": str(order.id), "status": order.status},
                source_type="catering_order",
                source_id=order.id,
            )

        await self.db.commit()
        logger.info("Catering order status changed", order_id=str(order.id), status=order.status)
        return await self._load_order(order.id)
