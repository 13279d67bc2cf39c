"""
Inventory Module - Business Logic Service
"""
import uuid
from typing import Sequence

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import BadRequestError, ForbiddenError, NotFoundError
from src.core.logging import get_logger
from src.modules.auth.models import User
from src.modules.inventory.models import Cabinet, Category, Item, ItemAction, ItemHistory, Room
from src.modules.inventory.schemas import (
    CabinetCreate,
    CategoryCreate,
    CheckoutRequest,
    ItemCreate,
    ItemUpdate,
    MoveRequest,
    RoomCreate,
)
from src.modules.notifications.models import NotificationPriority, NotificationType
from src.modules.notifications.service import NotificationService
from src.modules.property.models import HouseholdRole
from src.modules.property.permissions import (
    get_household_member_ids,
    get_household_role,
    has_household_permission,
)

logger = get_logger(__name__)


class InventoryService:
    """Rooms, cabinets, categories and items of the caller's households."""

    def __init__(self, db: AsyncSession, user: User):
        self.db = db
        self.user = user

    # ============== Access ==============

    async def _household_role(self, household_id: uuid.UUID) -> str | None:
        if self.user.is_admin:
            return HouseholdRole.OWNER.value
        return await get_household_role(self.db, self.user.id, household_id)

    async def _require_member(self, household_id: uuid.UUID, resource: str, identifier) -> str:
        # Non-members get 404 so household contents do not leak
        role = await self._household_role(household_id)
        if role is None:
            raise NotFoundError(resource, identifier)
        return role

    async def _require_capability(self, household_id: uuid.UUID, capability: str, resource: str, identifier) -> None:
        role = await self._require_member(household_id, resource, identifier)
        if not has_household_permission(role, capability):
            raise ForbiddenError("Insufficient household permissions")

    def _history(self, item: Item, action: str, description: str, **locations) -> ItemHistory:
        entry = ItemHistory(
            item_id=item.id,
            household_id=item.household_id,
            action=action,
            description=description,
            performed_by=self.user.id,
            **locations,
        )
        self.db.add(entry)
        return entry

    # ============== Rooms / Cabinets / Categories ==============

    async def create_room(self, data: RoomCreate) -> Room:
        await self._require_capability(data.household_id, "can_manage_rooms", "Household", data.household_id)
        room = Room(**data.model_dump())
        self.db.add(room)
        await self.db.commit()
        await self.db.refresh(room)
        return room

    async def list_rooms(self, household_id: uuid.UUID) -> Sequence[Room]:
        await self._require_member(household_id, "Household", household_id)
        result = await self.db.execute(
            select(Room).where(Room.household_id == household_id).order_by(Room.name)
        )
        return result.scalars().all()

    async def get_room(self, room_id: uuid.UUID) -> Room:
        room = await self.db.get(Room, room_id)
        if not room:
            raise NotFoundError("Room", room_id)
        await self._require_member(room.household_id, "Room", room_id)
        return room

    async def create_cabinet(self, data: CabinetCreate) -> Cabinet:
        room = await self.get_room(data.room_id)
        await self._require_capability(room.household_id, "can_manage_rooms", "Room", room.id)
        cabinet = Cabinet(
            room_id=room.id,
            household_id=room.household_id,
            name=data.name,
            description=data.description,
        )
        self.db.add(cabinet)
        await self.db.commit()
        await self.db.refresh(cabinet)
        return cabinet

    async def list_cabinets(self, room_id: uuid.UUID) -> Sequence[Cabinet]:
        await self.get_room(room_id)
        result = await self.db.execute(
            select(Cabinet).where(Cabinet.room_id == room_id).order_by(Cabinet.name)
        )
        return result.scalars().all()

    async def get_cabinet(self, cabinet_id: uuid.UUID) -> Cabinet:
        cabinet = await self.db.get(Cabinet, cabinet_id)
        if not cabinet:
            raise NotFoundError("Cabinet", cabinet_id)
        await self._require_member(cabinet.household_id, "Cabinet", cabinet_id)
        return cabinet

    async def create_category(self, data: CategoryCreate) -> Category:
        await self._require_capability(data.household_id, "can_manage_categories", "Household", data.household_id)
        level = 1
        if data.parent_id is not None:
            parent = await self.get_category(data.parent_id)
            if parent.household_id != data.household_id:
                raise BadRequestError("Parent category belongs to another household")
            level = parent.level + 1

        category = Category(**data.model_dump(), level=level)
        self.db.add(category)
        await self.db.commit()
        await self.db.refresh(category)
        return category

    async def list_categories(self, household_id: uuid.UUID) -> Sequence[Category]:
        await self._require_member(household_id, "Household", household_id)
        result = await self.db.execute(
            select(Category).where(Category.household_id == household_id).order_by(Category.level, Category.name)
        )
        return result.scalars().all()

    async def get_category(self, category_id: uuid.UUID) -> Category:
        category = await self.db.get(Category, category_id)
        if not category:
            raise NotFoundError("Category", category_id)
        await self._require_member(category.household_id, "Category", category_id)
        return category

    async def _validate_location(
        self,
        household_id: uuid.UUID,
        room_id: uuid.UUID | None,
        cabinet_id: uuid.UUID | None,
        category_id: uuid.UUID | None,
    ) -> tuple[Room | None, Cabinet | None, Category | None]:
        room = cabinet = category = None
        if room_id is not None:
            room = await self.db.get(Room, room_id)
            if not room or room.household_id != household_id:
                raise NotFoundError("Room", room_id)
        if cabinet_id is not None:
            cabinet = await self.db.get(Cabinet, cabinet_id)
            if not cabinet or cabinet.household_id != household_id:
                raise NotFoundError("Cabinet", cabinet_id)
            if room_id is not None and cabinet.room_id != room_id:
                raise BadRequestError("Cabinet is not in the selected room")
        if category_id is not None:
            category = await self.db.get(Category, category_id)
            if not category or category.household_id != household_id:
                raise NotFoundError("Category", category_id)
        return room, cabinet, category

    # ============== Items ==============

    async def create_item(self, data: ItemCreate) -> Item:
        await self._require_capability(data.household_id, "can_manage_items", "Household", data.household_id)
        await self._validate_location(data.household_id, data.room_id, data.cabinet_id, data.category_id)

        item = Item(**data.model_dump(), added_by=self.user.id)
        self.db.add(item)
        await self.db.flush()
        self._history(
            item,
            ItemAction.CREATED,
            f'Item "{item.name}" created with quantity {item.quantity}',
            new_room_id=item.room_id,
            new_cabinet_id=item.cabinet_id,
        )
        await self.db.commit()
        await self.db.refresh(item)

        logger.info("Item created", item_id=str(item.id), household_id=str(item.household_id))
        return item

    async def list_items(self, household_id: uuid.UUID, search: str | None = None) -> Sequence[Item]:
        await self._require_member(household_id, "Household", household_id)
        stmt = select(Item).where(Item.household_id == household_id)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(
                Item.name.ilike(pattern),
                Item.description.ilike(pattern),
                Item.barcode.ilike(pattern),
            ))
        result = await self.db.execute(stmt.order_by(Item.name))
        return result.scalars().all()

    async def get_item(self, item_id: uuid.UUID) -> Item:
        item = await self.db.get(Item, item_id)
        if not item:
            raise NotFoundError("Item", item_id)
        await self._require_member(item.household_id, "Item", item_id)
        return item

    async def update_item(self, item_id: uuid.UUID, data: ItemUpdate) -> Item:
        item = await self.get_item(item_id)
        await self._require_capability(item.household_id, "can_manage_items", "Item", item_id)

        changes = data.model_dump(exclude_unset=True)
        await self._validate_location(
            item.household_id,
            changes.get("room_id"),
            changes.get("cabinet_id"),
            changes.get("category_id"),
        )

        old_quantity = item.quantity
        old_room_id, old_cabinet_id = item.room_id, item.cabinet_id
        for field, value in changes.items():
            setattr(item, field, value)

        description = f'Item "{item.name}" updated'
        if item.quantity != old_quantity:
            description += f" (quantity {old_quantity} -> {item.quantity})"
        self._history(
            item,
            ItemAction.UPDATED,
            description,
            old_room_id=old_room_id,
            new_room_id=item.room_id,
            old_cabinet_id=old_cabinet_id,
            new_cabinet_id=item.cabinet_id,
        )
        await self.db.commit()
        await self.db.refresh(item)
        return item

    async def delete_item(self, item_id: uuid.UUID) -> None:
        item = await self.get_item(item_id)
        await self._require_capability(item.household_id, "can_manage_items", "Item", item_id)

        entry = self._history(
            item,
            ItemAction.DELETED,
            f'Item "{item.name}" deleted',
            old_room_id=item.room_id,
            old_cabinet_id=item.cabinet_id,
        )
        # Keep the audit row once the item is gone
        entry.item_id = None
        await self.db.delete(item)
        await self.db.commit()
        logger.info("Item deleted", item_id=str(item_id))

    async def get_history(self, item_id: uuid.UUID) -> Sequence[ItemHistory]:
        await self.get_item(item_id)
        result = await self.db.execute(
            select(ItemHistory)
            .where(ItemHistory.item_id == item_id)
            .order_by(ItemHistory.created_at.desc())
        )
        return result.scalars().all()

    # ============== Checkout ==============

    async def checkout_item(self, item_id: uuid.UUID, data: CheckoutRequest) -> Item:
        """Take some of an item out of stock; warns the household when it runs low."""
        item = await self.get_item(item_id)
        await self._require_capability(item.household_id, "can_manage_items", "Item", item_id)

        if data.quantity <= 0:
            raise BadRequestError("Quantity must be greater than zero")
        if data.quantity > item.quantity:
            raise BadRequestError(
                f"Insufficient quantity. Available: {item.quantity}, requested: {data.quantity}",
                details={"available": item.quantity, "requested": data.quantity},
            )

        item.quantity -= data.quantity
        description = f'Checked out {data.quantity} of "{item.name}"'
        if data.reason:
            description += f": {data.reason}"
        self._history(item, ItemAction.CHECKOUT, description)

        if item.quantity <= item.min_quantity:
            members = await get_household_member_ids(self.db, item.household_id)
            await NotificationService(self.db).send_bulk(
                members,
                title="Low inventory",
                message=f'"{item.name}" is running low ({item.quantity} left)',
                type=NotificationType.LOW_INVENTORY,
                priority=NotificationPriority.HIGH,
                data={"item_id": str(item.id), "quantity": item.quantity, "min_quantity": item.min_quantity},
                source_type="item",
                source_id=item.id,
            )

        await self.db.commit()
        await self.db.refresh(item)
        logger.info("Item checked out", item_id=str(item.id), quantity=data.quantity, remaining=item.quantity)
        return item

    # ============== Move ==============

    async def move_item(self, item_id: uuid.UUID, data: MoveRequest) -> Item:
        """
        Move all or part of an item to another room/cabinet/category.

        A partial move splits the item: the source keeps the remainder and a
        new item is created at the destination. Either way the moved item is
        then merged into an identical item already at the destination.
        """
        item = await self.get_item(item_id)
        await self._require_capability(item.household_id, "can_move_items", "Item", item_id)

        quantity = item.quantity if data.quantity is None else data.quantity
        if quantity < 1 or quantity > item.quantity:
            raise BadRequestError(f"Invalid quantity. Available: {item.quantity}, requested: {quantity}")

        room, cabinet, category = await self._validate_location(
            item.household_id, data.room_id, data.cabinet_id, data.category_id
        )
        new_location = room.name + (f" -> {cabinet.name}" if cabinet else "")

        if quantity == item.quantity:
            old_room_id, old_cabinet_id = item.room_id, item.cabinet_id
            item.room_id = data.room_id
            item.cabinet_id = data.cabinet_id
            if data.category_id is not None:
                item.category_id = data.category_id
            description = f'Item "{item.name}" moved to {new_location}'
            if category is not None:
                description += f" and category changed to {category.name}"
            self._history(
                item,
                ItemAction.MOVED,
                description,
                old_room_id=old_room_id,
                new_room_id=item.room_id,
                old_cabinet_id=old_cabinet_id,
                new_cabinet_id=item.cabinet_id,
            )
            moved = item
        else:
            item.quantity -= quantity
            self._history(
                item,
                ItemAction.QUANTITY_REDUCED,
                f'Item "{item.name}" quantity reduced by {quantity} (moved to {new_location})',
                old_room_id=item.room_id,
                new_room_id=item.room_id,
                old_cabinet_id=item.cabinet_id,
                new_cabinet_id=item.cabinet_id,
            )
            moved = Item(
                household_id=item.household_id,
                name=item.name,
                description=item.description,
                quantity=quantity,
                min_quantity=item.min_quantity,
                barcode=item.barcode,
                image_url=item.image_url,
                room_id=data.room_id,
                cabinet_id=data.cabinet_id,
                category_id=data.category_id or item.category_id,
                added_by=self.user.id,
            )
            self.db.add(moved)
            await self.db.flush()
            self._history(
                moved,
                ItemAction.MOVED,
                f'{quantity} of "{moved.name}" moved to {new_location}',
                old_room_id=item.room_id,
                new_room_id=moved.room_id,
                old_cabinet_id=item.cabinet_id,
                new_cabinet_id=moved.cabinet_id,
            )

        await self.db.flush()
        result = await self._merge_at_destination(moved)
        await self.db.commit()
        await self.db.refresh(result)

        logger.info(
            "Item moved",
            item_id=str(item_id),
            result_id=str(result.id),
            quantity=quantity,
            partial=moved is not item,
        )
        return result

    async def _merge_at_destination(self, moved: Item) -> Item:
        existing = await self.db.scalar(
            select(Item).where(
                Item.id != moved.id,
                Item.household_id == moved.household_id,
                Item.name == moved.name,
                Item.room_id == moved.room_id,
                Item.cabinet_id.is_(None) if moved.cabinet_id is None else Item.cabinet_id == moved.cabinet_id,
                Item.category_id.is_(None) if moved.category_id is None else Item.category_id == moved.category_id,
            ).limit(1)
        )
        if existing is None:
            return moved

        existing.quantity += moved.quantity
        self._history(
            existing,
            ItemAction.MERGED,
            f'Merged {moved.quantity} of "{moved.name}" into existing stock',
            new_room_id=existing.room_id,
            new_cabinet_id=existing.cabinet_id,
        )
        trail = await self.db.scalars(select(ItemHistory).where(ItemHistory.item_id == moved.id))
        for entry in trail:
            entry.item_id = existing.id
        await self.db.delete(moved)
        return existing
