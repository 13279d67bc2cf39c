"""
Catering Module - API Router
"""
import uuid
from datetime import datetime

from fastapi import APIRouter, Query, status

from src.modules.catering.dependencies import CateringServiceDep
from src.modules.catering.models import OrderStatus
from src.modules.catering.schemas import (
    CategoryCreate,
    CategoryResponse,
    MenuItemCreate,
    MenuItemResponse,
    MenuItemUpdate,
    OrderCreate,
    OrderResponse,
    OrderStatusUpdate,
    TimeSlotCreate,
    TimeSlotResponse,
)

router = APIRouter(prefix="/catering", tags=["Catering"])


# ============== Menu ==============

@router.post("/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(data: CategoryCreate, service: CateringServiceDep) -> CategoryResponse:
    category = await service.create_category(data)
    return CategoryResponse.model_validate(category)


@router.get("/categories", response_model=list[CategoryResponse])
async def list_categories(community_id: uuid.UUID, service: CateringServiceDep) -> list[CategoryResponse]:
    categories = await service.list_categories(community_id)
    return [CategoryResponse.model_validate(c) for c in categories]


@router.post("/menu", response_model=MenuItemResponse, status_code=status.HTTP_201_CREATED)
async def create_menu_item(data: MenuItemCreate, service: CateringServiceDep) -> MenuItemResponse:
    item = await service.create_menu_item(data)
    return MenuItemResponse.model_validate(item)


@router.get("/menu", response_model=list[MenuItemResponse])
async def list_menu(
    service: CateringServiceDep,
    community_id: uuid.UUID,
    category_id: uuid.UUID | None = None,
    at: datetime | None = Query(None, description="Check availability at this time instead of now"),
) -> list[MenuItemResponse]:
    """Active menu items, each flagged with whether it is served at the given time."""
    menu = await service.list_menu(community_id, category_id, at)
    return [
        MenuItemResponse.model_validate(item).model_copy(update={"available_now": available})
        for item, available in menu
    ]


@router.patch("/menu/{item_id}", response_model=MenuItemResponse)
async def update_menu_item(item_id: uuid.UUID, data: MenuItemUpdate, service: CateringServiceDep) -> MenuItemResponse:
    item = await service.update_menu_item(item_id, data)
    return MenuItemResponse.model_validate(item)


@router.post("/time-slots", response_model=TimeSlotResponse, status_code=status.HTTP_201_CREATED)
async def add_time_slot(data: TimeSlotCreate, service: CateringServiceDep) -> TimeSlotResponse:
    slot = await service.add_time_slot(data)
    return TimeSlotResponse.model_validate(slot)


# ============== Orders ==============

@router.post("/orders", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(data: OrderCreate, service: CateringServiceDep) -> OrderResponse:
    """Place an order. Stock is reserved and a FOOD_ORDER ticket is opened."""
    order = await service.create_order(data)
    return OrderResponse.model_validate(order)


@router.get("/orders", response_model=list[OrderResponse])
async def list_orders(
    service: CateringServiceDep,
    household_id: uuid.UUID | None = None,
    status: OrderStatus | None = None,
) -> list[OrderResponse]:
    orders = await service.list_orders(household_id=household_id, status=status)
    return [OrderResponse.model_validate(o) for o in orders]


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_order(order_id: uuid.UUID, service: CateringServiceDep) -> OrderResponse:
    order = await service.get_order(order_id)
    return OrderResponse.model_validate(order)


@router.patch("/orders/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: uuid.UUID,
    data: OrderStatusUpdate,
    service: CateringServiceDep,
) -> OrderResponse:
    order = await service.update_order_status(order_id, data.status)
    return OrderResponse.model_validate(order)
