"""
Inventory Module - API Router
"""
import uuid

from fastapi import APIRouter, Query, status

from src.modules.inventory.dependencies import InventoryServiceDep
from src.modules.inventory.schemas import (
    CabinetCreate,
    CabinetResponse,
    CategoryCreate,
    CategoryResponse,
    CheckoutRequest,
    ItemCreate,
    ItemHistoryResponse,
    ItemResponse,
    ItemUpdate,
    MoveRequest,
    RoomCreate,
    RoomResponse,
)

router = APIRouter(tags=["Inventory"])


# ============== Rooms ==============

@router.post("/rooms", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
async def create_room(data: RoomCreate, service: InventoryServiceDep) -> RoomResponse:
    room = await service.create_room(data)
    return RoomResponse.model_validate(room)


@router.get("/rooms", response_model=list[RoomResponse])
async def list_rooms(household_id: uuid.UUID, service: InventoryServiceDep) -> list[RoomResponse]:
    rooms = await service.list_rooms(household_id)
    return [RoomResponse.model_validate(r) for r in rooms]


@router.get("/rooms/{room_id}", response_model=RoomResponse)
async def get_room(room_id: uuid.UUID, service: InventoryServiceDep) -> RoomResponse:
    room = await service.get_room(room_id)
    return RoomResponse.model_validate(room)


# ============== Cabinets ==============

@router.post("/cabinets", response_model=CabinetResponse, status_code=status.HTTP_201_CREATED)
async def create_cabinet(data: CabinetCreate, service: InventoryServiceDep) -> CabinetResponse:
    cabinet = await service.create_cabinet(data)
    return CabinetResponse.model_validate(cabinet)


@router.get("/rooms/{room_id}/cabinets", response_model=list[CabinetResponse])
async def list_cabinets(room_id: uuid.UUID, service: InventoryServiceDep) -> list[CabinetResponse]:
    cabinets = await service.list_cabinets(room_id)
    return [CabinetResponse.model_validate(c) for c in cabinets]


@router.get("/cabinets/{cabinet_id}", response_model=CabinetResponse)
async def get_cabinet(cabinet_id: uuid.UUID, service: InventoryServiceDep) -> CabinetResponse:
    cabinet = await service.get_cabinet(cabinet_id)
    return CabinetResponse.model_validate(cabinet)


# ============== Categories ==============

@router.post("/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(data: CategoryCreate, service: InventoryServiceDep) -> CategoryResponse:
    category = await service.create_category(data)
    return CategoryResponse.model_validate(category)


@router.get("/categories", response_model=list[CategoryResponse])
async def list_categories(household_id: uuid.UUID, service: InventoryServiceDep) -> list[CategoryResponse]:
    categories = await service.list_categories(household_id)
    return [CategoryResponse.model_validate(c) for c in categories]


@router.get("/categories/{category_id}", response_model=CategoryResponse)
async def get_category(category_id: uuid.UUID, service: InventoryServiceDep) -> CategoryResponse:
    category = await service.get_category(category_id)
    return CategoryResponse.model_validate(category)


# ============== Items ==============

@router.post("/items", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
async def create_item(data: ItemCreate, service: InventoryServiceDep) -> ItemResponse:
    item = await service.create_item(data)
    return ItemResponse.model_validate(item)


@router.get("/items", response_model=list[ItemResponse])
async def list_items(
    service: InventoryServiceDep,
    household_id: uuid.UUID,
    search: str | None = Query(None, description="Match name, description or barcode"),
) -> list[ItemResponse]:
    items = await service.list_items(household_id, search)
    return [ItemResponse.model_validate(i) for i in items]


@router.get("/items/{item_id}", response_model=ItemResponse)
async def get_item(item_id: uuid.UUID, service: InventoryServiceDep) -> ItemResponse:
    item = await service.get_item(item_id)
    return ItemResponse.model_validate(item)


@router.patch("/items/{item_id}", response_model=ItemResponse)
async def update_item(item_id: uuid.UUID, data: ItemUpdate, service: InventoryServiceDep) -> ItemResponse:
    item = await service.update_item(item_id, data)
    return ItemResponse.model_validate(item)


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item(item_id: uuid.UUID, service: InventoryServiceDep) -> None:
    await service.delete_item(item_id)


@router.post("/items/{item_id}/checkout", response_model=ItemResponse)
async def checkout_item(item_id: uuid.UUID, data: CheckoutRequest, service: InventoryServiceDep) -> ItemResponse:
    """Take stock out of an item; notifies the household when it drops to its minimum."""
    item = await service.checkout_item(item_id, data)
    return ItemResponse.model_validate(item)


@router.put("/items/{item_id}/move", response_model=ItemResponse)
async def move_item(item_id: uuid.UUID, data: MoveRequest, service: InventoryServiceDep) -> ItemResponse:
    """Move all or part of an item. Returns the item now holding the moved stock."""
    item = await service.move_item(item_id, data)
    return ItemResponse.model_validate(item)


@router.get("/items/{item_id}/history", response_model=list[ItemHistoryResponse])
async def get_item_history(item_id: uuid.UUID, service: InventoryServiceDep) -> list[ItemHistoryResponse]:
    history = await service.get_history(item_id)
    return [ItemHistoryResponse.model_validate(h) for h in history]
