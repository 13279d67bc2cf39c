"""
IoT Module - API Router

Endpoints:
- POST/GET /iot/devices, GET/PATCH/DELETE /iot/devices/{id}
- POST /iot/devices/{id}/commands - Send a vendor command
- GET /iot/devices/{id}/state - Current device state
- POST /iot/state - Ingest a raw state report
- GET /iot/vendors - Supported vendors
"""
import uuid

from fastapi import APIRouter, Query, status

from src.modules.iot.dependencies import IoTServiceDep
from src.modules.iot.factory import get_connection_type, supported_vendors
from src.modules.iot.schemas import (
    DeviceCommandRequest,
    DeviceCommandResponse,
    DeviceCreate,
    DeviceResponse,
    DeviceUpdate,
    StateMessage,
    VendorResponse,
)

router = APIRouter(prefix="/iot", tags=["IoT"])


@router.get("/vendors", response_model=list[VendorResponse])
async def list_vendors() -> list[VendorResponse]:
    return [
        VendorResponse(vendor=vendor, connection_type=get_connection_type(vendor).value)
        for vendor in supported_vendors()
    ]


# ============== Devices ==============

@router.post("/devices", response_model=DeviceResponse, status_code=status.HTTP_201_CREATED)
async def register_device(data: DeviceCreate, service: IoTServiceDep) -> DeviceResponse:
    device = await service.register_device(data)
    return DeviceResponse.model_validate(device)


@router.get("/devices", response_model=list[DeviceResponse])
async def list_devices(
    service: IoTServiceDep,
    household_id: uuid.UUID = Query(..., description="Household to list devices for"),
) -> list[DeviceResponse]:
    devices = await service.list_devices(household_id)
    return [DeviceResponse.model_validate(d) for d in devices]


@router.get("/devices/{device_id}", response_model=DeviceResponse)
async def get_device(device_id: uuid.UUID, service: IoTServiceDep) -> DeviceResponse:
    device = await service.get_device(device_id)
    return DeviceResponse.model_validate(device)


@router.patch("/devices/{device_id}", response_model=DeviceResponse)
async def update_device(device_id: uuid.UUID, data: DeviceUpdate, service: IoTServiceDep) -> DeviceResponse:
    device = await service.update_device(device_id, data)
    return DeviceResponse.model_validate(device)


@router.delete("/devices/{device_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_device(device_id: uuid.UUID, service: IoTServiceDep) -> None:
    await service.delete_device(device_id)


# ============== Commands & state ==============

@router.post("/devices/{device_id}/commands", response_model=DeviceCommandResponse)
async def send_command(
    device_id: uuid.UUID,
    data: DeviceCommandRequest,
    service: IoTServiceDep,
) -> DeviceCommandResponse:
    """
    Send an action to a device.

    Actions are vendor neutral (power_on, power_off, set_temperature,
    set_brightness...). Unsupported actions return 422.
    """
    device = await service.send_command(device_id, data.action, data.value)
    return DeviceCommandResponse(
        device_id=device.id,
        action=data.action,
        connection_type=device.connection_type,
        state=device.state,
    )


@router.get("/devices/{device_id}/state", response_model=DeviceResponse)
async def get_device_state(device_id: uuid.UUID, service: IoTServiceDep) -> DeviceResponse:
    device = await service.get_state(device_id)
    return DeviceResponse.model_validate(device)


@router.post("/state", response_model=DeviceResponse)
async def ingest_state(data: StateMessage, service: IoTServiceDep) -> DeviceResponse:
    device = await service.ingest_state(data.topic, data.payload)
    return DeviceResponse.model_validate(device)
