"""
IoT Module - FastAPI Dependencies
"""
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_db
from src.modules.auth.dependencies import CurrentUser
from src.modules.iot.service import IoTService
from src.modules.iot.transport import MQTTPublisher, RestTransport


def get_mqtt_publisher() -> MQTTPublisher:
    return MQTTPublisher()


def get_rest_transport() -> RestTransport:
    return RestTransport()


async def get_iot_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: CurrentUser,
    publisher: Annotated[MQTTPublisher, Depends(get_mqtt_publisher)],
    rest: Annotated[RestTransport, Depends(get_rest_transport)],
) -> IoTService:
    return IoTService(db, current_user, publisher=publisher, rest=rest)


IoTServiceDep = Annotated[IoTService, Depends(get_iot_service)]
