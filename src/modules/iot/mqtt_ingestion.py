"""
IoT MQTT Ingestion Service

Subscribes to every MQTT vendor's status topic and writes reported state
onto the matching device row. Runs as a long-lived task next to the API.
"""
import asyncio

import aiomqtt

from src.core.config import settings
from src.core.database import async_session_maker
from src.core.logging import get_logger
from src.modules.iot.factory import mqtt_adapters
from src.modules.iot.service import ingest_state_message

logger = get_logger(__name__)

RECONNECT_DELAY_SECONDS = 5


class MQTTIngestionService:
    """
    MQTT client for device state reports.

    Topics:
    - tuya/{device_id}/state
    - esp/{device_id}/status
    - midea/{device_id}/status
    """

    def __init__(self):
        self._running = False
        self._client: aiomqtt.Client | None = None

    @property
    def topics(self) -> list[str]:
        return [adapter.subscription() for adapter in mqtt_adapters()]

    async def start(self) -> None:
        """Connect, subscribe and consume until stopped, reconnecting on broker errors."""
        self._running = True
        logger.info(
            "Starting MQTT ingestion service",
            broker=settings.mqtt_broker_host,
            port=settings.mqtt_broker_port,
        )

        while self._running:
            try:
                async with aiomqtt.Client(
                    hostname=settings.mqtt_broker_host,
                    port=settings.mqtt_broker_port,
                    username=settings.mqtt_username,
                    password=settings.mqtt_password,
                    identifier=settings.mqtt_client_id,
                ) as client:
                    self._client = client
                    for topic in self.topics:
                        await client.subscribe(topic)

                    logger.info("MQTT client connected and subscribed", topics=self.topics)

                    async for message in client.messages:
                        await self.handle_message(str(message.topic), message.payload)

            except aiomqtt.MqttError as e:
                logger.error("MQTT connection error", error=str(e))
                if self._running:
                    await asyncio.sleep(RECONNECT_DELAY_SECONDS)

    async def stop(self) -> None:
        self._running = False
        logger.info("MQTT ingestion service stopped")

    async def handle_message(self, topic: str, payload: bytes | str) -> None:
        """Apply one state report in its own transaction."""
        async with async_session_maker() as session:
            try:
                device = await ingest_state_message(session, topic, payload)
                await session.commit()
            except Exception:
                await session.rollback()
                logger.exception("Error handling MQTT message", topic=topic)
                return

        if device is not None:
            logger.debug("Device state updated", device_id=str(device.id), topic=topic)


mqtt_service = MQTTIngestionService()
