"""
Command transports: MQTT broker publish and vendor REST calls.
"""
from typing import Any

import aiomqtt
import httpx

from src.core.config import settings
from src.core.exceptions import GatewayTimeoutError, ServiceUnavailableError
from src.core.logging import get_logger
from src.modules.iot.adapters import MQTTCommand, RestRequest

logger = get_logger(__name__)


class MQTTPublisher:
    """Publishes one command per short-lived broker connection."""

    def __init__(
        self,
        hostname: str | None = None,
        port: int | None = None,
        username: str | None = None,
        password: str | None = None,
    ):
        self.hostname = hostname or settings.mqtt_broker_host
        self.port = port or settings.mqtt_broker_port
        self.username = username if username is not None else settings.mqtt_username
        self.password = password if password is not None else settings.mqtt_password

    async def publish(self, command: MQTTCommand) -> None:
        try:
            async with aiomqtt.Client(
                hostname=self.hostname,
                port=self.port,
                username=self.username,
                password=self.password,
            ) as client:
                await client.publish(command.topic, payload=command.payload, qos=command.qos)
        except aiomqtt.MqttError as e:
            logger.error("MQTT publish failed", topic=command.topic, error=str(e))
            raise ServiceUnavailableError("MQTT broker", str(e)) from e

        logger.debug("MQTT command published", topic=command.topic, qos=command.qos)


class RestTransport:
    """Sends vendor REST requests with httpx."""

    def __init__(self, timeout: float | None = None, transport: httpx.AsyncBaseTransport | None = None):
        self.timeout = timeout or settings.iot_http_timeout_seconds
        self._transport = transport

    async def send(self, request: RestRequest, device_id: str | None = None) -> dict[str, Any]:
        async with httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        ) as client:
            try:
                response = await client.request(
                    request.method,
                    request.url,
                    json=request.json,
                    headers=request.headers,
                )
                response.raise_for_status()
            except httpx.TimeoutException as e:
                logger.warning("Vendor API timed out", url=request.url, device_id=device_id)
                raise GatewayTimeoutError(device_id) from e
            except httpx.HTTPError as e:
                logger.error("Vendor API request failed", url=request.url, error=str(e))
                raise ServiceUnavailableError("Vendor API", str(e)) from e

        if not response.content:
            return {}
        data = response.json()
        # Hue answers PUT with a list of per-attribute results
        return data if isinstance(data, dict) else {"result": data}
