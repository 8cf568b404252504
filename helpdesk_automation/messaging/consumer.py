"""RabbitMQ consumer of normalized inbound messages."""

import json
from typing import Any, Callable, Coroutine

import aio_pika
from aio_pika import IncomingMessage
from aio_pika.abc import AbstractRobustConnection
from pydantic import ValidationError

from helpdesk_automation.core.config import Settings, get_settings
from helpdesk_automation.core.logging import get_logger
from helpdesk_automation.models.message import InboundMessage

logger = get_logger(__name__)

# Type alias for message handler
MessageHandler = Callable[[str, InboundMessage], Coroutine[Any, Any, Any]]


def parse_body(body: bytes, fallback_message_id: str | None = None) -> tuple[str, InboundMessage]:
    """Decode a queue payload into ``(tenant_id, message)``.

    Raises:
        ValueError: If the payload is not JSON or has no tenant_id
        ValidationError: If the message fields are malformed
    """
    payload = json.loads(body.decode())
    if not isinstance(payload, dict):
        raise ValueError("Message body must be a JSON object")

    tenant_id = payload.pop("tenant_id", None)
    if not tenant_id:
        raise ValueError("Message missing tenant_id")

    if not payload.get("message_id") and fallback_message_id:
        payload["message_id"] = fallback_message_id
    return str(tenant_id), InboundMessage.model_validate(payload)


class RabbitMQConsumer:
    """RabbitMQ consumer feeding inbound messages to a handler."""

    def __init__(self, handler: MessageHandler, settings: Settings | None = None):
        """Initialize consumer.

        Args:
            handler: Async function called with (tenant_id, message)
            settings: Application settings
        """
        self._settings = settings or get_settings()
        self._handler = handler
        self._connection: AbstractRobustConnection | None = None
        self._should_stop = False

    async def connect(self) -> None:
        """Connect to RabbitMQ."""
        self._connection = await aio_pika.connect_robust(
            self._settings.rabbitmq_url,
            reconnect_interval=5,
        )
        logger.info("Connected to RabbitMQ")

    async def disconnect(self) -> None:
        """Disconnect from RabbitMQ."""
        if self._connection:
            await self._connection.close()
            self._connection = None
            logger.info("Disconnected from RabbitMQ")

    async def start_consuming(self) -> None:
        """Start consuming messages from queue."""
        if not self._connection:
            await self.connect()

        channel = await self._connection.channel()
        await channel.set_qos(prefetch_count=10)

        queue = await channel.declare_queue(
            self._settings.rabbitmq_queue,
            durable=True,
        )

        logger.info("Starting message consumption", queue=self._settings.rabbitmq_queue)

        async with queue.iterator() as queue_iter:
            async for message in queue_iter:
                if self._should_stop:
                    break
                await self._process_message(message)

    async def _process_message(self, message: IncomingMessage) -> None:
        """Decode one delivery and hand it to the handler.

        Malformed payloads are acknowledged and dropped.
        """
        async with message.process():
            try:
                tenant_id, inbound = parse_body(message.body, message.message_id)
            except (ValueError, ValidationError) as e:
                logger.error("Invalid inbound message", amqp_message_id=message.message_id, error=str(e))
                return

            try:
                await self._handler(tenant_id, inbound)
            except Exception as e:
                logger.error(
                    "Error processing message",
                    tenant_id=tenant_id,
                    message_id=inbound.message_id,
                    error=str(e),
                    exc_info=True,
                )

    def stop(self) -> None:
        """Signal consumer to stop."""
        self._should_stop = True
        logger.info("Consumer stop requested")
