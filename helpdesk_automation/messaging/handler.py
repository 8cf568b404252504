"""Inbound message handling: idempotency, tracing and engine dispatch."""

from helpdesk_automation.core.logging import get_logger
from helpdesk_automation.engine.registry import EngineRegistry
from helpdesk_automation.models.execution import ProcessingReport
from helpdesk_automation.models.message import InboundMessage
from helpdesk_automation.observability.tracing import TraceContext
from helpdesk_automation.storage.auxiliary import IdempotencyStore

logger = get_logger(__name__)


class MessageRouter:
    """Routes each inbound message to its tenant's engine exactly once."""

    def __init__(self, registry: EngineRegistry, idempotency: IdempotencyStore):
        self._registry = registry
        self._idempotency = idempotency

    async def handle(self, tenant_id: str, message: InboundMessage) -> ProcessingReport | None:
        """Process a message unless it was already processed.

        Returns:
            Processing report, or None for a duplicate delivery
        """
        with TraceContext(message.message_id):
            if not await self._idempotency.mark_processed(tenant_id, message.message_id):
                logger.info("Duplicate message skipped", tenant_id=tenant_id, message_id=message.message_id)
                return None

            logger.info(
                "Processing message",
                tenant_id=tenant_id,
                message_id=message.message_id,
                channel=message.channel,
            )
            return await self._registry.process_message(tenant_id, message)
