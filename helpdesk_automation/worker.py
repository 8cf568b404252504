"""Worker process entry point for inbound message consumption."""

import asyncio
import signal

from helpdesk_automation.core.config import get_settings
from helpdesk_automation.core.logging import get_logger, setup_logging
from helpdesk_automation.engine.registry import EngineRegistry, create_registry
from helpdesk_automation.messaging.consumer import RabbitMQConsumer
from helpdesk_automation.messaging.handler import MessageRouter
from helpdesk_automation.messaging.rule_updates import RuleUpdateListener
from helpdesk_automation.storage.auxiliary import IdempotencyStore
from helpdesk_automation.storage.redis_client import (
    close_redis_pool,
    get_redis,
    init_redis_pool,
)

logger = get_logger(__name__)


class WorkerManager:
    """Manager for coordinating worker tasks."""

    def __init__(self):
        """Initialize worker manager."""
        self._settings = get_settings()
        self._registry: EngineRegistry | None = None
        self._consumer: RabbitMQConsumer | None = None
        self._rule_listener: RuleUpdateListener | None = None

    async def start(self) -> None:
        """Start all worker tasks."""
        setup_logging()
        logger.info("Starting worker manager")

        await init_redis_pool()
        redis = get_redis()

        self._registry = create_registry(redis, self._settings)
        router = MessageRouter(self._registry, IdempotencyStore(redis))
        self._consumer = RabbitMQConsumer(router.handle, self._settings)
        self._rule_listener = RuleUpdateListener(self._registry, redis)

        try:
            await asyncio.gather(
                self._run_consumer(),
                self._run_rule_listener(),
            )
        finally:
            await self._cleanup()

    async def _run_consumer(self) -> None:
        """Run message consumer."""
        if self._consumer:
            try:
                await self._consumer.start_consuming()
            except asyncio.CancelledError:
                logger.info("Consumer cancelled")
            except Exception as e:
                logger.error("Consumer error", error=str(e), exc_info=True)

    async def _run_rule_listener(self) -> None:
        """Run rule update listener."""
        if self._rule_listener:
            try:
                await self._rule_listener.start()
            except asyncio.CancelledError:
                logger.info("Rule listener cancelled")
            except Exception as e:
                logger.error("Rule listener error", error=str(e), exc_info=True)

    async def stop(self) -> None:
        """Signal workers to stop."""
        logger.info("Stopping workers")
        if self._consumer:
            self._consumer.stop()
        if self._rule_listener:
            self._rule_listener.stop()

    async def _cleanup(self) -> None:
        """Clean up resources."""
        logger.info("Cleaning up resources")
        if self._consumer:
            await self._consumer.disconnect()
        if self._registry:
            await self._registry.close()
        await close_redis_pool()
        logger.info("Cleanup complete")


async def main() -> None:
    """Main entry point for worker process."""
    manager = WorkerManager()

    loop = asyncio.get_running_loop()

    def signal_handler():
        logger.info("Received shutdown signal")
        asyncio.create_task(manager.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    await manager.start()


if __name__ == "__main__":
    asyncio.run(main())
