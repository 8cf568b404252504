"""Applies rule change announcements to the live engines."""

import json

from redis.asyncio import Redis

from helpdesk_automation.core.logging import get_logger
from helpdesk_automation.engine.registry import EngineRegistry
from helpdesk_automation.storage.redis_client import RedisKeys

logger = get_logger(__name__)


class RuleUpdateListener:
    """Subscribes to rule updates published by the rule store.

    Lets a worker process pick up changes made through the API process
    without a full reload.
    """

    def __init__(self, registry: EngineRegistry, redis: Redis):
        self._registry = registry
        self._redis = redis
        self._should_stop = False

    async def apply(self, raw: str | bytes) -> None:
        """Apply one update announcement."""
        try:
            update = json.loads(raw)
            tenant_id = update["tenant_id"]
            rule_id = update["rule_id"]
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Invalid rule update", error=str(e))
            return

        if update.get("action") == "delete":
            await self._registry.remove_rule(tenant_id, rule_id)
        else:
            await self._registry.sync_rule(tenant_id, rule_id)
        logger.debug("Rule update applied", tenant_id=tenant_id, rule_id=rule_id, action=update.get("action"))

    async def start(self) -> None:
        """Listen until stopped."""
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(RedisKeys.RULE_UPDATE_CHANNEL)
        logger.info("Listening for rule updates", channel=RedisKeys.RULE_UPDATE_CHANNEL)

        try:
            while not self._should_stop:
                message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
                if message is None:
                    continue
                try:
                    await self.apply(message["data"])
                except Exception as e:
                    logger.error("Failed to apply rule update", error=str(e), exc_info=True)
        finally:
            await pubsub.unsubscribe(RedisKeys.RULE_UPDATE_CHANNEL)
            await pubsub.aclose()

    def stop(self) -> None:
        self._should_stop = True
