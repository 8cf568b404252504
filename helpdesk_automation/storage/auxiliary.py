"""Auxiliary storage operations (idempotency, analysis cache, outbound queues)."""

import json

from redis.asyncio import Redis

from helpdesk_automation.models.outbound import HelpdeskCommand, OutboundReply
from helpdesk_automation.storage.redis_client import RedisKeys, get_redis


class IdempotencyStore:
    """Remembers which inbound messages were already processed."""

    TTL_SECONDS = 3600  # 1 hour

    def __init__(self, redis: Redis | None = None):
        self._redis = redis

    @property
    def redis(self) -> Redis:
        return self._redis or get_redis()

    async def mark_processed(self, tenant_id: str, message_id: str) -> bool:
        """Mark a message as processed.

        Returns:
            True if newly marked, False if it was already processed
        """
        key = RedisKeys.processed(tenant_id, message_id)
        result = await self.redis.set(key, "1", nx=True, ex=self.TTL_SECONDS)
        return bool(result)


class AnalysisCacheStore:
    """AI analysis cache keyed by a hash of the message fields."""

    TTL_SECONDS = 300

    def __init__(self, redis: Redis | None = None):
        self._redis = redis

    @property
    def redis(self) -> Redis:
        return self._redis or get_redis()

    async def get(self, message_hash: str) -> dict | None:
        data = await self.redis.get(RedisKeys.analysis_cache(message_hash))
        if data:
            return json.loads(data)
        return None

    async def set(self, message_hash: str, analysis: dict, ttl: int | None = None) -> None:
        await self.redis.setex(
            RedisKeys.analysis_cache(message_hash),
            ttl or self.TTL_SECONDS,
            json.dumps(analysis),
        )


class OutboundQueue:
    """Queues replies and helpdesk commands for the delivery layer.

    Consumers pop from the right (``BRPOP``); producers push left.
    """

    def __init__(self, redis: Redis | None = None):
        self._redis = redis

    @property
    def redis(self) -> Redis:
        return self._redis or get_redis()

    async def enqueue_reply(self, reply: OutboundReply) -> None:
        await self.redis.lpush(RedisKeys.OUTBOUND_REPLIES, reply.model_dump_json())

    async def enqueue_command(self, command: HelpdeskCommand) -> None:
        await self.redis.lpush(RedisKeys.HELPDESK_COMMANDS, command.model_dump_json())
