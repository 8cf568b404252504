"""Redis client management."""

import redis.asyncio as redis
from redis.asyncio import Redis

from helpdesk_automation.core.config import get_settings

# Global connection pool
_pool: redis.ConnectionPool | None = None


async def init_redis_pool() -> None:
    """Initialize Redis connection pool."""
    global _pool
    if _pool is None:
        settings = get_settings()
        _pool = redis.ConnectionPool.from_url(
            settings.redis_url,
            decode_responses=True,
            max_connections=20,
        )


async def close_redis_pool() -> None:
    """Close Redis connection pool."""
    global _pool
    if _pool is not None:
        await _pool.disconnect()
        _pool = None


def get_redis() -> Redis:
    """Get Redis client from pool.

    Raises:
        RuntimeError: If pool not initialized
    """
    if _pool is None:
        raise RuntimeError("Redis pool not initialized. Call init_redis_pool() first.")
    return redis.Redis(connection_pool=_pool)


class RedisKeys:
    """Redis key patterns. Rule keys are namespaced per tenant."""

    # Rules
    RULE_DETAIL = "automation:{tenant_id}:rules:detail:{rule_id}"
    RULE_ALL = "automation:{tenant_id}:rules:all"
    RULE_VERSION = "automation:{tenant_id}:rules:version"
    RULE_UPDATE_CHANNEL = "automation:rules:update"

    # Auxiliary
    PROCESSED = "automation:processed:{tenant_id}:{message_id}"
    ANALYSIS_CACHE = "automation:analysis_cache:{message_hash}"
    OUTBOUND_REPLIES = "automation:outbound:replies"
    HELPDESK_COMMANDS = "automation:outbound:commands"

    @classmethod
    def rule_detail(cls, tenant_id: str, rule_id: str) -> str:
        return cls.RULE_DETAIL.format(tenant_id=tenant_id, rule_id=rule_id)

    @classmethod
    def rule_all(cls, tenant_id: str) -> str:
        return cls.RULE_ALL.format(tenant_id=tenant_id)

    @classmethod
    def rule_version(cls, tenant_id: str) -> str:
        return cls.RULE_VERSION.format(tenant_id=tenant_id)

    @classmethod
    def processed(cls, tenant_id: str, message_id: str) -> str:
        return cls.PROCESSED.format(tenant_id=tenant_id, message_id=message_id)

    @classmethod
    def analysis_cache(cls, message_hash: str) -> str:
        return cls.ANALYSIS_CACHE.format(message_hash=message_hash)
