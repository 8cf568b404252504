"""Rule storage operations."""

import json
from datetime import datetime, timezone

from redis.asyncio import Redis

from helpdesk_automation.models.rule import Rule, RuleStats
from helpdesk_automation.storage.redis_client import RedisKeys, get_redis

_STAT_FIELDS = ("execution_count", "success_count", "last_executed_at")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def rule_to_record(rule: Rule) -> dict[str, str]:
    """Map a rule onto its Redis hash fields."""
    return {
        "config": rule.model_dump_json(exclude={"stats"}),
        "enabled": str(rule.enabled).lower(),
        "priority": str(rule.priority),
        "version": str(rule.metadata.version),
        "updated_at": rule.metadata.updated_at.isoformat(),
        **stats_to_record(rule.stats),
    }


def stats_to_record(stats: RuleStats) -> dict[str, str]:
    return {
        "execution_count": str(stats.execution_count),
        "success_count": str(stats.success_count),
        "last_executed_at": stats.last_executed_at.isoformat() if stats.last_executed_at else "",
    }


def rule_from_record(record: dict[str, str]) -> Rule:
    """Rebuild a rule from its Redis hash fields."""
    rule = Rule.model_validate_json(record["config"])
    last_executed = record.get("last_executed_at") or None
    rule.stats = RuleStats(
        execution_count=int(record.get("execution_count") or 0),
        success_count=int(record.get("success_count") or 0),
        last_executed_at=datetime.fromisoformat(last_executed) if last_executed else None,
    )
    return rule


class RuleStore:
    """Tenant-scoped rule storage using Redis."""

    def __init__(self, redis: Redis | None = None):
        self._redis = redis

    @property
    def redis(self) -> Redis:
        return self._redis or get_redis()

    async def create(self, rule: Rule) -> Rule:
        """Create a new rule.

        Args:
            rule: Rule to create

        Returns:
            Created rule
        """
        key = RedisKeys.rule_detail(rule.tenant_id, rule.id)
        await self.redis.hset(key, mapping=rule_to_record(rule))
        await self.redis.sadd(RedisKeys.rule_all(rule.tenant_id), rule.id)

        await self._publish_update("create", rule.tenant_id, rule.id)
        return rule

    async def find_by_id(self, rule_id: str, tenant_id: str) -> Rule | None:
        """Get a rule by ID.

        Args:
            rule_id: Rule ID
            tenant_id: Owning tenant

        Returns:
            Rule if found, None otherwise
        """
        record = await self.redis.hgetall(RedisKeys.rule_detail(tenant_id, rule_id))
        if not record or "config" not in record:
            return None
        return rule_from_record(record)

    async def find_by_tenant(self, tenant_id: str) -> list[Rule]:
        """List all rules of a tenant, ordered by id.

        Args:
            tenant_id: Tenant

        Returns:
            Enabled and disabled rules
        """
        rule_ids = await self.redis.smembers(RedisKeys.rule_all(tenant_id))
        rules = []
        for rule_id in sorted(rule_ids):
            rule = await self.find_by_id(rule_id, tenant_id)
            if rule:
                rules.append(rule)
        return rules

    async def update(self, rule: Rule) -> Rule | None:
        """Replace a rule's definition. Stored statistics are kept.

        Args:
            rule: Updated rule (id and tenant_id identify the record)

        Returns:
            Updated rule if found, None otherwise
        """
        existing = await self.find_by_id(rule.id, rule.tenant_id)
        if not existing:
            return None

        rule.stats = existing.stats
        rule.metadata.created_at = existing.metadata.created_at
        rule.metadata.updated_at = _utcnow()
        rule.metadata.version = existing.metadata.version + 1

        record = rule_to_record(rule)
        for field in _STAT_FIELDS:
            record.pop(field)
        await self.redis.hset(RedisKeys.rule_detail(rule.tenant_id, rule.id), mapping=record)

        await self._publish_update("update", rule.tenant_id, rule.id)
        return rule

    async def delete(self, rule_id: str, tenant_id: str) -> bool:
        """Delete a rule.

        Returns:
            True if deleted, False if not found
        """
        removed = await self.redis.delete(RedisKeys.rule_detail(tenant_id, rule_id))
        await self.redis.srem(RedisKeys.rule_all(tenant_id), rule_id)
        if not removed:
            return False

        await self._publish_update("delete", tenant_id, rule_id)
        return True

    async def set_enabled(self, rule_id: str, tenant_id: str, enabled: bool) -> Rule | None:
        """Enable or disable a rule.

        Returns:
            Updated rule if found, None otherwise
        """
        rule = await self.find_by_id(rule_id, tenant_id)
        if not rule:
            return None

        rule.enabled = enabled
        return await self.update(rule)

    async def update_execution_stats(
        self,
        rule_id: str,
        tenant_id: str,
        execution_count: int,
        success_count: int,
        last_executed_at: datetime | None,
    ) -> bool:
        """Write execution statistics without touching the rule definition.

        Counts lower than the stored ones are ignored so that a lagging
        writer never moves statistics backwards.

        Returns:
            True if written, False if the rule is unknown or the write is stale
        """
        key = RedisKeys.rule_detail(tenant_id, rule_id)
        stored = await self.redis.hget(key, "execution_count")
        if stored is None:
            return False
        if int(stored or 0) > execution_count:
            return False

        stats = RuleStats(
            execution_count=execution_count,
            success_count=success_count,
            last_executed_at=last_executed_at,
        )
        await self.redis.hset(key, mapping=stats_to_record(stats))
        return True

    async def get_version(self, tenant_id: str) -> int:
        """Rules version number of a tenant."""
        version = await self.redis.get(RedisKeys.rule_version(tenant_id))
        return int(version) if version else 0

    async def _publish_update(self, action: str, tenant_id: str, rule_id: str) -> None:
        """Bump the tenant's rules version and announce the change."""
        await self.redis.incr(RedisKeys.rule_version(tenant_id))

        message = json.dumps({
            "action": action,
            "tenant_id": tenant_id,
            "rule_id": rule_id,
            "timestamp": int(_utcnow().timestamp() * 1000),
        })
        await self.redis.publish(RedisKeys.RULE_UPDATE_CHANNEL, message)
