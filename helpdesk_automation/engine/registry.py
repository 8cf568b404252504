"""Tenant engine registry."""

import asyncio

from redis.asyncio import Redis

from helpdesk_automation.core.config import Settings, get_settings
from helpdesk_automation.core.logging import get_logger
from helpdesk_automation.engine.automation import AutomationEngine
from helpdesk_automation.engine.ports import ActionExecutorPort, AIAnalysisPort, RuleRepository
from helpdesk_automation.models.execution import EngineMetrics, ProcessingReport, RuleTestResult
from helpdesk_automation.models.message import InboundMessage
from helpdesk_automation.models.rule import Rule
from helpdesk_automation.observability.metrics import ACTIVE_ENGINES

logger = get_logger(__name__)


class EngineRegistry:
    """Owns one AutomationEngine per tenant.

    Engines are created lazily on first use and initialized before they are
    handed out. Creation is atomic: concurrent first calls for the same
    tenant get the same engine.
    """

    def __init__(
        self,
        repository: RuleRepository,
        ai_port: AIAnalysisPort,
        executor: ActionExecutorPort,
        settings: Settings | None = None,
    ):
        self._repository = repository
        self._ai_port = ai_port
        self._executor = executor
        self._settings = settings or get_settings()
        self._engines: dict[str, AutomationEngine] = {}
        self._lock = asyncio.Lock()

    async def get_engine(self, tenant_id: str) -> AutomationEngine:
        """Get (or create and initialize) the engine of a tenant."""
        async with self._lock:
            engine = self._engines.get(tenant_id)
            if engine is None:
                engine = AutomationEngine(
                    tenant_id,
                    self._repository,
                    self._ai_port,
                    self._executor,
                    self._settings,
                )
                self._engines[tenant_id] = engine
                ACTIVE_ENGINES.set(len(self._engines))
                logger.info("Engine created", tenant_id=tenant_id)

        # Outside the registry lock so tenants load concurrently
        await engine.initialize()
        return engine

    async def process_message(self, tenant_id: str, message: InboundMessage) -> ProcessingReport:
        engine = await self.get_engine(tenant_id)
        return await engine.process_message(message)

    async def reload_engine_rules(self, tenant_id: str) -> int:
        """Reload a tenant's rules from the repository.

        Raises:
            RuleLoadError: If the repository fails; current rules are kept
        """
        engine = await self.get_engine(tenant_id)
        return await engine.load_rules_from_database()

    async def sync_rule(self, tenant_id: str, rule_id: str) -> Rule | None:
        """Refresh one rule in a live engine.

        Tenants without an engine are skipped: their first load reads the
        current state anyway.
        """
        engine = self._engines.get(tenant_id)
        if engine is None:
            return None
        return await engine.sync_rule(rule_id)

    async def remove_rule(self, tenant_id: str, rule_id: str) -> bool:
        engine = self._engines.get(tenant_id)
        if engine is None:
            return False
        return await engine.remove_rule(rule_id)

    async def test_rule(self, tenant_id: str, rule_id: str, sample_message: InboundMessage) -> RuleTestResult:
        engine = await self.get_engine(tenant_id)
        return await engine.test_rule(rule_id, sample_message)

    def get_metrics(self, tenant_id: str) -> EngineMetrics:
        """Metrics of one tenant (zeros if its engine was never created)."""
        engine = self._engines.get(tenant_id)
        return engine.get_metrics() if engine else EngineMetrics()

    def get_aggregate_metrics(self) -> dict[str, EngineMetrics]:
        return {tenant_id: engine.get_metrics() for tenant_id, engine in sorted(self._engines.items())}

    def tenants(self) -> list[str]:
        return sorted(self._engines)

    def can_execute(self, action_type: str) -> bool:
        return self._executor.can_execute(action_type)

    async def close(self) -> None:
        """Close the AI provider and action executor, if they hold resources."""
        for resource in (self._executor, self._ai_port):
            close = getattr(resource, "close", None)
            if close is not None:
                await close()
        self._engines.clear()
        ACTIVE_ENGINES.set(0)


def create_registry(redis: Redis | None = None, settings: Settings | None = None) -> EngineRegistry:
    """Registry wired to the Redis rule store, OpenAI analyzer and built-in actions.

    Args:
        redis: Redis client (default pool if None)
        settings: Application settings

    Returns:
        Engine registry
    """
    from helpdesk_automation.actions.executor import build_action_executor
    from helpdesk_automation.ai.analyzer import OpenAIAnalyzer
    from helpdesk_automation.storage.rule_store import RuleStore

    settings = settings or get_settings()
    ai_port = OpenAIAnalyzer(settings, redis)
    return EngineRegistry(
        repository=RuleStore(redis),
        ai_port=ai_port,
        executor=build_action_executor(ai_port, redis, settings),
        settings=settings,
    )
