"""Per-tenant automation engine."""

import asyncio
import time
from datetime import datetime, timezone

from helpdesk_automation.ai.analyzer import analyze_safely
from helpdesk_automation.core.config import Settings, get_settings
from helpdesk_automation.core.errors import RuleLoadError, RuleNotFoundError
from helpdesk_automation.core.logging import get_logger
from helpdesk_automation.engine.defaults import default_rules
from helpdesk_automation.engine.ports import ActionExecutorPort, AIAnalysisPort, RuleRepository
from helpdesk_automation.engine.rule_runner import evaluate_rule, execute_rule
from helpdesk_automation.models.analysis import AIAnalysis
from helpdesk_automation.models.execution import (
    EngineMetrics,
    ProcessingReport,
    RuleRunReport,
    RuleTestResult,
)
from helpdesk_automation.models.message import InboundMessage
from helpdesk_automation.models.rule import Rule
from helpdesk_automation.observability.metrics import (
    MESSAGES_PROCESSED,
    PROCESSING_LATENCY,
    RULES_MATCHED,
    RULES_SHORT_CIRCUITED,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AutomationEngine:
    """Holds one tenant's rules and runs inbound messages through them.

    Work is serialized per tenant: ``process_message``, rule (re)loading and
    single-rule sync all take the engine lock, so the rule map and metrics are
    only ever mutated by one coroutine at a time.
    """

    def __init__(
        self,
        tenant_id: str,
        repository: RuleRepository,
        ai_port: AIAnalysisPort,
        executor: ActionExecutorPort,
        settings: Settings | None = None,
    ):
        """Initialize engine.

        Args:
            tenant_id: Tenant served by this engine
            repository: Rule persistence
            ai_port: AI analysis provider
            executor: Action executor
            settings: Application settings
        """
        self._tenant_id = tenant_id
        self._repository = repository
        self._ai_port = ai_port
        self._executor = executor
        self._settings = settings or get_settings()
        self._rules: dict[str, Rule] = {}
        self._metrics = EngineMetrics()
        self._lock = asyncio.Lock()
        self._loaded = False
        self._logger = get_logger(__name__, tenant_id=tenant_id)

    @property
    def tenant_id(self) -> str:
        return self._tenant_id

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def get_rules(self) -> list[Rule]:
        """In-memory rules in evaluation order."""
        return sorted(self._rules.values(), key=self._evaluation_order)

    def get_metrics(self) -> EngineMetrics:
        """Snapshot of the engine metrics."""
        return self._metrics.model_copy()

    async def initialize(self) -> None:
        """Load rules once, falling back to the default rules on failure."""
        async with self._lock:
            if not self._loaded:
                await self._load(fallback_to_defaults=True)

    async def load_rules_from_database(self, fallback_to_defaults: bool = False) -> int:
        """Replace the in-memory rule set with the repository snapshot.

        Args:
            fallback_to_defaults: Install the default rules if loading fails

        Returns:
            Number of rules loaded

        Raises:
            RuleLoadError: If loading fails and no fallback was requested;
                the current rule set is kept
        """
        async with self._lock:
            return await self._load(fallback_to_defaults)

    async def sync_rule(self, rule_id: str) -> Rule | None:
        """Refresh one rule from the repository without touching the others.

        Returns:
            The refreshed rule, or None if it no longer exists (it is dropped)
        """
        async with self._lock:
            try:
                rule = await self._repository.find_by_id(rule_id, self._tenant_id)
            except Exception as e:
                raise RuleLoadError(self._tenant_id, e) from e

            if rule is None:
                self._rules.pop(rule_id, None)
                self._logger.info("Rule removed on sync", rule_id=rule_id)
                return None

            self._rules[rule.id] = rule
            self._logger.info("Rule synced", rule_id=rule.id, enabled=rule.enabled, priority=rule.priority)
            return rule

    async def remove_rule(self, rule_id: str) -> bool:
        """Drop a rule from memory (after it was deleted from storage)."""
        async with self._lock:
            removed = self._rules.pop(rule_id, None) is not None
        if removed:
            self._logger.info("Rule removed", rule_id=rule_id)
        return removed

    async def process_message(self, message: InboundMessage) -> ProcessingReport:
        """Run one inbound message through the tenant's rules.

        Never raises for expected failures: rule errors, AI failures and the
        processing deadline are reported in the returned report.

        Args:
            message: Normalized inbound message

        Returns:
            Processing report
        """
        report = ProcessingReport(tenant_id=self._tenant_id, message_id=message.message_id)
        start_time = time.perf_counter()
        status = "ok"

        async with self._lock:
            if not self._loaded:
                await self._load(fallback_to_defaults=True)

            try:
                await asyncio.wait_for(
                    self._process(message, report),
                    timeout=self._settings.process_timeout_seconds,
                )
            except asyncio.TimeoutError:
                status = "timeout"
                report.timed_out = True
                self._logger.error(
                    "Message processing deadline exceeded",
                    message_id=message.message_id,
                    timeout=self._settings.process_timeout_seconds,
                    rules_executed=len(report.runs),
                )
            except Exception as e:
                status = "error"
                report.error = str(e)
                self._logger.error(
                    "Message processing failed",
                    message_id=message.message_id,
                    error=str(e),
                    exc_info=True,
                )

            self._metrics.record(
                rules_executed=len(report.runs),
                successful_rules=sum(1 for run in report.runs if run.success),
                actions_triggered=sum(len(run.results) for run in report.runs),
                execution_time_ms=sum(run.execution_time_ms for run in report.runs),
                ai_calls=1 if report.ai_analysis is not None else 0,
                executed_at=_utcnow(),
            )

        elapsed = time.perf_counter() - start_time
        report.elapsed_ms = elapsed * 1000
        MESSAGES_PROCESSED.labels(channel=message.channel or "unknown", status=status).inc()
        PROCESSING_LATENCY.observe(elapsed)

        self._logger.info(
            "Message processed",
            message_id=message.message_id,
            matched=report.matched_rule_ids,
            short_circuited_by=report.short_circuited_by,
            elapsed_ms=int(report.elapsed_ms),
        )
        return report

    async def test_rule(self, rule_id: str, sample_message: InboundMessage) -> RuleTestResult:
        """Dry-run one rule: evaluate only, no actions, no statistics.

        Disabled rules are evaluated as if enabled so authors can check them
        before activation.
        """
        start_time = time.perf_counter()
        try:
            rule = self._rules.get(rule_id) or await self._repository.find_by_id(rule_id, self._tenant_id)
            if rule is None:
                raise RuleNotFoundError(rule_id, self._tenant_id)

            candidate = rule.model_copy(update={"enabled": True})
            evaluation = await evaluate_rule(
                candidate,
                sample_message,
                None,
                self._ai_port,
                self._settings.ai_timeout_seconds,
            )
        except Exception as e:
            self._logger.warning("Rule test failed", rule_id=rule_id, error=str(e))
            return RuleTestResult(
                rule_id=rule_id,
                matched=False,
                execution_time_ms=(time.perf_counter() - start_time) * 1000,
                error=str(e),
            )

        return RuleTestResult(
            rule_id=rule_id,
            matched=evaluation.matched,
            execution_time_ms=(time.perf_counter() - start_time) * 1000,
            ai_analysis=evaluation.analysis,
        )

    async def _load(self, fallback_to_defaults: bool) -> int:
        try:
            rules = await self._repository.find_by_tenant(self._tenant_id)
        except Exception as e:
            if not fallback_to_defaults:
                self._logger.error("Rule reload failed, keeping current rules", error=str(e))
                raise RuleLoadError(self._tenant_id, e) from e
            self._logger.error("Rule load failed, installing default rules", error=str(e))
            rules = default_rules(self._tenant_id)

        self._rules.clear()
        for rule in rules:
            if rule.tenant_id != self._tenant_id:
                self._logger.warning("Ignoring rule of another tenant", rule_id=rule.id, owner=rule.tenant_id)
                continue
            self._rules[rule.id] = rule

        self._loaded = True
        self._logger.info("Rules loaded", rule_count=len(self._rules))
        return len(self._rules)

    async def _process(self, message: InboundMessage, report: ProcessingReport) -> None:
        active = [rule for rule in self._rules.values() if rule.enabled]
        if not active:
            return

        # One AI call serves every AI-enabled rule for this message
        analysis: AIAnalysis | None = None
        if any(rule.ai_enabled for rule in active):
            analysis = await analyze_safely(self._ai_port, message, self._settings.ai_timeout_seconds)
            report.ai_analysis = analysis

        threshold = self._settings.high_priority_threshold

        for rule in sorted(active, key=self._evaluation_order):
            report.evaluated_rule_ids.append(rule.id)

            try:
                evaluation = await evaluate_rule(
                    rule,
                    message,
                    analysis,
                    self._ai_port,
                    self._settings.ai_timeout_seconds,
                )
            except Exception as e:
                self._logger.error(
                    "Rule evaluation failed",
                    rule_id=rule.id,
                    message_id=message.message_id,
                    error=str(e),
                    exc_info=True,
                )
                continue

            if not evaluation.matched:
                self._logger.debug("Rule not matched", rule_id=rule.id, reason=evaluation.reason)
                continue

            report.runs.append(await self._run_rule(rule, message, evaluation.analysis))

            if rule.priority >= threshold:
                report.short_circuited_by = rule.id
                RULES_SHORT_CIRCUITED.inc()
                self._logger.info(
                    "High-priority rule matched, skipping remaining rules",
                    rule_id=rule.id,
                    priority=rule.priority,
                )
                break

    async def _run_rule(
        self,
        rule: Rule,
        message: InboundMessage,
        analysis: AIAnalysis | None,
    ) -> RuleRunReport:
        start_time = time.perf_counter()
        try:
            outcome = await execute_rule(rule, message, analysis, self._executor)
            success, results, error = outcome.success, outcome.results, outcome.error
        except Exception as e:
            self._logger.error("Rule execution failed", rule_id=rule.id, error=str(e), exc_info=True)
            success, results, error = False, [], str(e)

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        rule.record_execution(success, _utcnow())
        RULES_MATCHED.labels(status="success" if success else "failure").inc()

        self._logger.info(
            "Rule executed",
            rule_id=rule.id,
            message_id=message.message_id,
            success=success,
            actions=len(results),
            failed_actions=sum(1 for result in results if not result.success),
            elapsed_ms=int(elapsed_ms),
        )

        await self._persist_stats(rule)

        return RuleRunReport(
            rule_id=rule.id,
            rule_name=rule.name,
            priority=rule.priority,
            success=success,
            execution_time_ms=elapsed_ms,
            results=results,
            error=error,
        )

    async def _persist_stats(self, rule: Rule) -> None:
        try:
            await self._repository.update_execution_stats(
                rule.id,
                self._tenant_id,
                rule.stats.execution_count,
                rule.stats.success_count,
                rule.stats.last_executed_at,
            )
        except Exception as e:
            # In-memory stats stay ahead until the next successful write
            self._logger.warning("Failed to persist rule stats", rule_id=rule.id, error=str(e))

    @staticmethod
    def _evaluation_order(rule: Rule) -> tuple[int, str]:
        # Priority descending, ties broken by rule id
        return (-rule.priority, rule.id)
