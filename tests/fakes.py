"""In-memory fakes for the engine's collaborators."""

import asyncio
from datetime import datetime
from typing import Any

from helpdesk_automation.actions.handlers.base import ActionHandler
from helpdesk_automation.models.analysis import AIAnalysis
from helpdesk_automation.models.execution import ActionExecutionResult, ExecutionContext
from helpdesk_automation.models.message import InboundMessage
from helpdesk_automation.models.rule import (
    Action,
    Condition,
    ConditionField,
    ConditionOperator,
    Rule,
    Trigger,
    TriggerKind,
)


class FakeRuleRepository:
    """In-memory rule repository."""

    def __init__(self, rules: list[Rule] | None = None):
        self.rules: dict[tuple[str, str], Rule] = {}
        for rule in rules or []:
            self.add(rule)
        self.fail_loads = False
        self.load_calls = 0
        self.stats_writes: list[tuple[str, int, int]] = []

    def add(self, rule: Rule) -> None:
        self.rules[(rule.tenant_id, rule.id)] = rule

    async def find_by_tenant(self, tenant_id: str) -> list[Rule]:
        self.load_calls += 1
        if self.fail_loads:
            raise ConnectionError("repository unavailable")
        return [
            rule.model_copy(deep=True)
            for (owner, _), rule in sorted(self.rules.items())
            if owner == tenant_id
        ]

    async def find_by_id(self, rule_id: str, tenant_id: str) -> Rule | None:
        rule = self.rules.get((tenant_id, rule_id))
        return rule.model_copy(deep=True) if rule else None

    async def update_execution_stats(
        self,
        rule_id: str,
        tenant_id: str,
        execution_count: int,
        success_count: int,
        last_executed_at: datetime | None,
    ) -> bool:
        self.stats_writes.append((rule_id, execution_count, success_count))
        return True


class FakeAIPort:
    """AI port returning a fixed analysis and counting calls."""

    def __init__(
        self,
        analysis: AIAnalysis | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
        reply: str = "Thanks, we are on it.",
    ):
        self.analysis = analysis or AIAnalysis(
            intent="complaint",
            sentiment="negative",
            urgency="high",
            category="billing",
            confidence=0.9,
            summary="Customer complains about a double charge",
            language="en",
        )
        self.error = error
        self.delay = delay
        self.reply = reply
        self.calls = 0
        self.response_calls: list[dict[str, Any]] = []

    async def analyze(self, message: InboundMessage) -> AIAnalysis:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.analysis

    async def generate_response(
        self,
        analysis: AIAnalysis,
        content: str,
        options: dict[str, Any] | None = None,
    ) -> str:
        self.response_calls.append({"analysis": analysis, "content": content, "options": options or {}})
        return self.reply


class RecordingHandler(ActionHandler):
    """Records every call; fails or sleeps for configured action ids."""

    def __init__(
        self,
        types: tuple[str, ...] = ("record",),
        fail_ids: set[str] | None = None,
        raise_ids: set[str] | None = None,
        slow_ids: set[str] | None = None,
    ):
        self._types = types
        self.fail_ids = fail_ids or set()
        self.raise_ids = raise_ids or set()
        self.slow_ids = slow_ids or set()
        self.calls: list[tuple[str, ExecutionContext]] = []

    @property
    def action_types(self) -> tuple[str, ...]:
        return self._types

    async def handle(self, action: Action, context: ExecutionContext) -> ActionExecutionResult:
        self.calls.append((action.id, context))
        if action.id in self.slow_ids:
            await asyncio.sleep(5)
        if action.id in self.raise_ids:
            raise RuntimeError(f"boom in {action.id}")
        if action.id in self.fail_ids:
            return ActionExecutionResult.failed("nope", error="configured failure")
        return ActionExecutionResult.ok(f"{action.id} done")

    @property
    def called_ids(self) -> list[str]:
        return [action_id for action_id, _ in self.calls]


def make_rule(
    rule_id: str,
    priority: int = 5,
    tenant_id: str = "tenant-a",
    kind: TriggerKind = TriggerKind.MESSAGE_RECEIVED,
    conditions: list[Condition] | None = None,
    actions: list[Action] | None = None,
    enabled: bool = True,
    ai_enabled: bool = False,
    **trigger_fields: Any,
) -> Rule:
    return Rule(
        id=rule_id,
        tenant_id=tenant_id,
        name=f"Rule {rule_id}",
        priority=priority,
        enabled=enabled,
        ai_enabled=ai_enabled,
        trigger=Trigger(kind=kind, conditions=conditions or [], **trigger_fields),
        actions=actions if actions is not None else [Action(id=f"{rule_id}_act", type="record")],
    )


def content_contains(value: str) -> Condition:
    return Condition(field=ConditionField.CONTENT, operator=ConditionOperator.CONTAINS, value=value)
