"""Contracts of the engine's external collaborators."""

from datetime import datetime
from typing import Any, Protocol

from helpdesk_automation.models.analysis import AIAnalysis
from helpdesk_automation.models.execution import ActionExecutionResult, ExecutionContext
from helpdesk_automation.models.message import InboundMessage
from helpdesk_automation.models.rule import Action, Rule


class RuleRepository(Protocol):
    """Durable rule storage, read-mostly from the engine's point of view."""

    async def find_by_tenant(self, tenant_id: str) -> list[Rule]:
        """All rules of a tenant, enabled or not."""
        ...

    async def find_by_id(self, rule_id: str, tenant_id: str) -> Rule | None:
        """One rule, or None when unknown."""
        ...

    async def update_execution_stats(
        self,
        rule_id: str,
        tenant_id: str,
        execution_count: int,
        success_count: int,
        last_executed_at: datetime | None,
    ) -> None:
        """Persist a rule's execution statistics."""
        ...


class AIAnalysisPort(Protocol):
    """Message classifier.

    Implementations must not mutate the message and should return
    ``AIAnalysis.fallback()`` instead of raising on provider failure.
    """

    async def analyze(self, message: InboundMessage) -> AIAnalysis:
        ...

    async def generate_response(
        self,
        analysis: AIAnalysis,
        content: str,
        options: dict[str, Any] | None = None,
    ) -> str:
        ...


class ActionExecutorPort(Protocol):
    """Dispatches actions; never raises past its boundary."""

    async def execute(self, action: Action, context: ExecutionContext) -> ActionExecutionResult:
        ...

    async def execute_actions(
        self,
        actions: list[Action],
        context: ExecutionContext,
    ) -> list[ActionExecutionResult]:
        ...

    def can_execute(self, action_type: str) -> bool:
        ...
