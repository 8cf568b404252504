"""Execution domain models."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from helpdesk_automation.models.analysis import AIAnalysis


class ExecutionContext(BaseModel):
    """Shared context for all actions of one rule execution."""

    tenant_id: str = Field(..., description="Tenant the rule belongs to")
    message_data: dict[str, Any] = Field(..., description="Normalized message snapshot")
    ai_analysis: AIAnalysis | None = Field(default=None, description="Analysis shared by the actions")
    rule_id: str = Field(..., description="Executing rule")
    rule_name: str = Field(..., description="Executing rule name")


class ActionExecutionResult(BaseModel):
    """Uniform outcome of a single action."""

    success: bool = Field(..., description="Whether the action succeeded")
    message: str = Field(default="", description="Human-readable outcome")
    data: dict[str, Any] | None = Field(default=None, description="Structured payload")
    error: str | None = Field(default=None, description="Failure detail")
    action_id: str | None = Field(default=None, description="Action this result belongs to")
    action_type: str | None = Field(default=None, description="Action type tag")

    @classmethod
    def ok(cls, message: str, data: dict[str, Any] | None = None) -> "ActionExecutionResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def failed(
        cls,
        message: str,
        error: str,
        data: dict[str, Any] | None = None,
    ) -> "ActionExecutionResult":
        return cls(success=False, message=message, error=error, data=data)


class RuleRunReport(BaseModel):
    """What happened to one matched rule during message processing."""

    rule_id: str
    rule_name: str
    priority: int
    success: bool
    execution_time_ms: float = Field(default=0.0, ge=0.0)
    results: list[ActionExecutionResult] = Field(default_factory=list)
    error: str | None = None


class ProcessingReport(BaseModel):
    """Result of processing one inbound message for a tenant."""

    tenant_id: str
    message_id: str
    evaluated_rule_ids: list[str] = Field(default_factory=list)
    runs: list[RuleRunReport] = Field(default_factory=list)
    ai_analysis: AIAnalysis | None = None
    short_circuited_by: str | None = Field(
        default=None,
        description="High-priority rule that stopped evaluation",
    )
    timed_out: bool = False
    error: str | None = None
    elapsed_ms: float = 0.0

    @property
    def matched_rule_ids(self) -> list[str]:
        return [run.rule_id for run in self.runs]


class RuleTestResult(BaseModel):
    """Dry-run outcome of one rule against a sample message."""

    rule_id: str
    matched: bool
    execution_time_ms: float = Field(default=0.0, ge=0.0)
    error: str | None = None
    ai_analysis: AIAnalysis | None = None


class EngineMetrics(BaseModel):
    """In-memory per-tenant engine metrics."""

    messages_processed: int = 0
    rules_executed: int = 0
    actions_triggered: int = 0
    success_rate: float = Field(default=0.0, ge=0.0, le=100.0, description="Rolling average, percent")
    avg_execution_time: float = Field(default=0.0, ge=0.0, description="Rolling average, milliseconds")
    ai_analysis_count: int = 0
    last_execution_at: datetime | None = None
    execution_batches: int = Field(default=0, description="Messages that executed at least one rule")

    def record(
        self,
        rules_executed: int,
        successful_rules: int,
        actions_triggered: int,
        execution_time_ms: float,
        ai_calls: int,
        executed_at: datetime,
    ) -> None:
        """Fold one process_message call into the metrics."""
        self.messages_processed += 1
        self.ai_analysis_count += ai_calls
        if rules_executed == 0:
            return

        self.rules_executed += rules_executed
        self.actions_triggered += actions_triggered
        self.execution_batches += 1
        batch_rate = successful_rules / rules_executed * 100.0
        self.success_rate += (batch_rate - self.success_rate) / self.execution_batches
        self.avg_execution_time += (execution_time_ms - self.avg_execution_time) / self.execution_batches
        self.last_execution_at = executed_at
