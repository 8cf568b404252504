"""Automation rule domain models."""

import re
from datetime import datetime, time, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TriggerKind(str, Enum):
    """Coarse message gate evaluated before any condition."""

    MESSAGE_RECEIVED = "message_received"
    EMAIL_RECEIVED = "email_received"
    KEYWORD_MATCH = "keyword_match"
    AI_ANALYSIS = "ai_analysis"
    TIME_BASED = "time_based"
    CHANNEL_SPECIFIC = "channel_specific"


class ConditionField(str, Enum):
    """Message or AI analysis field a condition inspects."""

    CONTENT = "content"
    SENDER = "sender"
    SUBJECT = "subject"
    CHANNEL = "channel"
    PRIORITY = "priority"
    AI_INTENT = "ai_intent"
    AI_SENTIMENT = "ai_sentiment"
    AI_URGENCY = "ai_urgency"
    AI_CATEGORY = "ai_category"
    AI_CONFIDENCE = "ai_confidence"

    @property
    def is_ai_field(self) -> bool:
        return self.value.startswith("ai_")


class ConditionOperator(str, Enum):
    """Comparison operator."""

    EQUALS = "equals"
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    REGEX = "regex"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"


class Condition(BaseModel):
    """Single field/operator/value comparison."""

    field: ConditionField = Field(..., description="Field to inspect")
    operator: ConditionOperator = Field(..., description="Comparison operator")
    value: Any = Field(..., description="Expected value")
    case_sensitive: bool = Field(default=False, description="Case-sensitive comparison")


class TimeWindow(BaseModel):
    """Daily time window, may wrap midnight (e.g. 18:00-09:00)."""

    start: time = Field(..., description="Window start (inclusive)")
    end: time = Field(..., description="Window end (exclusive)")
    weekdays: list[int] = Field(
        default_factory=list,
        description="Allowed weekdays, 0=Monday; empty means every day",
    )

    @field_validator("weekdays")
    @classmethod
    def validate_weekdays(cls, value: list[int]) -> list[int]:
        if any(day < 0 or day > 6 for day in value):
            raise ValueError("weekdays must be between 0 (Monday) and 6 (Sunday)")
        return value

    def contains(self, moment: datetime) -> bool:
        """Check whether a timestamp falls inside the window.

        For windows wrapping midnight, the part after midnight belongs to the
        previous day: a Friday 18:00-09:00 window covers Saturday 02:00.
        """
        current = moment.time().replace(tzinfo=None)
        day = moment.weekday()

        if self.start <= self.end:
            inside = self.start <= current < self.end
        elif current >= self.start:
            inside = True
        elif current < self.end:
            inside = True
            day = (day - 1) % 7
        else:
            inside = False

        return inside and (not self.weekdays or day in self.weekdays)


class Trigger(BaseModel):
    """Rule trigger: gate kind plus ANDed conditions."""

    kind: TriggerKind = Field(default=TriggerKind.MESSAGE_RECEIVED, description="Gate kind")
    conditions: list[Condition] = Field(default_factory=list, description="ANDed conditions")
    ai_enabled: bool = Field(default=False, description="Whether the trigger needs AI analysis")
    keywords: list[str] = Field(default_factory=list, description="Keywords for keyword_match")
    channels: list[str] = Field(default_factory=list, description="Channels for channel_specific")
    time_window: TimeWindow | None = Field(default=None, description="Window for time_based")


class Action(BaseModel):
    """Side-effecting operation dispatched when a rule matches."""

    id: str = Field(..., description="Action identifier")
    type: str = Field(..., min_length=1, description="Action type tag, e.g. 'create_ticket'")
    target: str | None = Field(default=None, description="Recipient or destination")
    params: dict[str, Any] = Field(default_factory=dict, description="Handler parameters")
    priority: int = Field(default=1, description="Execution order among the rule's actions (ascending)")
    ai_enabled: bool = Field(default=False, description="Whether the handler may call the AI port")


class RuleStats(BaseModel):
    """Execution statistics, only ever incremented."""

    execution_count: int = Field(default=0, ge=0)
    success_count: int = Field(default=0, ge=0)
    last_executed_at: datetime | None = None

    @model_validator(mode="after")
    def validate_counts(self) -> "RuleStats":
        if self.success_count > self.execution_count:
            raise ValueError("success_count cannot exceed execution_count")
        return self


class RuleMetadata(BaseModel):
    """Rule metadata."""

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    created_by: str = Field(default="system")
    version: int = Field(default=1)


class Rule(BaseModel):
    """Complete automation rule."""

    id: str = Field(..., description="Rule identifier, unique per tenant")
    tenant_id: str = Field(..., description="Owning tenant")
    name: str = Field(..., description="Rule name")
    description: str = Field(default="", description="Rule description")
    trigger: Trigger = Field(default_factory=Trigger, description="Trigger specification")
    actions: list[Action] = Field(default_factory=list, description="Actions to dispatch")
    enabled: bool = Field(default=True, description="Whether rule is enabled")
    priority: int = Field(default=5, ge=1, le=10, description="Rule priority (higher runs first)")
    ai_enabled: bool = Field(default=False, description="Mirror of trigger.ai_enabled")
    stats: RuleStats = Field(default_factory=RuleStats, description="Execution statistics")
    metadata: RuleMetadata = Field(default_factory=RuleMetadata, description="Rule metadata")

    @model_validator(mode="after")
    def sync_ai_flag(self) -> "Rule":
        """Keep rule-level and trigger-level AI flags in agreement."""
        ai = self.ai_enabled or self.trigger.ai_enabled or self.trigger.kind == TriggerKind.AI_ANALYSIS
        self.ai_enabled = ai
        self.trigger.ai_enabled = ai
        return self

    def sorted_actions(self) -> list[Action]:
        """Actions in execution order (ascending priority, stable)."""
        return sorted(self.actions, key=lambda action: action.priority)

    def record_execution(self, success: bool, executed_at: datetime | None = None) -> None:
        """Bump execution statistics after a run."""
        self.stats.execution_count += 1
        if success:
            self.stats.success_count += 1
        self.stats.last_executed_at = executed_at or _utcnow()

    def configuration_errors(self) -> list[str]:
        """Static configuration problems that would make conditions fail."""
        errors: list[str] = []
        for index, condition in enumerate(self.trigger.conditions):
            if condition.field.is_ai_field and not self.ai_enabled:
                errors.append(
                    f"Condition {index} uses AI field '{condition.field.value}' but the rule is not AI-enabled"
                )
            if condition.operator == ConditionOperator.REGEX:
                try:
                    re.compile(str(condition.value))
                except re.error as e:
                    errors.append(f"Condition {index} has an invalid regex pattern: {e}")
        return errors
