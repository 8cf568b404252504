"""Rule API schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from helpdesk_automation.models.analysis import AIAnalysis
from helpdesk_automation.models.message import InboundMessage
from helpdesk_automation.models.rule import Action, RuleMetadata, RuleStats, Trigger


class RuleCreate(BaseModel):
    """Schema for creating (or replacing) a rule."""

    name: str = Field(..., min_length=1, max_length=100, description="Rule name")
    description: str = Field(default="", max_length=500, description="Rule description")
    enabled: bool = Field(default=True, description="Whether rule is enabled")
    priority: int = Field(default=5, ge=1, le=10, description="Rule priority")
    ai_enabled: bool = Field(default=False, description="Whether the rule uses AI analysis")
    trigger: Trigger = Field(..., description="Trigger specification")
    actions: list[Action] = Field(..., min_length=1, description="Actions to dispatch")


class RuleUpdate(BaseModel):
    """Schema for partially updating a rule."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    enabled: bool | None = None
    priority: int | None = Field(default=None, ge=1, le=10)
    ai_enabled: bool | None = None
    trigger: Trigger | None = None
    actions: list[Action] | None = Field(default=None, min_length=1)


class RuleStatusUpdate(BaseModel):
    """Schema for updating rule enabled status."""

    enabled: bool = Field(..., description="Whether rule is enabled")


class RuleResponse(BaseModel):
    """Schema for rule response."""

    id: str
    tenant_id: str
    name: str
    description: str
    enabled: bool
    priority: int
    ai_enabled: bool
    trigger: Trigger
    actions: list[Action]
    stats: RuleStats
    metadata: RuleMetadata


class RuleCreateResponse(BaseModel):
    """Schema for rule creation response."""

    id: str = Field(..., description="Created rule ID")
    created_at: datetime = Field(..., description="Creation timestamp")


class RuleTestRequest(BaseModel):
    """Sample message for a rule dry run."""

    message: InboundMessage = Field(..., description="Sample inbound message")


class RuleTestResponse(BaseModel):
    """Dry-run outcome."""

    rule_id: str
    matched: bool
    execution_time_ms: float
    error: str | None = None
    ai_analysis: AIAnalysis | None = None


class ValidateRequest(BaseModel):
    """Request schema for rule validation."""

    rule: dict[str, Any] = Field(..., description="Rule definition (RuleCreate shape) to validate")


class ValidateResponse(BaseModel):
    """Response schema for rule validation."""

    valid: bool = Field(..., description="Whether configuration is valid")
    errors: list[str] = Field(default_factory=list, description="Validation errors")
