"""Automation API schemas."""

from typing import Any

from pydantic import BaseModel, Field


class ReloadResponse(BaseModel):
    tenant_id: str
    rule_count: int


class RuleTemplate(BaseModel):
    """Ready-made rule definition offered to rule authors."""

    id: str
    name: str
    description: str
    category: str
    rule: dict[str, Any] = Field(..., description="RuleCreate fields without name/description")
