"""Records handed to the channel and helpdesk layers for delivery."""

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field


class OutboundReply(BaseModel):
    """Reply (or forwarded message) awaiting channel delivery."""

    reply_id: str = Field(..., description="Reply identifier")
    tenant_id: str = Field(..., description="Tenant")
    rule_id: str = Field(..., description="Rule that produced the reply")
    channel: str = Field(..., description="Delivery channel")
    recipient: str = Field(..., description="Recipient address or handle")
    body: str = Field(..., description="Reply text")
    subject: str | None = Field(default=None, description="Subject for email replies")
    in_reply_to: str | None = Field(default=None, description="Original message id")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class HelpdeskCommand(BaseModel):
    """State change requested from the helpdesk (tagging, assignment, ...)."""

    command_id: str = Field(..., description="Command identifier")
    tenant_id: str = Field(..., description="Tenant")
    rule_id: str = Field(..., description="Rule that requested the change")
    command: Literal["add_tag", "assign_user", "escalate"] = Field(..., description="Command name")
    message_id: str | None = Field(default=None, description="Message the command refers to")
    payload: dict[str, Any] = Field(default_factory=dict, description="Command arguments")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
