"""Team notification domain models."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


class NotifyTargetType(str, Enum):
    """Notification target type."""

    TELEGRAM = "telegram"
    WECOM = "wecom"
    EMAIL = "email"


class NotifyTarget(BaseModel):
    """Notification target configuration (from ``notify_team`` params)."""

    type: NotifyTargetType = Field(..., description="Target type")
    user_id: str | None = Field(default=None, description="Telegram user ID")
    chat_id: str | None = Field(default=None, description="Telegram chat/group ID")
    webhook_key: str | None = Field(default=None, description="WeCom webhook key")
    to: list[str] | None = Field(default=None, description="Email recipients")


class TeamNotification(BaseModel):
    """Rendered notification about an automation event."""

    notification_id: str = Field(..., description="Notification identifier")
    tenant_id: str = Field(..., description="Tenant")
    rule_id: str = Field(..., description="Rule that produced it")
    title: str = Field(..., description="Short title / email subject")
    message: str = Field(..., description="Markdown body")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
