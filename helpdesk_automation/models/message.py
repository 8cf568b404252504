"""Inbound message domain model."""

from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field


class InboundMessage(BaseModel):
    """Normalized inbound message produced by the ingestion layer."""

    message_id: str = Field(
        default_factory=lambda: f"msg_{uuid4().hex[:16]}",
        description="Message unique identifier for idempotency",
    )
    content: str = Field(default="", description="Message body")
    sender: str = Field(default="", description="Sender address or handle")
    subject: str | None = Field(default=None, description="Subject line (email)")
    channel: str = Field(default="", description="Channel tag, e.g. 'email', 'whatsapp', 'webhook'")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Message receipt timestamp",
    )
    metadata: dict[str, Any] = Field(default_factory=dict, description="Opaque ingestion metadata")

    @property
    def priority(self) -> str | None:
        """Priority hint supplied by the ingestion layer, if any."""
        value = self.metadata.get("priority")
        return None if value is None else str(value)

    def to_snapshot(self) -> dict[str, Any]:
        """Plain snapshot passed to action handlers."""
        return {
            "message_id": self.message_id,
            "content": self.content,
            "sender": self.sender,
            "subject": self.subject,
            "channel": self.channel,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
        }
