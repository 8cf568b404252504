"""AI analysis domain model."""

from pydantic import BaseModel, Field


class AIAnalysis(BaseModel):
    """Classification of one inbound message."""

    intent: str = Field(default="other", description="e.g. 'complaint', 'question', 'purchase'")
    sentiment: str = Field(default="neutral", description="positive / neutral / negative")
    urgency: str = Field(default="medium", description="low / medium / high / critical")
    category: str = Field(default="general", description="Suggested helpdesk category")
    keywords: list[str] = Field(default_factory=list, description="Salient keywords")
    confidence: float = Field(default=0.0, ge=0.0, le=1.0, description="Classifier confidence")
    summary: str = Field(default="", description="One-sentence summary")
    requires_human_attention: bool = Field(default=False, description="Needs an agent")
    language: str = Field(default="unknown", description="Detected language code")

    @classmethod
    def fallback(cls, reason: str = "") -> "AIAnalysis":
        """Neutral, zero-confidence analysis used when the provider fails."""
        return cls(summary=f"Fallback analysis: {reason}" if reason else "")
