"""Parser for AI classification responses."""

import json
import re

from pydantic import ValidationError

from helpdesk_automation.core.logging import get_logger
from helpdesk_automation.models.analysis import AIAnalysis

logger = get_logger(__name__)

_URGENCY_VALUES = {"low", "medium", "high", "critical"}
_SENTIMENT_VALUES = {"positive", "neutral", "negative"}


def parse_analysis_response(response: str) -> AIAnalysis:
    """Parse a model response into an analysis.

    Args:
        response: Raw model response text

    Returns:
        Parsed analysis; ``AIAnalysis.fallback()`` when the response is unusable
    """
    json_match = re.search(r"\{.*\}", response, re.DOTALL)
    if not json_match:
        logger.warning("No JSON found in AI response", response=response[:200])
        return AIAnalysis.fallback("no JSON in response")

    try:
        data = json.loads(json_match.group())
    except json.JSONDecodeError as e:
        logger.warning("JSON parse error in AI response", error=str(e))
        return AIAnalysis.fallback(f"JSON parse error: {e}")

    if not isinstance(data, dict):
        return AIAnalysis.fallback("response is not an object")

    try:
        confidence = float(data.get("confidence", 0.0))
    except (TypeError, ValueError):
        confidence = 0.0

    keywords = data.get("keywords") or []
    if isinstance(keywords, str):
        keywords = [k.strip() for k in keywords.split(",") if k.strip()]

    urgency = str(data.get("urgency", "medium")).lower()
    sentiment = str(data.get("sentiment", "neutral")).lower()

    human = data.get("requires_human_attention", False)
    if isinstance(human, str):
        human = human.lower() == "true"

    try:
        return AIAnalysis(
            intent=str(data.get("intent") or "other").lower(),
            sentiment=sentiment if sentiment in _SENTIMENT_VALUES else "neutral",
            urgency=urgency if urgency in _URGENCY_VALUES else "medium",
            category=str(data.get("category") or "general"),
            keywords=[str(k) for k in keywords][:8],
            confidence=max(0.0, min(1.0, confidence)),
            summary=str(data.get("summary") or ""),
            requires_human_attention=bool(human),
            language=str(data.get("language") or "unknown"),
        )
    except ValidationError as e:
        logger.warning("AI response failed validation", error=str(e))
        return AIAnalysis.fallback("invalid analysis fields")
