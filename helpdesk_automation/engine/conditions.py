"""Condition evaluation against message and AI analysis fields."""

import re
from functools import lru_cache
from typing import Any

from helpdesk_automation.core.logging import get_logger
from helpdesk_automation.models.analysis import AIAnalysis
from helpdesk_automation.models.message import InboundMessage
from helpdesk_automation.models.rule import Condition, ConditionField, ConditionOperator
from helpdesk_automation.observability.metrics import CONDITION_ERRORS

logger = get_logger(__name__)


def extract_field(
    field: ConditionField,
    message: InboundMessage,
    analysis: AIAnalysis | None,
) -> Any | None:
    """Read the value a condition inspects.

    Args:
        field: Field to read
        message: Normalized message
        analysis: AI analysis, if any

    Returns:
        Field value, or None when unavailable
    """
    if field == ConditionField.CONTENT:
        return message.content
    if field == ConditionField.SENDER:
        return message.sender
    if field == ConditionField.SUBJECT:
        return message.subject
    if field == ConditionField.CHANNEL:
        return message.channel
    if field == ConditionField.PRIORITY:
        return message.priority

    if analysis is None:
        return None
    if field == ConditionField.AI_INTENT:
        return analysis.intent
    if field == ConditionField.AI_SENTIMENT:
        return analysis.sentiment
    if field == ConditionField.AI_URGENCY:
        return analysis.urgency
    if field == ConditionField.AI_CATEGORY:
        return analysis.category
    if field == ConditionField.AI_CONFIDENCE:
        return analysis.confidence
    return None


@lru_cache(maxsize=512)
def _compile(pattern: str, flags: int) -> re.Pattern[str]:
    return re.compile(pattern, flags)


def _to_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def evaluate_condition(
    condition: Condition,
    message: InboundMessage,
    analysis: AIAnalysis | None,
    rule_id: str | None = None,
) -> bool:
    """Evaluate one condition. Never raises; bad configuration yields False.

    Args:
        condition: Condition to evaluate
        message: Normalized message
        analysis: AI analysis, if any
        rule_id: Owning rule, for log context

    Returns:
        Whether the condition holds
    """
    if condition.field.is_ai_field and analysis is None:
        CONDITION_ERRORS.labels(reason="missing_analysis").inc()
        logger.warning(
            "AI field condition evaluated without analysis",
            rule_id=rule_id,
            field=condition.field.value,
        )
        return False

    actual = extract_field(condition.field, message, analysis)
    if actual is None:
        return False

    operator = condition.operator

    if operator in (ConditionOperator.GREATER_THAN, ConditionOperator.LESS_THAN):
        left = _to_number(actual)
        right = _to_number(condition.value)
        if left is None or right is None:
            CONDITION_ERRORS.labels(reason="not_numeric").inc()
            logger.debug(
                "Numeric comparison on non-numeric value",
                rule_id=rule_id,
                field=condition.field.value,
                actual=actual,
                expected=condition.value,
            )
            return False
        return left > right if operator == ConditionOperator.GREATER_THAN else left < right

    if operator == ConditionOperator.REGEX:
        flags = 0 if condition.case_sensitive else re.IGNORECASE
        try:
            pattern = _compile(str(condition.value), flags)
        except re.error as e:
            CONDITION_ERRORS.labels(reason="invalid_regex").inc()
            logger.warning(
                "Invalid regex in condition",
                rule_id=rule_id,
                field=condition.field.value,
                pattern=str(condition.value),
                error=str(e),
            )
            return False
        return pattern.search(str(actual)) is not None

    value = str(actual)
    expected = str(condition.value)
    if not condition.case_sensitive:
        value = value.lower()
        expected = expected.lower()

    if operator == ConditionOperator.EQUALS:
        return value == expected
    if operator == ConditionOperator.CONTAINS:
        return expected in value
    if operator == ConditionOperator.STARTS_WITH:
        return value.startswith(expected)
    if operator == ConditionOperator.ENDS_WITH:
        return value.endswith(expected)

    logger.warning("Unknown condition operator", rule_id=rule_id, operator=operator)
    return False


def evaluate_conditions(
    conditions: list[Condition],
    message: InboundMessage,
    analysis: AIAnalysis | None,
    rule_id: str | None = None,
) -> bool:
    """AND all conditions; an empty list matches."""
    return all(evaluate_condition(c, message, analysis, rule_id) for c in conditions)
