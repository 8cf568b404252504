"""Tests for condition evaluation."""

from datetime import datetime, timezone

import pytest

from helpdesk_automation.engine.conditions import evaluate_condition, evaluate_conditions
from helpdesk_automation.models.analysis import AIAnalysis
from helpdesk_automation.models.message import InboundMessage
from helpdesk_automation.models.rule import Condition, ConditionField, ConditionOperator
from helpdesk_automation.observability.metrics import CONDITION_ERRORS


def _message(**overrides) -> InboundMessage:
    fields = {
        "message_id": "msg_1",
        "content": "URGENT: my order #123 never arrived",
        "sender": "bob@vip-domain.com",
        "subject": "Order problem",
        "channel": "whatsapp",
        "timestamp": datetime(2026, 1, 12, 10, 0, tzinfo=timezone.utc),
        "metadata": {"priority": "urgent"},
    }
    fields.update(overrides)
    return InboundMessage(**fields)


def _cond(field: str, operator: str, value, case_sensitive: bool = False) -> Condition:
    return Condition(
        field=ConditionField(field),
        operator=ConditionOperator(operator),
        value=value,
        case_sensitive=case_sensitive,
    )


@pytest.mark.parametrize(
    ("condition", "expected"),
    [
        (_cond("content", "contains", "urgent"), True),
        (_cond("content", "contains", "urgent", case_sensitive=True), False),
        (_cond("content", "starts_with", "urgent:"), True),
        (_cond("content", "ends_with", "ARRIVED"), True),
        (_cond("channel", "equals", "WhatsApp"), True),
        (_cond("channel", "equals", "email"), False),
        (_cond("sender", "regex", r"@vip-domain\.com$"), True),
        (_cond("content", "regex", r"order #\d+"), True),
        (_cond("priority", "equals", "urgent"), True),
    ],
)
def test_string_operators(condition: Condition, expected: bool) -> None:
    assert evaluate_condition(condition, _message(), None) is expected


def test_missing_subject_is_false() -> None:
    condition = _cond("subject", "contains", "order")

    assert evaluate_condition(condition, _message(subject=None), None) is False


def test_invalid_regex_is_false_and_counted() -> None:
    before = CONDITION_ERRORS.labels(reason="invalid_regex")._value.get()

    result = evaluate_condition(_cond("content", "regex", "(unclosed"), _message(), None, rule_id="r1")

    assert result is False
    assert CONDITION_ERRORS.labels(reason="invalid_regex")._value.get() == before + 1


def test_numeric_operators_on_ai_confidence() -> None:
    analysis = AIAnalysis(intent="complaint", confidence=0.75)

    assert evaluate_condition(_cond("ai_confidence", "greater_than", 0.6), _message(), analysis) is True
    assert evaluate_condition(_cond("ai_confidence", "less_than", "0.5"), _message(), analysis) is False


def test_numeric_operator_on_text_is_false() -> None:
    assert evaluate_condition(_cond("content", "greater_than", 3), _message(), None) is False


def test_ai_field_without_analysis_is_false() -> None:
    condition = _cond("ai_intent", "equals", "complaint")

    assert evaluate_condition(condition, _message(), None) is False
    assert evaluate_condition(condition, _message(), AIAnalysis(intent="complaint")) is True


def test_conditions_are_anded_and_empty_matches() -> None:
    message = _message()
    passing = _cond("content", "contains", "order")
    failing = _cond("channel", "equals", "email")

    assert evaluate_conditions([], message, None) is True
    assert evaluate_conditions([passing], message, None) is True
    assert evaluate_conditions([passing, failing], message, None) is False
