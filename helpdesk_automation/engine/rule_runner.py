"""Evaluation and execution of a single rule."""

from dataclasses import dataclass, field

from helpdesk_automation.ai.analyzer import analyze_safely
from helpdesk_automation.core.logging import get_logger
from helpdesk_automation.engine.conditions import evaluate_conditions
from helpdesk_automation.engine.ports import ActionExecutorPort, AIAnalysisPort
from helpdesk_automation.models.analysis import AIAnalysis
from helpdesk_automation.models.execution import ActionExecutionResult, ExecutionContext
from helpdesk_automation.models.message import InboundMessage
from helpdesk_automation.models.rule import Rule, Trigger, TriggerKind
from helpdesk_automation.observability.metrics import RULES_EVALUATED

logger = get_logger(__name__)

DEFAULT_AI_TIMEOUT = 20.0


@dataclass
class RuleEvaluation:
    """Result of evaluating one rule against one message."""

    matched: bool
    analysis: AIAnalysis | None = None
    reason: str = ""


@dataclass
class RuleExecutionOutcome:
    """Result of running a matched rule's actions."""

    results: list[ActionExecutionResult] = field(default_factory=list)
    error: str | None = None

    @property
    def success(self) -> bool:
        """Batch-level success: no exception escaped the executor.

        Individual failed actions do not make the execution a failure.
        """
        return self.error is None


def trigger_gate(trigger: Trigger, message: InboundMessage, analysis: AIAnalysis | None) -> bool:
    """Coarse per-kind filter applied before conditions.

    Args:
        trigger: Rule trigger
        message: Normalized message
        analysis: AI analysis available to the rule

    Returns:
        Whether the message passes the gate
    """
    kind = trigger.kind

    if kind == TriggerKind.MESSAGE_RECEIVED:
        return True

    if kind == TriggerKind.EMAIL_RECEIVED:
        return message.channel.lower() == "email" or bool(message.subject and message.subject.strip())

    if kind == TriggerKind.KEYWORD_MATCH:
        if not trigger.keywords:
            return True
        content = message.content.lower()
        return any(keyword.lower() in content for keyword in trigger.keywords if keyword)

    if kind == TriggerKind.AI_ANALYSIS:
        return analysis is not None

    if kind == TriggerKind.TIME_BASED:
        if trigger.time_window is None:
            return True
        return trigger.time_window.contains(message.timestamp)

    if kind == TriggerKind.CHANNEL_SPECIFIC:
        if not trigger.channels:
            return True
        return message.channel.lower() in {channel.lower() for channel in trigger.channels}

    return False


async def evaluate_rule(
    rule: Rule,
    message: InboundMessage,
    analysis: AIAnalysis | None,
    ai_port: AIAnalysisPort | None,
    ai_timeout: float = DEFAULT_AI_TIMEOUT,
) -> RuleEvaluation:
    """Decide whether a rule matches a message.

    Disabled rules return immediately without touching the AI port. An
    AI-enabled rule without a supplied analysis calls the port once; the
    returned evaluation carries that analysis so the caller can reuse it for
    execution.

    Args:
        rule: Rule to evaluate
        message: Normalized message
        analysis: Analysis shared by the caller, if any
        ai_port: Analysis provider for AI-enabled rules
        ai_timeout: Deadline for the AI call in seconds

    Returns:
        Evaluation with the match flag and the analysis used
    """
    if not rule.enabled:
        return RuleEvaluation(matched=False, reason="Rule disabled")

    RULES_EVALUATED.labels(trigger_kind=rule.trigger.kind.value).inc()

    if rule.ai_enabled:
        if analysis is None and ai_port is not None:
            analysis = await analyze_safely(ai_port, message, ai_timeout)
    else:
        # Conditions of non-AI rules must be answerable from raw fields
        analysis = None

    if not trigger_gate(rule.trigger, message, analysis):
        return RuleEvaluation(
            matched=False,
            analysis=analysis,
            reason=f"Trigger gate '{rule.trigger.kind.value}' not passed",
        )

    if not evaluate_conditions(rule.trigger.conditions, message, analysis, rule.id):
        return RuleEvaluation(matched=False, analysis=analysis, reason="Conditions not met")

    return RuleEvaluation(matched=True, analysis=analysis, reason="Matched")


async def execute_rule(
    rule: Rule,
    message: InboundMessage,
    analysis: AIAnalysis | None,
    executor: ActionExecutorPort,
) -> RuleExecutionOutcome:
    """Dispatch a matched rule's actions in ascending action priority.

    Never raises: an exception escaping the executor is captured in
    ``outcome.error``.

    Args:
        rule: Matched rule
        message: Normalized message
        analysis: Analysis shared by all actions of this execution
        executor: Action executor

    Returns:
        Per-action results and the batch-level error, if any
    """
    context = ExecutionContext(
        tenant_id=rule.tenant_id,
        message_data=message.to_snapshot(),
        ai_analysis=analysis,
        rule_id=rule.id,
        rule_name=rule.name,
    )

    try:
        results = await executor.execute_actions(rule.sorted_actions(), context)
    except Exception as e:
        logger.error(
            "Action batch failed",
            rule_id=rule.id,
            tenant_id=rule.tenant_id,
            error=str(e),
            exc_info=True,
        )
        return RuleExecutionOutcome(error=str(e) or type(e).__name__)

    return RuleExecutionOutcome(results=results)
