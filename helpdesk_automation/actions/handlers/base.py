"""Base class for action handlers."""

import re
from abc import ABC, abstractmethod
from uuid import uuid4

from helpdesk_automation.models.execution import ActionExecutionResult, ExecutionContext
from helpdesk_automation.models.rule import Action

_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


class ActionHandler(ABC):
    """Abstract base class for action handlers.

    Handlers may raise; the executor turns exceptions and timeouts into
    failure results.
    """

    @property
    @abstractmethod
    def action_types(self) -> tuple[str, ...]:
        """Action type tags served by this handler."""
        pass

    @abstractmethod
    async def handle(self, action: Action, context: ExecutionContext) -> ActionExecutionResult:
        """Perform the action.

        Args:
            action: Action configuration
            context: Shared execution context

        Returns:
            Action result
        """
        pass

    async def close(self) -> None:
        """Clean up resources. Override if needed."""
        pass


def template_variables(context: ExecutionContext) -> dict[str, str]:
    """Placeholder values available to reply and notification templates."""
    message = context.message_data
    variables = {
        "sender": message.get("sender") or "",
        "channel": message.get("channel") or "",
        "content": message.get("content") or "",
        "subject": message.get("subject") or "",
        "timestamp": message.get("timestamp") or "",
        "message_id": message.get("message_id") or "",
        "rule_name": context.rule_name,
        "tenant_id": context.tenant_id,
    }
    analysis = context.ai_analysis
    if analysis is not None:
        variables.update({
            "ai_intent": analysis.intent,
            "ai_sentiment": analysis.sentiment,
            "ai_urgency": analysis.urgency,
            "ai_category": analysis.category,
            "ai_summary": analysis.summary,
        })
    return variables


def render_template(template: str, context: ExecutionContext) -> str:
    """Replace ``{{name}}`` placeholders; unknown names are left untouched."""
    variables = template_variables(context)

    def replace(match: re.Match) -> str:
        return variables.get(match.group(1), match.group(0))

    return _PLACEHOLDER.sub(replace, template)


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid4().hex[:12]}"
