"""Ticket creation through the helpdesk REST API."""

import httpx

from helpdesk_automation.actions.handlers.base import ActionHandler, render_template
from helpdesk_automation.core.config import Settings, get_settings
from helpdesk_automation.core.logging import get_logger
from helpdesk_automation.models.analysis import AIAnalysis
from helpdesk_automation.models.execution import ActionExecutionResult, ExecutionContext
from helpdesk_automation.models.rule import Action

logger = get_logger(__name__)

URGENCY_TO_PRIORITY = {
    "critical": "urgent",
    "high": "high",
    "medium": "medium",
    "low": "low",
}

MAX_SUBJECT_LENGTH = 120


def ticket_priority(action: Action, analysis: AIAnalysis | None) -> str:
    """Explicit ``priority`` param first, then the AI urgency, else medium."""
    explicit = action.params.get("priority")
    if explicit:
        return str(explicit)
    if analysis is not None:
        return URGENCY_TO_PRIORITY.get(analysis.urgency, "medium")
    return "medium"


class TicketHandler(ActionHandler):
    """Creates a helpdesk ticket for the message."""

    def __init__(self, settings: Settings | None = None, client: httpx.AsyncClient | None = None):
        self._settings = settings or get_settings()
        self._client = client or httpx.AsyncClient(timeout=10.0)

    @property
    def action_types(self) -> tuple[str, ...]:
        return ("create_ticket",)

    async def handle(self, action: Action, context: ExecutionContext) -> ActionExecutionResult:
        message = context.message_data
        analysis = context.ai_analysis
        payload = {
            "subject": self._subject(action, context),
            "description": self._description(message.get("content") or "", analysis),
            "priority": ticket_priority(action, analysis),
            "category": action.params.get("category") or (analysis.category if analysis else "general"),
            "subcategory": action.params.get("subcategory"),
            "requester": message.get("sender"),
            "channel": message.get("channel"),
            "tags": list(action.params.get("tags") or []),
            "source_message_id": message.get("message_id"),
            "metadata": {
                "rule_id": context.rule_id,
                "rule_name": context.rule_name,
                "ai_intent": analysis.intent if analysis else None,
                "ai_sentiment": analysis.sentiment if analysis else None,
            },
        }

        url = f"{self._settings.helpdesk_api_base_url.rstrip('/')}/api/tickets"
        response = await self._client.post(url, json=payload, headers={"X-Tenant-ID": context.tenant_id})

        if response.status_code >= 400:
            logger.warning(
                "Ticket API rejected request",
                rule_id=context.rule_id,
                status_code=response.status_code,
            )
            return ActionExecutionResult.failed(
                f"Ticket API returned {response.status_code}",
                error=response.text[:200],
            )

        body = response.json() if response.content else {}
        ticket_id = body.get("id") or body.get("ticket_id")
        logger.info("Ticket created", rule_id=context.rule_id, ticket_id=ticket_id)
        return ActionExecutionResult.ok(
            "Ticket created",
            {"ticket_id": ticket_id, "priority": payload["priority"]},
        )

    async def close(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _subject(action: Action, context: ExecutionContext) -> str:
        message = context.message_data
        template = action.params.get("subject")
        if template:
            subject = render_template(str(template), context)
        elif message.get("subject"):
            subject = message["subject"]
        else:
            channel = message.get("channel") or "message"
            subject = f"{channel.capitalize()} from {message.get('sender') or 'unknown sender'}"
        return subject[:MAX_SUBJECT_LENGTH]

    @staticmethod
    def _description(content: str, analysis: AIAnalysis | None) -> str:
        if analysis is None or analysis.confidence == 0:
            return content
        return (
            f"{content}\n\n"
            f"---\n"
            f"AI summary: {analysis.summary}\n"
            f"Intent: {analysis.intent} | Sentiment: {analysis.sentiment} | Urgency: {analysis.urgency}"
        )
