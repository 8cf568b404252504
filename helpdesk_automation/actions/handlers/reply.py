"""Automatic replies, templated or AI-generated."""

from helpdesk_automation.actions.handlers.base import ActionHandler, new_id, render_template
from helpdesk_automation.core.logging import get_logger
from helpdesk_automation.engine.ports import AIAnalysisPort
from helpdesk_automation.models.execution import ActionExecutionResult, ExecutionContext
from helpdesk_automation.models.outbound import OutboundReply
from helpdesk_automation.models.rule import Action
from helpdesk_automation.storage.auxiliary import OutboundQueue

logger = get_logger(__name__)


def _reply_subject(context: ExecutionContext) -> str | None:
    subject = context.message_data.get("subject")
    if not subject:
        return None
    return subject if subject.lower().startswith("re:") else f"Re: {subject}"


def build_reply(action: Action, context: ExecutionContext, body: str) -> OutboundReply:
    message = context.message_data
    return OutboundReply(
        reply_id=new_id("reply"),
        tenant_id=context.tenant_id,
        rule_id=context.rule_id,
        channel=action.params.get("channel") or message.get("channel") or "",
        recipient=message.get("sender") or "",
        body=body,
        subject=_reply_subject(context),
        in_reply_to=message.get("message_id"),
    )


class AutoReplyHandler(ActionHandler):
    """Queues a reply rendered from the action's template."""

    def __init__(self, queue: OutboundQueue):
        self._queue = queue

    @property
    def action_types(self) -> tuple[str, ...]:
        return ("send_auto_reply", "auto_reply")

    async def handle(self, action: Action, context: ExecutionContext) -> ActionExecutionResult:
        template = action.params.get("template") or action.params.get("message")
        if not template:
            return ActionExecutionResult.failed("Auto reply has no template", error="missing_template")

        if not context.message_data.get("sender"):
            return ActionExecutionResult.failed("Message has no sender to reply to", error="missing_recipient")

        reply = build_reply(action, context, render_template(str(template), context))
        await self._queue.enqueue_reply(reply)

        logger.info("Auto reply queued", rule_id=context.rule_id, reply_id=reply.reply_id)
        return ActionExecutionResult.ok(
            "Auto reply queued",
            {"reply_id": reply.reply_id, "channel": reply.channel, "recipient": reply.recipient},
        )


class AIResponseHandler(ActionHandler):
    """Queues a reply drafted by the AI provider from the shared analysis."""

    def __init__(self, ai_port: AIAnalysisPort, queue: OutboundQueue):
        self._ai_port = ai_port
        self._queue = queue

    @property
    def action_types(self) -> tuple[str, ...]:
        return ("ai_response",)

    async def handle(self, action: Action, context: ExecutionContext) -> ActionExecutionResult:
        analysis = context.ai_analysis
        if analysis is None:
            return ActionExecutionResult.failed(
                "AI response requires an AI-enabled rule",
                error="missing_analysis",
            )

        message = context.message_data
        options = {
            "channel": message.get("channel"),
            "sender": message.get("sender"),
            "tone": action.params.get("tone"),
            "language": action.params.get("language"),
            "custom_instructions": action.params.get("custom_instructions"),
        }
        body = await self._ai_port.generate_response(analysis, message.get("content") or "", options)
        if not body:
            return ActionExecutionResult.failed("AI returned an empty reply", error="empty_response")

        reply = build_reply(action, context, body)
        await self._queue.enqueue_reply(reply)

        logger.info("AI response queued", rule_id=context.rule_id, reply_id=reply.reply_id)
        return ActionExecutionResult.ok(
            "AI response queued",
            {"reply_id": reply.reply_id, "channel": reply.channel, "length": len(body)},
        )
