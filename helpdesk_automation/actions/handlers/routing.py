"""Forwarding and helpdesk state changes (tags, assignment, escalation)."""

from typing import Any

from helpdesk_automation.actions.handlers.base import ActionHandler, new_id, render_template
from helpdesk_automation.core.logging import get_logger
from helpdesk_automation.models.execution import ActionExecutionResult, ExecutionContext
from helpdesk_automation.models.outbound import HelpdeskCommand, OutboundReply
from helpdesk_automation.models.rule import Action
from helpdesk_automation.storage.auxiliary import OutboundQueue

logger = get_logger(__name__)


class ForwardHandler(ActionHandler):
    """Forwards the message to another address or handle."""

    def __init__(self, queue: OutboundQueue):
        self._queue = queue

    @property
    def action_types(self) -> tuple[str, ...]:
        return ("forward_message",)

    async def handle(self, action: Action, context: ExecutionContext) -> ActionExecutionResult:
        recipient = action.target or action.params.get("to")
        if not recipient:
            return ActionExecutionResult.failed("Forward has no target", error="missing_target")

        message = context.message_data
        body = message.get("content") or ""
        note = action.params.get("note")
        if note:
            body = f"{render_template(str(note), context)}\n\n{body}"

        subject = message.get("subject")
        forward = OutboundReply(
            reply_id=new_id("fwd"),
            tenant_id=context.tenant_id,
            rule_id=context.rule_id,
            channel=action.params.get("channel") or message.get("channel") or "",
            recipient=str(recipient),
            body=body,
            subject=f"Fwd: {subject}" if subject else None,
            in_reply_to=message.get("message_id"),
        )
        await self._queue.enqueue_reply(forward)

        logger.info("Message forwarded", rule_id=context.rule_id, recipient=forward.recipient)
        return ActionExecutionResult.ok(
            "Message forwarded",
            {"reply_id": forward.reply_id, "recipient": forward.recipient},
        )


class HelpdeskCommandHandler(ActionHandler):
    """Requests tagging, assignment and escalation from the helpdesk."""

    def __init__(self, queue: OutboundQueue):
        self._queue = queue

    @property
    def action_types(self) -> tuple[str, ...]:
        return ("add_tag", "assign_user", "escalate")

    async def handle(self, action: Action, context: ExecutionContext) -> ActionExecutionResult:
        if action.type == "add_tag":
            payload = self._tag_payload(action)
        elif action.type == "assign_user":
            payload = self._assign_payload(action)
        else:
            payload = self._escalation_payload(action, context)

        if payload is None:
            return ActionExecutionResult.failed(
                f"{action.type} is missing its target",
                error="missing_target",
            )

        command = HelpdeskCommand(
            command_id=new_id("cmd"),
            tenant_id=context.tenant_id,
            rule_id=context.rule_id,
            command=action.type,
            message_id=context.message_data.get("message_id"),
            payload=payload,
        )
        await self._queue.enqueue_command(command)

        logger.info("Helpdesk command queued", rule_id=context.rule_id, command=action.type, payload=payload)
        return ActionExecutionResult.ok(
            f"{action.type} queued",
            {"command_id": command.command_id, **payload},
        )

    @staticmethod
    def _tag_payload(action: Action) -> dict[str, Any] | None:
        tags = action.params.get("tags") or action.target
        if isinstance(tags, str):
            tags = [tags]
        tags = [str(tag) for tag in tags or [] if tag]
        return {"tags": tags} if tags else None

    @staticmethod
    def _assign_payload(action: Action) -> dict[str, Any] | None:
        user_id = action.target or action.params.get("user_id")
        return {"user_id": str(user_id)} if user_id else None

    @staticmethod
    def _escalation_payload(action: Action, context: ExecutionContext) -> dict[str, Any]:
        payload: dict[str, Any] = {"level": action.params.get("level") or "supervisor"}
        if action.target:
            payload["target"] = action.target
        reason = action.params.get("reason") or "Escalated by rule {{rule_name}}"
        payload["reason"] = render_template(str(reason), context)
        return payload
