"""Team notification action."""

from pydantic import ValidationError

from helpdesk_automation.actions.handlers.base import ActionHandler, new_id, render_template
from helpdesk_automation.core.logging import get_logger
from helpdesk_automation.models.execution import ActionExecutionResult, ExecutionContext
from helpdesk_automation.models.notification import NotifyTarget, TeamNotification
from helpdesk_automation.models.rule import Action
from helpdesk_automation.notification.channels.base import NotificationChannel

logger = get_logger(__name__)

DEFAULT_NOTIFICATION = (
    "**Rule:** {{rule_name}}\n"
    "**Channel:** {{channel}}\n"
    "**From:** {{sender}}\n\n"
    "{{content}}"
)


class NotifyTeamHandler(ActionHandler):
    """Sends a notification to every configured target.

    Succeeds when at least one target received it.
    """

    def __init__(self, channels: list[NotificationChannel]):
        self._channels = {channel.channel_type: channel for channel in channels}

    @property
    def action_types(self) -> tuple[str, ...]:
        return ("notify_team",)

    async def handle(self, action: Action, context: ExecutionContext) -> ActionExecutionResult:
        try:
            targets = [NotifyTarget.model_validate(item) for item in action.params.get("targets") or []]
        except ValidationError as e:
            return ActionExecutionResult.failed("Invalid notification target", error=str(e))

        if not targets:
            return ActionExecutionResult.failed("Notification has no targets", error="missing_target")

        notification = TeamNotification(
            notification_id=new_id("ntf"),
            tenant_id=context.tenant_id,
            rule_id=context.rule_id,
            title=render_template(str(action.params.get("title") or "Automation: {{rule_name}}"), context),
            message=render_template(str(action.params.get("message") or DEFAULT_NOTIFICATION), context),
        )

        delivered = 0
        for target in targets:
            channel = self._channels.get(target.type.value)
            if channel is None:
                logger.warning("No channel for notification target", target_type=target.type.value)
                continue
            if await channel.send(target, notification):
                delivered += 1

        data = {
            "notification_id": notification.notification_id,
            "delivered": delivered,
            "failed": len(targets) - delivered,
        }
        if delivered == 0:
            return ActionExecutionResult.failed("Notification not delivered", error="all_targets_failed", data=data)
        return ActionExecutionResult.ok(f"Notification delivered to {delivered}/{len(targets)} targets", data)

    async def close(self) -> None:
        for channel in self._channels.values():
            await channel.close()
