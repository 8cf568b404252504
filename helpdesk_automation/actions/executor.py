"""Action dispatch."""

import asyncio

from redis.asyncio import Redis

from helpdesk_automation.actions.handlers.base import ActionHandler
from helpdesk_automation.actions.handlers.notify import NotifyTeamHandler
from helpdesk_automation.actions.handlers.reply import AIResponseHandler, AutoReplyHandler
from helpdesk_automation.actions.handlers.routing import ForwardHandler, HelpdeskCommandHandler
from helpdesk_automation.actions.handlers.ticket import TicketHandler
from helpdesk_automation.actions.handlers.webhook import WebhookHandler
from helpdesk_automation.core.config import Settings, get_settings
from helpdesk_automation.core.logging import get_logger
from helpdesk_automation.engine.ports import AIAnalysisPort
from helpdesk_automation.models.execution import ActionExecutionResult, ExecutionContext
from helpdesk_automation.models.rule import Action
from helpdesk_automation.notification.channels.email import EmailChannel
from helpdesk_automation.notification.channels.telegram import TelegramChannel
from helpdesk_automation.notification.channels.wecom import WeComChannel
from helpdesk_automation.observability.metrics import ACTIONS_EXECUTED
from helpdesk_automation.storage.auxiliary import OutboundQueue

logger = get_logger(__name__)


class ActionExecutor:
    """Dispatches actions to registered handlers.

    Every handler call goes through ``execute``, which applies the action
    timeout and converts exceptions into failure results, so callers always
    get exactly one result per action.
    """

    def __init__(self, handlers: list[ActionHandler] | None = None, timeout: float = 15.0):
        self._handlers: dict[str, ActionHandler] = {}
        self._timeout = timeout
        for handler in handlers or []:
            self.register(handler)

    def register(self, handler: ActionHandler) -> None:
        """Register a handler for all of its action types (last one wins)."""
        for action_type in handler.action_types:
            self._handlers[action_type] = handler

    def can_execute(self, action_type: str) -> bool:
        return action_type in self._handlers

    def supported_types(self) -> list[str]:
        return sorted(self._handlers)

    async def execute(self, action: Action, context: ExecutionContext) -> ActionExecutionResult:
        """Run one action.

        Args:
            action: Action to run
            context: Shared execution context

        Returns:
            Result tagged with the action id and type; never raises
        """
        handler = self._handlers.get(action.type)
        if handler is None:
            logger.warning("Unsupported action type", action_type=action.type, rule_id=context.rule_id)
            result = ActionExecutionResult.failed(
                f"Unsupported action type: {action.type}",
                error="unsupported_action_type",
            )
        else:
            try:
                result = await asyncio.wait_for(handler.handle(action, context), timeout=self._timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    "Action timed out",
                    action_type=action.type,
                    action_id=action.id,
                    rule_id=context.rule_id,
                    timeout=self._timeout,
                )
                result = ActionExecutionResult.failed(
                    f"Action {action.type} timed out",
                    error=f"timeout after {self._timeout}s",
                )
            except Exception as e:
                logger.error(
                    "Action failed",
                    action_type=action.type,
                    action_id=action.id,
                    rule_id=context.rule_id,
                    error=str(e),
                    exc_info=True,
                )
                result = ActionExecutionResult.failed(
                    f"Action {action.type} failed",
                    error=str(e) or type(e).__name__,
                )

        ACTIONS_EXECUTED.labels(
            action_type=action.type,
            status="success" if result.success else "failure",
        ).inc()
        return result.model_copy(update={"action_id": action.id, "action_type": action.type})

    async def execute_actions(
        self,
        actions: list[Action],
        context: ExecutionContext,
    ) -> list[ActionExecutionResult]:
        """Run actions sequentially, in the given order."""
        results = []
        for action in actions:
            results.append(await self.execute(action, context))
        return results

    async def close(self) -> None:
        """Close every distinct handler."""
        closed: set[int] = set()
        for handler in self._handlers.values():
            if id(handler) in closed:
                continue
            closed.add(id(handler))
            await handler.close()


def build_action_executor(
    ai_port: AIAnalysisPort,
    redis: Redis | None = None,
    settings: Settings | None = None,
) -> ActionExecutor:
    """Executor with all built-in handlers.

    Args:
        ai_port: AI provider for ``ai_response``
        redis: Redis client for the outbound queues (default pool if None)
        settings: Application settings

    Returns:
        Configured executor
    """
    settings = settings or get_settings()
    queue = OutboundQueue(redis)

    return ActionExecutor(
        handlers=[
            TicketHandler(settings),
            AutoReplyHandler(queue),
            AIResponseHandler(ai_port, queue),
            ForwardHandler(queue),
            HelpdeskCommandHandler(queue),
            WebhookHandler(settings),
            NotifyTeamHandler([TelegramChannel(settings), WeComChannel(), EmailChannel(settings)]),
        ],
        timeout=settings.action_timeout_seconds,
    )
