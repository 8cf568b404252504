"""Outgoing webhook action."""

import asyncio
from datetime import datetime, timezone

import httpx

from helpdesk_automation.actions.handlers.base import ActionHandler
from helpdesk_automation.core.config import Settings, get_settings
from helpdesk_automation.core.logging import get_logger
from helpdesk_automation.models.execution import ActionExecutionResult, ExecutionContext
from helpdesk_automation.models.rule import Action

logger = get_logger(__name__)


class WebhookHandler(ActionHandler):
    """POSTs the message and its analysis to an external URL.

    Transport errors and 5xx responses are retried with exponential backoff;
    4xx responses fail immediately.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
        backoff_seconds: float = 0.5,
    ):
        self._settings = settings or get_settings()
        self._client = client or httpx.AsyncClient(timeout=self._settings.webhook_timeout_seconds)
        self._backoff_seconds = backoff_seconds

    @property
    def action_types(self) -> tuple[str, ...]:
        return ("webhook",)

    async def handle(self, action: Action, context: ExecutionContext) -> ActionExecutionResult:
        url = action.target or action.params.get("url")
        if not url:
            return ActionExecutionResult.failed("Webhook has no URL", error="missing_target")

        payload = {
            "rule": {"id": context.rule_id, "name": context.rule_name},
            "message": context.message_data,
            "aiAnalysis": context.ai_analysis.model_dump() if context.ai_analysis else None,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "tenant": context.tenant_id,
        }
        if action.params.get("data"):
            payload["data"] = action.params["data"]

        headers = {"User-Agent": self._settings.webhook_user_agent}
        headers.update(action.params.get("headers") or {})
        method = str(action.params.get("method") or "POST").upper()

        attempts = self._settings.webhook_max_retries + 1
        last_error = ""
        for attempt in range(1, attempts + 1):
            try:
                response = await self._client.request(method, url, json=payload, headers=headers)
            except httpx.TransportError as e:
                last_error = str(e) or type(e).__name__
                logger.warning("Webhook transport error", url=url, attempt=attempt, error=last_error)
            else:
                if response.is_success:
                    logger.info("Webhook delivered", url=url, status_code=response.status_code, attempt=attempt)
                    return ActionExecutionResult.ok(
                        "Webhook delivered",
                        {"status_code": response.status_code, "attempts": attempt},
                    )
                last_error = f"HTTP {response.status_code}"
                if response.status_code < 500:
                    break
                logger.warning("Webhook server error", url=url, attempt=attempt, status_code=response.status_code)

            if attempt < attempts:
                await asyncio.sleep(self._backoff_seconds * 2 ** (attempt - 1))

        return ActionExecutionResult.failed("Webhook delivery failed", error=last_error)

    async def close(self) -> None:
        await self._client.aclose()
