"""WeCom group-robot notification channel."""

import httpx

from helpdesk_automation.core.logging import get_logger
from helpdesk_automation.models.notification import NotifyTarget, TeamNotification
from helpdesk_automation.notification.channels.base import NotificationChannel

logger = get_logger(__name__)

WECOM_WEBHOOK_URL = "https://qyapi.weixin.qq.com/cgi-bin/webhook/send"


class WeComChannel(NotificationChannel):
    """WeCom webhook notification channel."""

    def __init__(self, client: httpx.AsyncClient | None = None):
        """Initialize HTTP client.

        Args:
            client: Preconfigured HTTP client (optional)
        """
        self._client = client or httpx.AsyncClient(timeout=10.0)

    @property
    def channel_type(self) -> str:
        return "wecom"

    async def send(self, target: NotifyTarget, notification: TeamNotification) -> bool:
        """Send message via WeCom webhook.

        Args:
            target: Target with webhook_key
            notification: Rendered notification

        Returns:
            True if sent successfully
        """
        if not target.webhook_key:
            logger.warning("WeCom target missing webhook_key")
            return False

        payload = {
            "msgtype": "markdown",
            "markdown": {"content": f"### {notification.title}\n{notification.message}"},
        }

        try:
            response = await self._client.post(WECOM_WEBHOOK_URL, params={"key": target.webhook_key}, json=payload)
            result = response.json()
        except Exception as e:
            logger.error("WeCom send error", error=str(e))
            return False

        if result.get("errcode") != 0:
            logger.warning("WeCom send failed", errcode=result.get("errcode"), errmsg=result.get("errmsg"))
            return False

        logger.info("WeCom message sent", notification_id=notification.notification_id)
        return True

    async def close(self) -> None:
        """Close HTTP client."""
        await self._client.aclose()
