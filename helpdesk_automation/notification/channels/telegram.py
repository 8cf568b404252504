"""Telegram notification channel."""

from aiogram import Bot

from helpdesk_automation.core.config import Settings, get_settings
from helpdesk_automation.core.logging import get_logger
from helpdesk_automation.models.notification import NotifyTarget, TeamNotification
from helpdesk_automation.notification.channels.base import NotificationChannel

logger = get_logger(__name__)


class TelegramChannel(NotificationChannel):
    """Telegram Bot notification channel."""

    def __init__(self, settings: Settings | None = None, bot: Bot | None = None):
        """Initialize Telegram bot.

        Args:
            settings: Application settings
            bot: Preconfigured bot (optional)
        """
        settings = settings or get_settings()
        self._bot = bot
        if self._bot is None and settings.telegram_bot_token:
            self._bot = Bot(token=settings.telegram_bot_token)

    @property
    def channel_type(self) -> str:
        return "telegram"

    async def send(self, target: NotifyTarget, notification: TeamNotification) -> bool:
        """Send message via Telegram Bot.

        Args:
            target: Target with user_id or chat_id
            notification: Rendered notification

        Returns:
            True if sent successfully
        """
        if not self._bot:
            logger.warning("Telegram bot not configured")
            return False

        chat_id = target.chat_id or target.user_id
        if not chat_id:
            logger.warning("Telegram target missing chat_id/user_id")
            return False

        try:
            await self._bot.send_message(
                chat_id=chat_id,
                text=f"*{notification.title}*\n\n{notification.message}",
                parse_mode="Markdown",
            )
        except Exception as e:
            logger.error("Telegram send failed", chat_id=chat_id, error=str(e))
            return False

        logger.info("Telegram message sent", chat_id=chat_id, notification_id=notification.notification_id)
        return True

    async def close(self) -> None:
        """Close bot session."""
        if self._bot:
            await self._bot.session.close()
