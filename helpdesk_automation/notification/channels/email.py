"""Email notification channel."""

import re
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import aiosmtplib

from helpdesk_automation.core.config import Settings, get_settings
from helpdesk_automation.core.logging import get_logger
from helpdesk_automation.models.notification import NotifyTarget, TeamNotification
from helpdesk_automation.notification.channels.base import NotificationChannel

logger = get_logger(__name__)


def markdown_to_html(message: str) -> str:
    """Convert the bold/italic subset of markdown used in notifications."""
    html = message.replace("\n", "<br>")
    html = re.sub(r"\*\*(.+?)\*\*", r"<strong>\1</strong>", html)
    html = re.sub(r"\*(.+?)\*", r"<em>\1</em>", html)
    return f"<html><body>{html}</body></html>"


class EmailChannel(NotificationChannel):
    """Email notification channel using SMTP."""

    def __init__(self, settings: Settings | None = None):
        """Initialize with settings."""
        self._settings = settings or get_settings()

    @property
    def channel_type(self) -> str:
        return "email"

    async def send(self, target: NotifyTarget, notification: TeamNotification) -> bool:
        """Send email notification.

        Args:
            target: Target with email recipients
            notification: Rendered notification

        Returns:
            True if sent successfully
        """
        if not target.to:
            logger.warning("Email target missing recipients")
            return False

        if not self._settings.smtp_host:
            logger.warning("SMTP not configured")
            return False

        msg = MIMEMultipart("alternative")
        msg["Subject"] = notification.title[:100]
        msg["From"] = self._settings.smtp_from or self._settings.smtp_user
        msg["To"] = ", ".join(target.to)
        msg.attach(MIMEText(notification.message, "plain", "utf-8"))
        msg.attach(MIMEText(markdown_to_html(notification.message), "html", "utf-8"))

        try:
            await aiosmtplib.send(
                msg,
                hostname=self._settings.smtp_host,
                port=self._settings.smtp_port,
                username=self._settings.smtp_user or None,
                password=self._settings.smtp_password or None,
                use_tls=not self._settings.smtp_use_tls,
                start_tls=self._settings.smtp_use_tls,
            )
        except Exception as e:
            logger.error("Email send failed", error=str(e))
            return False

        logger.info("Email sent", recipients=target.to, notification_id=notification.notification_id)
        return True
