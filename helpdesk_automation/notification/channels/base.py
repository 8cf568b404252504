"""Base class for team notification channels."""

from abc import ABC, abstractmethod

from helpdesk_automation.models.notification import NotifyTarget, TeamNotification


class NotificationChannel(ABC):
    """Abstract base class for notification channels."""

    @property
    @abstractmethod
    def channel_type(self) -> str:
        """Return channel type identifier."""
        pass

    @abstractmethod
    async def send(self, target: NotifyTarget, notification: TeamNotification) -> bool:
        """Send a notification to one target.

        Args:
            target: Notification target configuration
            notification: Rendered notification

        Returns:
            True if sent successfully
        """
        pass

    async def close(self) -> None:
        """Clean up resources. Override if needed."""
        pass
