"""Abstract base class for notification channel adapters."""

from abc import ABC, abstractmethod

from scribe.models.enums import ChannelStatus, NotificationChannelType
from scribe.models.envelope import EventEnvelope
from scribe.models.notification import ChannelResult, NotificationContent, NotificationRecipient


class NotificationChannel(ABC):
    """Delivers rendered notification content to one user over one medium."""

    channel_type: NotificationChannelType

    @abstractmethod
    async def send(
        self,
        recipient: NotificationRecipient,
        content: NotificationContent,
        envelope: EventEnvelope | None = None,
    ) -> ChannelResult:
        """Deliver *content* to *recipient*.

        Returns:
            ``delivered`` on success, ``skipped`` when the user has nothing
            configured for this channel, ``failed`` otherwise.
        """
        ...

    def _result(self, status: ChannelStatus, error: str | None = None, **extra) -> ChannelResult:
        return ChannelResult(channel=self.channel_type.value, status=status, error=error, **extra)
