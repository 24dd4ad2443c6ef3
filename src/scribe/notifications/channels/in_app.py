"""In-app channel: writes a notification row for the user's inbox."""

from datetime import datetime, timezone

from scribe.models.enums import ChannelStatus, NotificationChannelType
from scribe.models.envelope import EventEnvelope
from scribe.models.notification import (
    ChannelResult,
    Notification,
    NotificationContent,
    NotificationRecipient,
)
from scribe.notifications.channels.base import NotificationChannel
from scribe.notifications.stores import NotificationStore
from scribe.services.id_generator import generate_id


class InAppChannel(NotificationChannel):
    channel_type = NotificationChannelType.IN_APP

    def __init__(self, store: NotificationStore) -> None:
        self._store = store

    async def send(
        self,
        recipient: NotificationRecipient,
        content: NotificationContent,
        envelope: EventEnvelope | None = None,
    ) -> ChannelResult:
        notification = Notification(
            id=generate_id("ntf_"),
            user_id=recipient.user_id,
            organization_id=recipient.organization_id,
            channel=self.channel_type,
            event_type=envelope.event_type if envelope else None,
            title=content.title,
            body=content.message,
            template_data={"kind": content.kind, **content.template_data},
            delivered_at=datetime.now(timezone.utc),
        )
        await self._store.add(notification)
        return self._result(ChannelStatus.DELIVERED, notification_id=notification.id)
