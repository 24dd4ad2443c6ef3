"""Per-user notification fan-out across in-app, push and Slack channels."""

import asyncio
import logging

from scribe.models.enums import ChannelStatus
from scribe.models.envelope import EventEnvelope
from scribe.models.notification import (
    ChannelResult,
    NotificationContent,
    NotificationFanoutResult,
    NotificationPreferences,
    NotificationRecipient,
)
from scribe.notifications.channels.base import NotificationChannel
from scribe.notifications.stores import ChannelConfigStore
from scribe.notifications.templates import content_for_event

logger = logging.getLogger(__name__)


class NotificationFanout:
    """Sends one envelope's notification to every channel the user allows.

    Channels run concurrently and independently: an expired push subscription
    never prevents the in-app row from being written, and vice versa.
    """

    def __init__(self, channels: list[NotificationChannel], config: ChannelConfigStore) -> None:
        self._channels = channels
        self._config = config

    async def notify(
        self,
        envelope: EventEnvelope,
        user_id: str,
        organization_id: str | None = None,
        content: NotificationContent | None = None,
    ) -> NotificationFanoutResult | None:
        """Render and deliver; returns None when the event has no user-facing template."""
        content = content or content_for_event(envelope)
        if content is None:
            return None

        recipient = NotificationRecipient(user_id=user_id, organization_id=organization_id)
        preferences = await self._preferences(user_id)

        results = await asyncio.gather(
            *(self._send(channel, recipient, content, envelope, preferences) for channel in self._channels)
        )
        return NotificationFanoutResult(
            user_id=user_id,
            kind=content.kind,
            results={r.channel: r for r in results},
        )

    async def _preferences(self, user_id: str) -> NotificationPreferences:
        try:
            return await self._config.get_preferences(user_id)
        except Exception:
            logger.exception("Could not load notification preferences for %s; using defaults", user_id)
            return NotificationPreferences()

    async def _send(
        self,
        channel: NotificationChannel,
        recipient: NotificationRecipient,
        content: NotificationContent,
        envelope: EventEnvelope,
        preferences: NotificationPreferences,
    ) -> ChannelResult:
        name = channel.channel_type.value
        if not preferences.allows(channel.channel_type):
            return ChannelResult(channel=name, status=ChannelStatus.SKIPPED, error="disabled by preference")
        try:
            return await channel.send(recipient, content, envelope)
        except Exception as exc:
            logger.exception("Notification channel %s failed for user %s", name, recipient.user_id)
            return ChannelResult(channel=name, status=ChannelStatus.FAILED, error=str(exc) or exc.__class__.__name__)
