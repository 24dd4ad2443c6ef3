"""Slack channel: posts notifications to the user's incoming webhook."""

from __future__ import annotations

import logging

import httpx

from scribe.config import settings
from scribe.models.enums import ChannelStatus, NotificationChannelType
from scribe.models.envelope import EventEnvelope
from scribe.models.notification import ChannelResult, NotificationContent, NotificationRecipient
from scribe.notifications.channels.base import NotificationChannel
from scribe.notifications.stores import ChannelConfigStore

logger = logging.getLogger(__name__)


class SlackChannel(NotificationChannel):
    """Pushes messages to Slack via the incoming webhook stored for the user.

    Slack webhooks are pre-authenticated; the URL is the credential.
    """

    channel_type = NotificationChannelType.SLACK

    def __init__(
        self,
        config: ChannelConfigStore,
        username: str | None = None,
        icon_emoji: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self.username = username or settings.slack_username
        self.icon_emoji = icon_emoji or settings.slack_icon_emoji
        self.timeout = timeout if timeout is not None else settings.notification_timeout_seconds
        self._transport = transport

    async def send(
        self,
        recipient: NotificationRecipient,
        content: NotificationContent,
        envelope: EventEnvelope | None = None,
    ) -> ChannelResult:
        integration = await self._config.get_slack_integration(recipient.user_id)
        if integration is None:
            logger.debug("No active Slack integration found for user %s", recipient.user_id)
            return self._result(ChannelStatus.SKIPPED, "no slack integration")

        payload = self.build_message(content)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(integration.webhook_url, json=payload)
        except httpx.HTTPError as exc:
            logger.error("Slack notification failed for user %s: %s", recipient.user_id, exc)
            return self._result(ChannelStatus.FAILED, str(exc) or exc.__class__.__name__)

        if response.status_code != 200:
            logger.warning(
                "Slack notification returned %s for user %s",
                response.status_code,
                recipient.user_id,
            )
            return self._result(ChannelStatus.FAILED, f"slack webhook returned {response.status_code}")

        logger.info("Slack notification delivered for user %s (kind=%s)", recipient.user_id, content.kind)
        return self._result(ChannelStatus.DELIVERED)

    # ------------------------------------------------------------------
    # Message formatting
    # ------------------------------------------------------------------

    def build_message(self, content: NotificationContent) -> dict:
        """Incoming-webhook payload: bold title line plus a single attachment field."""
        message = content.slack_message or content.message
        return {
            "text": f"*{content.title}*\n{message}",
            "username": self.username,
            "icon_emoji": self.icon_emoji,
            "attachments": [
                {
                    "color": "danger" if content.kind == "processing_failed" else "good",
                    "fields": [{"title": content.title, "value": message, "short": False}],
                }
            ],
        }
