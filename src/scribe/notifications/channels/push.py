"""Push channel: hands the stored browser subscription to a push gateway."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import httpx

from scribe.config import settings
from scribe.models.enums import ChannelStatus, NotificationChannelType
from scribe.models.envelope import EventEnvelope
from scribe.models.notification import (
    ChannelResult,
    NotificationContent,
    NotificationRecipient,
    PushContent,
    PushSubscription,
)
from scribe.notifications.channels.base import NotificationChannel
from scribe.notifications.stores import ChannelConfigStore

logger = logging.getLogger(__name__)

# Gateway answers meaning the browser subscription is gone for good.
_EXPIRED_STATUSES = frozenset({404, 410})


class PushSubscriptionExpired(Exception):
    """The push service no longer accepts this subscription."""


class PushDeliveryError(Exception):
    pass


class PushSender(ABC):
    @abstractmethod
    async def send(self, subscription: PushSubscription, content: PushContent) -> None:
        """Deliver one push message.

        Raises:
            PushSubscriptionExpired: the subscription must be discarded.
            PushDeliveryError: any other rejection or transport failure.
        """
        ...


class HttpPushSender(PushSender):
    """Posts the subscription object and message to a push relay over HTTP.

    The relay owns VAPID keys and payload encryption; this side only needs to
    know its URL.
    """

    def __init__(
        self,
        gateway_url: str,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.gateway_url = gateway_url
        self.timeout = timeout if timeout is not None else settings.notification_timeout_seconds
        self._transport = transport

    async def send(self, subscription: PushSubscription, content: PushContent) -> None:
        payload = {
            "subscription": {"endpoint": subscription.endpoint, "keys": subscription.keys},
            "notification": content.model_dump(mode="json"),
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.gateway_url, json=payload)
        except httpx.HTTPError as exc:
            raise PushDeliveryError(str(exc) or exc.__class__.__name__) from exc

        if response.status_code in _EXPIRED_STATUSES:
            raise PushSubscriptionExpired(f"push gateway returned {response.status_code}")
        if response.status_code >= 300:
            raise PushDeliveryError(f"push gateway returned {response.status_code}")


class PushChannel(NotificationChannel):
    channel_type = NotificationChannelType.PUSH

    def __init__(self, config: ChannelConfigStore, sender: PushSender | None) -> None:
        self._config = config
        self._sender = sender

    async def send(
        self,
        recipient: NotificationRecipient,
        content: NotificationContent,
        envelope: EventEnvelope | None = None,
    ) -> ChannelResult:
        if self._sender is None:
            return self._result(ChannelStatus.SKIPPED, "push gateway not configured")

        subscription = await self._config.get_push_subscription(recipient.user_id)
        if subscription is None:
            logger.debug("No push subscription found for user %s", recipient.user_id)
            return self._result(ChannelStatus.SKIPPED, "no push subscription")

        push = content.push or PushContent(title=content.title, body=content.message)
        try:
            await self._sender.send(subscription, push)
        except PushSubscriptionExpired as exc:
            await self._config.remove_push_subscription(recipient.user_id)
            logger.info("Removed expired push subscription for user %s", recipient.user_id)
            return self._result(ChannelStatus.FAILED, f"subscription expired: {exc}")
        except PushDeliveryError as exc:
            logger.warning("Push notification failed for user %s: %s", recipient.user_id, exc)
            return self._result(ChannelStatus.FAILED, str(exc))

        return self._result(ChannelStatus.DELIVERED)
