"""Wiring for the dispatcher, retry scheduler and notification channels."""

from dataclasses import dataclass

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from scribe.config import settings
from scribe.deployments.notifier import DeploymentNotifier
from scribe.events.delivery import DeliveryExecutor
from scribe.events.delivery_log import DeliveryStore, InMemoryDeliveryStore
from scribe.events.dispatcher import EventDispatcher
from scribe.events.registry import InMemorySubscriberStore, SubscriberStore
from scribe.events.retry import RetryScheduler
from scribe.notifications.channels.in_app import InAppChannel
from scribe.notifications.channels.push import HttpPushSender, PushChannel
from scribe.notifications.channels.slack import SlackChannel
from scribe.notifications.fanout import NotificationFanout
from scribe.notifications.stores import (
    ChannelConfigStore,
    InMemoryChannelConfigStore,
    InMemoryNotificationStore,
    NotificationStore,
)


@dataclass
class Services:
    subscribers: SubscriberStore
    deliveries: DeliveryStore
    notifications: NotificationStore
    channel_config: ChannelConfigStore
    executor: DeliveryExecutor
    retry: RetryScheduler
    notifier: NotificationFanout
    dispatcher: EventDispatcher
    deployments: DeploymentNotifier


def build_services(
    subscribers: SubscriberStore,
    deliveries: DeliveryStore,
    notifications: NotificationStore,
    channel_config: ChannelConfigStore,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Services:
    """Assemble every component over the given stores.

    *transport* is shared by all outbound HTTP clients (webhooks, push gateway,
    Slack and deployment webhooks).
    """
    executor = DeliveryExecutor(deliveries, transport=transport)
    retry = RetryScheduler(deliveries, subscribers, executor)

    push_sender = (
        HttpPushSender(settings.push_gateway_url, transport=transport)
        if settings.push_gateway_url
        else None
    )
    notifier = NotificationFanout(
        channels=[
            InAppChannel(notifications),
            PushChannel(channel_config, push_sender),
            SlackChannel(channel_config, transport=transport),
        ],
        config=channel_config,
    )
    dispatcher = EventDispatcher(subscribers, deliveries, executor, retry_scheduler=retry, notifier=notifier)

    return Services(
        subscribers=subscribers,
        deliveries=deliveries,
        notifications=notifications,
        channel_config=channel_config,
        executor=executor,
        retry=retry,
        notifier=notifier,
        dispatcher=dispatcher,
        deployments=DeploymentNotifier.from_settings(transport=transport),
    )


def build_sql_services(
    session_factory: async_sessionmaker[AsyncSession],
    transport: httpx.AsyncBaseTransport | None = None,
) -> Services:
    from scribe.db.stores import (
        SqlChannelConfigStore,
        SqlDeliveryStore,
        SqlNotificationStore,
        SqlSubscriberStore,
    )

    return build_services(
        SqlSubscriberStore(session_factory),
        SqlDeliveryStore(session_factory),
        SqlNotificationStore(session_factory),
        SqlChannelConfigStore(session_factory),
        transport=transport,
    )


def build_memory_services(transport: httpx.AsyncBaseTransport | None = None) -> Services:
    return build_services(
        InMemorySubscriberStore(),
        InMemoryDeliveryStore(),
        InMemoryNotificationStore(),
        InMemoryChannelConfigStore(),
        transport=transport,
    )
