"""SQLAlchemy-backed implementations of the dispatcher and notification stores.

Each operation opens its own session from the injected factory and commits
before returning, so attempt records are durable as soon as a call completes.
"""

from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from scribe.db.base import as_utc
from scribe.db.models.notification import NotificationRow
from scribe.db.models.webhook import DeliveryAttemptRow, WebhookEndpointRow
from scribe.events.delivery_log import DeliveryStore
from scribe.events.registry import SubscriberStore, subscriber_matches
from scribe.models.delivery import DeliveryAttempt
from scribe.models.enums import DeliveryStatus, EventType, NotificationChannelType
from scribe.models.envelope import EventEnvelope
from scribe.models.notification import (
    Notification,
    NotificationPreferences,
    PushSubscription,
    SlackIntegration,
)
from scribe.models.subscriber import Subscriber
from scribe.notifications.stores import ChannelConfigStore, NotificationStore
from scribe.repositories.channel_config_repo import (
    NotificationPreferenceRepository,
    PushSubscriptionRepository,
    SlackIntegrationRepository,
)
from scribe.repositories.delivery_attempt_repo import DeliveryAttemptRepository, WebhookEventRepository
from scribe.repositories.notification_repo import NotificationRepository
from scribe.repositories.webhook_endpoint_repo import WebhookEndpointRepository

SessionFactory = async_sessionmaker[AsyncSession]


def _subscriber_from_row(row: WebhookEndpointRow) -> Subscriber:
    return Subscriber(
        id=row.endpoint_id,
        destination_url=row.destination_url,
        shared_secret=row.shared_secret,
        subscribed_events=frozenset(EventType(e) for e in row.subscribed_events),
        active=row.active,
        scope_id=row.scope_id,
        consecutive_failures=row.consecutive_failures,
        created_at=as_utc(row.created_at),
    )


def _subscriber_columns(subscriber: Subscriber) -> dict:
    return {
        "destination_url": subscriber.destination_url,
        "shared_secret": subscriber.shared_secret,
        "subscribed_events": sorted(e.value for e in subscriber.subscribed_events),
        "active": subscriber.active,
        "scope_id": subscriber.scope_id,
        "consecutive_failures": subscriber.consecutive_failures,
    }


def _attempt_from_row(row: DeliveryAttemptRow) -> DeliveryAttempt:
    return DeliveryAttempt(
        id=row.attempt_id,
        subscriber_id=row.subscriber_id,
        envelope_id=row.envelope_id,
        event_type=EventType(row.event_type),
        status=DeliveryStatus(row.status),
        attempt_count=row.attempt_count,
        last_attempt_at=as_utc(row.last_attempt_at),
        next_retry_at=as_utc(row.next_retry_at),
        response_status=row.response_status,
        response_body=row.response_body,
        last_error=row.last_error,
        created_at=as_utc(row.created_at),
    )


def _attempt_columns(attempt: DeliveryAttempt) -> dict:
    return {
        "subscriber_id": attempt.subscriber_id,
        "envelope_id": attempt.envelope_id,
        "event_type": attempt.event_type.value,
        "status": attempt.status.value,
        "attempt_count": attempt.attempt_count,
        "last_attempt_at": attempt.last_attempt_at,
        "next_retry_at": attempt.next_retry_at,
        "response_status": attempt.response_status,
        "response_body": attempt.response_body,
        "last_error": attempt.last_error,
    }


def _notification_from_row(row: NotificationRow) -> Notification:
    return Notification(
        id=row.notification_id,
        user_id=row.user_id,
        organization_id=row.organization_id,
        channel=NotificationChannelType(row.channel),
        event_type=EventType(row.event_type) if row.event_type else None,
        title=row.title,
        body=row.body,
        template_data=row.template_data or {},
        delivered_at=as_utc(row.delivered_at),
        read_at=as_utc(row.read_at),
    )


class SqlSubscriberStore(SubscriberStore):
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    async def add(self, subscriber: Subscriber) -> Subscriber:
        async with self._session_factory() as session:
            row = await WebhookEndpointRepository(session).create(
                endpoint_id=subscriber.id,
                created_at=subscriber.created_at or datetime.now(timezone.utc),
                **_subscriber_columns(subscriber),
            )
            await session.commit()
            return _subscriber_from_row(row)

    async def get(self, subscriber_id: str) -> Subscriber | None:
        async with self._session_factory() as session:
            row = await WebhookEndpointRepository(session).get(subscriber_id)
            return _subscriber_from_row(row) if row else None

    async def find(self, event_type: EventType, scope: str | None = None) -> list[Subscriber]:
        async with self._session_factory() as session:
            rows = await WebhookEndpointRepository(session).list_active_for_scope(scope)
        subscribers = [_subscriber_from_row(r) for r in rows]
        return [s for s in subscribers if subscriber_matches(s, event_type, scope)]

    async def update(self, subscriber: Subscriber) -> Subscriber:
        async with self._session_factory() as session:
            repo = WebhookEndpointRepository(session)
            row = await repo.get(subscriber.id)
            if row is None:
                row = await repo.create(endpoint_id=subscriber.id, **_subscriber_columns(subscriber))
            else:
                row = await repo.update(row, **_subscriber_columns(subscriber))
            await session.commit()
            return _subscriber_from_row(row)

    async def list_all(self, scope: str | None = None, active_only: bool = False) -> list[Subscriber]:
        async with self._session_factory() as session:
            rows = await WebhookEndpointRepository(session).list_all(scope, active_only)
            return [_subscriber_from_row(r) for r in rows]

    async def record_outcome(
        self,
        subscriber_id: str,
        success: bool,
        failure_threshold: int | None = None,
    ) -> Subscriber | None:
        async with self._session_factory() as session:
            repo = WebhookEndpointRepository(session)
            if success:
                row = await repo.reset_failures(subscriber_id)
            else:
                row = await repo.record_failure(subscriber_id, failure_threshold)
            await session.commit()
            return _subscriber_from_row(row) if row else None


class SqlDeliveryStore(DeliveryStore):
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    async def save_envelope(self, envelope: EventEnvelope, body: bytes, scope: str | None = None) -> None:
        async with self._session_factory() as session:
            await WebhookEventRepository(session).upsert(
                envelope.id,
                event_type=envelope.event_type.value,
                scope_id=scope,
                body=body.decode("utf-8"),
                occurred_at=envelope.occurred_at,
            )
            await session.commit()

    async def get_envelope_body(self, envelope_id: str) -> bytes | None:
        async with self._session_factory() as session:
            row = await WebhookEventRepository(session).get(envelope_id)
            return row.body.encode("utf-8") if row else None

    async def create(self, attempt: DeliveryAttempt) -> DeliveryAttempt:
        async with self._session_factory() as session:
            await DeliveryAttemptRepository(session).create(
                attempt_id=attempt.id,
                created_at=attempt.created_at or datetime.now(timezone.utc),
                **_attempt_columns(attempt),
            )
            await session.commit()
        return attempt

    async def save(self, attempt: DeliveryAttempt) -> DeliveryAttempt:
        async with self._session_factory() as session:
            await DeliveryAttemptRepository(session).upsert(attempt.id, **_attempt_columns(attempt))
            await session.commit()
        return attempt

    async def get(self, attempt_id: str) -> DeliveryAttempt | None:
        async with self._session_factory() as session:
            row = await DeliveryAttemptRepository(session).get(attempt_id)
            return _attempt_from_row(row) if row else None

    async def list_due(self, now: datetime, limit: int = 100) -> list[DeliveryAttempt]:
        async with self._session_factory() as session:
            rows = await DeliveryAttemptRepository(session).list_due(now, limit)
            return [_attempt_from_row(r) for r in rows]

    async def list_for_subscriber(self, subscriber_id: str, limit: int = 50) -> list[DeliveryAttempt]:
        async with self._session_factory() as session:
            rows = await DeliveryAttemptRepository(session).list_by_subscriber(subscriber_id, limit)
            return [_attempt_from_row(r) for r in rows]

    async def list_for_envelope(self, envelope_id: str) -> list[DeliveryAttempt]:
        async with self._session_factory() as session:
            rows = await DeliveryAttemptRepository(session).list_by_envelope(envelope_id)
            return [_attempt_from_row(r) for r in rows]


class SqlNotificationStore(NotificationStore):
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    async def add(self, notification: Notification) -> Notification:
        async with self._session_factory() as session:
            await NotificationRepository(session).create(
                notification_id=notification.id,
                user_id=notification.user_id,
                organization_id=notification.organization_id,
                channel=notification.channel.value,
                event_type=notification.event_type.value if notification.event_type else None,
                title=notification.title,
                body=notification.body,
                template_data=notification.template_data,
                delivered_at=notification.delivered_at,
                read_at=notification.read_at,
            )
            await session.commit()
        return notification

    async def list_unread(self, user_id: str, limit: int = 10) -> list[Notification]:
        async with self._session_factory() as session:
            rows = await NotificationRepository(session).list_unread(user_id, limit)
            return [_notification_from_row(r) for r in rows]

    async def mark_read(self, notification_id: str, user_id: str) -> bool:
        async with self._session_factory() as session:
            updated = await NotificationRepository(session).mark_read(
                notification_id, user_id, datetime.now(timezone.utc)
            )
            await session.commit()
            return updated


class SqlChannelConfigStore(ChannelConfigStore):
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    async def get_preferences(self, user_id: str) -> NotificationPreferences:
        async with self._session_factory() as session:
            row = await NotificationPreferenceRepository(session).get(user_id)
        if row is None:
            return NotificationPreferences()
        return NotificationPreferences(in_app=row.in_app, push=row.push, slack=row.slack, email=row.email)

    async def set_preferences(self, user_id: str, preferences: NotificationPreferences) -> None:
        async with self._session_factory() as session:
            await NotificationPreferenceRepository(session).upsert(user_id, **preferences.model_dump())
            await session.commit()

    async def get_push_subscription(self, user_id: str) -> PushSubscription | None:
        async with self._session_factory() as session:
            row = await PushSubscriptionRepository(session).get(user_id)
        if row is None:
            return None
        return PushSubscription(user_id=row.user_id, endpoint=row.endpoint, keys=row.keys or {})

    async def set_push_subscription(self, subscription: PushSubscription) -> None:
        async with self._session_factory() as session:
            await PushSubscriptionRepository(session).upsert(
                subscription.user_id, endpoint=subscription.endpoint, keys=subscription.keys
            )
            await session.commit()

    async def remove_push_subscription(self, user_id: str) -> None:
        async with self._session_factory() as session:
            await PushSubscriptionRepository(session).delete(user_id)
            await session.commit()

    async def get_slack_integration(self, user_id: str) -> SlackIntegration | None:
        async with self._session_factory() as session:
            row = await SlackIntegrationRepository(session).get(user_id)
        if row is None or not row.active:
            return None
        return SlackIntegration(
            user_id=row.user_id,
            webhook_url=row.webhook_url,
            organization_id=row.organization_id,
            team_name=row.team_name,
            active=row.active,
        )

    async def set_slack_integration(self, integration: SlackIntegration) -> None:
        async with self._session_factory() as session:
            await SlackIntegrationRepository(session).upsert(
                integration.user_id,
                webhook_url=integration.webhook_url,
                organization_id=integration.organization_id,
                team_name=integration.team_name,
                active=integration.active,
            )
            await session.commit()
