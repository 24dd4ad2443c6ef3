"""Fan-out orchestration: one business event to every matching subscriber and channel."""

import asyncio
import logging
from typing import Any

from scribe.events.delivery import DeliveryExecutor
from scribe.events.delivery_log import DeliveryStore
from scribe.events.envelope import build_envelope, serialize_envelope
from scribe.events.registry import SubscriberStore
from scribe.events.retry import RetryScheduler
from scribe.logging_config import bind_dispatch_context
from scribe.models.delivery import DeliveryAttempt, FanoutSummary
from scribe.models.enums import DeliveryStatus, EventType
from scribe.models.envelope import EventEnvelope
from scribe.models.notification import NotificationFanoutResult
from scribe.models.payloads import EventPayload, coerce_event_type, validate_event_data
from scribe.models.subscriber import Subscriber
from scribe.notifications.fanout import NotificationFanout

logger = logging.getLogger(__name__)


class EventDispatcher:
    """Wraps business events in envelopes and fans them out.

    Every matching subscriber receives the envelope concurrently; a slow or
    failing subscriber never delays or fails another. The per-user notification
    fan-out runs alongside the webhook deliveries when a notifier is configured
    and a recipient is known.

    ``dispatch`` raises only for caller mistakes (unknown event type, payload
    that does not match the event's model). Delivery failures end up on the
    attempt records and in the returned summary.
    """

    def __init__(
        self,
        subscribers: SubscriberStore,
        deliveries: DeliveryStore,
        executor: DeliveryExecutor,
        retry_scheduler: RetryScheduler | None = None,
        notifier: NotificationFanout | None = None,
    ) -> None:
        self._subscribers = subscribers
        self._deliveries = deliveries
        self._executor = executor
        self._retry = retry_scheduler
        self._notifier = notifier

    async def dispatch(
        self,
        event_type: EventType | str,
        data: dict[str, Any],
        scope: str | None = None,
        *,
        user_id: str | None = None,
    ) -> FanoutSummary:
        event_type = coerce_event_type(event_type)
        payload = validate_event_data(event_type, data)
        envelope = build_envelope(event_type, payload.to_data())
        return await self._fan_out(envelope, scope, user_id)

    async def publish(
        self,
        payload: EventPayload,
        scope: str | None = None,
        *,
        user_id: str | None = None,
    ) -> FanoutSummary:
        """Dispatch a typed payload; the event type comes from the payload class."""
        envelope = build_envelope(payload.event_type, payload.to_data())
        return await self._fan_out(envelope, scope, user_id)

    async def _fan_out(self, envelope: EventEnvelope, scope: str | None, user_id: str | None) -> FanoutSummary:
        with bind_dispatch_context(envelope.id, envelope.event_type.value):
            subscribers = await self._subscribers.find(envelope.event_type, scope)
            body = serialize_envelope(envelope)
            if subscribers:
                await self._deliveries.save_envelope(envelope, body, scope)
            else:
                logger.debug("No subscribers for %s (scope=%s)", envelope.event_type.value, scope)

            recipient = user_id or envelope.data.get("user_id")
            attempts, notifications = await asyncio.gather(
                self._deliver_all(subscribers, envelope, body),
                self._notify(envelope, recipient, scope),
            )

            summary = FanoutSummary(
                envelope_id=envelope.id,
                event_type=envelope.event_type,
                notifications=notifications,
            )
            for attempt in attempts:
                if attempt is not None:
                    summary.attempt_ids.append(attempt.id)
                if attempt is not None and attempt.status == DeliveryStatus.SUCCESS:
                    summary.succeeded += 1
                else:
                    summary.failed += 1

            logger.info(
                "Dispatched %s to %d subscriber(s): %d succeeded, %d failed",
                envelope.event_type.value,
                len(subscribers),
                summary.succeeded,
                summary.failed,
            )
            return summary

    async def _deliver_all(
        self, subscribers: list[Subscriber], envelope: EventEnvelope, body: bytes
    ) -> list[DeliveryAttempt | None]:
        if not subscribers:
            return []
        return list(await asyncio.gather(*(self._deliver_one(s, envelope, body) for s in subscribers)))

    async def _deliver_one(
        self, subscriber: Subscriber, envelope: EventEnvelope, body: bytes
    ) -> DeliveryAttempt | None:
        try:
            attempt = await self._executor.deliver(subscriber, envelope, body=body)
            if self._retry is not None:
                attempt = await self._retry.after_attempt(attempt)
            return attempt
        except Exception:
            logger.exception("Delivery to subscriber %s raised unexpectedly", subscriber.id)
            return None

    async def _notify(
        self, envelope: EventEnvelope, user_id: str | None, organization_id: str | None
    ) -> NotificationFanoutResult | None:
        if self._notifier is None or not user_id:
            return None
        try:
            return await self._notifier.notify(envelope, str(user_id), organization_id)
        except Exception:
            logger.exception("Notification fan-out failed for user %s", user_id)
            return None
