"""Tests for the SQLAlchemy-backed stores."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from scribe.db.stores import (
    SqlChannelConfigStore,
    SqlDeliveryStore,
    SqlNotificationStore,
    SqlSubscriberStore,
)
from scribe.events.envelope import build_envelope, serialize_envelope
from scribe.events.registry import new_subscriber
from scribe.models.delivery import DeliveryAttempt
from scribe.models.enums import DeliveryStatus, EventType
from scribe.models.notification import Notification, NotificationPreferences, PushSubscription, SlackIntegration


@pytest.mark.asyncio
async def test_subscriber_round_trip_and_scope_resolution(session_factory):
    store = SqlSubscriberStore(session_factory)
    scoped = await store.add(new_subscriber("https://a.example.com/h", "s", ["summary.completed"], scope_id="org-42"))
    other = await store.add(new_subscriber("https://b.example.com/h", "s", ["summary.completed"], scope_id="org-99"))
    global_sub = await store.add(new_subscriber("https://c.example.com/h", "s", ["summary.completed", "payment.success"]))

    fetched = await store.get(scoped.id)
    assert fetched.subscribed_events == frozenset({EventType.SUMMARY_COMPLETED})
    assert fetched.created_at.tzinfo is not None

    found = {s.id for s in await store.find(EventType.SUMMARY_COMPLETED, "org-42")}
    assert found == {scoped.id, global_sub.id}
    assert other.id not in found

    payments = await store.find(EventType.PAYMENT_SUCCESS)
    assert [s.id for s in payments] == [global_sub.id]


@pytest.mark.asyncio
async def test_subscriber_deactivation_persists(session_factory):
    store = SqlSubscriberStore(session_factory)
    sub = await store.add(new_subscriber("https://a.example.com/h", "s", ["user.created"]))

    await store.record_outcome(sub.id, success=False, failure_threshold=2)
    updated = await store.record_outcome(sub.id, success=False, failure_threshold=2)

    assert not updated.active
    assert await store.find(EventType.USER_CREATED) == []
    assert [s.id for s in await store.list_all(active_only=False)] == [sub.id]
    assert await store.list_all(active_only=True) == []


@pytest.mark.asyncio
async def test_delivery_store_due_query_and_envelope_body(session_factory):
    subscribers = SqlSubscriberStore(session_factory)
    deliveries = SqlDeliveryStore(session_factory)
    sub = await subscribers.add(new_subscriber("https://a.example.com/h", "s", ["user.created"]))
    envelope = build_envelope(EventType.USER_CREATED, {"user_id": "u1", "email": "e@x.io", "name": "N"})
    body = serialize_envelope(envelope)
    await deliveries.save_envelope(envelope, body, "org-1")

    now = datetime.now(timezone.utc)
    attempt = DeliveryAttempt(
        id="dlv_1",
        subscriber_id=sub.id,
        envelope_id=envelope.id,
        event_type=envelope.event_type,
        created_at=now,
    )
    await deliveries.create(attempt)
    attempt.status = DeliveryStatus.RETRYING
    attempt.attempt_count = 1
    attempt.next_retry_at = now + timedelta(minutes=1)
    await deliveries.save(attempt)

    assert await deliveries.list_due(now) == []
    due = await deliveries.list_due(now + timedelta(minutes=2))
    assert [a.id for a in due] == ["dlv_1"]
    assert due[0].next_retry_at.tzinfo is not None
    assert due[0].next_retry_at == attempt.next_retry_at

    assert await deliveries.get_envelope_body(envelope.id) == body
    assert [a.id for a in await deliveries.list_for_subscriber(sub.id)] == ["dlv_1"]
    assert [a.id for a in await deliveries.list_for_envelope(envelope.id)] == ["dlv_1"]


@pytest.mark.asyncio
async def test_notification_inbox(session_factory):
    store = SqlNotificationStore(session_factory)
    base = datetime.now(timezone.utc)
    for i in range(3):
        await store.add(
            Notification(
                id=f"ntf_{i}",
                user_id="u1",
                title=f"N{i}",
                body="b",
                event_type=EventType.SUMMARY_COMPLETED,
                delivered_at=base + timedelta(seconds=i),
            )
        )

    unread = await store.list_unread("u1")
    assert [n.id for n in unread] == ["ntf_2", "ntf_1", "ntf_0"]

    assert not await store.mark_read("ntf_2", "u2")
    assert await store.mark_read("ntf_2", "u1")
    assert [n.id for n in await store.list_unread("u1", limit=1)] == ["ntf_1"]


@pytest.mark.asyncio
async def test_channel_config(session_factory):
    store = SqlChannelConfigStore(session_factory)

    assert await store.get_preferences("u1") == NotificationPreferences()
    await store.set_preferences("u1", NotificationPreferences(push=False))
    await store.set_preferences("u1", NotificationPreferences(push=False, email=True))
    assert await store.get_preferences("u1") == NotificationPreferences(push=False, email=True)

    await store.set_push_subscription(PushSubscription(user_id="u1", endpoint="https://p/1", keys={"auth": "a"}))
    assert (await store.get_push_subscription("u1")).keys == {"auth": "a"}
    await store.remove_push_subscription("u1")
    assert await store.get_push_subscription("u1") is None

    await store.set_slack_integration(SlackIntegration(user_id="u1", webhook_url="https://hooks.slack.com/x"))
    assert (await store.get_slack_integration("u1")).webhook_url == "https://hooks.slack.com/x"
    await store.set_slack_integration(
        SlackIntegration(user_id="u1", webhook_url="https://hooks.slack.com/x", active=False)
    )
    assert await store.get_slack_integration("u1") is None


@pytest.mark.asyncio
async def test_concurrent_failures_are_all_counted(session_factory):
    store = SqlSubscriberStore(session_factory)
    sub = await store.add(new_subscriber("https://a.example.com/h", "s", ["user.created"]))

    await asyncio.gather(*(store.record_outcome(sub.id, success=False, failure_threshold=8) for _ in range(8)))

    updated = await store.get(sub.id)
    assert updated.consecutive_failures == 8
    assert not updated.active


@pytest.mark.asyncio
async def test_success_resets_failure_counter(session_factory):
    store = SqlSubscriberStore(session_factory)
    sub = await store.add(new_subscriber("https://a.example.com/h", "s", ["user.created"]))

    await store.record_outcome(sub.id, success=False, failure_threshold=5)
    failed = await store.record_outcome(sub.id, success=False, failure_threshold=5)
    assert failed.consecutive_failures == 2

    reset = await store.record_outcome(sub.id, success=True)
    assert reset.consecutive_failures == 0
    assert reset.active
    assert await store.record_outcome("whk_missing", success=False) is None
