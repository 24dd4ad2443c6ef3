"""Tests for notification channels, templates and the per-user fan-out."""

import json

import pytest

from scribe.events.envelope import build_envelope
from scribe.models.enums import ChannelStatus, EventType, NotificationChannelType
from scribe.models.notification import (
    NotificationPreferences,
    NotificationRecipient,
    PushSubscription,
    SlackIntegration,
)
from scribe.notifications import templates
from scribe.notifications.channels.base import NotificationChannel
from scribe.notifications.channels.in_app import InAppChannel
from scribe.notifications.channels.push import HttpPushSender, PushChannel
from scribe.notifications.channels.slack import SlackChannel
from scribe.notifications.fanout import NotificationFanout
from scribe.notifications.stores import InMemoryChannelConfigStore, InMemoryNotificationStore

GATEWAY = "https://push.example.com/send"
SLACK = "https://hooks.slack.com/services/T1/B1/abc"
USER = "user_1"


@pytest.fixture
def config():
    return InMemoryChannelConfigStore()


@pytest.fixture
def inbox():
    return InMemoryNotificationStore()


@pytest.fixture
def fanout(config, inbox, http):
    return NotificationFanout(
        channels=[
            InAppChannel(inbox),
            PushChannel(config, HttpPushSender(GATEWAY, transport=http.transport)),
            SlackChannel(config, transport=http.transport),
        ],
        config=config,
    )


@pytest.fixture
def envelope():
    return build_envelope(EventType.SUMMARY_COMPLETED, {"summary_id": "sum_1", "title": "Weekly Standup"})


async def _configure_all(config):
    await config.set_push_subscription(
        PushSubscription(user_id=USER, endpoint="https://fcm.example.com/x", keys={"p256dh": "k", "auth": "a"})
    )
    await config.set_slack_integration(SlackIntegration(user_id=USER, webhook_url=SLACK))


class ExplodingChannel(NotificationChannel):
    channel_type = NotificationChannelType.PUSH

    async def send(self, recipient, content, envelope=None):
        raise RuntimeError("boom")


@pytest.mark.asyncio
async def test_all_channels_delivered(fanout, config, inbox, http, envelope):
    await _configure_all(config)
    http.route(GATEWAY, 201)
    http.route(SLACK, 200)

    result = await fanout.notify(envelope, USER, organization_id="org-1")

    assert result.kind == "summary_ready"
    assert {name: r.status for name, r in result.results.items()} == {
        "in_app": ChannelStatus.DELIVERED,
        "push": ChannelStatus.DELIVERED,
        "slack": ChannelStatus.DELIVERED,
    }
    stored = inbox.all()
    assert len(stored) == 1
    assert stored[0].id == result.results["in_app"].notification_id
    assert stored[0].event_type == EventType.SUMMARY_COMPLETED
    assert stored[0].template_data["kind"] == "summary_ready"

    push_payload = json.loads(http.requests_to(GATEWAY)[0].content)
    assert push_payload["subscription"]["endpoint"] == "https://fcm.example.com/x"
    assert push_payload["notification"]["title"] == "Summary Ready"
    assert push_payload["notification"]["data"]["summary_id"] == "sum_1"


@pytest.mark.asyncio
async def test_unconfigured_channels_are_skipped(fanout, envelope, http):
    result = await fanout.notify(envelope, USER)

    assert result.status_of(NotificationChannelType.IN_APP) == ChannelStatus.DELIVERED
    assert result.status_of(NotificationChannelType.PUSH) == ChannelStatus.SKIPPED
    assert result.status_of(NotificationChannelType.SLACK) == ChannelStatus.SKIPPED
    assert http.requests == []


@pytest.mark.asyncio
async def test_preferences_disable_channels(fanout, config, inbox, http, envelope):
    await _configure_all(config)
    await config.set_preferences(USER, NotificationPreferences(in_app=False, slack=False))
    http.route(GATEWAY, 201)

    result = await fanout.notify(envelope, USER)

    assert result.status_of(NotificationChannelType.IN_APP) == ChannelStatus.SKIPPED
    assert result.status_of(NotificationChannelType.SLACK) == ChannelStatus.SKIPPED
    assert result.status_of(NotificationChannelType.PUSH) == ChannelStatus.DELIVERED
    assert inbox.all() == []
    assert http.requests_to(SLACK) == []


@pytest.mark.asyncio
async def test_expired_push_subscription_removed(fanout, config, http, envelope):
    await _configure_all(config)
    http.route(GATEWAY, 410)
    http.route(SLACK, 200)

    result = await fanout.notify(envelope, USER)

    push = result.results["push"]
    assert push.status == ChannelStatus.FAILED
    assert "expired" in push.error
    assert await config.get_push_subscription(USER) is None
    assert result.status_of(NotificationChannelType.SLACK) == ChannelStatus.DELIVERED


@pytest.mark.asyncio
async def test_slack_failure_does_not_affect_other_channels(fanout, config, http, envelope):
    await _configure_all(config)
    http.route(GATEWAY, 201)
    http.route(SLACK, 500)

    result = await fanout.notify(envelope, USER)

    assert result.status_of(NotificationChannelType.SLACK) == ChannelStatus.FAILED
    assert result.status_of(NotificationChannelType.PUSH) == ChannelStatus.DELIVERED
    assert result.status_of(NotificationChannelType.IN_APP) == ChannelStatus.DELIVERED


@pytest.mark.asyncio
async def test_raising_channel_reported_as_failed(config, inbox, envelope):
    fanout = NotificationFanout([InAppChannel(inbox), ExplodingChannel()], config)

    result = await fanout.notify(envelope, USER)

    assert result.results["push"].status == ChannelStatus.FAILED
    assert result.results["push"].error == "boom"
    assert result.status_of(NotificationChannelType.IN_APP) == ChannelStatus.DELIVERED


@pytest.mark.asyncio
async def test_inactive_slack_integration_skipped(config, http):
    await config.set_slack_integration(SlackIntegration(user_id=USER, webhook_url=SLACK, active=False))
    channel = SlackChannel(config, transport=http.transport)

    result = await channel.send(NotificationRecipient(user_id=USER), templates.summary_ready("T", "s1"))

    assert result.status == ChannelStatus.SKIPPED
    assert http.requests == []


def test_slack_message_format():
    channel = SlackChannel(InMemoryChannelConfigStore(), username="Scribe Bot", icon_emoji=":memo:")
    message = channel.build_message(templates.summary_ready("Weekly Standup", "sum_1"))

    assert message["text"].startswith("*Summary Ready*\n")
    assert "*Weekly Standup*" in message["text"]
    assert message["username"] == "Scribe Bot"
    assert message["icon_emoji"] == ":memo:"
    field = message["attachments"][0]["fields"][0]
    assert field["title"] == "Summary Ready"
    assert field["short"] is False


def test_templates_for_events():
    export = build_envelope(
        EventType.EXPORT_COMPLETED,
        {"export_id": "e1", "format": "pdf", "summary_id": "s1", "file_name": "standup.pdf"},
    )
    content = templates.content_for_event(export)
    assert content.kind == "export_complete"
    assert "PDF" in content.message

    failed = build_envelope(
        EventType.FILE_PROCESSED,
        {"file_id": "f1", "file_name": "call.mp3", "status": "failed", "error": "unsupported codec"},
    )
    assert templates.content_for_event(failed).kind == "processing_failed"

    processed = build_envelope(
        EventType.FILE_PROCESSED, {"file_id": "f1", "file_name": "call.mp3", "status": "completed"}
    )
    assert templates.content_for_event(processed) is None


@pytest.mark.asyncio
async def test_inbox_mark_read_is_per_user(inbox, envelope):
    channel = InAppChannel(inbox)
    result = await channel.send(NotificationRecipient(user_id=USER), templates.summary_ready("T", "s1"), envelope)

    assert not await inbox.mark_read(result.notification_id, "someone_else")
    assert await inbox.mark_read(result.notification_id, USER)
    assert await inbox.list_unread(USER) == []
