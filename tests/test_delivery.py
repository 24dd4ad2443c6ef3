"""Tests for the delivery executor."""

import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from scribe.events.delivery import TIMEOUT_ERROR, DeliveryExecutor
from scribe.events.delivery_log import InMemoryDeliveryStore
from scribe.events.envelope import build_envelope, serialize_envelope
from scribe.events.registry import new_subscriber
from scribe.events.retry_policy import RetryPolicy
from scribe.events.signing import verify
from scribe.models.enums import DeliveryStatus, EventType

URL = "https://hooks.example.com/scribe"
SECRET = "s3cret"
T0 = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def deliveries():
    return InMemoryDeliveryStore()


@pytest.fixture
def subscriber():
    return new_subscriber(URL, SECRET, ["summary.completed"])


@pytest.fixture
def envelope():
    return build_envelope(EventType.SUMMARY_COMPLETED, {"summary_id": "s1", "title": "Weekly Standup"})


def _executor(deliveries, http, **kwargs):
    return DeliveryExecutor(deliveries, transport=http.transport, **kwargs)


@pytest.mark.asyncio
async def test_success_records_attempt_and_signs_exact_body(deliveries, http, subscriber, envelope):
    http.route(URL, 200)
    attempt = await _executor(deliveries, http).deliver(subscriber, envelope)

    assert attempt.status == DeliveryStatus.SUCCESS
    assert attempt.attempt_count == 1
    assert attempt.response_status == 200
    assert attempt.last_attempt_at is not None
    assert attempt.id.startswith("dlv_")

    request = http.requests_to(URL)[0]
    assert request.content == serialize_envelope(envelope)
    assert request.headers["Content-Type"] == "application/json"
    assert request.headers["User-Agent"] == "SlackSummaryScribe-Webhooks/1.0"
    assert request.headers["X-Webhook-Event"] == "summary.completed"
    assert request.headers["X-Webhook-ID"] == envelope.id
    assert verify(request.content, request.headers["X-Webhook-Signature"], SECRET)
    assert json.loads(request.content)["id"] == envelope.id

    stored = await deliveries.get(attempt.id)
    assert stored.status == DeliveryStatus.SUCCESS


@pytest.mark.asyncio
async def test_server_error_is_scheduled_for_retry_with_status_and_body(deliveries, http, subscriber, envelope):
    http.route(URL, httpx.Response(503, text="maintenance"))
    attempt = await _executor(deliveries, http).deliver(subscriber, envelope)

    assert attempt.status == DeliveryStatus.RETRYING
    assert attempt.next_retry_at is not None
    assert attempt.response_status == 503
    assert attempt.response_body == "maintenance"
    assert attempt.last_error.startswith("HTTP 503")


@pytest.mark.asyncio
async def test_timeout_is_recorded_with_timeout_error(deliveries, http, subscriber, envelope):
    http.delay(URL, seconds=2.0)
    attempt = await _executor(deliveries, http, timeout=0.05).deliver(subscriber, envelope)

    assert attempt.status == DeliveryStatus.RETRYING
    assert attempt.last_error == TIMEOUT_ERROR
    assert attempt.response_status is None


@pytest.mark.asyncio
async def test_connection_error_is_recorded_not_raised(deliveries, http, subscriber, envelope):
    http.route(URL, httpx.ConnectError("connection refused"))
    attempt = await _executor(deliveries, http).deliver(subscriber, envelope)

    assert attempt.status == DeliveryStatus.RETRYING
    assert "connection refused" in attempt.last_error
    assert attempt.response_status is None


@pytest.mark.asyncio
async def test_response_body_truncated(deliveries, http, subscriber, envelope):
    http.route(URL, httpx.Response(500, text="x" * 5000))
    attempt = await _executor(deliveries, http, response_body_max_chars=100).deliver(subscriber, envelope)
    assert len(attempt.response_body) == 100


@pytest.mark.asyncio
async def test_one_attempt_record_per_call(deliveries, http, subscriber, envelope):
    http.route(URL, 500)
    executor = _executor(deliveries, http)
    await executor.deliver(subscriber, envelope)
    await executor.deliver(subscriber, envelope)
    assert len(deliveries.all()) == 2


@pytest.mark.asyncio
async def test_client_error_is_abandoned_in_the_same_write(deliveries, http, subscriber, envelope):
    http.route(URL, httpx.Response(404, text="no such hook"))
    attempt = await _executor(deliveries, http).deliver(subscriber, envelope)

    assert attempt.status == DeliveryStatus.ABANDONED
    assert attempt.next_retry_at is None
    stored = await deliveries.get(attempt.id)
    assert stored.status == DeliveryStatus.ABANDONED
    assert stored.response_status == 404


@pytest.mark.asyncio
async def test_failure_on_last_allowed_attempt_is_abandoned(deliveries, http, subscriber, envelope):
    http.route(URL, 500)
    executor = _executor(deliveries, http, policy=RetryPolicy(max_attempts=2, base_delay=1, max_delay=10))

    first = await executor.deliver(subscriber, envelope, now=T0)
    assert first.status == DeliveryStatus.RETRYING
    assert first.next_retry_at == T0 + timedelta(seconds=2)

    second = await executor.deliver(subscriber, envelope, first, now=T0)
    assert second.status == DeliveryStatus.ABANDONED
    assert second.attempt_count == 2


@pytest.mark.asyncio
async def test_stored_attempt_never_rests_in_failed(deliveries, http, subscriber, envelope):
    executor = _executor(deliveries, http, timeout=0.05)
    http.route(URL, 503)
    await executor.deliver(subscriber, envelope)
    http.route(URL, 400)
    await executor.deliver(subscriber, envelope)
    http.route(URL, httpx.ConnectError("connection refused"))
    await executor.deliver(subscriber, envelope)

    statuses = {a.status for a in deliveries.all()}
    assert DeliveryStatus.FAILED not in statuses
    assert statuses == {DeliveryStatus.RETRYING, DeliveryStatus.ABANDONED}
