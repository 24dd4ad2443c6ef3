"""Webhook delivery to a single subscriber with HMAC signing and a hard timeout."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

import httpx

from scribe.config import settings
from scribe.events.delivery_log import DeliveryStore
from scribe.events.envelope import serialize_envelope
from scribe.events.lifecycle import transition
from scribe.events.retry_policy import TIMEOUT_ERROR, RetryPolicy, settle_failure
from scribe.events.signing import ENVELOPE_ID_HEADER, EVENT_HEADER, SIGNATURE_HEADER, sign
from scribe.models.delivery import DeliveryAttempt
from scribe.models.enums import DeliveryStatus
from scribe.models.envelope import EventEnvelope
from scribe.models.subscriber import Subscriber
from scribe.services.id_generator import generate_id

logger = logging.getLogger(__name__)


@dataclass
class _Outcome:
    status_code: int | None = None
    body: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status_code is not None and 200 <= self.status_code < 300


class DeliveryExecutor:
    """Transmits one envelope to one subscriber and records the attempt.

    Every call writes exactly one attempt record: a new ``pending`` record is
    created when *attempt* is not supplied, and the outcome is then saved once.
    A failed transmission is classified and settled by *policy* before that
    save, so the stored record is ``success``, ``retrying`` or ``abandoned``.
    Failures are recorded, never raised.

    Args:
        deliveries: Store receiving the attempt record.
        timeout: Hard limit in seconds for the whole request, connect to last byte.
        policy: Backoff and attempt budget applied to failed transmissions.
        transport: Optional httpx transport (tests inject ``httpx.MockTransport``).
    """

    def __init__(
        self,
        deliveries: DeliveryStore,
        timeout: float | None = None,
        user_agent: str | None = None,
        response_body_max_chars: int | None = None,
        policy: RetryPolicy | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._deliveries = deliveries
        self.timeout = timeout if timeout is not None else settings.webhook_timeout_seconds
        self.user_agent = user_agent or settings.webhook_user_agent
        self.response_body_max_chars = (
            response_body_max_chars
            if response_body_max_chars is not None
            else settings.response_body_max_chars
        )
        self.policy = policy or RetryPolicy.from_settings()
        self._transport = transport

    def build_headers(self, envelope_id: str, event_type: str, body: bytes, secret: str) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "User-Agent": self.user_agent,
            SIGNATURE_HEADER: sign(body, secret),
            EVENT_HEADER: event_type,
            ENVELOPE_ID_HEADER: envelope_id,
        }

    async def deliver(
        self,
        subscriber: Subscriber,
        envelope: EventEnvelope,
        attempt: DeliveryAttempt | None = None,
        body: bytes | None = None,
        now: datetime | None = None,
    ) -> DeliveryAttempt:
        """Deliver *envelope* to *subscriber*.

        Args:
            attempt: Existing record to continue (retries); a new one is created if None.
            body: Pre-serialized wire bytes; retries pass the stored body so the
                signature covers exactly what was sent the first time.
            now: Reference time for scheduling the next retry.
        """
        if body is None:
            body = serialize_envelope(envelope)

        if attempt is None:
            attempt = DeliveryAttempt(
                id=generate_id("dlv_"),
                subscriber_id=subscriber.id,
                envelope_id=envelope.id,
                event_type=envelope.event_type,
                created_at=datetime.now(timezone.utc),
            )
            await self._deliveries.create(attempt)

        headers = self.build_headers(envelope.id, envelope.event_type.value, body, subscriber.shared_secret)
        outcome = await self._post(subscriber.destination_url, body, headers)

        attempt.attempt_count += 1
        attempt.last_attempt_at = datetime.now(timezone.utc)
        attempt.response_status = outcome.status_code
        attempt.response_body = self._truncate(outcome.body)

        if outcome.ok:
            transition(attempt, DeliveryStatus.SUCCESS)
            attempt.last_error = None
            logger.info(
                "Webhook delivered to %s (status=%s, attempt=%d)",
                subscriber.destination_url,
                outcome.status_code,
                attempt.attempt_count,
            )
        else:
            transition(attempt, DeliveryStatus.FAILED)
            attempt.last_error = outcome.error or f"HTTP {outcome.status_code}"
            logger.warning(
                "Webhook delivery failed to %s: %s (attempt=%d)",
                subscriber.destination_url,
                attempt.last_error,
                attempt.attempt_count,
            )
            settle_failure(attempt, self.policy, now)

        await self._deliveries.save(attempt)
        return attempt

    async def _post(self, url: str, body: bytes, headers: dict[str, str]) -> _Outcome:
        try:
            async with asyncio.timeout(self.timeout):
                async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                    response = await client.post(url, content=body, headers=headers)
        except (TimeoutError, httpx.TimeoutException):
            return _Outcome(error=TIMEOUT_ERROR)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            return _Outcome(error=str(exc) or exc.__class__.__name__)

        if 200 <= response.status_code < 300:
            return _Outcome(status_code=response.status_code, body=response.text)
        error = f"HTTP {response.status_code}"
        if response.reason_phrase:
            error = f"{error}: {response.reason_phrase}"
        return _Outcome(status_code=response.status_code, body=response.text, error=error)

    def _truncate(self, text: str | None) -> str | None:
        if text is None:
            return None
        if len(text) <= self.response_body_max_chars:
            return text
        return text[: self.response_body_max_chars]
