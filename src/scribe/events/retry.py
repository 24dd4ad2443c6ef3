"""Retry scheduling for failed webhook deliveries.

A failed attempt is either rescheduled with exponential backoff or abandoned.
Permanent failures (4xx other than 408/429) are abandoned immediately; they
would fail the same way on every retry.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

from scribe.config import settings
from scribe.events.delivery import DeliveryExecutor
from scribe.events.delivery_log import DeliveryStore
from scribe.events.envelope import deserialize_envelope
from scribe.events.lifecycle import transition
from scribe.events.registry import SubscriberStore
from scribe.events.retry_policy import RetryPolicy, classify_failure, settle_failure
from scribe.models.delivery import DeliveryAttempt, RetrySweepResult
from scribe.models.enums import DeliveryStatus, FailureKind

__all__ = ["AttemptClaim", "RetryPolicy", "RetryScheduler", "classify_failure"]

logger = logging.getLogger(__name__)

AttemptClaim = Callable[[DeliveryAttempt], Awaitable[bool]]


class RetryScheduler:
    """Owns the consequences of every transmission and the periodic re-delivery sweep.

    The scheduler shares the executor's ``RetryPolicy``; passing *policy* here
    replaces it on both, so the executor's settlement and the sweep agree.
    """

    def __init__(
        self,
        deliveries: DeliveryStore,
        subscribers: SubscriberStore,
        executor: DeliveryExecutor,
        policy: RetryPolicy | None = None,
        failure_threshold: int | None = None,
    ) -> None:
        self._deliveries = deliveries
        self._subscribers = subscribers
        self._executor = executor
        if policy is not None:
            executor.policy = policy
        self.failure_threshold = (
            failure_threshold if failure_threshold is not None else settings.subscriber_failure_threshold
        )

    @property
    def policy(self) -> RetryPolicy:
        return self._executor.policy

    async def after_attempt(self, attempt: DeliveryAttempt, now: datetime | None = None) -> DeliveryAttempt:
        """Apply the subscriber bookkeeping for an attempt the executor just finished."""
        if attempt.status == DeliveryStatus.SUCCESS:
            await self._subscribers.record_outcome(attempt.subscriber_id, success=True)
        elif attempt.status == DeliveryStatus.FAILED:
            return await self.handle_failure(attempt, now)
        elif attempt.status == DeliveryStatus.RETRYING:
            logger.info(
                "Delivery %s scheduled for retry at %s (attempt=%d/%d)",
                attempt.id,
                attempt.next_retry_at.isoformat() if attempt.next_retry_at else None,
                attempt.attempt_count,
                self.policy.max_attempts,
            )
        elif attempt.status == DeliveryStatus.ABANDONED:
            reason = (
                "permanent failure"
                if classify_failure(attempt) == FailureKind.PERMANENT
                else "retry budget exhausted"
            )
            await self._record_abandonment(attempt, reason)
        return attempt

    async def handle_failure(self, attempt: DeliveryAttempt, now: datetime | None = None) -> DeliveryAttempt:
        """Settle a ``failed`` attempt to ``retrying`` or ``abandoned`` and persist it."""
        reason = settle_failure(attempt, self.policy, now or datetime.now(timezone.utc))
        await self._deliveries.save(attempt)
        if reason is None:
            return await self.after_attempt(attempt, now)
        await self._record_abandonment(attempt, reason)
        return attempt

    async def _abandon(self, attempt: DeliveryAttempt, reason: str) -> DeliveryAttempt:
        transition(attempt, DeliveryStatus.ABANDONED)
        await self._deliveries.save(attempt)
        await self._record_abandonment(attempt, reason)
        return attempt

    async def _record_abandonment(self, attempt: DeliveryAttempt, reason: str) -> None:
        logger.warning(
            "Delivery %s abandoned after %d attempt(s): %s (last_error=%s)",
            attempt.id,
            attempt.attempt_count,
            reason,
            attempt.last_error,
        )
        subscriber = await self._subscribers.record_outcome(
            attempt.subscriber_id,
            success=False,
            failure_threshold=self.failure_threshold,
        )
        if subscriber is not None and not subscriber.active:
            logger.warning(
                "Subscriber %s deactivated after %d consecutive abandoned deliveries",
                subscriber.id,
                subscriber.consecutive_failures,
            )

    # ------------------------------------------------------------------
    # Sweep
    # ------------------------------------------------------------------

    async def run_due(
        self,
        now: datetime | None = None,
        limit: int = 100,
        claim: AttemptClaim | None = None,
    ) -> RetrySweepResult:
        """Re-deliver every attempt whose retry time has passed.

        Due attempts are independent and are retried concurrently. *claim* lets a
        caller skip attempts another worker already owns.
        """
        now = now or datetime.now(timezone.utc)
        due = await self._deliveries.list_due(now, limit)
        result = RetrySweepResult(due=len(due))
        if not due:
            return result

        outcomes = await asyncio.gather(*(self._retry_one(a, now, claim) for a in due))
        for outcome in outcomes:
            setattr(result, outcome, getattr(result, outcome) + 1)
        logger.info(
            "Retry sweep finished: due=%d succeeded=%d rescheduled=%d abandoned=%d skipped=%d",
            result.due,
            result.succeeded,
            result.rescheduled,
            result.abandoned,
            result.skipped,
        )
        return result

    async def _retry_one(self, attempt: DeliveryAttempt, now: datetime, claim: AttemptClaim | None) -> str:
        try:
            if claim is not None and not await claim(attempt):
                return "skipped"

            current = await self._deliveries.get(attempt.id)
            if current is None or current.is_terminal or current.attempt_count != attempt.attempt_count:
                logger.debug("Delivery %s settled elsewhere since the sweep listed it", attempt.id)
                return "skipped"

            subscriber = await self._subscribers.get(attempt.subscriber_id)
            if subscriber is None or not subscriber.active:
                attempt.last_error = "subscriber inactive"
                await self._abandon(attempt, reason="subscriber inactive")
                return "abandoned"

            body = await self._deliveries.get_envelope_body(attempt.envelope_id)
            if body is None:
                attempt.last_error = "envelope missing"
                await self._abandon(attempt, reason="envelope missing")
                return "abandoned"

            envelope = deserialize_envelope(body)
            attempt = await self._executor.deliver(subscriber, envelope, attempt, body=body, now=now)
            attempt = await self.after_attempt(attempt, now)
        except Exception:
            logger.exception("Retry of delivery %s raised unexpectedly", attempt.id)
            return "skipped"

        if attempt.status == DeliveryStatus.SUCCESS:
            return "succeeded"
        if attempt.status == DeliveryStatus.RETRYING:
            return "rescheduled"
        return "abandoned"
