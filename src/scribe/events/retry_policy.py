"""Failure classification and backoff for webhook delivery attempts."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from scribe.config import settings
from scribe.events.lifecycle import transition
from scribe.models.delivery import DeliveryAttempt
from scribe.models.enums import DeliveryStatus, FailureKind

TIMEOUT_ERROR = "timeout"

_RETRYABLE_CLIENT_STATUSES = frozenset({408, 429})


def classify_failure(attempt: DeliveryAttempt) -> FailureKind:
    """Timeouts, transport errors and 5xx are transient; other 4xx are permanent."""
    status = attempt.response_status
    if status is None or attempt.last_error == TIMEOUT_ERROR:
        return FailureKind.TRANSIENT
    if 400 <= status < 500 and status not in _RETRYABLE_CLIENT_STATUSES:
        return FailureKind.PERMANENT
    return FailureKind.TRANSIENT


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 5
    base_delay: float = 30.0
    max_delay: float = 3600.0

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=settings.retry_max_attempts,
            base_delay=settings.retry_base_delay_seconds,
            max_delay=settings.retry_max_delay_seconds,
        )

    def next_delay(self, attempt_count: int) -> float:
        """Seconds until the next try: ``base_delay * 2**attempt_count``, capped."""
        return min(self.base_delay * (2 ** attempt_count), self.max_delay)

    def exhausted(self, attempt_count: int) -> bool:
        return attempt_count >= self.max_attempts


def settle_failure(attempt: DeliveryAttempt, policy: RetryPolicy, now: datetime | None = None) -> str | None:
    """Move a ``failed`` attempt on to ``retrying`` or ``abandoned``.

    Returns the abandonment reason, or None when a retry was scheduled.
    """
    if classify_failure(attempt) == FailureKind.PERMANENT:
        transition(attempt, DeliveryStatus.ABANDONED)
        return "permanent failure"
    if policy.exhausted(attempt.attempt_count):
        transition(attempt, DeliveryStatus.ABANDONED)
        return "retry budget exhausted"

    now = now or datetime.now(timezone.utc)
    transition(attempt, DeliveryStatus.RETRYING)
    attempt.next_retry_at = now + timedelta(seconds=policy.next_delay(attempt.attempt_count))
    return None
