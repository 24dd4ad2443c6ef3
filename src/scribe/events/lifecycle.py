"""Delivery attempt state machine.

    pending  -> success | failed
    failed   -> retrying | abandoned
    retrying -> success | failed | abandoned

``success`` and ``abandoned`` are terminal. ``failed`` is the classification of a
single transmission and is settled to ``retrying`` or ``abandoned`` before the
attempt is persisted, so stored attempts never rest in it. The retrying loop is
bounded by ``attempt_count``, which grows by one on every transmission.
"""

from scribe.errors.exceptions import InvalidTransitionError
from scribe.models.delivery import DeliveryAttempt
from scribe.models.enums import DeliveryStatus

ALLOWED_TRANSITIONS: dict[DeliveryStatus, frozenset[DeliveryStatus]] = {
    DeliveryStatus.PENDING: frozenset({DeliveryStatus.SUCCESS, DeliveryStatus.FAILED}),
    DeliveryStatus.FAILED: frozenset({DeliveryStatus.RETRYING, DeliveryStatus.ABANDONED}),
    DeliveryStatus.RETRYING: frozenset(
        {DeliveryStatus.SUCCESS, DeliveryStatus.FAILED, DeliveryStatus.ABANDONED}
    ),
    DeliveryStatus.SUCCESS: frozenset(),
    DeliveryStatus.ABANDONED: frozenset(),
}


def can_transition(current: DeliveryStatus, target: DeliveryStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def transition(attempt: DeliveryAttempt, target: DeliveryStatus) -> None:
    """Move *attempt* to *target*, clearing ``next_retry_at`` unless now retrying."""
    if not can_transition(attempt.status, target):
        raise InvalidTransitionError(attempt.id, attempt.status.value, target.value)
    attempt.status = target
    if target != DeliveryStatus.RETRYING:
        attempt.next_retry_at = None
