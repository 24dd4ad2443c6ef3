"""Pydantic models for delivery attempts and fan-out results."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from scribe.models.enums import DeliveryStatus, EventType
from scribe.models.notification import NotificationFanoutResult


class DeliveryAttempt(BaseModel):
    """The record of delivering one envelope to one subscriber.

    Mutated in place after each transmission; ``attempt_count`` only grows.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    id: str
    subscriber_id: str
    envelope_id: str
    event_type: EventType
    status: DeliveryStatus = DeliveryStatus.PENDING
    attempt_count: int = Field(0, ge=0)
    last_attempt_at: datetime | None = None
    next_retry_at: datetime | None = None
    response_status: int | None = None
    response_body: str | None = None
    last_error: str | None = None
    created_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (DeliveryStatus.SUCCESS, DeliveryStatus.ABANDONED)


class FanoutSummary(BaseModel):
    """Aggregate outcome of one dispatch call."""

    model_config = ConfigDict(extra="forbid")

    envelope_id: str
    event_type: EventType
    succeeded: int = 0
    failed: int = 0
    attempt_ids: list[str] = Field(default_factory=list)
    notifications: NotificationFanoutResult | None = None


class RetrySweepResult(BaseModel):
    """Counts from one pass of the retry sweep."""

    model_config = ConfigDict(extra="forbid")

    due: int = 0
    succeeded: int = 0
    rescheduled: int = 0
    abandoned: int = 0
    skipped: int = 0
