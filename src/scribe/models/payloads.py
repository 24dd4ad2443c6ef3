"""Typed event payloads, one model per event type.

Producers construct one of these models; the envelope still carries the payload
as an opaque mapping so subscribers are not bound to Python types. Unknown extra
keys are allowed so producers can enrich payloads without a schema release.
"""

from typing import Any, ClassVar

import pydantic
from pydantic import BaseModel, ConfigDict

from scribe.errors.exceptions import UnknownEventTypeError, ValidationError
from scribe.models.enums import EventType


class EventPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    event_type: ClassVar[EventType]

    def to_data(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class UserCreated(EventPayload):
    event_type: ClassVar[EventType] = EventType.USER_CREATED

    user_id: str
    email: str
    name: str


class UserUpdated(EventPayload):
    event_type: ClassVar[EventType] = EventType.USER_UPDATED

    user_id: str
    changes: dict[str, Any] = {}


class SubscriptionCreated(EventPayload):
    event_type: ClassVar[EventType] = EventType.SUBSCRIPTION_CREATED

    subscription_id: str
    user_id: str
    plan: str
    amount: float


class SubscriptionUpdated(EventPayload):
    event_type: ClassVar[EventType] = EventType.SUBSCRIPTION_UPDATED

    subscription_id: str
    user_id: str
    plan: str
    status: str | None = None


class SubscriptionCancelled(EventPayload):
    event_type: ClassVar[EventType] = EventType.SUBSCRIPTION_CANCELLED

    subscription_id: str
    user_id: str
    reason: str | None = None


class PaymentSuccess(EventPayload):
    event_type: ClassVar[EventType] = EventType.PAYMENT_SUCCESS

    payment_id: str
    user_id: str
    amount: float
    plan: str


class PaymentFailed(EventPayload):
    event_type: ClassVar[EventType] = EventType.PAYMENT_FAILED

    payment_id: str
    user_id: str
    amount: float
    reason: str


class SummaryCreated(EventPayload):
    event_type: ClassVar[EventType] = EventType.SUMMARY_CREATED

    summary_id: str
    title: str
    user_id: str | None = None


class SummaryCompleted(EventPayload):
    event_type: ClassVar[EventType] = EventType.SUMMARY_COMPLETED

    summary_id: str
    title: str
    user_id: str | None = None
    word_count: int | None = None


class SummaryFailed(EventPayload):
    event_type: ClassVar[EventType] = EventType.SUMMARY_FAILED

    summary_id: str
    error: str
    title: str | None = None
    user_id: str | None = None


class SlackConnected(EventPayload):
    event_type: ClassVar[EventType] = EventType.SLACK_CONNECTED

    user_id: str
    workspace_id: str
    workspace_name: str


class SlackDisconnected(EventPayload):
    event_type: ClassVar[EventType] = EventType.SLACK_DISCONNECTED

    user_id: str
    workspace_id: str


class FileUploaded(EventPayload):
    event_type: ClassVar[EventType] = EventType.FILE_UPLOADED

    file_id: str
    file_name: str
    user_id: str | None = None


class FileProcessed(EventPayload):
    event_type: ClassVar[EventType] = EventType.FILE_PROCESSED

    file_id: str
    file_name: str
    status: str
    user_id: str | None = None
    error: str | None = None


class ExportCompleted(EventPayload):
    event_type: ClassVar[EventType] = EventType.EXPORT_COMPLETED

    export_id: str
    format: str
    summary_id: str
    user_id: str | None = None
    file_name: str | None = None


PAYLOAD_MODELS: dict[EventType, type[EventPayload]] = {
    model.event_type: model
    for model in (
        UserCreated,
        UserUpdated,
        SubscriptionCreated,
        SubscriptionUpdated,
        SubscriptionCancelled,
        PaymentSuccess,
        PaymentFailed,
        SummaryCreated,
        SummaryCompleted,
        SummaryFailed,
        SlackConnected,
        SlackDisconnected,
        FileUploaded,
        FileProcessed,
        ExportCompleted,
    )
}


def coerce_event_type(event_type: str | EventType) -> EventType:
    """Return the ``EventType`` member for *event_type* or raise ``UnknownEventTypeError``."""
    try:
        return EventType(event_type)
    except ValueError:
        raise UnknownEventTypeError(str(event_type)) from None


def validate_event_data(event_type: EventType, data: dict[str, Any]) -> EventPayload:
    """Validate raw *data* against the payload model registered for *event_type*."""
    model = PAYLOAD_MODELS[event_type]
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as exc:
        errors = [
            {"loc": [str(part) for part in err["loc"]], "msg": err["msg"], "type": err["type"]}
            for err in exc.errors()
        ]
        raise ValidationError(
            f"Invalid payload for event '{event_type}'",
            details={"event_type": str(event_type), "errors": errors},
        ) from exc
