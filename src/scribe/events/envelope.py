"""Event envelope construction and wire serialization."""

import json
import uuid
from datetime import datetime, timezone
from typing import Any

from scribe.models.enums import EventType
from scribe.models.envelope import EventEnvelope
from scribe.models.payloads import coerce_event_type

SCHEMA_VERSION = "1.0"


def build_envelope(
    event_type: str | EventType,
    data: dict[str, Any],
    schema_version: str = SCHEMA_VERSION,
) -> EventEnvelope:
    """Wrap *data* in a fresh envelope.

    Every call mints a new id and timestamp, so two builds from identical input
    are distinct events to a receiver.
    """
    return EventEnvelope(
        id=str(uuid.uuid4()),
        event_type=coerce_event_type(event_type),
        data=dict(data),
        occurred_at=datetime.now(timezone.utc),
        schema_version=schema_version,
    )


def serialize_envelope(envelope: EventEnvelope) -> bytes:
    """Stable JSON wire bytes: sorted keys, compact separators, UTF-8."""
    body = envelope.model_dump(mode="json")
    return json.dumps(body, sort_keys=True, separators=(",", ":"), default=str).encode("utf-8")


def deserialize_envelope(body: bytes | str) -> EventEnvelope:
    return EventEnvelope.model_validate_json(body)
