"""Pydantic model for the event envelope carried by every webhook delivery."""

from collections.abc import Mapping
from datetime import datetime
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from scribe.models.enums import EventType


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


class EventEnvelope(BaseModel):
    """Immutable wrapper around one event occurrence.

    ``data`` is frozen all the way down (read-only mappings, tuples for lists),
    so the bytes serialized for a retry always match the first delivery.
    ``id`` is the receiver's deduplication key; it is never reused across builds.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    event_type: EventType
    data: Mapping[str, Any] = Field(default_factory=dict)
    occurred_at: datetime
    schema_version: str = Field("1.0", pattern=r"^\d+\.\d+(\.\d+)?$")

    @field_validator("data", mode="after")
    @classmethod
    def _freeze_data(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return _freeze(value)

    @field_serializer("data")
    def _serialize_data(self, value: Mapping[str, Any]) -> dict[str, Any]:
        return _thaw(value)
