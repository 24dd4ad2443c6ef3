"""Pydantic models for webhook subscribers and their management requests."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from scribe.models.enums import EventType


class Subscriber(BaseModel):
    """A registered webhook endpoint."""

    model_config = ConfigDict(extra="forbid")

    id: str
    destination_url: str
    shared_secret: str
    subscribed_events: frozenset[EventType]
    active: bool = True
    scope_id: str | None = None
    consecutive_failures: int = 0
    created_at: datetime | None = None

    def public_view(self) -> dict:
        """Serializable view with the shared secret stripped."""
        data = self.model_dump(mode="json", exclude={"shared_secret"})
        data["subscribed_events"] = sorted(data["subscribed_events"])
        return data


class SubscriberCreate(BaseModel):
    """Request body for registering a webhook endpoint (server generates the ID)."""

    model_config = ConfigDict(extra="forbid")

    destination_url: str = Field(..., min_length=1, max_length=2000)
    shared_secret: str
    subscribed_events: list[str] = Field(..., min_length=1)
    scope_id: str | None = Field(None, max_length=128)
    active: bool = True


class SubscriberUpdate(BaseModel):
    """Partial update of a webhook endpoint."""

    model_config = ConfigDict(extra="forbid")

    destination_url: str | None = Field(None, min_length=1, max_length=2000)
    shared_secret: str | None = None
    subscribed_events: list[str] | None = None
    scope_id: str | None = None
    active: bool | None = None
