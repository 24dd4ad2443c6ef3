"""Pydantic models for the per-user notification fan-out path."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from scribe.models.enums import ChannelStatus, EventType, NotificationChannelType


class Notification(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    user_id: str
    organization_id: str | None = None
    channel: NotificationChannelType = NotificationChannelType.IN_APP
    event_type: EventType | None = None
    title: str
    body: str
    template_data: dict[str, Any] = Field(default_factory=dict)
    delivered_at: datetime | None = None
    read_at: datetime | None = None


class PushContent(BaseModel):
    """Payload handed to the push gateway."""

    model_config = ConfigDict(extra="forbid")

    title: str
    body: str
    icon: str = "/icon-192x192.png"
    badge: str = "/badge-72x72.png"
    data: dict[str, Any] = Field(default_factory=dict)


class NotificationContent(BaseModel):
    """Rendered content for one notification across every channel."""

    model_config = ConfigDict(extra="forbid")

    kind: str
    title: str
    message: str
    push: PushContent | None = None
    slack_message: str | None = None
    template_data: dict[str, Any] = Field(default_factory=dict)


class NotificationRecipient(BaseModel):
    model_config = ConfigDict(extra="forbid")

    user_id: str
    organization_id: str | None = None


class NotificationPreferences(BaseModel):
    """Per-user channel switches. Defaults mirror a freshly created account."""

    model_config = ConfigDict(extra="forbid")

    in_app: bool = True
    push: bool = True
    slack: bool = True
    email: bool = False

    def allows(self, channel: NotificationChannelType) -> bool:
        return bool(getattr(self, channel.value))


class PushSubscription(BaseModel):
    """Browser push subscription object as stored for a user."""

    model_config = ConfigDict(extra="forbid")

    user_id: str
    endpoint: str
    keys: dict[str, str] = Field(default_factory=dict)


class SlackIntegration(BaseModel):
    model_config = ConfigDict(extra="forbid")

    user_id: str
    webhook_url: str
    organization_id: str | None = None
    team_name: str | None = None
    active: bool = True


class ChannelResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    channel: str
    status: ChannelStatus
    error: str | None = None
    notification_id: str | None = None

    @property
    def delivered(self) -> bool:
        return self.status == ChannelStatus.DELIVERED


class NotificationFanoutResult(BaseModel):
    """Per-channel outcome of one notification fan-out."""

    model_config = ConfigDict(extra="forbid")

    user_id: str
    kind: str | None = None
    results: dict[str, ChannelResult] = Field(default_factory=dict)

    def status_of(self, channel: NotificationChannelType) -> ChannelStatus | None:
        result = self.results.get(channel.value)
        return result.status if result else None
