"""Storage interfaces for in-app notifications and per-user channel configuration."""

from abc import ABC, abstractmethod
from datetime import datetime, timezone

from scribe.models.notification import (
    Notification,
    NotificationPreferences,
    PushSubscription,
    SlackIntegration,
)


class NotificationStore(ABC):
    @abstractmethod
    async def add(self, notification: Notification) -> Notification:
        ...

    @abstractmethod
    async def list_unread(self, user_id: str, limit: int = 10) -> list[Notification]:
        """Unread notifications for *user_id*, newest first."""
        ...

    @abstractmethod
    async def mark_read(self, notification_id: str, user_id: str) -> bool:
        """Set ``read_at``; returns False when the notification is not the user's."""
        ...


class ChannelConfigStore(ABC):
    """Where the fan-out looks up preferences, push subscriptions and Slack webhooks."""

    @abstractmethod
    async def get_preferences(self, user_id: str) -> NotificationPreferences:
        """Stored preferences, or defaults when the user never saved any."""
        ...

    @abstractmethod
    async def set_preferences(self, user_id: str, preferences: NotificationPreferences) -> None:
        ...

    @abstractmethod
    async def get_push_subscription(self, user_id: str) -> PushSubscription | None:
        ...

    @abstractmethod
    async def set_push_subscription(self, subscription: PushSubscription) -> None:
        ...

    @abstractmethod
    async def remove_push_subscription(self, user_id: str) -> None:
        ...

    @abstractmethod
    async def get_slack_integration(self, user_id: str) -> SlackIntegration | None:
        """The user's active Slack integration, if any."""
        ...

    @abstractmethod
    async def set_slack_integration(self, integration: SlackIntegration) -> None:
        ...


class InMemoryNotificationStore(NotificationStore):
    def __init__(self) -> None:
        self._rows: list[Notification] = []

    async def add(self, notification: Notification) -> Notification:
        self._rows.append(notification)
        return notification

    async def list_unread(self, user_id: str, limit: int = 10) -> list[Notification]:
        unread = [n for n in reversed(self._rows) if n.user_id == user_id and n.read_at is None]
        return unread[:limit]

    async def mark_read(self, notification_id: str, user_id: str) -> bool:
        for index, row in enumerate(self._rows):
            if row.id == notification_id and row.user_id == user_id:
                self._rows[index] = row.model_copy(update={"read_at": datetime.now(timezone.utc)})
                return True
        return False

    def all(self) -> list[Notification]:
        return list(self._rows)


class InMemoryChannelConfigStore(ChannelConfigStore):
    def __init__(self) -> None:
        self._preferences: dict[str, NotificationPreferences] = {}
        self._push: dict[str, PushSubscription] = {}
        self._slack: dict[str, SlackIntegration] = {}

    async def get_preferences(self, user_id: str) -> NotificationPreferences:
        return self._preferences.get(user_id) or NotificationPreferences()

    async def set_preferences(self, user_id: str, preferences: NotificationPreferences) -> None:
        self._preferences[user_id] = preferences

    async def get_push_subscription(self, user_id: str) -> PushSubscription | None:
        return self._push.get(user_id)

    async def set_push_subscription(self, subscription: PushSubscription) -> None:
        self._push[subscription.user_id] = subscription

    async def remove_push_subscription(self, user_id: str) -> None:
        self._push.pop(user_id, None)

    async def get_slack_integration(self, user_id: str) -> SlackIntegration | None:
        integration = self._slack.get(user_id)
        if integration is None or not integration.active:
            return None
        return integration

    async def set_slack_integration(self, integration: SlackIntegration) -> None:
        self._slack[integration.user_id] = integration
