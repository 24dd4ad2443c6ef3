"""SQLAlchemy ORM models - import all to register with Base.metadata."""

from scribe.db.models.webhook import DeliveryAttemptRow, WebhookEndpointRow, WebhookEventRow
from scribe.db.models.notification import (
    NotificationPreferenceRow,
    NotificationRow,
    PushSubscriptionRow,
    SlackIntegrationRow,
)

__all__ = [
    "WebhookEndpointRow",
    "WebhookEventRow",
    "DeliveryAttemptRow",
    "NotificationRow",
    "PushSubscriptionRow",
    "SlackIntegrationRow",
    "NotificationPreferenceRow",
]
