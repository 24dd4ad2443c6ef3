"""Per-user notification channel configuration repositories."""

from scribe.db.models.notification import (
    NotificationPreferenceRow,
    PushSubscriptionRow,
    SlackIntegrationRow,
)
from scribe.repositories.base import BaseRepository


class NotificationPreferenceRepository(BaseRepository[NotificationPreferenceRow]):
    model_class = NotificationPreferenceRow
    pk_field = "user_id"


class PushSubscriptionRepository(BaseRepository[PushSubscriptionRow]):
    model_class = PushSubscriptionRow
    pk_field = "user_id"


class SlackIntegrationRepository(BaseRepository[SlackIntegrationRow]):
    model_class = SlackIntegrationRow
    pk_field = "user_id"
