"""Notification inbox and per-user channel configuration tables."""

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from scribe.db.base import Base, TimestampMixin


class NotificationRow(Base, TimestampMixin):
    __tablename__ = "notifications"

    notification_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    organization_id: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)
    channel: Mapped[str] = mapped_column(String(20), nullable=False, default="in_app")
    event_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    template_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class PushSubscriptionRow(Base, TimestampMixin):
    __tablename__ = "push_subscriptions"

    user_id: Mapped[str] = mapped_column(String(200), primary_key=True)
    endpoint: Mapped[str] = mapped_column(String(2000), nullable=False)
    keys: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)


class SlackIntegrationRow(Base, TimestampMixin):
    __tablename__ = "slack_integrations"

    user_id: Mapped[str] = mapped_column(String(200), primary_key=True)
    webhook_url: Mapped[str] = mapped_column(String(2000), nullable=False)
    organization_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    team_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class NotificationPreferenceRow(Base, TimestampMixin):
    __tablename__ = "notification_preferences"

    user_id: Mapped[str] = mapped_column(String(200), primary_key=True)
    in_app: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    push: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    slack: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    email: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
